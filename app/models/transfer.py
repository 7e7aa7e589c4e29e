"""
Transfer model definitions.

This module defines the uniform data model exchanged with callers of the
gateway, independent of the backend transfer service handling a request:

- Transfer: the request payload (files to copy and transfer parameters).
- TransferInfo: identity and state of a job, returned on start.
- TransferInfoExtended: job details, per-file status and completion metrics.
- TransferList: jobs matching a search, in the order the backend reported them.

Job states are expressed in a single vocabulary (`JobState`); each backend
adapter translates its own states into it.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field


class JobState(str, Enum):
    """Uniform job state vocabulary."""

    SUBMITTED = "submitted"
    ACTIVE = "active"
    CANCELED = "canceled"
    FAILED = "failed"
    FINISHED = "finished"
    FINISHED_WITH_ERRORS = "finished-with-errors"
    UNKNOWN = "unknown"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATES


TERMINAL_STATES = frozenset({
    JobState.CANCELED,
    JobState.FAILED,
    JobState.FINISHED,
    JobState.FINISHED_WITH_ERRORS,
})


class TransferPayloadInfo(BaseModel):
    """
    A single file to transfer.

    Example:
        >>> f = TransferPayloadInfo(
        ...     sources=["https://source.example.org/data/file1"],
        ...     destinations=["davs://dcache.example.org/data/file1"],
        ...     checksum="adler32:a1b2c3d4",
        ...     filesize=1024
        ... )
    """

    sources: List[str] = Field(min_length=1)
    """Source URIs, alternatives for the same file."""

    destinations: List[str] = Field(min_length=1)
    """Destination URIs."""

    checksum: Optional[str] = None
    """Optional checksum, as `algorithm:value`."""

    filesize: Optional[int] = Field(default=None, ge=0)
    """Optional size of the file in bytes."""

    metadata: Optional[Dict[str, Any]] = None
    """Free-form metadata attached to this file."""

    activity: Optional[str] = None
    """Optional activity share this file is accounted to."""


class TransferParameters(BaseModel):
    """
    Parameters applied to all files of a transfer.

    Example:
        >>> params = TransferParameters(priority=3, overwrite=True, verifyChecksum="both")
    """

    verifyChecksum: Optional[Literal["both", "source", "target", "none"]] = None
    """Checksum verification mode."""

    overwrite: bool = False
    """Overwrite destination files that already exist."""

    retry: Optional[int] = Field(default=None, ge=0)
    """Number of retries per file."""

    retryDelay: Optional[int] = Field(default=None, ge=0)
    """Delay between retries, in seconds."""

    priority: Optional[int] = Field(default=None, ge=1, le=5)
    """Job priority, from 1 (lowest) to 5 (highest)."""

    maxTimeInQueue: Optional[int] = Field(default=None, ge=0)
    """Maximum time the job may wait in the queue, in hours."""

    jobMetadata: Optional[Dict[str, Any]] = None
    """Free-form metadata attached to the job."""


class Transfer(BaseModel):
    """
    A request to transfer a set of files.

    The payload is owned by the caller and handed to the backend adapter
    without modification.

    Example:
        >>> transfer = Transfer(files=[f], params=TransferParameters(overwrite=True))
    """

    files: List[TransferPayloadInfo] = Field(min_length=1)
    """Files to transfer."""

    params: Optional[TransferParameters] = None
    """Transfer parameters (optional)."""


class TransferInfo(BaseModel):
    """
    Identity and state of a transfer job.

    Example:
        >>> info = TransferInfo(jobId="8c9a2b3e-...", jobState=JobState.SUBMITTED)
    """

    kind: str = "TransferInfo"

    jobId: str
    """Backend-assigned job identifier (opaque)."""

    jobState: JobState = JobState.UNKNOWN
    """Current job state."""

    submittedAt: Optional[datetime] = None
    """When the job was submitted."""


class FileInfo(BaseModel):
    """Status of one file inside a transfer job."""

    fileId: Optional[str] = None
    fileState: JobState = JobState.UNKNOWN
    sourceUrl: Optional[str] = None
    destinationUrl: Optional[str] = None
    checksum: Optional[str] = None
    fileSize: Optional[int] = None
    bytesTransferred: Optional[int] = None
    throughput: Optional[float] = None
    """Throughput in MB/s, as reported by the backend."""
    reason: Optional[str] = None
    startedAt: Optional[datetime] = None
    finishedAt: Optional[datetime] = None


class TransferInfoExtended(TransferInfo):
    """
    Detailed information about a transfer job.

    Fields other than the ones of `TransferInfo` are filled in when the
    backend reports them. The per-file list and the completion metrics are
    only populated by detail queries.
    """

    kind: str = "TransferInfoExtended"

    submittedTo: Optional[str] = None
    """Base URL of the transfer service that accepted the job."""

    finishedAt: Optional[datetime] = None
    reason: Optional[str] = None
    """Reason reported by the backend for the current state."""

    priority: Optional[int] = None
    verifyChecksum: Optional[str] = None
    overwrite: Optional[bool] = None
    retry: Optional[int] = None
    retryDelay: Optional[int] = None
    maxTimeInQueue: Optional[int] = None
    jobMetadata: Optional[Dict[str, Any]] = None

    voName: Optional[str] = None
    userDN: Optional[str] = None
    delegationId: Optional[str] = None
    sourceSE: Optional[str] = None
    destinationSE: Optional[str] = None

    files: List[FileInfo] = Field(default_factory=list)
    """Per-file status."""

    filesTotal: Optional[int] = None
    filesFinished: Optional[int] = None
    filesFailed: Optional[int] = None
    filesCanceled: Optional[int] = None
    filesActive: Optional[int] = None
    bytesTotal: Optional[int] = None
    bytesTransferred: Optional[int] = None
    progress: Optional[float] = None
    """Fraction of files in a terminal state, between 0 and 1."""


class TransferList(BaseModel):
    """
    Transfers matching a search.

    Entries keep the order in which the backend reported them. Only job-level
    fields are populated.
    """

    kind: str = "TransferList"

    count: int = 0
    transfers: List[TransferInfoExtended] = Field(default_factory=list)
