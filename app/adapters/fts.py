"""
FTS transfer service adapter.

Implements the uniform transfer contract on top of the REST API of an
FTS3-style transfer broker:

    - POST   /jobs              submit a job
    - GET    /jobs              search jobs
    - GET    /jobs/{id}         job details
    - GET    /jobs/{id}/files   per-file status of a job
    - DELETE /jobs/{id}         cancel a job

The caller's bearer credential is passed through to the broker. Broker job
and file states are translated into the uniform `JobState` vocabulary, and
broker errors into transfer service faults.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

import httpx

from app.adapters.base import TransferServiceAdapter, drop_empty
from app.core.exceptions import FaultKind, TransferServiceFault
from app.core.logger import logger
from app.models.transfer import (
    FileInfo,
    JobState,
    Transfer,
    TransferInfo,
    TransferInfoExtended,
    TransferList,
)
from app.schemas.transfer import TransferFilters
from app.util.service_helpers import as_bool, as_datetime, as_float, as_int, as_text, job_path

# Uniform field name -> broker field name, used for searches
FIELD_NAMES: Dict[str, str] = {
    "jobId": "job_id",
    "jobState": "job_state",
    "submittedAt": "submit_time",
    "finishedAt": "job_finished",
    "reason": "reason",
    "priority": "priority",
    "verifyChecksum": "verify_checksum",
    "overwrite": "overwrite_flag",
    "retry": "retry",
    "retryDelay": "retry_delay",
    "maxTimeInQueue": "max_time_in_queue",
    "jobMetadata": "job_metadata",
    "voName": "vo_name",
    "userDN": "user_dn",
    "delegationId": "cred_id",
    "sourceSE": "source_se",
    "destinationSE": "dest_se",
}

REQUIRED_FIELDS = ("job_id", "job_state", "submit_time")

VERIFY_CHECKSUM_MODES = {"b": "both", "s": "source", "t": "target", "n": "none"}

# Broker status -> (fault kind, error id)
STATUS_FAULTS = {
    207: (FaultKind.TRANSFER_ERROR, "transferError"),
    401: (FaultKind.AUTH, "notAuthorized"),
    403: (FaultKind.PERMISSION, "permissionDenied"),
    404: (FaultKind.NOT_FOUND, "transferNotFound"),
    419: (FaultKind.CREDENTIALS_EXPIRED, "credentialsExpired"),
}


class FtsTransferAdapter(TransferServiceAdapter):
    """
    Adapter for FTS3-style transfer brokers.

    Example:
        >>> adapter = FtsTransferAdapter(descriptor)
        >>> info = await adapter.start_transfer("Bearer <token>", transfer)
        >>> info.jobState
        <JobState.SUBMITTED: 'submitted'>
    """

    STATES: Mapping[str, JobState] = {
        "SUBMITTED": JobState.SUBMITTED,
        "TOKEN_PREP": JobState.SUBMITTED,
        "READY": JobState.ACTIVE,
        "ACTIVE": JobState.ACTIVE,
        "STAGING": JobState.ACTIVE,
        "STARTED": JobState.ACTIVE,
        "ARCHIVING": JobState.ACTIVE,
        "QOS_TRANSITION": JobState.ACTIVE,
        "QOS_REQUEST_SUBMITTED": JobState.ACTIVE,
        "DELETE": JobState.ACTIVE,
        "ON_HOLD": JobState.ACTIVE,
        "ON_HOLD_STAGING": JobState.ACTIVE,
        "FINISHED": JobState.FINISHED,
        "FINISHEDDIRTY": JobState.FINISHED_WITH_ERRORS,
        "FAILED": JobState.FAILED,
        "CANCELED": JobState.CANCELED,
    }

    # ------------------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------------------

    async def start_transfer(self, credential: str, transfer: Transfer) -> TransferInfo:
        payload = await self._request("POST", "/jobs", credential, json=self._job_payload(transfer))
        job_id = payload.get("job_id") if isinstance(payload, dict) else None
        if not job_id:
            raise TransferServiceFault(
                FaultKind.BACKEND,
                "invalidServiceResponse",
                "Transfer service did not return a job ID",
                status=502,
            )

        return TransferInfo(
            jobId=str(job_id),
            jobState=self.to_job_state(payload.get("job_state", "SUBMITTED")),
            submittedAt=as_datetime(payload.get("submit_time")) or datetime.now(timezone.utc),
        )

    async def find_transfers(self, credential: str, filters: TransferFilters) -> TransferList:
        if filters.states:
            wanted = self.to_job_states(filters.states)
            backend_states = self.to_backend_states(filters.states)
        else:
            wanted = {state for state in JobState if not state.is_terminal}
            backend_states = self.active_backend_states()

        if not backend_states:
            logger.debug(f"No {self.descriptor.kind} state matches '{filters.state_in}'")
            return TransferList(count=0, transfers=[])

        fields = list(REQUIRED_FIELDS)
        for name in filters.field_names:
            field = FIELD_NAMES.get(name, name)
            if field not in fields:
                fields.append(field)

        params = drop_empty({
            "fields": ",".join(fields),
            "limit": filters.limit,
            "time_window": filters.time_window,
            "state_in": ",".join(backend_states),
            "source_se": filters.source_se,
            "dest_se": filters.dest_se,
            "dlg_id": filters.dlg_id,
            "vo_name": filters.vo_name,
            "user_dn": filters.user_dn,
        })

        payload = await self._request("GET", "/jobs", credential, params=params)
        if not isinstance(payload, list):
            raise TransferServiceFault(
                FaultKind.BACKEND,
                "invalidServiceResponse",
                "Transfer service returned an unexpected job list",
                status=502,
            )

        # The broker may match more loosely than asked, keep only the requested states
        transfers = [self._job_info(job) for job in payload if isinstance(job, dict)]
        transfers = [info for info in transfers if info.jobState in wanted]

        return TransferList(count=len(transfers), transfers=transfers)

    async def get_transfer_info(self, credential: str, job_id: str) -> TransferInfoExtended:
        job = await self._request("GET", job_path(job_id), credential)
        if not isinstance(job, dict):
            raise TransferServiceFault(
                FaultKind.BACKEND,
                "invalidServiceResponse",
                f"Transfer service returned unexpected details for transfer {job_id}",
                status=502,
            )

        files = await self._request("GET", job_path(job_id, "files"), credential)
        info = self._job_info(job)
        if isinstance(files, list):
            self._attach_files(info, [self._file_info(f) for f in files if isinstance(f, dict)])
        return info

    async def cancel_transfer(self, credential: str, job_id: str) -> TransferInfoExtended:
        job = await self._request("DELETE", job_path(job_id), credential)
        if isinstance(job, dict):
            logger.debug(f"Transfer {job_id} is {job.get('job_state')} after cancel request")
        return await self.get_transfer_info(credential, job_id)

    # ------------------------------------------------------------------------------
    # Protocol
    # ------------------------------------------------------------------------------

    async def _request(self, method: str, path: str, credential: str, **kwargs: Any) -> Any:
        """
        Sends one request to the broker and decodes the JSON answer.

        Raises:
            TransferServiceFault: On transport failures (including timeouts)
                and on any non-success broker status.

        Returns:
            Any: Decoded JSON body, or None for an empty body.
        """

        logger.debug(f"{method} {self.base_url}{path} params={kwargs.get('params')}")
        try:
            async with self.client(credential) as client:
                response = await client.request(method, path, **kwargs)
        except httpx.TransportError as e:
            raise TransferServiceFault(
                FaultKind.TRANSPORT,
                "serviceUnreachable",
                f"Failed to call {method} {self.base_url}{path}: {e!r}",
            ) from e

        logger.debug(f"{method} {self.base_url}{path} -> {response.status_code}")
        body = self._decode(response)

        if response.status_code == 207 or response.status_code >= 400:
            raise self._fault(response, body)

        return body

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    @staticmethod
    def _fault(response: httpx.Response, body: Any) -> TransferServiceFault:
        status = response.status_code
        kind, error_id = STATUS_FAULTS.get(status, (FaultKind.BACKEND, "serviceError"))

        message = None
        if isinstance(body, dict):
            message = body.get("message") or body.get("reason") or body.get("status")
        elif isinstance(body, str):
            message = body.strip()
        description = f"Transfer service returned HTTP {status}" + (f": {message}" if message else "")

        info = body if kind == FaultKind.TRANSFER_ERROR and isinstance(body, (dict, list)) else None
        return TransferServiceFault(kind, error_id, description, status=status, info=info)

    @staticmethod
    def _job_payload(transfer: Transfer) -> Dict[str, Any]:
        files = [
            drop_empty({
                "sources": f.sources,
                "destinations": f.destinations,
                "checksum": f.checksum,
                "filesize": f.filesize,
                "metadata": f.metadata,
                "activity": f.activity,
            })
            for f in transfer.files
        ]

        params: Dict[str, Any] = {}
        if transfer.params is not None:
            p = transfer.params
            params = drop_empty({
                "verify_checksum": p.verifyChecksum,
                "overwrite": p.overwrite,
                "retry": p.retry,
                "retry_delay": p.retryDelay,
                "priority": p.priority,
                "max_time_in_queue": p.maxTimeInQueue,
                "job_metadata": p.jobMetadata,
            })

        return {"files": files, "params": params}

    # ------------------------------------------------------------------------------
    # Translation
    # ------------------------------------------------------------------------------

    def _job_info(self, job: Dict[str, Any]) -> TransferInfoExtended:
        verify = job.get("verify_checksum")
        if isinstance(verify, bool):
            verify = "both" if verify else "none"
        elif verify is not None:
            verify = VERIFY_CHECKSUM_MODES.get(str(verify).lower(), str(verify))

        metadata = job.get("job_metadata")
        if metadata is not None and not isinstance(metadata, dict):
            metadata = {"value": metadata}

        return TransferInfoExtended(
            jobId=str(job.get("job_id", "")),
            jobState=self.to_job_state(job.get("job_state")),
            submittedAt=as_datetime(job.get("submit_time")),
            submittedTo=self.base_url,
            finishedAt=as_datetime(job.get("job_finished")),
            reason=as_text(job.get("reason")),
            priority=as_int(job.get("priority")),
            verifyChecksum=verify,
            overwrite=as_bool(job.get("overwrite_flag")),
            retry=as_int(job.get("retry")),
            retryDelay=as_int(job.get("retry_delay")),
            maxTimeInQueue=as_int(job.get("max_time_in_queue")),
            jobMetadata=metadata,
            voName=as_text(job.get("vo_name")),
            userDN=as_text(job.get("user_dn")),
            delegationId=as_text(job.get("cred_id")),
            sourceSE=as_text(job.get("source_se")),
            destinationSE=as_text(job.get("dest_se")),
        )

    def _file_info(self, f: Dict[str, Any]) -> FileInfo:
        return FileInfo(
            fileId=as_text(f.get("file_id")),
            fileState=self.to_job_state(f.get("file_state")),
            sourceUrl=as_text(f.get("source_surl")),
            destinationUrl=as_text(f.get("dest_surl")),
            checksum=as_text(f.get("checksum")),
            fileSize=as_int(f.get("filesize")),
            bytesTransferred=as_int(f.get("transferred")),
            throughput=as_float(f.get("throughput")),
            reason=as_text(f.get("reason")),
            startedAt=as_datetime(f.get("start_time")),
            finishedAt=as_datetime(f.get("finish_time")),
        )

    @staticmethod
    def _attach_files(info: TransferInfoExtended, files: List[FileInfo]) -> None:
        info.files = files
        info.filesTotal = len(files)
        info.filesFinished = sum(1 for f in files if f.fileState == JobState.FINISHED)
        info.filesFailed = sum(1 for f in files if f.fileState == JobState.FAILED)
        info.filesCanceled = sum(1 for f in files if f.fileState == JobState.CANCELED)
        info.filesActive = sum(1 for f in files if not f.fileState.is_terminal)
        info.bytesTotal = sum(f.fileSize or 0 for f in files)
        info.bytesTransferred = sum(f.bytesTransferred or 0 for f in files)

        done = sum(1 for f in files if f.fileState.is_terminal)
        info.progress = (done / len(files)) if files else None
