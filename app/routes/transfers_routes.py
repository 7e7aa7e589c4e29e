"""
Transfer routes.

This module defines the API endpoints used to start, find, inspect and
cancel data transfers. Every endpoint takes an optional `dest` query
parameter naming the destination storage; the transfer service configured
for that destination handles the request. When `dest` is omitted the
configured default destination is used.

All endpoints require a bearer credential, which is passed through to the
transfer service. Failures are returned as an `ActionError`.

All routes interact with the dispatcher (`app.services.transfers_service`)
and render its outcome through the normalizer (`app.services.normalizer`).
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response

from app.models.transfer import Transfer, TransferInfo, TransferInfoExtended, TransferList
from app.schemas.error import ActionError
from app.schemas.transfer import DEFAULT_LIMIT, TransferFilters
from app.services.normalizer import field_response, to_response
from app.services.transfers_service import TransferDispatcher, get_credential, get_dispatcher

router = APIRouter()

DEST_DESCRIPTION = "The destination storage"

ERRORS = {
    400: {"model": ActionError, "description": "Invalid parameters or configuration"},
    401: {"model": ActionError, "description": "Not authorized"},
    403: {"model": ActionError, "description": "Permission denied"},
    404: {"model": ActionError, "description": "Transfer not found"},
    419: {"model": ActionError, "description": "Re-delegate credentials"},
}


@router.post(
    "/transfers",
    status_code=202,
    response_model=TransferInfo,
    responses={code: ERRORS[code] for code in (400, 401, 403, 419)},
)
async def start_transfer(
    transfer: Transfer,
    dest: Optional[str] = Query(default=None, description=DEST_DESCRIPTION),
    credential: str = Depends(get_credential),
    dispatcher: TransferDispatcher = Depends(get_dispatcher),
) -> Response:
    """
    Initiate a new transfer of multiple sets of files.

    Args:
        transfer (Transfer): Source and destination files and transfer parameters.
        dest (str, optional): Destination storage.

    Returns:
        TransferInfo: The accepted job (HTTP 202).

    Raises:
        ActionError:
            - 400: Unknown destination or invalid service configuration.
            - 401/403: Credential missing, invalid or not allowed.
            - 419: Credentials must be re-delegated.

    Example:
        >>> POST /transfers?dest=dcache
        {
            "files": [{
                "sources": ["https://source.example.org/data/file1"],
                "destinations": ["davs://dcache.example.org/data/file1"]
            }],
            "params": {"overwrite": true}
        }
    """

    result = await dispatcher.start_transfer(credential, transfer, dest)
    return to_response(result, success_status=202)


@router.get(
    "/transfers",
    response_model=TransferList,
    responses=ERRORS,
)
async def find_transfers(
    fields: Optional[str] = Query(default=None, description="Comma separated list of fields to return for each transfer"),
    limit: int = Query(default=DEFAULT_LIMIT, ge=1, description="Maximum number of transfers to return"),
    time_window: Optional[str] = Query(
        default=None,
        pattern=r"^\d+(:\d{1,2})?$",
        description="For terminal states, limit results to 'hours[:minutes]' into the past",
    ),
    state_in: Optional[str] = Query(default=None, description="Comma separated list of job states to match, by default only finds active transfers"),
    source_se: Optional[str] = Query(default=None, description="Source storage element"),
    dest_se: Optional[str] = Query(default=None, description="Destination storage element"),
    dlg_id: Optional[str] = Query(default=None, description="Filter by delegation ID of user who started the transfer"),
    vo_name: Optional[str] = Query(default=None, description="Filter by virtual organization of user who started the transfer"),
    user_dn: Optional[str] = Query(default=None, description="Filter by user who started the transfer"),
    dest: Optional[str] = Query(default=None, description=DEST_DESCRIPTION),
    credential: str = Depends(get_credential),
    dispatcher: TransferDispatcher = Depends(get_dispatcher),
) -> Response:
    """
    Find transfers matching search criteria.

    To prevent heavy queries, only non-terminal (active) jobs are returned
    by default. When using `state_in`, also provide either `limit` or
    `time_window` to get completed jobs.

    Returns:
        TransferList: Matching transfers, in the order reported by the
        transfer service.

    Example:
        >>> GET /transfers?dest=dcache&state_in=finished,failed&time_window=12
    """

    filters = TransferFilters(
        fields=fields,
        limit=limit,
        time_window=time_window,
        state_in=state_in,
        source_se=source_se,
        dest_se=dest_se,
        dlg_id=dlg_id,
        vo_name=vo_name,
        user_dn=user_dn,
    )
    result = await dispatcher.find_transfers(credential, filters, dest)
    return to_response(result)


@router.get(
    "/transfer/{job_id}",
    response_model=TransferInfoExtended,
    responses={207: {"model": ActionError, "description": "Transfer error"}, **ERRORS},
)
async def get_transfer_info(
    job_id: str,
    dest: Optional[str] = Query(default=None, description=DEST_DESCRIPTION),
    credential: str = Depends(get_credential),
    dispatcher: TransferDispatcher = Depends(get_dispatcher),
) -> Response:
    """
    Retrieve information about a transfer.

    Args:
        job_id (str): Identifier of the transfer job.

    Returns:
        TransferInfoExtended: Job details with per-file status.

    Example:
        >>> GET /transfer/8c9a2b3e-1f2d-11ee-9d5a-fa163e1b2c3d?dest=dcache
    """

    result = await dispatcher.get_transfer_info(credential, job_id, dest)
    return to_response(result)


@router.get(
    "/transfer/{job_id}/{field_name}",
    responses={200: {"description": "Field value, as JSON or plain text"}, **ERRORS},
)
async def get_transfer_info_field(
    job_id: str,
    field_name: str,
    dest: Optional[str] = Query(default=None, description=DEST_DESCRIPTION),
    credential: str = Depends(get_credential),
    dispatcher: TransferDispatcher = Depends(get_dispatcher),
) -> Response:
    """
    Retrieve a specific field from information about a transfer.

    Args:
        job_id (str): Identifier of the transfer job.
        field_name (str): Name of a `TransferInfoExtended` field (except `kind`).

    Returns:
        The field value: plain text for text values, JSON otherwise.

    Example:
        >>> GET /transfer/8c9a2b3e-1f2d-11ee-9d5a-fa163e1b2c3d/jobState
        active
    """

    result = await dispatcher.get_transfer_info_field(credential, job_id, field_name, dest)
    return to_response(result, render=field_response)


@router.delete(
    "/transfer/{job_id}",
    response_model=TransferInfoExtended,
    responses={207: {"model": ActionError, "description": "Transfer error"}, **ERRORS},
)
async def cancel_transfer(
    job_id: str,
    dest: Optional[str] = Query(default=None, description=DEST_DESCRIPTION),
    credential: str = Depends(get_credential),
    dispatcher: TransferDispatcher = Depends(get_dispatcher),
) -> Response:
    """
    Cancel a transfer.

    Returns the transfer with its current status, `canceled` or whichever
    final status the job had already reached.

    Example:
        >>> DELETE /transfer/8c9a2b3e-1f2d-11ee-9d5a-fa163e1b2c3d?dest=dcache
    """

    result = await dispatcher.cancel_transfer(credential, job_id, dest)
    return to_response(result)
