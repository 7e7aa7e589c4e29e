"""
Result and error normalizer.

Turns the outcome of a dispatched operation into the HTTP response returned
to the caller. Successes are passed through with the status appropriate to
the operation; faults become an `ActionError` whose status is chosen from
the fault kind and whose details hold the context pairs supplied by the
operation.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Iterable, Optional, Tuple

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from app.core.exceptions import FaultKind, TransferServiceFault
from app.schemas.error import ActionError

STATUS_BY_KIND = {
    FaultKind.CONFIGURATION: 400,
    FaultKind.AUTH: 401,
    FaultKind.PERMISSION: 403,
    FaultKind.NOT_FOUND: 404,
    FaultKind.CREDENTIALS_EXPIRED: 419,
    FaultKind.TRANSFER_ERROR: 207,
    FaultKind.TRANSPORT: 500,
}


def fault_status(fault: TransferServiceFault) -> int:
    status = STATUS_BY_KIND.get(fault.kind)
    if status is not None:
        return status
    if fault.status and fault.status >= 400:
        return fault.status
    return 500


def to_action_error(fault: Exception, context: Iterable[Tuple[str, Any]] = ()) -> ActionError:
    """
    Builds the `ActionError` for a fault.

    Args:
        fault (Exception): The failure. Anything other than a
            `TransferServiceFault` is reported as a 500 `serviceError`.
        context (Iterable[Tuple[str, Any]]): Ordered context pairs.

    Returns:
        ActionError: The uniform error.
    """

    if not isinstance(fault, TransferServiceFault):
        fault = TransferServiceFault(FaultKind.BACKEND, "serviceError", str(fault) or repr(fault))

    details = {key: value for key, value in context}
    if fault.kind == FaultKind.TRANSFER_ERROR and fault.info is not None:
        details["info"] = fault.info

    return ActionError(
        id=fault.id,
        status=fault_status(fault),
        description=fault.description,
        details=details,
    )


def error_response(fault: Exception, context: Iterable[Tuple[str, Any]] = ()) -> JSONResponse:
    error = to_action_error(fault, context)
    return JSONResponse(status_code=error.status, content=jsonable_encoder(error))


def success_response(value: Any, status_code: int = 200) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=jsonable_encoder(value))


def field_response(value: Any) -> Response:
    """
    Renders a single transfer field.

    Text values (strings, states, timestamps) are returned as plain text,
    every other value as JSON.
    """

    if isinstance(value, Enum):
        value = value.value
    if isinstance(value, datetime):
        value = value.isoformat()
    if isinstance(value, str):
        return PlainTextResponse(value)
    return JSONResponse(content=jsonable_encoder(value))


def to_response(outcome: Any, success_status: int = 200, render: Optional[Any] = None) -> Response:
    """
    Converts a `DispatchResult` into the HTTP response.

    Args:
        outcome (DispatchResult): Result of a dispatched operation.
        success_status (int): Status for successful outcomes.
        render (callable, optional): Custom renderer for the success value.
    """

    if outcome.fault is not None:
        return error_response(outcome.fault, outcome.context)
    if render is not None:
        return render(outcome.value)
    return success_response(outcome.value, success_status)
