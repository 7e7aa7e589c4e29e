"""
Data Transfer Gateway: FastAPI application entry point.

This module initializes the FastAPI application that exposes a uniform API
for starting, finding, inspecting and canceling bulk data transfers. Each
request is handed to the transfer service (e.g. FTS) configured for the
requested destination storage.
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import get_cors_origins
from app.core.exceptions import ConfigurationError, FaultKind, TransferServiceFault
from app.core.logger import logger
from app.routes import destinations_routes, transfers_routes
from app.services.normalizer import error_response, to_response
from app.services.transfers_service import RejectedRequest, get_dispatcher

# ------------------------------------------------------------------------------
# Application initialization
# ------------------------------------------------------------------------------

app = FastAPI(
    title="Data Transfer Gateway",
    description="Uniform API to initiate, query and cancel data transfers, delegated to the transfer service of each destination",
    version="1.0.0"
)

# ------------------------------------------------------------------------------
# Middleware configuration
# ------------------------------------------------------------------------------

# CORS middleware: allows cross-origin requests.
# Restrict with CORS_ORIGINS for production deployment.
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ------------------------------------------------------------------------------
# Error handlers
# ------------------------------------------------------------------------------

@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Report invalid parameters or bodies as a 400 `ActionError`."""

    context = [("destination", request.query_params.get("dest", ""))]
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        context.append((location, error.get("msg", "invalid")))

    fault = TransferServiceFault(FaultKind.CONFIGURATION, "invalidParameters", "Invalid request parameters")
    return error_response(fault, [(key, value) for key, value in context if value])


@app.exception_handler(RejectedRequest)
async def rejected_request_handler(request: Request, exc: RejectedRequest):
    """Report a request refused before dispatching (e.g. missing credential)."""

    return to_response(exc.result)


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    """Report an unusable transfer configuration as a 500 `ActionError`."""

    logger.error(f"Transfer configuration error: {exc}")
    fault = TransferServiceFault(FaultKind.BACKEND, "invalidConfiguration", str(exc), status=500)
    return error_response(fault, [("destination", request.query_params.get("dest", ""))])

# ------------------------------------------------------------------------------
# Application startup events
# ------------------------------------------------------------------------------

@app.on_event("startup")
async def load_configuration():
    """
    Load the transfer configuration on application startup.

    This ensures an invalid destination table stops the service before it
    handles requests.
    """

    dispatcher = get_dispatcher()
    for key, descriptor in dispatcher.registry.items():
        logger.info(f"Destination '{key}' -> {descriptor.name} ({descriptor.url})")

# ------------------------------------------------------------------------------
# API routes registration
# ------------------------------------------------------------------------------

app.include_router(transfers_routes.router, prefix="", tags=["Transfers"])
app.include_router(destinations_routes.router, prefix="/destinations", tags=["Destinations"])
