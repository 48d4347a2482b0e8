import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from parkdesk.utils.errors import ConsoleStateError, FormValidationError, ParkingApiError

logger = logging.getLogger(__name__)


def parking_api_exception_handler(request: Request, exc: ParkingApiError):
    logger.error(f"{request.method} {request.url.path} failed upstream: {exc.message}")
    return JSONResponse(
        status_code=502,
        content={"message": exc.message, "upstream_status": exc.status_code},
    )


def console_state_exception_handler(request: Request, exc: ConsoleStateError):
    return JSONResponse(
        status_code=409,
        content={"message": exc.message},
    )


def form_validation_exception_handler(request: Request, exc: FormValidationError):
    return JSONResponse(
        status_code=422,
        content={"message": "Please fix the highlighted fields", "errors": exc.errors},
    )


def custom_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content={"message": "Internal Server Error"},
    )
