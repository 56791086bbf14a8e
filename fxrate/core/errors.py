from fastapi import Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette import status
import logging

from fxrate.services.rates.errors import (
    CapabilityUnsupported,
    InvalidQuote,
    PathNotFound,
    RateError,
    RateKindUnsupported,
    SourceFetchFailed,
    SourceNotFound,
    UnknownCurrency,
)

logger = logging.getLogger("fxrate.errors")

_RATE_ERROR_STATUS = {
    SourceNotFound: ("source_not_found", status.HTTP_404_NOT_FOUND),
    PathNotFound: ("path_not_found", status.HTTP_404_NOT_FOUND),
    UnknownCurrency: ("unknown_currency", status.HTTP_404_NOT_FOUND),
    CapabilityUnsupported: ("capability_unsupported", status.HTTP_403_FORBIDDEN),
    RateKindUnsupported: ("rate_kind_unsupported", status.HTTP_422_UNPROCESSABLE_ENTITY),
    InvalidQuote: ("invalid_quote", status.HTTP_422_UNPROCESSABLE_ENTITY),
    SourceFetchFailed: ("source_fetch_failed", status.HTTP_503_SERVICE_UNAVAILABLE),
}


def not_found_handler(request: Request, exc):  # type: ignore
    return JSONResponse(
        status_code=getattr(exc, "status_code", status.HTTP_404_NOT_FOUND),
        content={
            "success": False,
            "error": "not_found",
            "detail": getattr(exc, "detail", None)
            or f"No route for {request.method} {request.url.path}",
        },
    )


def validation_error_handler(request: Request, exc: RequestValidationError):  # type: ignore
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "success": False,
            "error": "validation_error",
            "detail": exc.errors(),
        },
    )


def rate_error_handler(request: Request, exc: RateError):  # type: ignore
    error, code = _RATE_ERROR_STATUS.get(
        type(exc), ("rate_error", status.HTTP_400_BAD_REQUEST)
    )
    if code >= 500:
        logger.warning("%s: %s", error, exc)
    return JSONResponse(
        status_code=code,
        content={"success": False, "error": error, "detail": str(exc)},
    )


def server_error_handler(request: Request, exc: Exception):  # type: ignore
    logger.exception("unhandled exception")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "success": False,
            "error": "internal_error",
            "detail": "An unexpected error occurred.",
        },
    )
