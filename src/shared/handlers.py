"""Exception handlers mapping gateway errors onto HTTP responses.

Every failure body has the same shape: ``{"success": false, "message": ...,
"error": ...}``. Request validation failures answer 400 with a field map
rather than FastAPI's default 422.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from shared.errors import GatewayError, UpstreamError, ValidationError

logger = structlog.get_logger(__name__)


def _field_name(location: tuple) -> str:
    parts = [str(part) for part in location if part not in ("body", "query", "path", "header")]
    return ".".join(parts) or "request"


async def gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
    if isinstance(exc, UpstreamError):
        logger.warning(
            "Upstream failure",
            message=exc.message,
            status=exc.status_code,
            upstream_status=exc.upstream_status,
            payload=exc.payload,
        )
    else:
        logger.info("Request rejected", message=exc.message, status=exc.status_code)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = {_field_name(tuple(error.get("loc", ()))): error.get("msg", "Invalid value") for error in exc.errors()}
    return await gateway_error_handler(request, ValidationError(errors))


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception", path=request.url.path, error_type=type(exc).__name__)
    return JSONResponse(
        status_code=500,
        content={"success": False, "message": "Internal server error", "error": type(exc).__name__},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(GatewayError, gateway_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
