"""Error mapping — ServiceError, window and request validation errors → JSON."""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ghrecap.core.timeframe import InvalidWindowError
from ghrecap.services import (
    NotFoundError,
    ServiceError,
    UpstreamError,
    ValidationError,
)

_STATUS_MAP: dict[type[ServiceError], int] = {
    NotFoundError: 404,
    ValidationError: 422,
    UpstreamError: 502,
}


def status_for(exc: ServiceError) -> int:
    """HTTP status of the closest mapped ancestor, 500 if none."""
    for cls in type(exc).__mro__:
        if cls in _STATUS_MAP:
            return _STATUS_MAP[cls]
    return 500


async def _service_error_handler(_request: Request, exc: ServiceError) -> JSONResponse:
    return JSONResponse(status_code=status_for(exc), content={"detail": str(exc)})


async def _validation_error_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    messages = []
    for err in exc.errors():
        loc = " → ".join(str(part) for part in err["loc"])
        messages.append(f"{loc}: {err['msg']}")
    return JSONResponse(status_code=422, content={"detail": "; ".join(messages)})


async def _invalid_window_handler(_request: Request, exc: InvalidWindowError) -> JSONResponse:
    return JSONResponse(status_code=422, content={"detail": str(exc)})


def register_error_handlers(app: FastAPI) -> None:
    """Register exception handlers on the app."""
    app.add_exception_handler(ServiceError, _service_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(InvalidWindowError, _invalid_window_handler)  # type: ignore[arg-type]
