"""
Custom exception hierarchy for Registro Emocional.

Rule: every HTTP error has a machine-readable `code` string so clients
can tell "bad input" apart from "not found" and "datastore down"
without parsing English messages.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette import status

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exception classes
# ---------------------------------------------------------------------------

class RegistroException(Exception):
    """Base class for all application-level errors."""
    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class SnapshotValidationError(RegistroException):
    """The payload parsed but breaks a snapshot invariant."""
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "VALIDATION_ERROR"

    def __init__(self, message: str, field: str):
        super().__init__(
            message=message,
            details={"errors": [{"field": field, "message": message, "type": "value_error"}]},
        )


class SnapshotNotFoundError(RegistroException):
    http_status = status.HTTP_404_NOT_FOUND
    code = "SNAPSHOT_NOT_FOUND"

    def __init__(self, usuario_id: str, fecha: date):
        super().__init__(
            message=f"No snapshot for user {usuario_id} on {fecha}.",
            details={"usuario_id": usuario_id, "fecha": str(fecha)},
        )


class DatastoreUnavailableError(RegistroException):
    http_status = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "DATASTORE_UNAVAILABLE"

    def __init__(self, message: str = "The datastore is unavailable."):
        super().__init__(message=message)


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

async def registro_exception_handler(request: Request, exc: RegistroException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.http_status,
        content=exc.to_dict(),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Return structured 422 with machine-readable field errors."""
    field_errors = []
    for error in exc.errors():
        field_errors.append({
            "field": ".".join(str(loc) for loc in error["loc"] if loc != "body"),
            "message": error["msg"],
            "type": error["type"],
        })
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "code": "VALIDATION_ERROR",
            "message": "Request validation failed.",
            "details": {"errors": field_errors},
        },
    )


async def datastore_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Datastore error on %s %s: %s", request.method, request.url.path, exc)
    return await registro_exception_handler(request, DatastoreUnavailableError())


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "code": "INTERNAL_ERROR",
            "message": "An unexpected error occurred.",
        },
    )
