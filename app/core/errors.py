"""Translate store and validation errors into the API error taxonomy."""

import re
import traceback
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.exc import DBAPIError, IntegrityError

from app.core.config import settings
from app.core.logging_config import logger

# PostgreSQL: 'Key (student_id)=(5) already exists.'
_PG_KEY_RE = re.compile(r"Key \(([^)]+)\)=")
# SQLite: 'UNIQUE constraint failed: students.student_id'
_SQLITE_UNIQUE_RE = re.compile(r"UNIQUE constraint failed: ([\w., ]+)")


def integrity_error_fields(exc: IntegrityError) -> List[str]:
    """Best-effort list of the columns named in a duplicate-key error."""
    text = str(exc.orig) if exc.orig is not None else str(exc)
    m = _PG_KEY_RE.search(text)
    if m:
        return [f.strip() for f in m.group(1).split(",") if f.strip()]
    m = _SQLITE_UNIQUE_RE.search(text)
    if m:
        return [f.strip().split(".")[-1] for f in m.group(1).split(",") if f.strip()]
    return []


def is_duplicate_of(exc: IntegrityError, column: str) -> bool:
    return column in integrity_error_fields(exc)


def duplicate_message(exc: IntegrityError) -> str:
    fields = integrity_error_fields(exc)
    return f"Duplicate value ({', '.join(fields)})" if fields else "Duplicate value"


def _validation_errors(errors: List[Dict[str, Any]]) -> List[Dict[str, str]]:
    out = []
    for err in errors:
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path", "form")]
        out.append({"field": ".".join(loc), "message": err.get("msg", "Invalid value")})
    return out


def _error_body(message: str, exc: Optional[BaseException] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"detail": message}
    if exc is not None and settings.is_development:
        body["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return body


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": "Validation error", "errors": _validation_errors(exc.errors())},
        )

    @app.exception_handler(ValidationError)
    async def pydantic_validation_handler(request: Request, exc: ValidationError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": "Validation error", "errors": _validation_errors(exc.errors())},
        )

    @app.exception_handler(IntegrityError)
    async def integrity_error_handler(request: Request, exc: IntegrityError):
        logger.warning("Integrity error on %s %s: %s", request.method, request.url.path, exc.orig)
        return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={"detail": duplicate_message(exc)})

    @app.exception_handler(DBAPIError)
    async def dbapi_error_handler(request: Request, exc: DBAPIError):
        # Type mismatches reaching the driver (bad casts) are client errors.
        if "invalid input syntax" in str(exc.orig):
            return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": "Invalid identifier"})
        logger.error("Database error on %s %s", request.method, request.url.path, exc_info=exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_error_body("Internal server error", exc),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.error("Unhandled exception on %s %s", request.method, request.url.path, exc_info=exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_error_body("Internal server error", exc),
        )
