"""
Error taxonomy shared by the grading and reminder jobs, plus the FastAPI
handlers that turn it into JSON responses.
"""
import logging
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError

logger = logging.getLogger(__name__)


class AcademyError(Exception):
    code = "ACADEMY_ERROR"
    status_code = 500


class NotFound(AcademyError):
    code = "NOT_FOUND"
    status_code = 404


class ConflictAlreadyReconciled(AcademyError):
    code = "ALREADY_RECONCILED"
    status_code = 409


class ConflictAlreadyReserved(AcademyError):
    code = "ALREADY_RESERVED"
    status_code = 409


class ConflictAlreadyGraded(AcademyError):
    code = "ALREADY_GRADED"
    status_code = 409


class InvalidScore(AcademyError):
    code = "INVALID_SCORE"
    status_code = 422


class StoreUnavailable(AcademyError):
    """The relational store cannot be reached; the whole invocation fails."""

    code = "STORE_UNAVAILABLE"
    status_code = 503


class SendFailure(AcademyError):
    code = "SEND_FAILURE"
    status_code = 502


def _now_iso():
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _envelope(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": {"code": code, "message": message},
            "generated_at": _now_iso(),
        },
    )


def add_error_handlers(app: FastAPI):
    @app.exception_handler(AcademyError)
    async def academy_error_handler(request: Request, exc: AcademyError):
        return _envelope(exc.status_code, exc.code, str(exc))

    @app.exception_handler(OperationalError)
    async def store_error_handler(request: Request, exc: OperationalError):
        logger.error("store unavailable on %s %s: %s", request.method, request.url.path, exc)
        return _envelope(503, StoreUnavailable.code, "Data store unavailable")

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("unhandled error on %s %s", request.method, request.url.path)
        return _envelope(500, "INTERNAL_ERROR", "Internal server error")
