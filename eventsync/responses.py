"""
EventSync API Response Utilities
Standardized response format and error handling
"""
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException
from typing import Any, Dict, List, Optional
from datetime import datetime, timezone

from .config import get_settings
from .errors import DomainError, StorageError
from .logging_config import api_logger


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


# ============================================================
# SUCCESS RESPONSES
# ============================================================

def success(data: Any = None, message: str = None, meta: Dict = None) -> Dict:
    """Create success response"""
    response = {
        "ok": True,
        "timestamp": _timestamp(),
    }

    if data is not None:
        response["data"] = data

    if message:
        response["message"] = message

    if meta:
        response["meta"] = meta

    return response


def deleted(message: str = "Deleted successfully") -> Dict:
    """200 Deleted response"""
    return success(message=message)


def paginated(items: List, total: int, page: int = 1, per_page: int = 20) -> Dict:
    """Paginated list response"""
    return {
        "ok": True,
        "data": items,
        "pagination": {
            "total": total,
            "page": page,
            "per_page": per_page,
            "total_pages": (total + per_page - 1) // per_page,
            "has_next": page * per_page < total,
            "has_prev": page > 1,
        },
        "timestamp": _timestamp(),
    }


# ============================================================
# ERROR RESPONSES
# ============================================================

def error_response(
    status_code: int,
    message: str,
    error_code: str,
    details: Optional[Any] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "ok": False,
            "error": message,
            "error_code": error_code,
            "details": details,
            "timestamp": _timestamp(),
        },
        headers=headers,
    )


# ============================================================
# EXCEPTION HANDLERS
# ============================================================

async def api_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Global exception handler for API errors"""

    # Domain errors carry their own status and code
    if isinstance(exc, DomainError):
        if exc.status_code >= 500:
            api_logger.error(f"API Error: {exc.message}", error=exc, path=request.url.path)
        elif exc.status_code != 422:
            api_logger.warning(
                f"API Error: {exc.message}",
                status_code=exc.status_code,
                error_code=exc.error_code,
                path=request.url.path,
            )
        headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
        return error_response(exc.status_code, exc.message, exc.error_code, exc.details, headers)

    # Storage failures never leak internals outside debug mode
    if isinstance(exc, SQLAlchemyError):
        api_logger.error("Database error", error=exc, path=request.url.path)
        storage_error = StorageError()
        details = {"reason": str(exc)} if get_settings().debug else None
        return error_response(storage_error.status_code, storage_error.message, storage_error.error_code, details)

    if isinstance(exc, HTTPException):
        api_logger.warning(
            f"HTTP Error: {exc.detail}",
            status_code=exc.status_code,
            path=request.url.path,
        )
        return error_response(exc.status_code, str(exc.detail), f"HTTP_{exc.status_code}", headers=exc.headers)

    api_logger.error(
        f"Unexpected error: {exc}",
        error=exc,
        path=request.url.path,
    )
    return error_response(500, "An unexpected error occurred", "INTERNAL_ERROR")


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render request body/query validation failures with field-level detail"""
    fields = [
        {
            "field": ".".join(str(part) for part in error["loc"] if part != "body"),
            "message": error["msg"],
        }
        for error in exc.errors()
    ]
    return error_response(422, "Invalid input", "VALIDATION_ERROR", {"fields": fields})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainError, api_exception_handler)
    app.add_exception_handler(SQLAlchemyError, api_exception_handler)
    app.add_exception_handler(HTTPException, api_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, api_exception_handler)
