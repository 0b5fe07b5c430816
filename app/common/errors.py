"""
Error taxonomy and the handlers that render it

Every error is an HTTPException so routers and services raise them exactly
like a plain HTTPException. Responses always carry a short `message`
(or an `errors` list for field validation).
"""

import logging
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pymongo.errors import DuplicateKeyError, PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class ValidationError(HTTPException):
    def __init__(self, detail: str = "Invalid request", errors: Optional[List[dict]] = None):
        super().__init__(status_code=400, detail=detail)
        self.errors = errors


class AuthenticationError(HTTPException):
    def __init__(self, detail: str = "Authentication failed"):
        super().__init__(status_code=401, detail=detail)


class AuthorizationError(HTTPException):
    def __init__(self, detail: str = "Access denied"):
        super().__init__(status_code=403, detail=detail)


class NotFoundError(HTTPException):
    def __init__(self, detail: str = "Resource not found"):
        super().__init__(status_code=404, detail=detail)


class ConflictError(HTTPException):
    """Duplicate unique key or a broken relationship invariant"""

    def __init__(self, detail: str = "Conflict"):
        super().__init__(status_code=400, detail=detail)


class InternalError(HTTPException):
    def __init__(self, detail: str = "Internal server error"):
        super().__init__(status_code=500, detail=detail)


def _format_validation_errors(exc: RequestValidationError) -> List[dict]:
    errors = []
    for err in exc.errors():
        # loc is ("body", "field", ...) / ("query", "limit")
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        message = err.get("msg", "Invalid value")
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        errors.append({
            "field": ".".join(loc) or None,
            "message": message,
        })
    return errors


def _duplicate_key_message(exc: DuplicateKeyError) -> str:
    details = exc.details or {}
    key_pattern = details.get("keyPattern") or details.get("keyValue") or {}
    if "username" in key_pattern:
        return "Username already exists"
    if "email" in key_pattern:
        return "Email already exists"
    if "name" in key_pattern:
        return "Group name already exists"
    return "Duplicate value"


def register_exception_handlers(app: FastAPI):
    """Install the JSON error envelope on the application"""

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        errors = getattr(exc, "errors", None)
        if errors:
            content = {"errors": errors}
        else:
            content = {"message": exc.detail}
        return JSONResponse(status_code=exc.status_code, content=content, headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"errors": _format_validation_errors(exc)})

    @app.exception_handler(DuplicateKeyError)
    async def duplicate_key_handler(request: Request, exc: DuplicateKeyError):
        message = _duplicate_key_message(exc)
        logger.info(f"Duplicate key on {request.method} {request.url.path}: {message}")
        return JSONResponse(status_code=400, content={"message": message})

    @app.exception_handler(PyMongoError)
    async def store_error_handler(request: Request, exc: PyMongoError):
        logger.error(f"Store failure on {request.method} {request.url.path}", exc_info=exc)
        return JSONResponse(status_code=500, content={"message": "Internal server error"})

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
        return JSONResponse(status_code=500, content={"message": "Internal server error"})
