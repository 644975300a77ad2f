"""
Application error taxonomy and the FastAPI exception handlers that render it.

Every error response has the shape ``{"error": <code>, "message": <text>}``;
validation errors add a ``fields`` mapping. Stack traces never reach clients.
"""
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
from typing import Dict, List, Optional
import logging

logger = logging.getLogger(__name__)

class AppError(Exception):
    """Base class for errors that map onto an HTTP response."""
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "internal_error"
    message: str = "An unexpected error occurred"

    def __init__(self, message: Optional[str] = None, headers: Optional[Dict[str, str]] = None):
        self.message = message or self.message
        self.headers = headers
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"error": self.code, "message": self.message}

class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "validation_error"
    message = "Invalid request"

    def __init__(self, message: Optional[str] = None, fields: Optional[Dict[str, List[str]]] = None):
        super().__init__(message)
        self.fields = fields or {}

    def to_dict(self) -> dict:
        body = super().to_dict()
        body["fields"] = self.fields
        return body

class UnauthorizedError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "unauthorized"
    message = "Unauthorized"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})

class InvalidCredentialsError(UnauthorizedError):
    code = "invalid_credentials"
    message = "Invalid credentials"

class ForbiddenError(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "forbidden"
    message = "Forbidden"

class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"
    message = "Not found"

class ConflictError(AppError):
    status_code = status.HTTP_409_CONFLICT
    code = "conflict"
    message = "Conflict"

class RateLimitedError(AppError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    code = "rate_limited"
    message = "Too many requests. Please try again later."

class InternalError(AppError):
    pass

class MissingSecretError(InternalError, RuntimeError):
    """JWT_SECRET is not configured."""
    code = "server_misconfigured"
    message = "Server misconfigured"

_HTTP_CODES = {
    400: "bad_request",
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
    409: "conflict",
    429: "rate_limited",
}

def error_response(exc: AppError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
        headers=exc.headers,
    )

def _field_name(error: dict) -> str:
    """Pick the field a pydantic error points at."""
    if error.get("type", "").startswith("union_tag"):
        # Missing or unknown discriminator, e.g. ctx {"discriminator": "'role'"}
        return str(error.get("ctx", {}).get("discriminator", "body")).strip("'")
    parts = [str(part) for part in error.get("loc", ()) if part != "body"]
    return parts[-1] if parts else "body"

def flatten_validation_errors(errors) -> Dict[str, List[str]]:
    fields: Dict[str, List[str]] = {}
    for error in errors:
        fields.setdefault(_field_name(error), []).append(error.get("msg", "Invalid value"))
    return fields

async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.code}: {exc.message}")
    return error_response(exc)

async def request_validation_handler(request: Request, exc: RequestValidationError):
    fields = flatten_validation_errors(exc.errors())
    logger.info(f"Validation failed on {request.url.path}: {sorted(fields)}")
    return error_response(ValidationError("Invalid request body", fields=fields))

async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    code = _HTTP_CODES.get(exc.status_code, "error")
    message = exc.detail if isinstance(exc.detail, str) else code
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": code, "message": message},
        headers=getattr(exc, "headers", None),
    )

async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception(f"Database error on {request.method} {request.url.path}")
    return error_response(InternalError())

async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Internal server error on {request.method} {request.url.path}")
    return error_response(InternalError())

def register_exception_handlers(app: FastAPI):
    """Register all exception handlers with the FastAPI application."""
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
