"""
Error handling

Provides:
1. The document-store error taxonomy
2. The ``{statusCode, ERROR}`` error envelope
3. Exception handler registration
"""

from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from starlette.exceptions import HTTPException

from docstore.core.logging import get_logger

logger = get_logger(__name__)


# =============================================================================
# Exceptions
# =============================================================================


class APIException(Exception):
    """Base API error"""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_code: str = "INTERNAL_ERROR",
        detail: Any = None,
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.detail = detail
        super().__init__(message)


class InvalidIdentifier(APIException):
    """Document identifier is not a well-formed ObjectId"""

    def __init__(self, message: str = "Invalid id", detail: Any = None):
        super().__init__(message, status_code=400, error_code="INVALID_ID", detail=detail)


class Unauthorized(APIException):
    """Missing, unknown, expired or revoked session token"""

    def __init__(self, message: str = "Unauthorized", detail: Any = None):
        super().__init__(message, status_code=401, error_code="UNAUTHORIZED", detail=detail)


class NotFound(APIException):
    def __init__(self, message: str = "Not found", detail: Any = None):
        super().__init__(message, status_code=404, error_code="NOT_FOUND", detail=detail)


class FilterSyntaxError(APIException):
    """Filter text is not a JSON object after quote normalization"""

    def __init__(self, message: str, detail: Any = None):
        super().__init__(message, status_code=400, error_code="FILTER_SYNTAX", detail=detail)


class ValidationError(APIException):
    """Malformed document or request shape"""

    def __init__(self, message: str, detail: Any = None):
        super().__init__(message, status_code=400, error_code="VALIDATION_ERROR", detail=detail)


class ResolutionError(APIException):
    """Bad tenant/collection address"""

    def __init__(self, message: str, detail: Any = None):
        super().__init__(message, status_code=400, error_code="RESOLUTION_ERROR", detail=detail)


class InvalidCredentials(APIException):
    def __init__(self, message: str = "Invalid credentials", detail: Any = None):
        super().__init__(message, status_code=400, error_code="INVALID_CREDENTIALS", detail=detail)


class DuplicateEmail(APIException):
    def __init__(self, message: str = "Email already in use", detail: Any = None):
        super().__init__(message, status_code=400, error_code="DUPLICATE_EMAIL", detail=detail)


class LogoutFailed(APIException):
    """Session could not be revoked"""

    def __init__(self, message: str = "Logout failed", detail: Any = None):
        super().__init__(message, status_code=400, error_code="LOGOUT_FAILED", detail=detail)


# =============================================================================
# Error envelope
# =============================================================================


class ErrorResponseModel(BaseModel):
    """Error envelope: ``{"statusCode": 400, "ERROR": "Invalid id"}``"""

    model_config = ConfigDict(populate_by_name=True)

    status_code: int = Field(..., alias="statusCode")
    error: str = Field(..., alias="ERROR")


def create_error_response(
    status_code: int,
    message: str,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    content = ErrorResponseModel(status_code=status_code, error=message).model_dump(by_alias=True)
    return JSONResponse(status_code=status_code, content=content, headers=headers)


# =============================================================================
# Handler registration
# =============================================================================


def setup_exception_handlers(app: FastAPI) -> None:
    """
    Register exception handlers

    In order of precedence:
    1. APIException and subclasses
    2. Request validation errors (rendered as 400)
    3. HTTPException
    4. Anything else (500, logged with traceback)
    """

    @app.exception_handler(APIException)
    async def api_exception_handler(request: Request, exc: APIException):
        logger.warning(f"API Exception: {exc.error_code} - {exc.message}")
        return create_error_response(exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        logger.warning(f"Validation error: {exc.errors()}")
        errors = exc.errors()
        message = errors[0].get("msg", "Request validation failed") if errors else "Request validation failed"
        return create_error_response(400, message)

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        return create_error_response(
            exc.status_code,
            str(exc.detail) if exc.detail else "HTTP Error",
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return create_error_response(500, str(exc) or type(exc).__name__)
