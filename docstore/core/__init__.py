"""
Core infrastructure

Logging, correlation, middleware and error handling
"""

from docstore.core.correlation import (
    correlator,
    generate_id,
    generate_request_id,
    ContextualCorrelator,
    UniqueId,
)
from docstore.core.logging import (
    setup_logging,
    get_logger,
    LogContext,
    LogLevel,
)
from docstore.core.middleware import setup_middlewares, AUTH_HEADER
from docstore.core.exceptions import (
    APIException,
    InvalidIdentifier,
    Unauthorized,
    NotFound,
    FilterSyntaxError,
    ValidationError,
    ResolutionError,
    InvalidCredentials,
    DuplicateEmail,
    LogoutFailed,
    ErrorResponseModel,
    create_error_response,
    setup_exception_handlers,
)

__all__ = [
    # Correlation
    "correlator",
    "generate_id",
    "generate_request_id",
    "ContextualCorrelator",
    "UniqueId",
    # Logging
    "setup_logging",
    "get_logger",
    "LogContext",
    "LogLevel",
    # Middleware
    "setup_middlewares",
    "AUTH_HEADER",
    # Exceptions
    "APIException",
    "InvalidIdentifier",
    "Unauthorized",
    "NotFound",
    "FilterSyntaxError",
    "ValidationError",
    "ResolutionError",
    "InvalidCredentials",
    "DuplicateEmail",
    "LogoutFailed",
    "ErrorResponseModel",
    "create_error_response",
    "setup_exception_handlers",
]
