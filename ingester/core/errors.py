"""
Error Taxonomy
Classification of configuration and backend failures plus message sanitization
"""
import asyncio
import logging
import re
from enum import Enum
from typing import Iterable, List, Optional, Union

from pymongo.errors import (
    AutoReconnect,
    ConnectionFailure,
    DuplicateKeyError,
    NetworkTimeout,
    OperationFailure,
    PyMongoError,
    ServerSelectionTimeoutError,
)

logger = logging.getLogger(__name__)

# Cosmos DB Mongo API error codes
COSMOS_TOO_MANY_REQUESTS = 16500
MONGO_UNAUTHORIZED = 13
MONGO_AUTHENTICATION_FAILED = 18
MONGO_DUPLICATE_KEY = 11000

REDACTED = "***"

_URI_USERINFO = re.compile(r"(mongodb(?:\+srv)?://)[^@/\s]+@", re.IGNORECASE)
_KEY_VALUE_SECRET = re.compile(r"(\b(?:password|accountkey|key|token)\s*[=:]\s*)[^;&\s]+", re.IGNORECASE)


class ErrorKind(Enum):
    """Classes of failure the ingester distinguishes"""
    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    RATE_LIMITED = "rate_limited"
    CONFLICT = "conflict"
    TRANSIENT = "transient"
    CANCELLED = "cancelled"
    FATAL = "fatal"


class IngesterError(Exception):
    """Base class for ingester errors"""
    kind = ErrorKind.FATAL


class ConfigValidationError(IngesterError, ValueError):
    """Raised when configuration fails validation"""
    kind = ErrorKind.VALIDATION

    def __init__(self, errors: Iterable[str]):
        self.errors: List[str] = list(errors)
        super().__init__(f"Configuration validation failed: {'; '.join(self.errors)}")


class BackendError(IngesterError):
    """A backend failure with its classification attached"""

    def __init__(self, kind: ErrorKind, message: str):
        super().__init__(message)
        self.kind = kind


def classify_exception(exc: BaseException) -> ErrorKind:
    """Map an exception raised by the driver onto an ErrorKind"""
    if isinstance(exc, IngesterError):
        return exc.kind
    if isinstance(exc, asyncio.CancelledError):
        return ErrorKind.CANCELLED
    if isinstance(exc, DuplicateKeyError):
        return ErrorKind.CONFLICT
    if isinstance(exc, OperationFailure):
        return _classify_operation_failure(exc)
    if isinstance(exc, (NetworkTimeout, AutoReconnect, ServerSelectionTimeoutError,
                        ConnectionFailure, asyncio.TimeoutError)):
        return ErrorKind.TRANSIENT
    if isinstance(exc, PyMongoError):
        return ErrorKind.TRANSIENT
    return ErrorKind.FATAL


def _classify_operation_failure(exc: OperationFailure) -> ErrorKind:
    code = exc.code
    message = str(exc)
    if code == MONGO_DUPLICATE_KEY or "Conflict" in message:
        return ErrorKind.CONFLICT
    if code == COSMOS_TOO_MANY_REQUESTS or "TooManyRequests" in message or "429" in message:
        return ErrorKind.RATE_LIMITED
    if code in (MONGO_UNAUTHORIZED, MONGO_AUTHENTICATION_FAILED) or \
            "Unauthorized" in message or "Forbidden" in message:
        return ErrorKind.AUTHENTICATION
    return ErrorKind.TRANSIENT


def sanitize_message(message: str, secrets: Optional[Iterable[str]] = None) -> str:
    """Strip credential material from a message before it leaves the core"""
    sanitized = _URI_USERINFO.sub(rf"\1{REDACTED}@", message)
    sanitized = _KEY_VALUE_SECRET.sub(rf"\1{REDACTED}", sanitized)
    for secret in secrets or ():
        if secret:
            sanitized = sanitized.replace(secret, REDACTED)
    return sanitized


_FRIENDLY_MESSAGES = {
    ErrorKind.VALIDATION: "Invalid input. Please check your connection settings.",
    ErrorKind.AUTHENTICATION: "Authentication failed. Please verify your credentials.",
    ErrorKind.RATE_LIMITED: "Rate limit exceeded. Please wait a moment and try again.",
    ErrorKind.CONFLICT: "A conflict occurred. The resource may already exist.",
    ErrorKind.TRANSIENT: "The service is temporarily unavailable. Please try again later.",
    ErrorKind.CANCELLED: "The operation was cancelled.",
    ErrorKind.FATAL: "An unexpected error occurred. Please check the logs for more details.",
}


def user_friendly_message(error: Union[BaseException, ErrorKind]) -> str:
    """Fixed, credential-free sentence describing an exception or error kind"""
    if isinstance(error, ErrorKind):
        return _FRIENDLY_MESSAGES[error]
    if isinstance(error, (NetworkTimeout, asyncio.TimeoutError)):
        return "The operation timed out. Please check your network connection."
    return _FRIENDLY_MESSAGES[classify_exception(error)]
