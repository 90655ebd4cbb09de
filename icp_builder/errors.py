"""
Error kinds for ICP Builder
===========================
One exception type, tagged with an ErrorKind. The HTTP status is derived
from the kind at the boundary via status_for().
"""

from enum import Enum
from typing import Any, Optional

from .config.settings import APP_CONFIG

GENERIC_ERROR_MESSAGE = "An unexpected error occurred"


class ErrorKind(str, Enum):
    """Classification of application errors"""
    VALIDATION = "VALIDATION_ERROR"
    AUTHENTICATION = "AUTHENTICATION_ERROR"
    AUTHORIZATION = "AUTHORIZATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    RATE_LIMIT = "RATE_LIMIT_ERROR"
    EXTERNAL_SERVICE = "EXTERNAL_SERVICE_ERROR"
    INTERNAL = "INTERNAL_ERROR"


HTTP_STATUS_BY_KIND = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.AUTHENTICATION: 401,
    ErrorKind.AUTHORIZATION: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.RATE_LIMIT: 429,
    ErrorKind.EXTERNAL_SERVICE: 502,
    ErrorKind.INTERNAL: 500,
}


def status_for(kind: ErrorKind) -> int:
    """Map an error kind to its HTTP status code"""
    try:
        return HTTP_STATUS_BY_KIND[kind]
    except KeyError:
        raise ValueError(f"No HTTP status mapped for error kind: {kind}")


class AppError(Exception):
    """Application error carrying a kind, message and optional details"""

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        details: Optional[Any] = None,
        is_operational: bool = True,
    ):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.details = details
        self.is_operational = is_operational

    @property
    def http_status(self) -> int:
        return status_for(self.kind)

    @property
    def code(self) -> str:
        return self.kind.value

    def __repr__(self) -> str:
        return f"AppError(kind={self.kind.name}, message={self.message!r})"

    # -------------------------------------------------------------------------
    # Constructors
    # -------------------------------------------------------------------------

    @classmethod
    def validation(cls, message: str, details: Optional[Any] = None) -> "AppError":
        return cls(ErrorKind.VALIDATION, message, details)

    @classmethod
    def authentication(cls, message: str = "Authentication required") -> "AppError":
        return cls(ErrorKind.AUTHENTICATION, message)

    @classmethod
    def authorization(cls, message: str = "Insufficient permissions") -> "AppError":
        return cls(ErrorKind.AUTHORIZATION, message)

    @classmethod
    def not_found(cls, resource: str = "Resource") -> "AppError":
        return cls(ErrorKind.NOT_FOUND, f"{resource} not found")

    @classmethod
    def conflict(cls, message: str) -> "AppError":
        return cls(ErrorKind.CONFLICT, message)

    @classmethod
    def rate_limit(cls, message: str = "Too many requests") -> "AppError":
        return cls(ErrorKind.RATE_LIMIT, message)

    @classmethod
    def external_service(
        cls, service: str, cause: Optional[BaseException] = None
    ) -> "AppError":
        reason = str(cause) if cause is not None and str(cause) else "Unknown error"
        error = cls(ErrorKind.EXTERNAL_SERVICE, f"{service} service error: {reason}")
        error.__cause__ = cause
        return error

    @classmethod
    def internal(cls, message: str) -> "AppError":
        return cls(ErrorKind.INTERNAL, message, is_operational=False)


class ICPGenerationError(Exception):
    """Raised when an ICP cannot be generated from company info"""


class QualificationError(Exception):
    """Raised when a prospect cannot be qualified against an ICP"""


def is_production(environment: Optional[str] = None) -> bool:
    return (environment or APP_CONFIG["environment"]) == "production"


def client_error_message(error: BaseException, environment: Optional[str] = None) -> str:
    """
    Message that is safe to send to the client.

    Operational AppErrors surface their own message. Anything else is hidden
    behind a generic message in production.
    """
    if isinstance(error, AppError) and error.is_operational:
        return error.message
    if is_production(environment):
        return GENERIC_ERROR_MESSAGE
    return str(error) or GENERIC_ERROR_MESSAGE


def status_code_for(error: BaseException) -> int:
    if isinstance(error, AppError):
        return error.http_status
    return status_for(ErrorKind.INTERNAL)
