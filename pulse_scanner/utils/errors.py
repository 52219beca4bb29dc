"""
PULSE SCANNER: Error Normalization
Every error crossing a service boundary is an AppError so callers can
branch on `code` instead of message text.
"""
from typing import Any, Dict, Optional


class AppError(Exception):
    """Normalized application error: message, code, numeric status, details."""

    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN_ERROR",
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "code": self.code,
            "status": self.status_code,
            "details": self.details,
        }

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code}, status={self.status_code}, message={self.message!r})"


class ExchangeError(AppError):
    """Exchange request failed or returned an unusable payload."""

    def __init__(self, message: str, operation: str, status_code: int = 502,
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(message, f"EXCHANGE_{operation.upper()}_ERROR", status_code, details)
        self.operation = operation


class PersistenceError(AppError):
    """Persistence collaborator failed."""

    def __init__(self, message: str, operation: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, f"PERSISTENCE_{operation.upper()}_ERROR", 500, details)
        self.operation = operation


def is_app_error(error: BaseException) -> bool:
    return isinstance(error, AppError)


def handle_unknown_error(error: BaseException) -> AppError:
    """Wrap any exception into an AppError, leaving AppErrors untouched."""
    if is_app_error(error):
        return error
    return AppError(
        str(error) or "An unknown error occurred",
        "UNKNOWN_ERROR",
        500,
        {"original_error": type(error).__name__},
    )


def handle_service_error(error: BaseException, service: str, operation: str) -> AppError:
    """Normalize and tag an error with the service/operation that raised it."""
    app_error = handle_unknown_error(error)
    app_error.code = f"{service.upper()}_{operation.upper()}_ERROR"
    return app_error
