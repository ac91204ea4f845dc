"""
Custom Exceptions for Serginho
==============================

Structured error handling allows the HTTP layer to map failures to status
codes based on type rather than parsing strings.

Error Codes:
- 1xxx: Client errors (user input, validation)
- 3xxx: Resource errors (provider failures, exhausted chains)
- 5xxx: System errors (internal, configuration)
"""

from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Structured error codes for user-friendly messages"""

    # 1xxx: Client Errors
    VALIDATION_ERROR = 1001
    SPECIALIST_NOT_FOUND = 1002

    # 3xxx: Resource Errors
    PROVIDER_FAILED = 3001
    ALL_PROVIDERS_FAILED = 3002
    ALL_MODELS_FAILED_PARALLEL = 3003

    # 5xxx: System Errors
    INTERNAL_ERROR = 5001
    CONFIGURATION_ERROR = 5003


class SerginhoError(Exception):
    """Base exception for all Serginho errors"""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: dict[str, Any] | None = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for structured logging"""
        return {
            'error_type': self.__class__.__name__,
            'error_code': int(self.error_code),
            'message': self.message,
            'details': self.details
        }


class ProviderError(SerginhoError):
    """Raised when a single backend call fails (HTTP status, timeout, network)."""

    def __init__(
        self,
        provider_id: str,
        message: str,
        status: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        merged = {"provider": provider_id, "status": status}
        merged.update(details or {})
        super().__init__(message, ErrorCode.PROVIDER_FAILED, merged)
        self.provider_id = provider_id
        self.status = status


class ChainExhaustedError(SerginhoError):
    """Raised when every provider in the resolved fallback chain failed"""

    MESSAGE = "All providers failed"

    def __init__(self, details: dict[str, Any] | None = None):
        super().__init__(self.MESSAGE, ErrorCode.ALL_PROVIDERS_FAILED, details)


class RaceExhaustedError(SerginhoError):
    """Raised when every concurrently raced provider failed"""

    MESSAGE = "All models failed in parallel mode"

    def __init__(self, details: dict[str, Any] | None = None):
        super().__init__(self.MESSAGE, ErrorCode.ALL_MODELS_FAILED_PARALLEL, details)


class ConfigurationError(SerginhoError):
    """Raised at construction time when required configuration is missing"""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, ErrorCode.CONFIGURATION_ERROR, details)


class ValidationError(SerginhoError):
    """Raised when input validation fails"""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, ErrorCode.VALIDATION_ERROR, details)


class SpecialistNotFoundError(SerginhoError):
    """Raised when a specialist persona id is not registered"""

    def __init__(self, specialist_id: str, details: dict[str, Any] | None = None):
        super().__init__("Specialist not found", ErrorCode.SPECIALIST_NOT_FOUND, details)
        self.specialist_id = specialist_id
