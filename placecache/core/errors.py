"""Custom error types and error handling utilities."""

from typing import Optional, Dict, Any
from enum import Enum
import traceback
from datetime import datetime, timezone


class ErrorCategory(Enum):
    """Categories of errors for better handling."""
    NETWORK = "network"
    VALIDATION = "validation"
    PROVIDER = "provider"
    AUTHENTICATION = "authentication"
    RATE_LIMIT = "rate_limit"
    UNKNOWN = "unknown"


class PlaceCacheError(Exception):
    """Base exception for place search cache errors."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
        details: Optional[Dict[str, Any]] = None,
        recoverable: bool = True,
        retry_after: Optional[int] = None
    ):
        """Initialize place cache error."""
        super().__init__(message)
        self.message = message
        self.category = category
        self.details = details or {}
        self.recoverable = recoverable
        self.retry_after = retry_after
        self.timestamp = datetime.now(timezone.utc)
        self.traceback = traceback.format_exc()

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for logging/response."""
        return {
            "error": self.message,
            "category": self.category.value,
            "details": self.details,
            "recoverable": self.recoverable,
            "retry_after": self.retry_after,
            "timestamp": self.timestamp.isoformat(),
            "traceback": self.traceback if self.details.get("include_traceback") else None
        }


class ValidationError(PlaceCacheError, ValueError):
    """Malformed lookup/store input (empty query, non-finite coordinates)."""

    def __init__(self, message: str, field: Optional[str] = None, value: Optional[Any] = None):
        details = {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)

        super().__init__(
            message=message,
            category=ErrorCategory.VALIDATION,
            details=details,
            recoverable=False  # Validation errors require fixing input
        )


class ProviderError(PlaceCacheError):
    """External place search provider failures."""

    def __init__(
        self,
        message: str,
        status: Optional[str] = None,
        status_code: Optional[int] = None,
        category: ErrorCategory = ErrorCategory.PROVIDER,
        recoverable: bool = True,
        retry_after: Optional[int] = None
    ):
        details = {}
        if status:
            details["status"] = status
        if status_code:
            details["status_code"] = status_code

        super().__init__(
            message=message,
            category=category,
            details=details,
            recoverable=recoverable,
            retry_after=retry_after
        )
        self.status = status
        self.status_code = status_code


class RateLimitError(ProviderError):
    """Provider quota or rate limit exceeded."""

    def __init__(self, message: str, retry_after: int = 60, status: Optional[str] = None):
        super().__init__(
            message=message,
            status=status,
            category=ErrorCategory.RATE_LIMIT,
            recoverable=True,
            retry_after=retry_after
        )


# Exception type to (recoverable, retry_after_seconds) mapping
RECOVERABLE_EXCEPTION_PATTERNS = {
    "redis.ConnectionError": (True, 5),
    "redis.TimeoutError": (True, 3),
    "redis.BusyLoadingError": (True, 10),
    "httpx.ConnectError": (True, 3),
    "httpx.TimeoutException": (True, 5),
    "httpx.ReadTimeout": (True, 5),
    "ConnectionResetError": (True, 2),
    "ConnectionRefusedError": (True, 5),
    "TimeoutError": (True, 5),
}


def categorize_error(error: Exception) -> PlaceCacheError:
    """Map an arbitrary exception onto the place cache error taxonomy.

    Known transient exception types become recoverable network errors;
    HTTP status failures are classified by status code; everything else is
    reported as a non-recoverable unknown error.
    """
    if isinstance(error, PlaceCacheError):
        return error

    error_type = f"{type(error).__module__}.{type(error).__name__}"
    error_str = str(error).lower()

    for pattern, (recoverable, retry_after) in RECOVERABLE_EXCEPTION_PATTERNS.items():
        if error_type.endswith(pattern.split('.')[-1]):
            return PlaceCacheError(
                message=f"Network error: {error}",
                category=ErrorCategory.NETWORK,
                details={"original_error": error_type},
                recoverable=recoverable,
                retry_after=retry_after
            )

    status_code = getattr(getattr(error, "response", None), "status_code", None)
    if status_code == 429 or "too many requests" in error_str:
        return RateLimitError(f"Rate limit: {error}", retry_after=60)
    if status_code in (401, 403):
        return ProviderError(
            f"Authentication error: {error}",
            status_code=status_code,
            category=ErrorCategory.AUTHENTICATION,
            recoverable=False
        )
    if status_code is not None:
        return ProviderError(
            f"Provider HTTP error: {error}",
            status_code=status_code,
            recoverable=status_code >= 500
        )

    return PlaceCacheError(
        message=str(error),
        category=ErrorCategory.UNKNOWN,
        details={"original_error": error_type},
        recoverable=False
    )
