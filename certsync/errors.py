"""
Error taxonomy for certificate and DNS reconciliation.

Callers tell failures apart by type:
- ConfigurationError: fatal, raised before any network call
- ApiError: the remote provider answered with a failure
- TransportError: the request never got a usable answer (retryable)
- ResourceNotFoundError: a required remote resource is absent
"""

from typing import Any, Dict, List, Optional

# AWS reports throttling as HTTP 400 with one of these codes
THROTTLING_ERROR_CODES = frozenset({
    "Throttling",
    "ThrottlingException",
    "TooManyRequestsException",
    "RequestLimitExceeded",
})


class CertSyncError(Exception):
    """Base class for all certsync errors."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause


class ConfigurationError(CertSyncError):
    """Raised when configuration is invalid or missing."""
    pass


class ApiError(CertSyncError):
    """
    Raised when a provider returns a non-success response.

    Attributes:
        provider: Name of the remote service (e.g. "Cloudflare", "AWS ACM")
        status_code: HTTP status or SDK error code, if known
        errors: Raw provider error entries ({"code", "message"})
    """

    def __init__(
        self,
        message: str,
        provider: str = "API",
        status_code: Optional[Any] = None,
        errors: Optional[List[Dict[str, Any]]] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message, cause)
        self.provider = provider
        self.status_code = status_code
        self.errors = errors or []

    @property
    def error_codes(self) -> List[Any]:
        """Provider error codes in response order."""
        return [e.get("code") for e in self.errors if e.get("code") is not None]

    def __str__(self) -> str:
        status = f" (status {self.status_code})" if self.status_code is not None else ""
        return f"{self.provider} API error{status}: {self.message}"


class ParameterAlreadyExistsError(ApiError):
    """Raised when a parameter put without overwrite hits an existing name."""
    pass


class TransportError(CertSyncError):
    """
    Raised on network-level failures (connection refused, DNS, timeout).

    Transport errors are safe to retry for idempotent requests.
    """

    def __init__(
        self,
        message: str,
        provider: str = "API",
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message, cause)
        self.provider = provider

    def __str__(self) -> str:
        return f"{self.provider} transport error: {self.message}"


class DeadlineExceededError(TransportError):
    """Raised when the run's time budget is spent before a call starts."""
    pass


class ResourceNotFoundError(CertSyncError):
    """Raised when a resource that must exist is absent."""

    def __init__(
        self,
        resource_type: str,
        identifier: str,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(f"{resource_type} '{identifier}' not found.", cause)
        self.resource_type = resource_type
        self.identifier = identifier


def is_retryable(error: BaseException) -> bool:
    """
    Check whether an error may succeed on retry.

    Transport failures are retryable, except a spent deadline. Application
    errors are retryable only for 429 and 5xx responses.

    Args:
        error: Exception raised by an adapter

    Returns:
        True if the operation may be retried
    """
    if isinstance(error, DeadlineExceededError):
        return False
    if isinstance(error, TransportError):
        return True
    if isinstance(error, ApiError):
        if any(code in THROTTLING_ERROR_CODES for code in error.error_codes):
            return True
        if isinstance(error.status_code, int):
            return error.status_code == 429 or error.status_code >= 500
    return False
