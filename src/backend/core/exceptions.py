"""
Application exception hierarchy.

Every error raised on purpose by askstream derives from AppException, which
carries an ErrorCode so REST handlers and the streaming orchestrator can
classify it without string matching.

Taxonomy:
    ConfigurationError / MissingCredentials - fatal, raised before any output
    ProviderError                           - search backend failure, recovered as a tool result
    StreamAborted / SearchCancelled         - the cancellation token fired
    UpstreamStreamError                     - model/transport failure mid-generation
    PersistenceWarning                      - thread store write failure, logged only
"""

from __future__ import annotations

from typing import Any

from core.constants import PROVIDER_ERROR_HINT
from models.error_models import ErrorCode


class AppException(Exception):
    """Base for errors raised on purpose.

    ``details`` is a flat mapping rendered as field/message pairs in the REST
    error envelope; ``cause`` is the wrapped lower-level exception, if any.
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details
        self.cause = cause


class ResourceNotFoundError(AppException):
    def __init__(self, resource: str, resource_id: str | None = None, code: ErrorCode = ErrorCode.RESOURCE_NOT_FOUND):
        label = f"{resource} '{resource_id}'" if resource_id else resource
        super().__init__(code=code, message=f"{label} not found", details={"resource": resource, "id": resource_id})


class ThreadNotFoundError(ResourceNotFoundError):
    """Thread has no messages (threads exist implicitly once written)."""

    def __init__(self, thread_id: str):
        super().__init__("Thread", thread_id, code=ErrorCode.THREAD_NOT_FOUND)


class ConfigurationError(AppException):
    """A dependency cannot be used as configured. Never retried."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(code=ErrorCode.INTERNAL_CONFIGURATION_ERROR, message=message, details=details)


class MissingCredentials(ConfigurationError):
    """Raised at provider construction when its API key is absent."""

    def __init__(self, service: str, env_var: str):
        super().__init__(
            f"{service} is not configured. Set {env_var} in your .env file or environment.",
            details={"service": service, "env_var": env_var},
        )
        self.service = service
        self.env_var = env_var


class ExternalServiceError(AppException):
    """An upstream (model or search provider) failed; message is prefixed with its name."""

    def __init__(
        self,
        service: str,
        message: str,
        code: ErrorCode = ErrorCode.EXTERNAL_SERVICE_ERROR,
        cause: Exception | None = None,
    ):
        super().__init__(code=code, message=f"{service}: {message}", details={"service": service}, cause=cause)
        self.service = service


class ProviderError(ExternalServiceError):
    """Search provider failure, worded so the model can relay a remedy.

    str(err) reads e.g. "Exa search failed: timeout. Please try again or use a
    different search provider."
    """

    def __init__(self, provider: str, reason: str, cause: Exception | None = None):
        super().__init__(service=provider, message=reason, code=ErrorCode.SEARCH_PROVIDER_ERROR, cause=cause)
        self.provider = provider
        self.reason = reason
        self.message = f"{provider} search failed: {reason}. {PROVIDER_ERROR_HINT}"
        self.args = (self.message,)


class UpstreamStreamError(ExternalServiceError):
    """The model stream broke for a reason other than cancellation."""

    def __init__(self, message: str, cause: Exception | None = None):
        super().__init__(service="model", message=message, code=ErrorCode.UPSTREAM_STREAM_ERROR, cause=cause)


class StreamAborted(AppException):
    """The request's cancellation token fired. Ends the stream without output."""

    def __init__(self, reason: str | None = None, details: dict[str, Any] | None = None, message: str | None = None):
        super().__init__(
            code=ErrorCode.STREAM_CANCELLED,
            message=message or ("Stream cancelled" + (f": {reason}" if reason else "")),
            details=details,
        )
        self.reason = reason


class SearchCancelled(StreamAborted):
    """Cancellation observed by a search provider.

    Kept distinct from ProviderError so it is never shown as a failure.
    """

    def __init__(self, provider: str, reason: str | None = None):
        super().__init__(
            reason=reason,
            details={"provider": provider},
            message=f"{provider} search cancelled" + (f": {reason}" if reason else ""),
        )
        self.provider = provider


class PersistenceWarning(AppException):
    """Thread store write failed. Logged, never surfaced to the stream."""

    def __init__(self, thread_id: str, operation: str, cause: Exception | None = None):
        super().__init__(
            code=ErrorCode.THREAD_PERSISTENCE_FAILED,
            message=f"Failed to {operation} for thread {thread_id}",
            details={"thread_id": thread_id, "operation": operation},
            cause=cause,
        )
        self.thread_id = thread_id
        self.operation = operation


class DatabaseError(AppException):
    """Thread store database failure."""

    def __init__(
        self,
        message: str = "Database error",
        code: ErrorCode = ErrorCode.DATABASE_ERROR,
        cause: Exception | None = None,
    ):
        super().__init__(code=code, message=message, cause=cause)


__all__ = [
    "AppException",
    "ConfigurationError",
    "DatabaseError",
    "ExternalServiceError",
    "MissingCredentials",
    "PersistenceWarning",
    "ProviderError",
    "ResourceNotFoundError",
    "SearchCancelled",
    "StreamAborted",
    "ThreadNotFoundError",
    "UpstreamStreamError",
]
