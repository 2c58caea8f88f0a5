"""
Exceptions for the sync and data-integrity engine.

Exception Hierarchy:
    SyncError (base)
    ├── ValidationError (dataset failed structural checks)
    ├── RemoteStoreError (remote store failures)
    │   ├── NotFoundError (remote data file does not exist)
    │   ├── TransportError (network, server or unknown failure)
    │   │   ├── AuthError (401/403 permission failures)
    │   │   └── RateLimitError (403 rate limiting)
    │   └── DocumentParseError (payload is not a JSON object)
    ├── StorageError (local snapshot failures, never escapes the store)
    └── InvalidTransitionError (illegal state machine transition)

Example:
    >>> from trackersync.core.errors import NotFoundError
    >>> try:
    ...     raise NotFoundError("data.json not found", path="data.json")
    ... except NotFoundError as e:
    ...     print(e.context["path"])
    data.json
"""


class SyncError(Exception):
    """
    Base exception for all sync engine errors.

    Attributes:
        message: Human-readable error message
        context: Optional dictionary of additional context
    """

    def __init__(self, message: str, **context: object) -> None:
        """
        Initialize a sync error with message and context.

        Args:
            message: Human-readable error message
            **context: Additional context as keyword arguments
        """
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        """Return string representation of the error."""
        return self.message


class ValidationError(SyncError):
    """
    Raised when a dataset fails structural or referential validation.

    Validation normally returns a ValidationResult;
    ValidationResult.raise_for_errors() turns an invalid one into this
    exception for callers that prefer to raise.

    Attributes:
        errors: Hard validation errors
        warnings: Soft warnings that did not fail validation
    """

    def __init__(
        self,
        errors: list[str],
        warnings: list[str] | None = None,
        **context: object,
    ) -> None:
        self.errors = list(errors)
        self.warnings = list(warnings or [])
        super().__init__(", ".join(self.errors) or "Validation failed", **context)


class RemoteStoreError(SyncError):
    """Base class for failures talking to the remote store."""


class NotFoundError(RemoteStoreError):
    """The remote data file does not exist yet."""


class TransportError(RemoteStoreError):
    """
    Network, server or otherwise unclassified remote failure.

    Attributes:
        status: HTTP status code when one was received
        error_type: Short classification label (e.g. SERVER_ERROR)
    """

    error_type = "API_ERROR"

    def __init__(
        self,
        message: str,
        status: int | None = None,
        error_type: str | None = None,
        **context: object,
    ) -> None:
        super().__init__(message, **context)
        self.status = status
        if error_type is not None:
            self.error_type = error_type


class AuthError(TransportError):
    """Authentication or permission failure (HTTP 401/403)."""

    error_type = "AUTHENTICATION_ERROR"


class RateLimitError(TransportError):
    """The remote API rejected the request because of rate limiting."""

    error_type = "RATE_LIMIT_ERROR"


class DocumentParseError(RemoteStoreError):
    """The remote payload could not be parsed into a dataset object."""


class StorageError(SyncError):
    """Local snapshot storage failure."""


class InvalidTransitionError(SyncError):
    """
    Raised when a state machine receives an event its current state rejects.

    Attributes:
        state: State the machine was in
        event: Event that was rejected
    """

    def __init__(self, state: str, event: str) -> None:
        self.state = state
        self.event = event
        super().__init__(f"Cannot apply '{event}' in state '{state}'")


__all__ = [
    "AuthError",
    "DocumentParseError",
    "InvalidTransitionError",
    "NotFoundError",
    "RateLimitError",
    "RemoteStoreError",
    "StorageError",
    "SyncError",
    "TransportError",
    "ValidationError",
]
