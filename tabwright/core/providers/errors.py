"""Shared provider error types for cross-provider normalization."""

from __future__ import annotations

from enum import Enum
from typing import Optional, Sequence, Tuple


class ErrorKind(str, Enum):
    """Stable classification of a failed provider call."""

    AUTH = "auth"
    ACCESS_DENIED = "access_denied"
    RATE_LIMITED = "rate_limited"
    UNAVAILABLE = "unavailable"
    CONTEXT_TOO_LARGE = "context_too_large"
    TIMEOUT = "timeout"
    NETWORK = "network"
    EMPTY_RESPONSE = "empty_response"
    UNKNOWN = "unknown"


class ProviderError(Exception):
    """Normalized provider exception with a stable error kind."""

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        *,
        retryable: bool = False,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.retryable = retryable
        self.status_code = status_code

    @property
    def error_code(self) -> str:
        return self.kind.value


class ProviderAuthenticationError(ProviderError):
    """Credential rejected."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(ErrorKind.AUTH, message, status_code=status_code)


class ProviderAccessDeniedError(ProviderError):
    """Credential valid but lacks access to the model."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(ErrorKind.ACCESS_DENIED, message, status_code=status_code)


class ProviderRateLimitError(ProviderError):
    """Rate limit exceeded."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(ErrorKind.RATE_LIMITED, message, retryable=True, status_code=status_code)


class ProviderUnavailableError(ProviderError):
    """Service or model temporarily unavailable."""

    def __init__(
        self, message: str, *, retryable: bool = True, status_code: Optional[int] = None
    ) -> None:
        super().__init__(
            ErrorKind.UNAVAILABLE, message, retryable=retryable, status_code=status_code
        )


class ProviderContextLengthExceededError(ProviderError):
    """Request too large for the model's context window."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(ErrorKind.CONTEXT_TOO_LARGE, message, status_code=status_code)


class ProviderTimeoutError(ProviderError):
    """Timeout error normalized across providers."""

    def __init__(self, message: str) -> None:
        super().__init__(ErrorKind.TIMEOUT, message, retryable=True)


class ProviderConnectionError(ProviderError):
    """Connection-level transport error (DNS, refused connection, reset)."""

    def __init__(self, message: str) -> None:
        super().__init__(ErrorKind.NETWORK, message, retryable=True)


class ProviderEmptyResponseError(ProviderError):
    """Provider answered successfully but without any text."""

    def __init__(self, message: str) -> None:
        super().__init__(ErrorKind.EMPTY_RESPONSE, message, retryable=True)


class ProviderApiError(ProviderError):
    """Generic upstream API error."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(ErrorKind.UNKNOWN, message, status_code=status_code)


class CandidatesExhaustedError(ProviderError):
    """Every candidate model of the automatic free tier failed with a retryable error."""

    def __init__(self, message: str, attempts: Sequence[Tuple[str, ProviderError]]) -> None:
        super().__init__(ErrorKind.UNAVAILABLE, message)
        self.attempts: Tuple[Tuple[str, ProviderError], ...] = tuple(attempts)


class CreditsRequiredError(ProviderError):
    """An explicitly selected paid model was refused for lack of credits."""

    def __init__(self, message: str, *, model: str) -> None:
        super().__init__(ErrorKind.ACCESS_DENIED, message)
        self.model = model
