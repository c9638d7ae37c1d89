"""Shared helpers for mapping HTTP and transport failures to provider errors."""

from __future__ import annotations

from typing import Any

import httpx

from tabwright.core.providers.errors import (
    ProviderAccessDeniedError,
    ProviderApiError,
    ProviderAuthenticationError,
    ProviderConnectionError,
    ProviderContextLengthExceededError,
    ProviderError,
    ProviderRateLimitError,
    ProviderTimeoutError,
    ProviderUnavailableError,
)

AUTH_MESSAGE = "Invalid API key. Please check your API key in Settings."
ACCESS_DENIED_MESSAGE = "Access denied. Your API key may not have permission for this model."
RATE_LIMITED_MESSAGE = "Rate limited by the provider. Please wait a moment and try again."
UNAVAILABLE_MESSAGE = "AI service is temporarily unavailable. Please try again in a moment."
MODEL_UNAVAILABLE_MESSAGE = "This model is currently unavailable. Try a different model."
CONTEXT_TOO_LARGE_MESSAGE = "Too many tabs to process at once. Try with fewer tabs."
INSUFFICIENT_CREDITS_MESSAGE = (
    "Insufficient credits. Use a free model or add credits to your account."
)
TIMEOUT_MESSAGE = "Request timed out. The AI service is slow - try a smaller/faster model."
NETWORK_MESSAGE = "Network error. Check your internet connection and try again."
EMPTY_RESPONSE_MESSAGE = "AI returned empty response. Try again or use a different model."

_UNAVAILABLE_STATUSES = {500, 502, 503}
_MODEL_UNAVAILABLE_HINTS = ("no endpoints", "unavailable")
_CREDIT_HINTS = ("credit", "insufficient balance", "insufficient_quota")
_CONTEXT_HINTS = (
    "context",
    "maximum context length",
    "prompt is too long",
    "input is too long",
    "too many tokens",
    "request is too large",
    "requested input has",
)


def extract_error_message(payload: Any, raw_text: str = "") -> str:
    """Pull the most specific human-readable message out of an error body."""
    if isinstance(payload, list) and payload:
        # Gemini occasionally wraps the error object in a one-element list.
        payload = payload[0]
    if isinstance(payload, dict):
        err = payload.get("error")
        if isinstance(err, dict):
            for field in ("message", "type", "status", "code"):
                value = err.get(field)
                if isinstance(value, str) and value:
                    return value
        if isinstance(err, str) and err:
            return err
        for field in ("message", "detail", "error_description"):
            value = payload.get(field)
            if isinstance(value, str) and value:
                return value
    return (raw_text or "").strip()


def looks_like_context_length(message: str) -> bool:
    lowered = (message or "").lower()
    return any(hint in lowered for hint in _CONTEXT_HINTS)


def is_model_unavailable_message(message: str) -> bool:
    lowered = (message or "").lower()
    return any(hint in lowered for hint in _MODEL_UNAVAILABLE_HINTS)


def is_credit_exhaustion(error: ProviderError) -> bool:
    """Return True when an error means the account cannot pay for the model."""
    if error.status_code == 402:
        return True
    lowered = error.message.lower()
    return any(hint in lowered for hint in _CREDIT_HINTS)


def map_status_error(status: int, raw_message: str) -> ProviderError:
    """Translate a non-2xx status and the provider's message into a ProviderError."""
    lowered = (raw_message or "").lower()
    # Gemini reports a bad key as 400 INVALID_ARGUMENT.
    if status == 401 or (status == 400 and "api key not valid" in lowered):
        return ProviderAuthenticationError(AUTH_MESSAGE, status_code=status)
    if status == 403:
        return ProviderAccessDeniedError(ACCESS_DENIED_MESSAGE, status_code=status)
    if status == 429:
        return ProviderRateLimitError(RATE_LIMITED_MESSAGE, status_code=status)
    if status in _UNAVAILABLE_STATUSES:
        return ProviderUnavailableError(UNAVAILABLE_MESSAGE, status_code=status)
    if status in {400, 413} and looks_like_context_length(raw_message):
        return ProviderContextLengthExceededError(CONTEXT_TOO_LARGE_MESSAGE, status_code=status)
    if "no endpoints" in lowered:
        return ProviderUnavailableError(MODEL_UNAVAILABLE_MESSAGE, status_code=status)
    if status == 402 or "credit" in lowered:
        return ProviderApiError(INSUFFICIENT_CREDITS_MESSAGE, status_code=status)
    if is_model_unavailable_message(raw_message):
        return ProviderUnavailableError(raw_message, status_code=status)
    return ProviderApiError(
        raw_message or f"Request failed ({status}). Please try again.", status_code=status
    )


def map_transport_error(exc: Exception) -> ProviderError:
    """Map an httpx transport exception to a normalized error."""
    if isinstance(exc, httpx.TimeoutException):
        return ProviderTimeoutError(TIMEOUT_MESSAGE)
    if isinstance(exc, (httpx.TransportError, ConnectionError, OSError)):
        return ProviderConnectionError(NETWORK_MESSAGE)
    return ProviderApiError(str(exc) or "Failed to call AI API")
