"""Single HTTP call with a cancellation deadline and typed failures."""

from __future__ import annotations

import asyncio
import time
from typing import Any, Callable, Dict, Optional

import httpx

from tabwright.core.providers.error_mapping import (
    EMPTY_RESPONSE_MESSAGE,
    TIMEOUT_MESSAGE,
    extract_error_message,
    map_status_error,
    map_transport_error,
)
from tabwright.core.providers.errors import (
    ProviderEmptyResponseError,
    ProviderTimeoutError,
)
from tabwright.utils.log import get_logger

logger = get_logger()

ErrorMessageExtractor = Callable[[Any, str], str]
TextParser = Callable[[Any], str]


def _redact_url(url: str) -> str:
    # Query strings may carry credentials (Gemini ``?key=``).
    return url.split("?", 1)[0]


class RequestExecutor:
    """Issues exactly one POST per call and normalizes every failure.

    A shared ``httpx.AsyncClient`` may be injected; otherwise a client is
    opened per call. ``transport`` is forwarded to that per-call client,
    which is how tests substitute ``httpx.MockTransport``.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._client = client
        self._transport = transport

    async def _post(
        self, url: str, headers: Dict[str, str], body: Dict[str, Any], timeout: float
    ) -> httpx.Response:
        if self._client is not None:
            return await self._client.post(url, json=body, headers=headers, timeout=timeout)
        async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
            return await client.post(url, json=body, headers=headers)

    async def post_json(
        self,
        url: str,
        headers: Dict[str, str],
        body: Dict[str, Any],
        timeout: float,
        *,
        error_message: ErrorMessageExtractor = extract_error_message,
    ) -> Any:
        """POST ``body`` and return the decoded JSON payload (None if undecodable)."""
        start_time = time.time()
        logger.debug(
            "[executor] Sending request",
            extra={"url": _redact_url(url), "timeout": timeout},
        )
        try:
            response = await asyncio.wait_for(
                self._post(url, headers, body, timeout), timeout=timeout
            )
        except asyncio.CancelledError:
            raise  # Don't suppress task cancellation
        except asyncio.TimeoutError as exc:
            raise ProviderTimeoutError(TIMEOUT_MESSAGE) from exc
        except (httpx.HTTPError, OSError) as exc:
            mapped = map_transport_error(exc)
            logger.warning(
                "[executor] Transport failure: %s: %s",
                type(exc).__name__,
                exc,
                extra={"url": _redact_url(url), "error_code": mapped.error_code},
            )
            raise mapped from exc

        duration_ms = (time.time() - start_time) * 1000
        payload: Any = None
        if response.content:
            try:
                payload = response.json()
            except ValueError:
                payload = None

        if not response.is_success:
            raw_message = error_message(payload, response.text or "")
            mapped = map_status_error(response.status_code, raw_message)
            logger.warning(
                "[executor] Provider returned an error",
                extra={
                    "url": _redact_url(url),
                    "status": response.status_code,
                    "error_code": mapped.error_code,
                    "duration_ms": round(duration_ms, 2),
                },
            )
            raise mapped

        logger.debug(
            "[executor] Response received",
            extra={
                "url": _redact_url(url),
                "status": response.status_code,
                "duration_ms": round(duration_ms, 2),
            },
        )
        return payload

    async def execute(
        self,
        url: str,
        headers: Dict[str, str],
        body: Dict[str, Any],
        timeout: float,
        *,
        parse: TextParser,
        error_message: ErrorMessageExtractor = extract_error_message,
    ) -> str:
        """POST and return the parsed answer text; blank text is an EMPTY_RESPONSE error."""
        payload = await self.post_json(url, headers, body, timeout, error_message=error_message)
        text = parse(payload)
        if not isinstance(text, str) or not text.strip():
            raise ProviderEmptyResponseError(EMPTY_RESPONSE_MESSAGE)
        return text
