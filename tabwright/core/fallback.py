"""Model fallback across the automatic free tier."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from tabwright.core.executor import RequestExecutor
from tabwright.core.providers import EnrichedReply, RequestOptions
from tabwright.core.providers.error_mapping import (
    EMPTY_RESPONSE_MESSAGE,
    is_credit_exhaustion,
)
from tabwright.core.providers.errors import (
    CandidatesExhaustedError,
    CreditsRequiredError,
    ProviderEmptyResponseError,
    ProviderError,
)
from tabwright.core.session import AISession
from tabwright.utils.log import get_logger
from tabwright.utils.messages import ChatMessage

logger = get_logger()

ALL_CANDIDATES_BUSY_MESSAGE = "All free models are currently busy. Please try again in a moment."


@dataclass(frozen=True)
class BackoffPolicy:
    """Fixed delay between attempts, optionally capping the number of attempts."""

    delay: float = 0.5
    max_attempts: Optional[int] = None

    def limit(self, candidates: Sequence[str]) -> List[str]:
        if self.max_attempts is None:
            return list(candidates)
        return list(candidates)[: max(1, self.max_attempts)]

    async def wait(self, attempt: int) -> None:
        """Sleep before ``attempt`` (1-based count of attempts already made)."""
        if self.delay > 0:
            await asyncio.sleep(self.delay)


class FallbackOrchestrator:
    """Routes calls for one session, walking free-tier candidates on transient failure.

    At most one request is in flight at a time.
    """

    def __init__(
        self,
        session: AISession,
        executor: Optional[RequestExecutor] = None,
        backoff: Optional[BackoffPolicy] = None,
    ) -> None:
        self.session = session
        self.executor = executor or RequestExecutor()
        self.backoff = backoff or BackoffPolicy()

    def candidate_models(self) -> List[str]:
        if self.session.uses_free_tier_walk:
            return self.backoff.limit(self.session.provider.free_models)
        return [self.session.model]

    async def call_with_fallback(
        self,
        messages: Sequence[ChatMessage],
        options: RequestOptions = RequestOptions(),
    ) -> str:
        """Return the answer text from the first candidate model that succeeds."""
        self.session.ensure_available()
        if self.session.uses_free_tier_walk:
            return await self._walk_candidates(messages, options)
        return await self._call_explicit(messages, options)

    async def _walk_candidates(
        self, messages: Sequence[ChatMessage], options: RequestOptions
    ) -> str:
        candidates = self.candidate_models()
        attempts: List[Tuple[str, ProviderError]] = []
        for index, model in enumerate(candidates):
            logger.debug(
                "[fallback] Trying free model",
                extra={"model": model, "attempt": index + 1, "candidates": len(candidates)},
            )
            try:
                return await self.call_model(model, messages, options)
            except ProviderError as exc:
                if not exc.retryable:
                    raise
                attempts.append((model, exc))
                logger.info(
                    "[fallback] Model failed; moving to next candidate",
                    extra={"model": model, "error_code": exc.error_code},
                )
                if index < len(candidates) - 1:
                    await self.backoff.wait(index + 1)
        raise CandidatesExhaustedError(ALL_CANDIDATES_BUSY_MESSAGE, attempts)

    async def _call_explicit(
        self, messages: Sequence[ChatMessage], options: RequestOptions
    ) -> str:
        model = self.session.model
        try:
            return await self.call_model(model, messages, options)
        except ProviderError as exc:
            if self.session.provider.auto_model_id and is_credit_exhaustion(exc):
                raise CreditsRequiredError(
                    "This model requires credits. Switch to "
                    '"Auto (Free Models Only)" in Settings.',
                    model=model,
                ) from exc
            raise

    async def call_model(
        self,
        model: str,
        messages: Sequence[ChatMessage],
        options: RequestOptions,
    ) -> str:
        """One request against one model; no fallback."""
        session = self.session
        adapter = session.adapter
        url = adapter.endpoint_url(session.base_url, model, session.credential, options)
        body = adapter.format_request(messages, model, options)
        return await self.executor.execute(
            url,
            adapter.headers(session.credential),
            body,
            options.timeout,
            parse=adapter.parse_text,
            error_message=adapter.error_message,
        )

    async def call_enriched(
        self,
        messages: Sequence[ChatMessage],
        options: RequestOptions,
    ) -> EnrichedReply:
        """Single enriched call against the selected model, split into text and reasoning."""
        session = self.session
        session.ensure_available()
        adapter = session.adapter
        model = session.model
        url = adapter.endpoint_url(session.base_url, model, session.credential, options)
        body = adapter.format_request(messages, model, options)
        payload = await self.executor.post_json(
            url,
            adapter.headers(session.credential),
            body,
            options.timeout,
            error_message=adapter.error_message,
        )
        reply = adapter.parse_enriched(payload)
        if not reply.text.strip():
            raise ProviderEmptyResponseError(EMPTY_RESPONSE_MESSAGE)
        logger.info(
            "[fallback] Enriched response received",
            extra={
                "provider": session.provider.id.value,
                "model": model,
                "reasoning_blocks": len(reply.reasoning_blocks),
            },
        )
        return reply
