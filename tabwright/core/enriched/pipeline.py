"""Multi-phase enriched pipeline: extract pages, reason, generate.

States move strictly forward::

    idle -> extracting -> thinking -> generating -> done

``failed`` is reachable from any non-terminal state. Extraction failures are
recorded per tab and never abort the run; a failed model call moves the
pipeline to ``failed`` and re-raises.
"""

from __future__ import annotations

import asyncio
import inspect
from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Optional, Sequence, Tuple

from tabwright.core.enriched.actions import ActionPrompt, format_tasks
from tabwright.core.enriched.extractor import (
    ContentExtractor,
    ExtractionResult,
    ExtractionSummary,
    TabHost,
    format_extracted_content,
    summarize_extraction,
)
from tabwright.core.executor import RequestExecutor
from tabwright.core.fallback import FallbackOrchestrator
from tabwright.core.provider_catalog import model_supports_reasoning
from tabwright.core.providers import RequestOptions
from tabwright.core.session import AISession, AIUnavailableError
from tabwright.utils.log import get_logger
from tabwright.utils.messages import ChatMessage, create_system_message, create_user_message

logger = get_logger()

ENRICHED_MAX_TOKENS = 8192
ENRICHED_TIMEOUT_SECONDS = 180.0
ENRICHED_TEMPERATURE = 0.7
ENRICHED_THINKING_BUDGET = 4096

EXTRACTION_PROGRESS_END = 30
THINKING_PROGRESS = 50
GENERATING_PROGRESS = 90
DONE_PROGRESS = 100

ENRICHED_SYSTEM_PROMPT = """You are an expert research analyst.
You are working with the content of the user's browser tabs.
Each tab below is reported with its extraction status:
- CONTENT EXTRACTED: analyze the page content directly.
- WEB SEARCH RECOMMENDED: look the URL up with your web search tool when available.
- BROWSER INTERNAL PAGE: skip it or mention it only as a browser page.
Answer every requested task in its own section with a markdown heading.
Cite the tab number when you use information from a specific tab."""


class PipelinePhase(str, Enum):
    EXTRACTING = "extracting"
    THINKING = "thinking"
    GENERATING = "generating"


class PipelineState(str, Enum):
    IDLE = "idle"
    EXTRACTING = "extracting"
    THINKING = "thinking"
    GENERATING = "generating"
    DONE = "done"
    FAILED = "failed"


_ORDER = {
    PipelineState.IDLE: 0,
    PipelineState.EXTRACTING: 1,
    PipelineState.THINKING: 2,
    PipelineState.GENERATING: 3,
    PipelineState.DONE: 4,
}


class PipelineStateError(RuntimeError):
    """An illegal state transition was attempted."""


@dataclass(frozen=True)
class EnrichedResult:
    text: str
    reasoning_blocks: Tuple[str, ...]
    extraction_summary: ExtractionSummary
    extraction_results: Tuple[ExtractionResult, ...]
    provider_id: str
    model: str
    web_search_requested: bool
    thinking_requested: bool


class PipelineObserver:
    """No-op observer; subclass or pass any object with the same callbacks.

    Each callback may be a plain method or a coroutine function.
    """

    def on_phase(self, phase: PipelinePhase) -> Any:
        return None

    def on_progress(self, percent: int) -> Any:
        return None

    def on_extraction_progress(self, current: int, total: int, result: ExtractionResult) -> Any:
        return None


async def _notify(observer: Any, name: str, *args: Any) -> None:
    callback = getattr(observer, name, None) if observer is not None else None
    if callback is None:
        return
    outcome = callback(*args)
    if inspect.isawaitable(outcome):
        await outcome


def build_enriched_messages(
    results: Sequence[ExtractionResult], prompts: Sequence[ActionPrompt]
) -> List[ChatMessage]:
    summary = summarize_extraction(results)
    header = (
        f"I have {summary.total} browser tabs. "
        f"Content was extracted from {summary.successful}; "
        f"{summary.searchable} need a web search; "
        f"{summary.browser_internal} are browser pages."
    )
    user_prompt = (
        f"{header}\n\n{format_extracted_content(results)}\n\n"
        f"Complete the following tasks:\n\n{format_tasks(prompts)}"
    )
    return [create_system_message(ENRICHED_SYSTEM_PROMPT), create_user_message(user_prompt)]


class EnrichedPipeline:
    """Runs one enriched analysis. Instances are single-use."""

    def __init__(
        self,
        session: AISession,
        host: TabHost,
        *,
        executor: Optional[RequestExecutor] = None,
        extractor: Optional[ContentExtractor] = None,
    ) -> None:
        self.session = session
        self.extractor = extractor or ContentExtractor(host)
        self.orchestrator = FallbackOrchestrator(session, executor)
        self.state = PipelineState.IDLE
        self._progress = 0

    def _advance(self, state: PipelineState) -> None:
        if self.state in (PipelineState.DONE, PipelineState.FAILED):
            raise PipelineStateError(f"Pipeline already finished ({self.state.value})")
        if state is not PipelineState.FAILED and _ORDER[state] <= _ORDER[self.state]:
            raise PipelineStateError(
                f"Cannot move from {self.state.value} to {state.value}"
            )
        logger.debug(
            "[pipeline] State change",
            extra={"from": self.state.value, "to": state.value},
        )
        self.state = state

    async def _set_phase(self, observer: Any, state: PipelineState) -> None:
        self._advance(state)
        await _notify(observer, "on_phase", PipelinePhase(state.value))

    async def _report(self, observer: Any, percent: int) -> None:
        percent = max(self._progress, min(DONE_PROGRESS, percent))
        self._progress = percent
        await _notify(observer, "on_progress", percent)

    async def run(
        self,
        tab_ids: Sequence[int],
        prompts: Sequence[ActionPrompt],
        observer: Any = None,
    ) -> EnrichedResult:
        availability = self.session.enriched_availability()
        if not availability.available:
            raise AIUnavailableError(availability.reason or "Enriched mode is unavailable")
        if not tab_ids:
            raise ValueError("Select at least one tab")
        if not prompts:
            raise ValueError("Select at least one action")

        try:
            return await self._run(tab_ids, prompts, observer)
        except (asyncio.CancelledError, Exception):
            self._fail()
            raise

    def _fail(self) -> None:
        if self.state not in (PipelineState.DONE, PipelineState.FAILED):
            self._advance(PipelineState.FAILED)

    async def _run(
        self,
        tab_ids: Sequence[int],
        prompts: Sequence[ActionPrompt],
        observer: Any,
    ) -> EnrichedResult:
        await self._set_phase(observer, PipelineState.EXTRACTING)
        await self._report(observer, 0)

        async def on_extracted(current: int, total: int, result: ExtractionResult) -> None:
            await _notify(observer, "on_extraction_progress", current, total, result)
            await self._report(observer, (current * EXTRACTION_PROGRESS_END) // total)

        results = await self.extractor.extract_many(tab_ids, on_extracted)
        summary = summarize_extraction(results)
        await self._report(observer, EXTRACTION_PROGRESS_END)
        logger.info(
            "[pipeline] Extraction finished",
            extra={
                "total": summary.total,
                "successful": summary.successful,
                "searchable": summary.searchable,
                "browser_internal": summary.browser_internal,
            },
        )

        session = self.session
        thinking = model_supports_reasoning(session.provider, session.model)
        web_search = summary.has_searchable_urls
        options = RequestOptions(
            max_tokens=ENRICHED_MAX_TOKENS,
            temperature=ENRICHED_TEMPERATURE,
            timeout=ENRICHED_TIMEOUT_SECONDS,
            enriched=True,
            thinking=thinking,
            thinking_budget=ENRICHED_THINKING_BUDGET,
            web_search=web_search,
        )

        await self._set_phase(observer, PipelineState.THINKING)
        await self._report(observer, THINKING_PROGRESS)
        reply = await self.orchestrator.call_enriched(
            build_enriched_messages(results, prompts), options
        )

        await self._set_phase(observer, PipelineState.GENERATING)
        await self._report(observer, GENERATING_PROGRESS)
        result = EnrichedResult(
            text=reply.text,
            reasoning_blocks=tuple(reply.reasoning_blocks),
            extraction_summary=summary,
            extraction_results=tuple(results),
            provider_id=session.provider.id.value,
            model=session.model,
            web_search_requested=web_search,
            thinking_requested=thinking,
        )
        self._advance(PipelineState.DONE)
        await self._report(observer, DONE_PROGRESS)
        return result


async def run_enriched_actions(
    session: AISession,
    host: TabHost,
    tab_ids: Sequence[int],
    prompts: Sequence[ActionPrompt],
    observer: Any = None,
    *,
    executor: Optional[RequestExecutor] = None,
) -> EnrichedResult:
    """Convenience wrapper running a fresh :class:`EnrichedPipeline`."""
    pipeline = EnrichedPipeline(session, host, executor=executor)
    return await pipeline.run(tab_ids, prompts, observer)
