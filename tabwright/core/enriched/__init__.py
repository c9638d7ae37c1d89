"""Enriched mode: page extraction, analysis actions and the multi-phase pipeline."""

from tabwright.core.enriched.actions import (
    BUILTIN_ACTIONS,
    ActionPrompt,
    execute_actions,
    resolve_actions,
)
from tabwright.core.enriched.extractor import (
    ContentExtractor,
    ExtractionResult,
    ExtractionStatus,
    ExtractionSummary,
    PageAccessError,
    TabHost,
    format_extracted_content,
    is_browser_internal_url,
    is_restricted_url,
    is_searchable_url,
    summarize_extraction,
)
from tabwright.core.enriched.pipeline import (
    EnrichedPipeline,
    EnrichedResult,
    PipelineObserver,
    PipelinePhase,
    PipelineState,
    run_enriched_actions,
)

__all__ = [
    "BUILTIN_ACTIONS",
    "ActionPrompt",
    "ContentExtractor",
    "EnrichedPipeline",
    "EnrichedResult",
    "ExtractionResult",
    "ExtractionStatus",
    "ExtractionSummary",
    "PageAccessError",
    "PipelineObserver",
    "PipelinePhase",
    "PipelineState",
    "TabHost",
    "execute_actions",
    "format_extracted_content",
    "is_browser_internal_url",
    "is_restricted_url",
    "is_searchable_url",
    "resolve_actions",
    "run_enriched_actions",
    "summarize_extraction",
]
