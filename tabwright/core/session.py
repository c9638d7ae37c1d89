"""Explicit orchestration context.

An :class:`AISession` is opened once by the caller (for example at
application start) and handed to every orchestration call. It holds an
immutable snapshot of the AI settings and the provider credential; a
settings change is applied by opening a new session, never by mutating one.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Optional, Protocol

from tabwright.core.config import AISettings, ProviderId
from tabwright.core.provider_catalog import (
    ProviderConfig,
    get_provider_config,
    model_supports_reasoning,
)
from tabwright.core.providers import ProviderAdapter, get_provider_adapter
from tabwright.utils.log import get_logger

logger = get_logger()


class SettingsStore(Protocol):
    """Source of persisted settings and credentials."""

    async def load_settings(self) -> AISettings: ...

    async def load_credential(self, provider: ProviderId) -> Optional[str]: ...


class AIUnavailableError(Exception):
    """AI features cannot be used with the current settings."""


@dataclass(frozen=True)
class Availability:
    available: bool
    reason: Optional[str] = None


@dataclass(frozen=True)
class EnrichedAvailability:
    available: bool
    reason: Optional[str] = None
    provider: Optional[str] = None
    model: Optional[str] = None
    supports_thinking: bool = False


@dataclass(frozen=True)
class AISession:
    """Settings snapshot plus credential for one orchestration session."""

    settings: AISettings
    provider: ProviderConfig
    credential: Optional[str] = field(default=None, repr=False)
    store: Optional[SettingsStore] = field(default=None, repr=False, compare=False)

    @classmethod
    def from_settings(
        cls,
        settings: AISettings,
        credential: Optional[str] = None,
        store: Optional[SettingsStore] = None,
    ) -> "AISession":
        return cls(
            settings=settings,
            provider=get_provider_config(settings.provider),
            credential=credential,
            store=store,
        )

    @property
    def model(self) -> str:
        return self.settings.model or self.provider.default_model

    @property
    def base_url(self) -> str:
        if self.provider.id == ProviderId.CUSTOM:
            return self.settings.custom_endpoint
        return self.provider.base_url

    @property
    def adapter(self) -> ProviderAdapter:
        return get_provider_adapter(self.provider.id)

    @property
    def uses_free_tier_walk(self) -> bool:
        return bool(self.provider.auto_model_id) and self.model == self.provider.auto_model_id

    def availability(self) -> Availability:
        """Check whether AI calls can be made at all."""
        if not self.settings.enabled:
            return Availability(False, "AI features are disabled")
        if self.provider.requires_credential and not self.credential:
            return Availability(False, "API key not configured")
        if not self.base_url:
            return Availability(False, "Custom API endpoint not configured")
        if not self.model:
            return Availability(False, "No model selected")
        return Availability(True)

    def ensure_available(self) -> None:
        status = self.availability()
        if not status.available:
            raise AIUnavailableError(status.reason or "AI features are unavailable")

    def enriched_availability(self) -> EnrichedAvailability:
        """Check whether the enriched (extract + reason + generate) mode can run."""
        base = self.availability()
        if not base.available:
            return EnrichedAvailability(False, base.reason)
        if not self.provider.supports_enriched_mode:
            return EnrichedAvailability(
                False,
                f"{self.provider.display_name} does not support enriched mode. "
                "Use OpenAI, Anthropic or Google Gemini with your own API key.",
            )
        if not self.credential:
            return EnrichedAvailability(False, "Enriched mode requires an API key")
        if not self.settings.enriched_mode:
            return EnrichedAvailability(False, "Enriched mode is turned off in settings")
        return EnrichedAvailability(
            True,
            provider=self.provider.display_name,
            model=self.model,
            supports_thinking=model_supports_reasoning(self.provider, self.model),
        )

    def with_settings(self, **changes: object) -> "AISession":
        """Return a copy of this session with some settings overridden."""
        return replace(self, settings=self.settings.model_copy(update=changes))

    async def reload(self) -> "AISession":
        """Open a fresh session from the same store after a settings change."""
        if self.store is None:
            raise AIUnavailableError("Session was not opened from a settings store")
        return await open_session(self.store)


async def open_session(store: SettingsStore) -> AISession:
    """Fetch settings and the selected provider's credential once."""
    settings = await store.load_settings()
    credential = await store.load_credential(settings.provider)
    session = AISession.from_settings(settings, credential=credential, store=store)
    logger.debug(
        "[session] Opened AI session",
        extra={
            "provider": settings.provider.value,
            "model": session.model,
            "has_credential": bool(credential),
        },
    )
    return session
