"""Static provider and model catalog."""

from __future__ import annotations

from typing import Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from tabwright.core.config import ProviderId

AUTO_FREE_MODEL = "auto-free"

# Name prefixes of OpenAI models that reject ``max_tokens`` in favour of
# ``max_completion_tokens``. Only consulted for models missing from the catalog.
_COMPLETION_TOKEN_PREFIXES = ("o1", "o3", "o4", "gpt-5", "gpt-4.1")


class ModelDescriptor(BaseModel):
    """Capabilities of a single model."""

    model_config = ConfigDict(frozen=True)

    id: str
    display_name: str
    is_free: bool = False
    supports_reasoning_trace: bool = False
    # Name of the token-limit field in OpenAI-style bodies; None means "infer".
    token_limit_param: Optional[str] = None


class ProviderConfig(BaseModel):
    """Provider metadata; immutable for the lifetime of the process."""

    model_config = ConfigDict(frozen=True)

    id: ProviderId
    display_name: str
    base_url: str
    requires_credential: bool = True
    supports_enriched_mode: bool = False
    model_catalog: Tuple[ModelDescriptor, ...] = ()
    default_model: str = ""
    # Pseudo model id that selects the automatic free-tier walk over ``free_models``.
    auto_model_id: Optional[str] = None
    free_models: Tuple[str, ...] = ()

    def find_model(self, model_id: str) -> Optional[ModelDescriptor]:
        for descriptor in self.model_catalog:
            if descriptor.id == model_id:
                return descriptor
        return None


PROVIDERS: Dict[ProviderId, ProviderConfig] = {
    ProviderId.OPENROUTER: ProviderConfig(
        id=ProviderId.OPENROUTER,
        display_name="OpenRouter",
        base_url="https://openrouter.ai/api/v1",
        model_catalog=(
            ModelDescriptor(id=AUTO_FREE_MODEL, display_name="Auto (Free Models Only)", is_free=True),
            ModelDescriptor(
                id="meta-llama/llama-3.3-70b-instruct:free",
                display_name="Llama 3.3 70B (free)",
                is_free=True,
            ),
            ModelDescriptor(
                id="google/gemini-2.0-flash-exp:free",
                display_name="Gemini 2.0 Flash (free)",
                is_free=True,
            ),
            ModelDescriptor(
                id="mistralai/mistral-7b-instruct:free",
                display_name="Mistral 7B Instruct (free)",
                is_free=True,
            ),
            ModelDescriptor(
                id="meta-llama/llama-3.2-3b-instruct:free",
                display_name="Llama 3.2 3B (free)",
                is_free=True,
            ),
            ModelDescriptor(id="openai/gpt-4o-mini", display_name="GPT-4o mini"),
            ModelDescriptor(id="anthropic/claude-3.5-haiku", display_name="Claude 3.5 Haiku"),
        ),
        default_model=AUTO_FREE_MODEL,
        auto_model_id=AUTO_FREE_MODEL,
        free_models=(
            "meta-llama/llama-3.3-70b-instruct:free",
            "google/gemini-2.0-flash-exp:free",
            "mistralai/mistral-7b-instruct:free",
            "meta-llama/llama-3.2-3b-instruct:free",
        ),
    ),
    ProviderId.OPENAI: ProviderConfig(
        id=ProviderId.OPENAI,
        display_name="OpenAI",
        base_url="https://api.openai.com/v1",
        supports_enriched_mode=True,
        model_catalog=(
            ModelDescriptor(id="gpt-4o-mini", display_name="GPT-4o mini", token_limit_param="max_tokens"),
            ModelDescriptor(id="gpt-4o", display_name="GPT-4o", token_limit_param="max_tokens"),
            ModelDescriptor(
                id="gpt-4.1",
                display_name="GPT-4.1",
                token_limit_param="max_completion_tokens",
            ),
            ModelDescriptor(
                id="o4-mini",
                display_name="o4-mini",
                supports_reasoning_trace=True,
                token_limit_param="max_completion_tokens",
            ),
            ModelDescriptor(
                id="gpt-5",
                display_name="GPT-5",
                supports_reasoning_trace=True,
                token_limit_param="max_completion_tokens",
            ),
        ),
        default_model="gpt-4o-mini",
    ),
    ProviderId.ANTHROPIC: ProviderConfig(
        id=ProviderId.ANTHROPIC,
        display_name="Anthropic",
        base_url="https://api.anthropic.com/v1",
        supports_enriched_mode=True,
        model_catalog=(
            ModelDescriptor(
                id="claude-sonnet-4-20250514",
                display_name="Claude Sonnet 4",
                supports_reasoning_trace=True,
            ),
            ModelDescriptor(
                id="claude-3-7-sonnet-20250219",
                display_name="Claude 3.7 Sonnet",
                supports_reasoning_trace=True,
            ),
            ModelDescriptor(id="claude-3-5-haiku-20241022", display_name="Claude 3.5 Haiku"),
        ),
        default_model="claude-3-5-haiku-20241022",
    ),
    ProviderId.GEMINI: ProviderConfig(
        id=ProviderId.GEMINI,
        display_name="Google Gemini",
        base_url="https://generativelanguage.googleapis.com/v1beta",
        supports_enriched_mode=True,
        model_catalog=(
            ModelDescriptor(
                id="gemini-2.5-flash",
                display_name="Gemini 2.5 Flash",
                supports_reasoning_trace=True,
            ),
            ModelDescriptor(
                id="gemini-2.5-pro",
                display_name="Gemini 2.5 Pro",
                supports_reasoning_trace=True,
            ),
            ModelDescriptor(id="gemini-2.0-flash", display_name="Gemini 2.0 Flash"),
        ),
        default_model="gemini-2.0-flash",
    ),
    ProviderId.GROQ: ProviderConfig(
        id=ProviderId.GROQ,
        display_name="Groq",
        base_url="https://api.groq.com/openai/v1",
        model_catalog=(
            ModelDescriptor(id="llama-3.3-70b-versatile", display_name="Llama 3.3 70B Versatile"),
            ModelDescriptor(id="llama-3.1-8b-instant", display_name="Llama 3.1 8B Instant"),
        ),
        default_model="llama-3.1-8b-instant",
    ),
    ProviderId.CUSTOM: ProviderConfig(
        id=ProviderId.CUSTOM,
        display_name="Custom (OpenAI-compatible)",
        base_url="",
        requires_credential=False,
    ),
}


def get_provider_config(provider: ProviderId) -> ProviderConfig:
    return PROVIDERS[ProviderId(provider)]


def resolve_token_limit_param(provider: ProviderConfig, model: str) -> str:
    """Pick the OpenAI-style token-limit field for a model.

    The catalog flag wins; the name-prefix test only covers models the catalog
    does not know about.
    """
    descriptor = provider.find_model(model)
    if descriptor is not None and descriptor.token_limit_param:
        return descriptor.token_limit_param
    name = (model or "").strip().lower().rsplit("/", 1)[-1]
    if name.startswith(_COMPLETION_TOKEN_PREFIXES):
        return "max_completion_tokens"
    return "max_tokens"


def model_supports_reasoning(provider: ProviderConfig, model: str) -> bool:
    descriptor = provider.find_model(model)
    return bool(descriptor and descriptor.supports_reasoning_trace)
