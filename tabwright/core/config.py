"""Configuration management for tabwright.

This module handles the persisted AI settings (selected provider, model,
custom endpoint, enriched mode) and credential lookup. Credentials are
resolved from the environment first and from the settings file second.
"""

import json
import os
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator

from tabwright.utils.log import get_logger


logger = get_logger()


class ProviderId(str, Enum):
    """Supported LLM provider APIs."""

    OPENROUTER = "openrouter"
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GEMINI = "gemini"
    GROQ = "groq"
    CUSTOM = "custom"

    @classmethod
    def _legacy_aliases(cls) -> Dict[str, "ProviderId"]:
        return {
            "google": cls.GEMINI,
            "claude": cls.ANTHROPIC,
            "openai-compatible": cls.CUSTOM,
            "openai_compatible": cls.CUSTOM,
        }

    @classmethod
    def _missing_(cls, value: object) -> Optional["ProviderId"]:
        """Accept case variants and legacy labels."""
        if isinstance(value, str):
            normalized = value.strip().lower()
            for member in cls:
                if member.value == normalized:
                    return member
            return cls._legacy_aliases().get(normalized)
        return None


def api_key_env_candidates(provider: ProviderId) -> list[str]:
    """Environment variables to check for a provider credential, in priority order."""
    candidates = [f"TABWRIGHT_{provider.value.upper()}_API_KEY"]
    if provider == ProviderId.OPENROUTER:
        candidates.append("OPENROUTER_API_KEY")
    elif provider == ProviderId.OPENAI:
        candidates.append("OPENAI_API_KEY")
    elif provider == ProviderId.ANTHROPIC:
        candidates.extend(["ANTHROPIC_API_KEY", "ANTHROPIC_AUTH_TOKEN"])
    elif provider == ProviderId.GEMINI:
        candidates.extend(["GEMINI_API_KEY", "GOOGLE_API_KEY"])
    elif provider == ProviderId.GROQ:
        candidates.append("GROQ_API_KEY")
    return candidates


class AISettings(BaseModel):
    """User-selected AI settings."""

    enabled: bool = True
    provider: ProviderId = ProviderId.OPENROUTER
    # Empty means "use the provider's default model".
    model: str = ""
    # Base URL for the "custom" OpenAI-compatible provider.
    custom_endpoint: str = ""
    enriched_mode: bool = False
    api_keys: Dict[str, str] = Field(default_factory=dict)

    @field_validator("custom_endpoint")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return (value or "").strip().rstrip("/")


class GlobalConfig(BaseModel):
    """Global configuration stored in ~/.tabwright.json"""

    ai: AISettings = Field(default_factory=AISettings)
    verbose: bool = False


class ConfigManager:
    """Loads and saves the global configuration file.

    Also acts as the settings store handed to :func:`open_session`.
    """

    def __init__(self, config_path: Optional[Path] = None) -> None:
        self.global_config_path = config_path or Path.home() / ".tabwright.json"
        self._global_config: Optional[GlobalConfig] = None

    def get_global_config(self) -> GlobalConfig:
        """Load and return global configuration."""
        if self._global_config is None:
            if self.global_config_path.exists():
                try:
                    data = json.loads(self.global_config_path.read_text(encoding="utf-8"))
                    self._global_config = GlobalConfig(**data)
                    logger.debug(
                        "[config] Loaded global configuration",
                        extra={
                            "path": str(self.global_config_path),
                            "provider": self._global_config.ai.provider.value,
                        },
                    )
                except (
                    json.JSONDecodeError,
                    OSError,
                    UnicodeDecodeError,
                    ValueError,
                    TypeError,
                ) as e:
                    logger.warning(
                        "Error loading global config: %s: %s",
                        type(e).__name__,
                        e,
                        extra={"path": str(self.global_config_path)},
                    )
                    self._global_config = GlobalConfig()
            else:
                self._global_config = GlobalConfig()
                logger.debug(
                    "[config] Global config not found; using defaults",
                    extra={"path": str(self.global_config_path)},
                )
        return self._global_config

    def save_global_config(self, config: GlobalConfig) -> None:
        """Save global configuration."""
        self._global_config = config
        self.global_config_path.write_text(config.model_dump_json(indent=2), encoding="utf-8")
        logger.debug(
            "[config] Saved global configuration",
            extra={
                "path": str(self.global_config_path),
                "provider": config.ai.provider.value,
            },
        )

    def reload(self) -> None:
        """Drop the cached configuration so the next read hits the file again."""
        self._global_config = None

    def update_ai_settings(self, **changes: Any) -> GlobalConfig:
        """Apply changes to the AI settings and persist them."""
        config = self.get_global_config()
        updated_ai = AISettings.model_validate({**config.ai.model_dump(), **changes})
        config = config.model_copy(update={"ai": updated_ai})
        self.save_global_config(config)
        return config

    def save_api_key(self, provider: ProviderId, api_key: str) -> None:
        """Store a credential for a provider in the settings file."""
        config = self.get_global_config()
        api_keys = dict(config.ai.api_keys)
        api_keys[provider.value] = api_key.strip()
        self.update_ai_settings(api_keys=api_keys)

    def remove_api_key(self, provider: ProviderId) -> bool:
        config = self.get_global_config()
        if provider.value not in config.ai.api_keys:
            return False
        api_keys = {k: v for k, v in config.ai.api_keys.items() if k != provider.value}
        self.update_ai_settings(api_keys=api_keys)
        return True

    # SettingsStore protocol

    async def load_settings(self) -> AISettings:
        return self.get_global_config().ai

    async def load_credential(self, provider: ProviderId) -> Optional[str]:
        return self.get_api_key(provider)

    def get_api_key(self, provider: ProviderId) -> Optional[str]:
        """Get the credential for a provider."""
        for env_var in api_key_env_candidates(provider):
            value = os.environ.get(env_var)
            if value:
                return value

        stored = self.get_global_config().ai.api_keys.get(provider.value)
        return stored or None



# Process-wide settings store used by the CLI.
config_manager = ConfigManager()
