"""Test configuration management."""

import json

from tabwright.core.config import (
    AISettings,
    ConfigManager,
    GlobalConfig,
    ProviderId,
    api_key_env_candidates,
)


def test_global_config_defaults():
    """A fresh config selects the OpenRouter free tier with AI enabled."""
    config = GlobalConfig()
    assert config.ai.enabled
    assert config.ai.provider == ProviderId.OPENROUTER
    assert config.ai.model == ""
    assert not config.ai.enriched_mode
    assert not config.verbose


def test_provider_id_accepts_case_variants_and_legacy_labels():
    """ProviderId should normalize case and map legacy provider labels."""
    assert ProviderId("OpenAI") == ProviderId.OPENAI
    assert ProviderId(" groq ") == ProviderId.GROQ
    assert ProviderId("google") == ProviderId.GEMINI
    assert ProviderId("claude") == ProviderId.ANTHROPIC
    assert ProviderId("openai-compatible") == ProviderId.CUSTOM


def test_ai_settings_accept_legacy_provider_label():
    settings = AISettings(provider="google", custom_endpoint="http://localhost:1234/v1/")
    assert settings.provider == ProviderId.GEMINI
    assert settings.custom_endpoint == "http://localhost:1234/v1"


def test_api_key_env_candidates_prefer_tabwright_prefix():
    assert api_key_env_candidates(ProviderId.GEMINI) == [
        "TABWRIGHT_GEMINI_API_KEY",
        "GEMINI_API_KEY",
        "GOOGLE_API_KEY",
    ]
    assert api_key_env_candidates(ProviderId.CUSTOM) == ["TABWRIGHT_CUSTOM_API_KEY"]


def test_config_manager_round_trip(config_manager):
    """Settings survive a save and a fresh load from disk."""
    assert not config_manager.global_config_path.exists()
    config_manager.update_ai_settings(provider=ProviderId.ANTHROPIC, model="claude-3-5-haiku-20241022")
    config_manager.save_api_key(ProviderId.ANTHROPIC, "  sk-ant-stored  ")

    reloaded = ConfigManager(config_manager.global_config_path)
    ai = reloaded.get_global_config().ai
    assert ai.provider == ProviderId.ANTHROPIC
    assert ai.model == "claude-3-5-haiku-20241022"
    assert reloaded.get_api_key(ProviderId.ANTHROPIC) == "sk-ant-stored"


def test_environment_key_wins_over_stored_key(config_manager, monkeypatch):
    config_manager.save_api_key(ProviderId.OPENAI, "stored")
    assert config_manager.get_api_key(ProviderId.OPENAI) == "stored"

    monkeypatch.setenv("OPENAI_API_KEY", "from-env")
    assert config_manager.get_api_key(ProviderId.OPENAI) == "from-env"

    monkeypatch.setenv("TABWRIGHT_OPENAI_API_KEY", "from-tabwright-env")
    assert config_manager.get_api_key(ProviderId.OPENAI) == "from-tabwright-env"


def test_remove_api_key(config_manager):
    assert not config_manager.remove_api_key(ProviderId.GROQ)
    config_manager.save_api_key(ProviderId.GROQ, "gsk")
    assert config_manager.remove_api_key(ProviderId.GROQ)
    assert config_manager.get_api_key(ProviderId.GROQ) is None


def test_corrupt_config_falls_back_to_defaults(tmp_path):
    """An unreadable settings file should not stop the CLI from starting."""
    path = tmp_path / "tabwright.json"
    path.write_text("{not json", encoding="utf-8")
    manager = ConfigManager(path)
    assert manager.get_global_config() == GlobalConfig()

    path.write_text(json.dumps({"ai": {"provider": "nonexistent"}}), encoding="utf-8")
    manager.reload()
    assert manager.get_global_config() == GlobalConfig()


def test_saved_file_is_plain_json(config_manager):
    config_manager.update_ai_settings(enriched_mode=True)
    data = json.loads(config_manager.global_config_path.read_text(encoding="utf-8"))
    assert data["ai"]["enriched_mode"] is True
    assert data["ai"]["provider"] == "openrouter"
