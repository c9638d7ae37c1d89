"""Pytest configuration and fixtures for all tests."""

import pytest

from tabwright.core.config import ConfigManager, ProviderId, api_key_env_candidates


@pytest.fixture(autouse=True)
def clear_provider_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep credentials from the developer's shell out of the tests."""
    for provider in ProviderId:
        for name in api_key_env_candidates(provider):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.delenv("TABWRIGHT_CONFIG", raising=False)


@pytest.fixture
def config_manager(tmp_path) -> ConfigManager:
    return ConfigManager(tmp_path / "tabwright.json")
