"""CLI command surface tests."""

import json

import httpx
from click.testing import CliRunner

from helpers import RecordingTransport, chat_response
from tabwright import __version__
from tabwright.cli.cli import CliState, cli
from tabwright.core.config import ConfigManager, ProviderId

TABS = [
    {"id": 1, "title": "tabwright issues", "url": "https://github.com/acme/tabwright/issues"},
    {"id": 2, "title": "Python docs", "url": "https://docs.python.org/3/"},
]


def _assignments(*pairs) -> str:
    return json.dumps({"assignments": [{"id": i, "group": g} for i, g in pairs]})


def _state(tmp_path, transport=None, host_transport=None) -> CliState:
    manager = ConfigManager(tmp_path / "tabwright.json")
    manager.save_api_key(ProviderId.OPENROUTER, "sk-or-secret")
    return CliState(
        config=manager,
        executor=transport.executor() if transport else None,
        host_transport=host_transport,
    )


def _tabs_file(tmp_path, tabs=TABS):
    path = tmp_path / "tabs.json"
    path.write_text(json.dumps(tabs), encoding="utf-8")
    return str(path)


def test_organize_json_output(tmp_path):
    """organize --json prints the validated groups."""
    transport = RecordingTransport([chat_response(_assignments((1, "Dev"), (2, "Dev")))])
    result = CliRunner().invoke(
        cli, ["organize", _tabs_file(tmp_path), "--json"], obj=_state(tmp_path, transport)
    )

    assert result.exit_code == 0, result.output
    data = json.loads(result.output[result.output.index("{"):])
    assert data["groups"] == [{"name": "Dev", "tab_ids": [1, 2]}]
    assert "Organized 2 tabs into 1 group" in data["explanation"]
    assert "sk-or-secret" not in result.output


def test_organize_tree_output(tmp_path):
    transport = RecordingTransport([chat_response(_assignments((1, "Code"), (2, "Docs")))])
    result = CliRunner().invoke(
        cli,
        ["organize", _tabs_file(tmp_path), "--strategy", "topic"],
        obj=_state(tmp_path, transport),
    )

    assert result.exit_code == 0, result.output
    assert "Code" in result.output
    assert "Python docs" in result.output


def test_organize_failure_lists_violations(tmp_path):
    transport = RecordingTransport([chat_response(_assignments((1, "Dev"))) for _ in range(3)])
    result = CliRunner().invoke(
        cli, ["organize", _tabs_file(tmp_path)], obj=_state(tmp_path, transport)
    )

    assert result.exit_code == 1
    assert "Missing tab IDs: [2]" in result.output


def test_disabled_ai_is_reported(tmp_path):
    """Commands fail with the availability reason when AI is switched off."""
    state = _state(tmp_path, RecordingTransport([]))
    state.config.update_ai_settings(enabled=False)
    result = CliRunner().invoke(cli, ["organize", _tabs_file(tmp_path)], obj=state)

    assert result.exit_code == 1
    assert "AI features are disabled" in result.output


def test_bad_tabs_file(tmp_path):
    path = tmp_path / "tabs.json"
    path.write_text(json.dumps({"id": 1}), encoding="utf-8")
    result = CliRunner().invoke(cli, ["organize", str(path)], obj=_state(tmp_path))

    assert result.exit_code == 1
    assert "JSON array" in result.output


def test_act_basic_runs_selected_actions(tmp_path):
    transport = RecordingTransport([chat_response("## Summary\nTwo dev tabs.")])
    result = CliRunner().invoke(
        cli,
        ["act", _tabs_file(tmp_path), "-a", "summarize", "-a", "key-points"],
        obj=_state(tmp_path, transport),
    )

    assert result.exit_code == 0, result.output
    assert "Two dev tabs." in result.output
    prompt = transport.bodies()[0]["messages"][-1]["content"]
    assert "### Task 2: Key Points" in prompt


def test_act_enriched_fetches_pages(tmp_path):
    transport = RecordingTransport(
        [
            httpx.Response(
                200,
                json={
                    "content": [
                        {"type": "thinking", "thinking": "Compare both pages"},
                        {"type": "text", "text": "Both pages are documentation."},
                    ]
                },
            )
        ]
    )
    pages = httpx.MockTransport(
        lambda request: httpx.Response(200, html="<title>T</title><p>Page body</p>")
    )
    state = _state(tmp_path, transport, host_transport=pages)
    state.config.update_ai_settings(provider=ProviderId.ANTHROPIC, model="claude-sonnet-4-20250514")
    state.config.save_api_key(ProviderId.ANTHROPIC, "sk-ant")

    result = CliRunner().invoke(
        cli,
        ["act", _tabs_file(tmp_path), "-a", "compare", "--enriched", "--show-reasoning"],
        obj=state,
    )

    assert result.exit_code == 0, result.output
    assert "Both pages are documentation." in result.output
    assert "Compare both pages" in result.output
    assert "Page body" in transport.bodies()[0]["messages"][0]["content"]


def test_act_defaults_to_the_enriched_mode_setting(tmp_path):
    """Without a flag, act follows the saved enriched_mode setting."""
    transport = RecordingTransport(
        [httpx.Response(200, json={"content": [{"type": "text", "text": "Enriched answer."}]})]
    )
    pages = httpx.MockTransport(lambda request: httpx.Response(200, html="<p>Fetched body</p>"))
    state = _state(tmp_path, transport, host_transport=pages)
    state.config.update_ai_settings(
        provider=ProviderId.ANTHROPIC, model="claude-3-5-haiku-20241022", enriched_mode=True
    )
    state.config.save_api_key(ProviderId.ANTHROPIC, "sk-ant")

    result = CliRunner().invoke(cli, ["act", _tabs_file(tmp_path), "-a", "summarize"], obj=state)

    assert result.exit_code == 0, result.output
    assert "Enriched answer." in result.output
    assert "Fetched body" in transport.bodies()[0]["messages"][0]["content"]


def test_act_no_enriched_overrides_the_setting(tmp_path):
    transport = RecordingTransport([chat_response("Basic answer.")])
    state = _state(tmp_path, transport)
    state.config.update_ai_settings(enriched_mode=True)

    result = CliRunner().invoke(
        cli, ["act", _tabs_file(tmp_path), "-a", "summarize", "--no-enriched"], obj=state
    )

    assert result.exit_code == 0, result.output
    assert "Basic answer." in result.output
    assert "Fetched" not in transport.bodies()[0]["messages"][-1]["content"]


def test_explain_command(tmp_path):
    org_file = tmp_path / "org.json"
    org_file.write_text(
        json.dumps({"groups": [{"name": "Dev", "tab_ids": [1, 2]}], "explanation": ""}),
        encoding="utf-8",
    )
    transport = RecordingTransport([chat_response("Both tabs are development work.")])
    result = CliRunner().invoke(cli, ["explain", str(org_file)], obj=_state(tmp_path, transport))

    assert result.exit_code == 0, result.output
    assert "Both tabs are development work." in result.output


def test_test_connection_command(tmp_path):
    transport = RecordingTransport([chat_response("OK")])
    result = CliRunner().invoke(cli, ["test-connection"], obj=_state(tmp_path, transport))

    assert result.exit_code == 0, result.output
    assert "Connection OK" in result.output


def test_config_command_updates_and_masks_key(tmp_path):
    """config should persist changes and never echo the stored key."""
    state = _state(tmp_path)
    result = CliRunner().invoke(
        cli,
        ["config", "--provider", "openai", "--api-key", "sk-openai-secret", "--enriched"],
        obj=state,
    )

    assert result.exit_code == 0, result.output
    assert "Provider: OpenAI (openai)" in result.output
    assert "Model: gpt-4o-mini" in result.output
    assert "API Key: ***" in result.output
    assert "sk-openai-secret" not in result.output
    ai = ConfigManager(state.config.global_config_path).get_global_config().ai
    assert ai.provider == ProviderId.OPENAI
    assert ai.enriched_mode
    assert ai.api_keys["openai"] == "sk-openai-secret"


def test_config_command_reports_missing_key(tmp_path):
    state = CliState(config=ConfigManager(tmp_path / "tabwright.json"))
    result = CliRunner().invoke(cli, ["config"], obj=state)

    assert result.exit_code == 0, result.output
    assert "API Key: Not set" in result.output
    assert "API key not configured" in result.output


def test_providers_command_lists_catalog(tmp_path):
    result = CliRunner().invoke(cli, ["providers"], obj=_state(tmp_path))

    assert result.exit_code == 0, result.output
    assert "openrouter" in result.output
    assert "gemini" in result.output
    assert "auto-free" in result.output


def test_version_command(tmp_path):
    result = CliRunner().invoke(cli, ["version"], obj=_state(tmp_path))

    assert result.exit_code == 0
    assert f"tabwright version {__version__}" in result.output
