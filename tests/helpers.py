"""Shared test helpers."""

import json
from typing import Any, Dict, List, Optional

import httpx

from tabwright.core.config import AISettings, ProviderId
from tabwright.core.executor import RequestExecutor
from tabwright.core.session import AISession


def make_session(
    provider: ProviderId = ProviderId.OPENROUTER,
    model: str = "",
    credential: Optional[str] = "test-key",
    **settings: Any,
) -> AISession:
    settings.setdefault("enriched_mode", True)
    return AISession.from_settings(
        AISettings(provider=provider, model=model, **settings), credential=credential
    )


class RecordingTransport:
    """Serves queued responses through ``httpx.MockTransport`` and records requests."""

    def __init__(self, responses: List[Any]) -> None:
        self._responses = list(responses)
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self._responses:
            raise AssertionError(f"Unexpected request to {request.url}")
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        if callable(response):
            return response(request)
        return response

    def bodies(self) -> List[Dict[str, Any]]:
        return [json.loads(request.content) for request in self.requests]

    def executor(self) -> RequestExecutor:
        return RequestExecutor(transport=httpx.MockTransport(self))


def chat_response(text: str, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code, json={"choices": [{"message": {"content": text}}]})


def error_response(status_code: int, message: str = "") -> httpx.Response:
    return httpx.Response(status_code, json={"error": {"message": message}})


class FakeHost:
    """In-memory tab host; ``pages`` values may be page dicts or exceptions to raise."""

    def __init__(self, tabs, pages=None) -> None:
        self.tabs = {tab.id: tab for tab in tabs}
        self.pages = pages or {}
        self.extracted: List[int] = []

    async def get_tab(self, tab_id):
        return self.tabs.get(tab_id)

    async def extract_page(self, tab):
        self.extracted.append(tab.id)
        page = self.pages.get(tab.id)
        if isinstance(page, Exception):
            raise page
        return page
