"""Shared fixtures: temp log dir, in-memory store, fake collaborators."""

from __future__ import annotations

import os
import tempfile
from typing import Any, Dict, List

# Must be set before natureup.core.config is imported.
os.environ.setdefault("NATUREUP_LOGS_DIR", tempfile.mkdtemp(prefix="natureup-logs-"))

import pytest

from natureup.core.pipeline import DialogueOrchestrator
from natureup.core.store import InMemoryStore


class FakeProvider:
    """Completion provider that replays canned replies (or raises canned errors)."""

    def __init__(self, replies: List[Any]) -> None:
        self.replies = list(replies)
        self.calls: List[Any] = []

    def complete(self, request, instructions) -> Dict[str, Any]:
        self.calls.append((request, instructions))
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


class FakeResponse:
    """Lightweight stand-in for httpx.Response used in patched requests."""

    def __init__(self, payload: Dict[str, Any], status_code: int = 200) -> None:
        self._payload = payload
        self.status_code = status_code

    def json(self) -> Dict[str, Any]:
        return self._payload


class FakeLLM:
    """Stands in for ChatBedrock; records messages and returns fixed content."""

    def __init__(self, content: str) -> None:
        self.content = content
        self.messages: List[Any] = []

    def invoke(self, messages):
        self.messages.append(messages)

        class _Resp:
            pass

        resp = _Resp()
        resp.content = self.content
        return resp


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def orchestrator(store) -> DialogueOrchestrator:
    return DialogueOrchestrator(store)


@pytest.fixture
def use_provider(monkeypatch, orchestrator):
    """Install a FakeProvider with the given replies on the orchestrator."""

    def _install(*replies: Any) -> FakeProvider:
        provider = FakeProvider(list(replies))
        monkeypatch.setattr(orchestrator, "_get_provider", lambda logger: provider)
        return provider

    return _install


@pytest.fixture
def fake_response():
    def _factory(payload: Dict[str, Any], status_code: int = 200) -> FakeResponse:
        return FakeResponse(payload, status_code=status_code)

    return _factory


@pytest.fixture
def fake_llm():
    return FakeLLM
