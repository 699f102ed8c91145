"""Shared fixtures and mock adapter for testing."""

from __future__ import annotations

import os

import pytest

from webby.adapters.base import BaseAdapter
from webby.core.config import WebbyConfig
from webby.core.errors import ErrorChannel
from webby.core.events import EventBus
from webby.core.message import Envelope, TextMessage, User
from webby.core.robot import Robot


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch):
    """Prevent .env file and shell env from leaking into tests.

    WebbyConfig.model_config has env_file=".env" which loads the project
    .env relative to cwd. Nullify it at the source.
    """
    monkeypatch.setitem(WebbyConfig.model_config, "env_file", None)
    for key in list(os.environ):
        if key.startswith("WEBBY_"):
            monkeypatch.delenv(key, raising=False)


class MockAdapter(BaseAdapter):
    """In-memory adapter for testing."""

    name = "mock"

    def __init__(self) -> None:
        super().__init__()
        self.outbound: list[dict] = []
        self.started = False
        self.stopped = False

    def _record(self, method: str, envelope: Envelope, strings: tuple[str, ...]) -> None:
        self.outbound.append(
            {"method": method, "room": envelope.room, "strings": list(strings)}
        )

    @property
    def sent_strings(self) -> list[str]:
        return [s for entry in self.outbound for s in entry["strings"]]

    async def start(self) -> None:
        self.started = True

    async def stop(self) -> None:
        self.stopped = True

    async def send(self, envelope: Envelope, *strings: str) -> None:
        self._record("send", envelope, strings)

    async def reply(self, envelope: Envelope, *strings: str) -> None:
        self._record("reply", envelope, strings)

    async def emote(self, envelope: Envelope, *strings: str) -> None:
        self._record("emote", envelope, strings)

    async def topic(self, envelope: Envelope, *strings: str) -> None:
        self._record("topic", envelope, strings)


@pytest.fixture
def config():
    return WebbyConfig(name="Webby")


@pytest.fixture
def mock_adapter():
    return MockAdapter()


@pytest.fixture
def robot(config, mock_adapter):
    return Robot(config, mock_adapter)


@pytest.fixture
def user():
    return User(id="1", name="alice", room="general")


@pytest.fixture
def make_text(user):
    def _make(text: str) -> TextMessage:
        return TextMessage(user=user, text=text)

    return _make


@pytest.fixture
def error_channel():
    return ErrorChannel()


@pytest.fixture
def event_bus():
    return EventBus()
