"""Listener records and the append-only registry the dispatcher searches."""

from __future__ import annotations

import re
from collections.abc import Awaitable, Callable, Iterator
from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict, Field

from webby.core.message import TEXT_KINDS, Message, MessageKind

logger = structlog.get_logger()

Matcher = Callable[[Message], Any]
ListenerCallback = Callable[[Any], Awaitable[None] | None]


class Listener(BaseModel):
    """A matcher plus the callback to run when it accepts a message.

    The matcher returns any truthy value to claim the message. Pattern
    listeners return the ``re.Match`` so the callback can read captured
    groups from ``response.match``.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    matcher: Matcher
    callback: ListenerCallback
    options: dict[str, Any] = Field(default_factory=dict)

    @property
    def id(self) -> str | None:
        return self.options.get("id")

    def matches(self, message: Message) -> Any:
        return self.matcher(message)


class PatternListener(Listener):
    pattern: re.Pattern[str]

    def __init__(
        self,
        *,
        pattern: re.Pattern[str] | str,
        callback: ListenerCallback,
        options: dict[str, Any] | None = None,
    ) -> None:
        if isinstance(pattern, str):
            pattern = re.compile(pattern)
        super().__init__(
            matcher=_text_matcher(pattern),
            callback=callback,
            options=options or {},
            pattern=pattern,
        )

    def matches(self, message: Message) -> re.Match[str] | None:
        match = self.matcher(message)
        if match:
            logger.debug(
                "pattern_matched",
                pattern=self.pattern.pattern,
                listener_id=self.id,
            )
        return match


def _text_matcher(pattern: re.Pattern[str]) -> Matcher:
    def _match(message: Message) -> re.Match[str] | None:
        if message.kind not in TEXT_KINDS:
            return None
        return message.match(pattern)  # type: ignore[attr-defined]

    return _match


def kind_matcher(kind: MessageKind) -> Matcher:
    def _match(message: Message) -> bool:
        return message.kind is kind

    _match.__name__ = f"is_{kind.value}"
    return _match


class ListenerRegistry:
    """Append-only log of listeners.

    A dispatch pass calls :meth:`snapshot` once when it starts and iterates
    only what existed at that moment; listeners appended mid-pass are seen by
    the next pass.
    """

    def __init__(self) -> None:
        self._listeners: list[Listener] = []

    def add(self, listener: Listener) -> Listener:
        self._listeners.append(listener)
        return listener

    def snapshot(self) -> tuple[Listener, ...]:
        return tuple(self._listeners)

    def __len__(self) -> int:
        return len(self._listeners)

    def __iter__(self) -> Iterator[Listener]:
        return iter(self.snapshot())
