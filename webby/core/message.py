"""Inbound message variants and the user/envelope records they travel with.

Every message carries a ``done`` flag. It starts ``False`` and the only way to
change it is :meth:`Message.finish`, which sets it to ``True`` for good. The
dispatcher stops searching listeners as soon as it observes the flag.
"""

from __future__ import annotations

import re
from enum import StrEnum
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, PrivateAttr, field_validator, model_validator


class MessageKind(StrEnum):
    TEXT = "text"
    ENTER = "enter"
    LEAVE = "leave"
    TOPIC = "topic"
    CATCH_ALL = "catch_all"


# Kinds whose messages carry matchable text.
TEXT_KINDS = frozenset({MessageKind.TEXT, MessageKind.TOPIC})


class User(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    name: str | None = None
    room: str | None = None


class Message(BaseModel):
    kind: ClassVar[MessageKind]

    user: User
    id: str | None = None

    _done: bool = PrivateAttr(default=False)

    @property
    def room(self) -> str | None:
        return self.user.room

    @property
    def done(self) -> bool:
        return self._done

    def finish(self) -> None:
        """Mark the message handled; no further listener will be tried."""
        self._done = True


class TextMessage(Message):
    kind = MessageKind.TEXT

    text: str

    def match(self, pattern: re.Pattern[str] | str) -> re.Match[str] | None:
        if isinstance(pattern, str):
            pattern = re.compile(pattern)
        return pattern.search(self.text)

    def __str__(self) -> str:
        return self.text


class TopicMessage(TextMessage):
    kind = MessageKind.TOPIC


class EnterMessage(Message):
    kind = MessageKind.ENTER

    text: str | None = None


class LeaveMessage(Message):
    kind = MessageKind.LEAVE

    text: str | None = None


class CatchAllMessage(Message):
    """Fallback wrapper dispatched when no listener executed for ``message``."""

    kind = MessageKind.CATCH_ALL

    message: Message

    @model_validator(mode="before")
    @classmethod
    def inherit_user(cls, data: Any) -> Any:
        if isinstance(data, dict) and "user" not in data:
            inner = data.get("message")
            if isinstance(inner, Message):
                return {**data, "user": inner.user}
        return data

    @field_validator("message")
    @classmethod
    def reject_nesting(cls, v: Message) -> Message:
        if v.kind is MessageKind.CATCH_ALL:
            raise ValueError("a catch-all message cannot wrap another catch-all")
        return v


class Envelope(BaseModel):
    """Addressing information handed to the adapter with outbound strings."""

    room: str | None = None
    user: User | None = None
    message: Message | None = None
