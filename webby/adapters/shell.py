"""Shell adapter: talk to the robot from a local terminal."""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING, TextIO

import structlog

from webby.adapters.base import BaseAdapter
from webby.core.message import TextMessage, User

if TYPE_CHECKING:
    from webby.core.message import Envelope

logger = structlog.get_logger()


class ShellAdapter(BaseAdapter):
    name = "shell"

    def __init__(
        self,
        *,
        user_id: str = "1",
        user_name: str = "Shell",
        room: str = "Shell",
        stream: TextIO | None = None,
    ) -> None:
        super().__init__()
        self.user = User(id=user_id, name=user_name, room=room)
        self._stream = stream
        self._next_id = 1

    @property
    def stream(self) -> TextIO:
        return self._stream if self._stream is not None else sys.stdout

    async def start(self) -> None:
        logger.info("shell_adapter_started", user=self.user.name, room=self.user.room)

    async def stop(self) -> None:
        logger.info("shell_adapter_stopped")

    async def send(self, envelope: Envelope, *strings: str) -> None:
        for s in strings:
            self.stream.write(f"{s}\n")
        self.stream.flush()

    async def reply(self, envelope: Envelope, *strings: str) -> None:
        name = envelope.user.name if envelope.user else None
        if name:
            strings = tuple(f"{name}: {s}" for s in strings)
        await self.send(envelope, *strings)

    async def emote(self, envelope: Envelope, *strings: str) -> None:
        await self.send(envelope, *(f"* {s}" for s in strings))

    def build_message(self, text: str) -> TextMessage:
        message = TextMessage(user=self.user, text=text, id=str(self._next_id))
        self._next_id += 1
        return message

    async def receive_text(self, text: str) -> None:
        await self.receive(self.build_message(text))
