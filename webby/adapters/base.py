"""Abstract adapter protocol: the robot's link to a chat transport."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Coroutine
from typing import TYPE_CHECKING, Any

from webby.exceptions import AdapterError

if TYPE_CHECKING:
    from webby.core.message import Envelope, Message

MessageHandler = Callable[[Any], Coroutine[Any, Any, None]]


class BaseAdapter(ABC):
    name: str = "base"

    def __init__(self) -> None:
        self._message_handler: MessageHandler | None = None

    @abstractmethod
    async def start(self) -> None: ...

    @abstractmethod
    async def stop(self) -> None: ...

    @abstractmethod
    async def send(self, envelope: Envelope, *strings: str) -> None: ...

    @abstractmethod
    async def reply(self, envelope: Envelope, *strings: str) -> None: ...

    async def emote(self, envelope: Envelope, *strings: str) -> None:
        """Send an action. Default: plain send."""
        await self.send(envelope, *strings)

    async def topic(self, envelope: Envelope, *strings: str) -> None:  # noqa: B027
        """Set the room topic. Default: no-op."""

    async def play(self, envelope: Envelope, *strings: str) -> None:  # noqa: B027
        """Play a sound. Default: no-op."""

    async def locked(self, envelope: Envelope, *strings: str) -> None:  # noqa: B027
        """Lock the room. Default: no-op."""

    def set_message_handler(self, handler: MessageHandler) -> None:
        """Register handler(message) for incoming messages."""
        self._message_handler = handler

    async def receive(self, message: Message) -> None:
        if self._message_handler is None:
            raise AdapterError(f"{self.name} adapter has no message handler")
        await self._message_handler(message)
