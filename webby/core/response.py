"""Response: the handle a listener callback uses to answer a message."""

from __future__ import annotations

import random as _random
import re
from collections.abc import Sequence
from typing import TYPE_CHECKING, TypeVar

from webby.core.message import Envelope, Message
from webby.middleware.base import ChainOutcome, ResponseContext

if TYPE_CHECKING:
    from webby.core.robot import Robot

T = TypeVar("T")


class Response:
    """Wraps the message being handled plus any pattern match.

    Every outbound call runs the robot's response middleware first; the
    middleware may rewrite ``context.strings`` or stop delivery.
    """

    def __init__(
        self, robot: Robot, message: Message, match: re.Match[str] | None = None
    ) -> None:
        self.robot = robot
        self.message = message
        self.match = match

    @property
    def envelope(self) -> Envelope:
        return Envelope(
            room=self.message.room, user=self.message.user, message=self.message
        )

    async def send(self, *strings: str) -> ChainOutcome:
        return await self._run_with_middleware("send", strings, plaintext=True)

    async def emote(self, *strings: str) -> ChainOutcome:
        return await self._run_with_middleware("emote", strings, plaintext=True)

    async def reply(self, *strings: str) -> ChainOutcome:
        return await self._run_with_middleware("reply", strings, plaintext=True)

    async def topic(self, *strings: str) -> ChainOutcome:
        return await self._run_with_middleware("topic", strings)

    async def play(self, *strings: str) -> ChainOutcome:
        return await self._run_with_middleware("play", strings)

    async def locked(self, *strings: str) -> ChainOutcome:
        return await self._run_with_middleware("locked", strings)

    def random(self, items: Sequence[T]) -> T:
        return _random.choice(items)

    def finish(self) -> None:
        self.message.finish()

    async def _run_with_middleware(
        self, method: str, strings: Sequence[str], *, plaintext: bool = False
    ) -> ChainOutcome:
        context = ResponseContext(
            response=self, strings=list(strings), method=method, plaintext=plaintext
        )

        async def _deliver(ctx: ResponseContext) -> None:
            await self.robot.deliver(ctx.method, self.envelope, *ctx.strings)

        return await self.robot.middleware.response.execute(context, _deliver)
