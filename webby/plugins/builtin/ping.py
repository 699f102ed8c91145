"""Ping plugin: liveness commands answered when the robot is addressed."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

import structlog

from webby.plugins.base import PluginMeta, WebbyPlugin

if TYPE_CHECKING:
    from webby.core.response import Response
    from webby.core.robot import Robot

logger = structlog.get_logger()


class PingPlugin(WebbyPlugin):
    meta = PluginMeta(
        name="ping",
        version="0.1.0",
        description="Answers PING, ECHO <text> and TIME",
    )

    async def initialize(self, robot: Robot) -> None:
        robot.respond(r"(?i)PING$", self._on_ping, id="ping.ping")
        robot.respond(r"(?i)ECHO (.*)$", self._on_echo, id="ping.echo")
        robot.respond(r"(?i)TIME$", self._on_time, id="ping.time")

    async def start(self) -> None:
        pass

    async def stop(self) -> None:
        pass

    async def _on_ping(self, res: Response) -> None:
        await res.send("PONG")

    async def _on_echo(self, res: Response) -> None:
        if res.match is None:
            return
        await res.send(res.match.group(1))

    async def _on_time(self, res: Response) -> None:
        await res.send(f"Server time is: {datetime.now().astimezone():%c %Z}")
