"""Plugin protocol for extending Webby."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict

if TYPE_CHECKING:
    from webby.core.robot import Robot


class PluginMeta(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    version: str
    description: str = ""


@runtime_checkable
class WebbyPlugin(Protocol):
    meta: PluginMeta

    async def initialize(self, robot: Robot) -> None:
        """Called once: register listeners and middleware here."""
        ...

    async def start(self) -> None:
        """Optional lifecycle hook: called after all plugins are initialized."""
        ...

    async def stop(self) -> None:
        """Optional lifecycle hook: called on shutdown."""
        ...
