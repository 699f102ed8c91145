"""Feature registry: explicit plugin registration, no magic."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from webby.exceptions import PluginError

if TYPE_CHECKING:
    from webby.core.robot import Robot
    from webby.plugins.base import WebbyPlugin

logger = structlog.get_logger()


class PluginRegistry:
    def __init__(self) -> None:
        self._plugins: dict[str, WebbyPlugin] = {}
        self._initialized: set[str] = set()

    def register(self, plugin: WebbyPlugin) -> None:
        name = plugin.meta.name
        if name in self._plugins:
            raise PluginError(f"Plugin already registered: {name}")
        self._plugins[name] = plugin
        logger.info("plugin_registered", name=name, version=plugin.meta.version)

    def get(self, name: str) -> WebbyPlugin | None:
        return self._plugins.get(name)

    @property
    def plugins(self) -> list[WebbyPlugin]:
        return list(self._plugins.values())

    async def init_all(self, robot: Robot) -> None:
        for name, plugin in self._plugins.items():
            if name in self._initialized:
                continue
            try:
                await plugin.initialize(robot)
                self._initialized.add(name)
                logger.info("plugin_initialized", name=name)
            except Exception as e:
                logger.error("plugin_init_failed", name=name, error=str(e))
                raise PluginError(f"Plugin {name} failed to initialize: {e}") from e

    async def start_all(self) -> None:
        for plugin in self._plugins.values():
            await plugin.start()

    async def stop_all(self) -> None:
        for plugin in reversed(self._plugins.values()):
            try:
                await plugin.stop()
            except Exception:
                logger.exception("plugin_stop_failed", name=plugin.meta.name)
