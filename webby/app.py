"""Bootstrap: wires all components together."""

from __future__ import annotations

import logging
import logging.handlers
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

from webby.adapters.shell import ShellAdapter
from webby.core.config import WebbyConfig
from webby.core.robot import Robot
from webby.exceptions import ConfigError
from webby.middleware.auth import AuthMiddleware
from webby.middleware.rate_limit import RateLimitMiddleware
from webby.plugins.builtin.ping import PingPlugin
from webby.plugins.registry import PluginRegistry

if TYPE_CHECKING:
    from webby.adapters.base import BaseAdapter
    from webby.plugins.base import WebbyPlugin

logger = structlog.get_logger()

_ADAPTERS: dict[str, type[BaseAdapter]] = {
    "shell": ShellAdapter,
}


def _configure_logging(config: WebbyConfig, *, log_dir: Path | None = None) -> None:
    """Set up structlog with console output and optional rotating JSON file handler."""
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
    ]

    root_logger = logging.getLogger()
    root_logger.setLevel(config.log_level)
    root_logger.handlers.clear()

    # Console handler: colored dev-friendly output
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=structlog.dev.ConsoleRenderer(),
        )
    )
    root_logger.addHandler(console_handler)

    # File handler: JSON lines for machine parsing
    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_dir / "webby.log",
            maxBytes=config.log_max_bytes,
            backupCount=config.log_backup_count,
        )
        file_handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                processor=structlog.processors.JSONRenderer(),
            )
        )
        root_logger.addHandler(file_handler)

    structlog.configure(
        processors=shared_processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def _resolve_adapter(config: WebbyConfig) -> BaseAdapter:
    adapter_cls = _ADAPTERS.get(config.adapter)
    if adapter_cls is None:
        raise ConfigError(
            f"Unknown adapter: {config.adapter} (available: {', '.join(sorted(_ADAPTERS))})"
        )
    return adapter_cls()


def build_robot(
    config: WebbyConfig | None = None,
    adapter: BaseAdapter | None = None,
    plugins: list[WebbyPlugin] | None = None,
) -> Robot:
    if config is None:
        config = WebbyConfig()

    _configure_logging(config, log_dir=config.log_dir)

    if adapter is None:
        adapter = _resolve_adapter(config)

    logger.info(
        "robot_building",
        name=config.name,
        alias=config.alias,
        adapter=adapter.name,
        log_level=config.log_level,
    )

    # Plugins
    registry = PluginRegistry()
    registry.register(PingPlugin())
    for plugin in plugins or []:
        registry.register(plugin)

    robot = Robot(config, adapter, plugin_registry=registry)

    # Receive middleware
    if config.allowed_user_ids:
        robot.receive_middleware(AuthMiddleware(config.allowed_user_ids))
    if config.rate_limit_rpm > 0:
        robot.receive_middleware(
            RateLimitMiddleware(config.rate_limit_rpm, config.rate_limit_burst)
        )

    logger.info(
        "robot_built",
        has_auth=bool(config.allowed_user_ids),
        has_rate_limit=config.rate_limit_rpm > 0,
        plugin_count=len(registry.plugins),
    )
    return robot
