"""CLI entry point for Webby."""

import asyncio
import sys

import structlog

from webby.adapters.shell import ShellAdapter
from webby.app import build_robot
from webby.core.config import WebbyConfig
from webby.exceptions import ConfigError

logger = structlog.get_logger()

_EXIT_COMMANDS = {"exit", "quit"}


async def _run_shell(config: WebbyConfig) -> None:
    adapter = ShellAdapter()
    robot = build_robot(config, adapter=adapter)
    await robot.run()

    logger.info("shell_starting", name=robot.name)
    print(f"{robot.name} ready: talk to it by name, e.g. '{robot.name} ping'")
    print("Enter a message (Ctrl+D to exit):\n")

    try:
        while True:
            try:
                text = input(f"{robot.name}> ")
            except EOFError:
                break

            if not text.strip():
                continue
            if text.strip().lower() in _EXIT_COMMANDS:
                break

            await adapter.receive_text(text)
    except KeyboardInterrupt:
        pass
    finally:
        logger.info("shell_shutting_down")
        await robot.shutdown()
        print("\nShutdown complete.")


async def main() -> None:
    try:
        config = WebbyConfig()
    except Exception as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        print("Check WEBBY_* environment variables or the .env file.", file=sys.stderr)
        sys.exit(1)

    if config.adapter != "shell":
        print(
            f"Adapter {config.adapter!r} is not available from the CLI; use 'shell'.",
            file=sys.stderr,
        )
        sys.exit(1)

    try:
        await _run_shell(config)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)


def run() -> None:
    asyncio.run(main())
