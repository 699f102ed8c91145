"""Error channel: collects failures from any dispatch stage and fans them out."""

from __future__ import annotations

import inspect
from collections import deque
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import structlog
from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from webby.core.response import Response

logger = structlog.get_logger()

ErrorHandler = Callable[[BaseException, Any], Awaitable[None] | None]


class ErrorReport(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    error: BaseException
    response: Any = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))


class ErrorChannel:
    def __init__(self, history_size: int = 100) -> None:
        self._handlers: list[ErrorHandler] = []
        self._history: deque[ErrorReport] = deque(maxlen=history_size)

    def on_error(self, handler: ErrorHandler) -> ErrorHandler:
        self._handlers.append(handler)
        return handler

    @property
    def history(self) -> list[ErrorReport]:
        return list(self._history)

    async def report(
        self, error: BaseException, response: Response | None = None
    ) -> None:
        logger.error(
            "error_reported",
            error_type=type(error).__name__,
            error=str(error),
            exc_info=error,
        )
        self._history.append(ErrorReport(error=error, response=response))
        for handler in list(self._handlers):
            try:
                result = handler(error, response)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception(
                    "error_handler_failed",
                    handler_name=getattr(handler, "__name__", repr(handler)),
                )
