"""Middleware stack: ordered gating/transform steps run as an explicit loop.

Each step inspects or mutates the shared context and returns
``MiddlewareAction.NEXT`` to continue or ``MiddlewareAction.DONE`` to stop the
chain. Steps run one at a time with a scheduling tick between them, so a long
stack never grows the call stack.
"""

from __future__ import annotations

import asyncio
import inspect
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any

import structlog

from webby.exceptions import MiddlewareError

if TYPE_CHECKING:
    from webby.core.errors import ErrorChannel
    from webby.core.listener import Listener
    from webby.core.response import Response

logger = structlog.get_logger()


class MiddlewareAction(StrEnum):
    NEXT = "next"
    DONE = "done"


class ChainOutcome(StrEnum):
    COMPLETED = "completed"
    ABORTED = "aborted"
    FAULTED = "faulted"


@dataclass
class ReceiveContext:
    response: Response


@dataclass
class ListenerContext:
    response: Response
    listener: Listener


@dataclass
class ResponseContext:
    response: Response
    strings: list[str] = field(default_factory=list)
    method: str = "send"
    plaintext: bool = False


MiddlewareFunc = Callable[[Any], MiddlewareAction | Awaitable[MiddlewareAction]]
ChainCallback = Callable[[Any], Awaitable[None]]


class Middleware(ABC):
    @abstractmethod
    async def process(self, ctx: Any) -> MiddlewareAction: ...

    @property
    def name(self) -> str:
        return self.__class__.__name__


class FunctionMiddleware(Middleware):
    """Adapts a plain sync or async callable to the middleware interface."""

    def __init__(self, func: MiddlewareFunc) -> None:
        self._func = func

    async def process(self, ctx: Any) -> MiddlewareAction:
        result = self._func(ctx)
        if inspect.isawaitable(result):
            result = await result
        return result

    @property
    def name(self) -> str:
        return getattr(self._func, "__name__", repr(self._func))


class MiddlewareStack:
    def __init__(self, stage: str, errors: ErrorChannel | None = None) -> None:
        self.stage = stage
        self._errors = errors
        self._middleware: list[Middleware] = []

    def register(self, middleware: Middleware | MiddlewareFunc) -> None:
        if not isinstance(middleware, Middleware):
            middleware = FunctionMiddleware(middleware)
        self._middleware.append(middleware)
        logger.debug("middleware_registered", stage=self.stage, name=middleware.name)

    def has_middleware(self) -> bool:
        return bool(self._middleware)

    def __len__(self) -> int:
        return len(self._middleware)

    async def execute(
        self,
        ctx: Any,
        on_complete: ChainCallback | None = None,
        on_done: ChainCallback | None = None,
    ) -> ChainOutcome:
        """Run every registered step over *ctx*.

        ``on_complete`` is awaited only when every step returned ``NEXT``;
        errors it raises propagate to the caller. ``on_done`` is awaited once
        on every path, after ``on_complete``.
        """
        steps = tuple(self._middleware)
        outcome = ChainOutcome.COMPLETED
        for index, mw in enumerate(steps):
            try:
                action = await mw.process(ctx)
                if not isinstance(action, MiddlewareAction):
                    raise MiddlewareError(
                        f"{mw.name} returned {action!r}, expected a MiddlewareAction"
                    )
            except Exception as e:
                outcome = ChainOutcome.FAULTED
                await self._report_fault(mw, index, e, ctx)
                break
            if action is MiddlewareAction.DONE:
                logger.debug(
                    "middleware_chain_aborted",
                    stage=self.stage,
                    name=mw.name,
                    index=index,
                )
                outcome = ChainOutcome.ABORTED
                break
            await asyncio.sleep(0)

        try:
            if outcome is ChainOutcome.COMPLETED and on_complete is not None:
                await on_complete(ctx)
        finally:
            if on_done is not None:
                await on_done(ctx)
        return outcome

    async def _report_fault(
        self, mw: Middleware, index: int, error: Exception, ctx: Any
    ) -> None:
        logger.error(
            "middleware_fault",
            stage=self.stage,
            name=mw.name,
            index=index,
            error=str(error),
        )
        if not isinstance(error, MiddlewareError):
            wrapped = MiddlewareError(f"{self.stage} middleware {mw.name} failed: {error}")
            wrapped.__cause__ = error
            error = wrapped
        if self._errors is not None:
            await self._errors.report(error, getattr(ctx, "response", None))
