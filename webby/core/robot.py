"""Central dispatcher: runs inbound messages through middleware and listeners."""

from __future__ import annotations

import asyncio
import inspect
import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import structlog

from webby.core.config import WebbyConfig
from webby.core.errors import ErrorChannel
from webby.core.events import (
    ERROR_REPORTED,
    MESSAGE_IN,
    MESSAGE_UNHANDLED,
    ROBOT_RUNNING,
    ROBOT_STOPPED,
    Event,
    EventBus,
    EventHandler,
)
from webby.core.listener import (
    Listener,
    ListenerCallback,
    ListenerRegistry,
    Matcher,
    PatternListener,
    kind_matcher,
)
from webby.core.message import CatchAllMessage, Envelope, Message, MessageKind
from webby.core.patterns import build_addressed_pattern
from webby.core.response import Response
from webby.exceptions import AdapterError, WebbyError
from webby.middleware.base import (
    ChainOutcome,
    ListenerContext,
    MiddlewareFunc,
    MiddlewareStack,
    ReceiveContext,
)
from webby.plugins.registry import PluginRegistry

if TYPE_CHECKING:
    from webby.adapters.base import BaseAdapter
    from webby.middleware.base import Middleware

logger = structlog.get_logger()


async def _call(fn: Callable[..., Any], *args: Any) -> None:
    result = fn(*args)
    if inspect.isawaitable(result):
        await result


@dataclass
class MiddlewareStages:
    receive: MiddlewareStack
    listener: MiddlewareStack
    response: MiddlewareStack

    def get(self, stage: str) -> MiddlewareStack:
        if stage not in ("receive", "listener", "response"):
            raise ValueError(f"unknown middleware stage: {stage}")
        return getattr(self, stage)


class Robot:
    def __init__(
        self,
        config: WebbyConfig | None = None,
        adapter: BaseAdapter | None = None,
        *,
        event_bus: EventBus | None = None,
        errors: ErrorChannel | None = None,
        plugin_registry: PluginRegistry | None = None,
    ) -> None:
        self.config = config if config is not None else WebbyConfig()
        self.name = self.config.name
        self.alias = self.config.alias
        self.event_bus = event_bus or EventBus()
        self.errors = errors or ErrorChannel(self.config.error_history_size)
        self.plugin_registry = plugin_registry or PluginRegistry()
        self.listeners = ListenerRegistry()
        self.middleware = MiddlewareStages(
            receive=MiddlewareStack("receive", self.errors),
            listener=MiddlewareStack("listener", self.errors),
            response=MiddlewareStack("response", self.errors),
        )
        self.adapter = adapter
        if adapter is not None:
            adapter.set_message_handler(self.receive)
        self.running = False
        self._pending_reports: set[asyncio.Task[None]] = set()
        self._previous_exception_handler: Any = None
        self._exception_handler_installed = False
        self.errors.on_error(self._publish_error)

    # -- Listener registration -------------------------------------------

    def listen(
        self, matcher: Matcher, callback: ListenerCallback | None = None, **options: Any
    ) -> Any:
        """Add a listener for any message *matcher* accepts.

        Usable directly or as a decorator when *callback* is omitted.
        """

        def _register(cb: ListenerCallback) -> ListenerCallback:
            self.listeners.add(Listener(matcher=matcher, callback=cb, options=options))
            return cb

        return _register(callback) if callback is not None else _register

    def hear(
        self,
        pattern: re.Pattern[str] | str,
        callback: ListenerCallback | None = None,
        **options: Any,
    ) -> Any:
        """Add a listener matching *pattern* anywhere in a message's text."""

        def _register(cb: ListenerCallback) -> ListenerCallback:
            self.listeners.add(
                PatternListener(pattern=pattern, callback=cb, options=options)
            )
            return cb

        return _register(callback) if callback is not None else _register

    def respond(
        self,
        pattern: re.Pattern[str] | str,
        callback: ListenerCallback | None = None,
        **options: Any,
    ) -> Any:
        """Add a listener for *pattern* in messages addressed to the robot."""
        return self.hear(self.respond_pattern(pattern), callback, **options)

    def respond_pattern(self, pattern: re.Pattern[str] | str) -> re.Pattern[str]:
        return build_addressed_pattern(pattern, self.name, self.alias)

    def enter(self, callback: ListenerCallback | None = None, **options: Any) -> Any:
        return self.listen(kind_matcher(MessageKind.ENTER), callback, **options)

    def leave(self, callback: ListenerCallback | None = None, **options: Any) -> Any:
        return self.listen(kind_matcher(MessageKind.LEAVE), callback, **options)

    def topic(self, callback: ListenerCallback | None = None, **options: Any) -> Any:
        return self.listen(kind_matcher(MessageKind.TOPIC), callback, **options)

    def catch_all(
        self, callback: ListenerCallback | None = None, **options: Any
    ) -> Any:
        """Add a listener for messages no other listener handled.

        The callback sees the original message, not the catch-all wrapper.
        """

        def _register(cb: ListenerCallback) -> ListenerCallback:
            async def _unwrap(response: Response) -> None:
                if isinstance(response.message, CatchAllMessage):
                    response.message = response.message.message
                await _call(cb, response)

            self.listen(kind_matcher(MessageKind.CATCH_ALL), _unwrap, **options)
            return cb

        return _register(callback) if callback is not None else _register

    # -- Middleware registration -----------------------------------------

    def register_middleware(
        self, stage: str, middleware: Middleware | MiddlewareFunc
    ) -> Middleware | MiddlewareFunc:
        self.middleware.get(stage).register(middleware)
        return middleware

    def receive_middleware(
        self, middleware: Middleware | MiddlewareFunc
    ) -> Middleware | MiddlewareFunc:
        """Run before listener matching; may stop the message entirely."""
        return self.register_middleware("receive", middleware)

    def listener_middleware(
        self, middleware: Middleware | MiddlewareFunc
    ) -> Middleware | MiddlewareFunc:
        """Run after a listener matched, before its callback."""
        return self.register_middleware("listener", middleware)

    def response_middleware(
        self, middleware: Middleware | MiddlewareFunc
    ) -> Middleware | MiddlewareFunc:
        """Run before outbound strings reach the adapter; may rewrite them."""
        return self.register_middleware("response", middleware)

    # -- Error channel ----------------------------------------------------

    def error(self, handler: Callable[..., Any]) -> Callable[..., Any]:
        return self.errors.on_error(handler)

    async def _publish_error(
        self, error: BaseException, response: Response | None
    ) -> None:
        await self.emit(
            ERROR_REPORTED,
            error_type=type(error).__name__,
            error=str(error),
            has_response=response is not None,
        )

    # -- Dispatch ---------------------------------------------------------

    async def receive(
        self,
        message: Message,
        on_settled: Callable[[], Awaitable[None] | None] | None = None,
    ) -> None:
        """Dispatch *message* to interested listeners.

        ``on_settled`` is called exactly once, after the (optional) catch-all
        pass has finished.
        """
        await self.emit(MESSAGE_IN, kind=message.kind.value, room=message.room)
        pending: Message | None = message
        while pending is not None:
            pending = await self._dispatch_pass(pending)
        if on_settled is not None:
            await _call(on_settled)

    async def _dispatch_pass(self, message: Message) -> Message | None:
        """Run one pass; return the catch-all to dispatch next, if any."""
        context = ReceiveContext(response=Response(self, message))
        outcome = await self.middleware.receive.execute(context)
        if outcome is not ChainOutcome.COMPLETED:
            logger.debug("receive_chain_stopped", outcome=outcome.value)
            return None

        message = context.response.message
        if message.done:
            logger.debug("message_done_before_listeners", kind=message.kind.value)
            return None

        executed = await self._process_listeners(message)
        if executed or message.kind is MessageKind.CATCH_ALL:
            return None

        logger.debug("no_listeners_executed", kind=message.kind.value)
        await self.emit(MESSAGE_UNHANDLED, kind=message.kind.value, room=message.room)
        return CatchAllMessage(message=message)

    async def _process_listeners(self, message: Message) -> bool:
        executed_any = False
        for listener in self.listeners.snapshot():
            executed = await self._run_listener(listener, message)
            executed_any = executed_any or executed
            await asyncio.sleep(0)
            if message.done:
                break
        return executed_any

    async def _run_listener(self, listener: Listener, message: Message) -> bool:
        try:
            match = listener.matches(message)
        except Exception as e:
            await self._listener_fault(e, listener, Response(self, message))
            return False
        if not match:
            return False

        response = Response(
            self, message, match if isinstance(match, re.Match) else None
        )
        context = ListenerContext(response=response, listener=listener)

        async def _invoke(ctx: ListenerContext) -> None:
            logger.debug(
                "listener_executing", listener_id=listener.id, kind=message.kind.value
            )
            await _call(listener.callback, ctx.response)

        try:
            outcome = await self.middleware.listener.execute(context, _invoke)
        except Exception as e:
            await self._listener_fault(e, listener, response)
            return False
        return outcome is ChainOutcome.COMPLETED

    async def _listener_fault(
        self, error: Exception, listener: Listener, response: Response
    ) -> None:
        logger.error(
            "listener_fault",
            listener_id=listener.id,
            error_type=type(error).__name__,
            error=str(error),
        )
        await self.errors.report(error, response)

    # -- Outbound ---------------------------------------------------------

    async def deliver(self, method: str, envelope: Envelope, *strings: str) -> None:
        if self.adapter is None:
            raise AdapterError("no adapter configured")
        fn = getattr(self.adapter, method, None)
        if fn is None:
            raise AdapterError(f"{self.adapter.name} adapter does not support {method}")
        await fn(envelope, *strings)

    async def send(self, envelope: Envelope, *strings: str) -> None:
        await self.deliver("send", envelope, *strings)

    async def reply(self, envelope: Envelope, *strings: str) -> None:
        await self.deliver("reply", envelope, *strings)

    async def message_room(self, room: str, *strings: str) -> None:
        await self.deliver("send", Envelope(room=room), *strings)

    # -- Events & lifecycle -----------------------------------------------

    def on(self, event_name: str, handler: EventHandler) -> None:
        self.event_bus.subscribe(event_name, handler)

    async def emit(self, event_name: str, **data: Any) -> None:
        await self.event_bus.emit(Event(name=event_name, data=data))

    async def run(self) -> None:
        loop = asyncio.get_running_loop()
        self._previous_exception_handler = loop.get_exception_handler()
        loop.set_exception_handler(self._handle_loop_exception)
        self._exception_handler_installed = True

        await self.plugin_registry.init_all(self)
        await self.plugin_registry.start_all()
        if self.adapter is not None:
            await self.adapter.start()
        self.running = True
        logger.info(
            "robot_running",
            name=self.name,
            alias=self.alias,
            adapter=self.adapter.name if self.adapter else None,
            listener_count=len(self.listeners),
        )
        await self.emit(ROBOT_RUNNING, name=self.name)

    async def shutdown(self) -> None:
        if self.adapter is not None:
            await self.adapter.stop()
        await self.plugin_registry.stop_all()
        if self._pending_reports:
            await asyncio.gather(*self._pending_reports, return_exceptions=True)
        if self._exception_handler_installed:
            asyncio.get_running_loop().set_exception_handler(
                self._previous_exception_handler
            )
            self._exception_handler_installed = False
        self.running = False
        logger.info("robot_stopped", name=self.name)
        await self.emit(ROBOT_STOPPED, name=self.name)

    def _handle_loop_exception(
        self, loop: asyncio.AbstractEventLoop, context: dict[str, Any]
    ) -> None:
        error = context.get("exception")
        if error is None:
            error = WebbyError(context.get("message", "unhandled event loop error"))
        task = loop.create_task(self.errors.report(error))
        self._pending_reports.add(task)
        task.add_done_callback(self._pending_reports.discard)
