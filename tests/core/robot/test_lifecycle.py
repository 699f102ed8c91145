"""Tests for Robot lifecycle, events, outbound helpers and the loop error hook."""

from __future__ import annotations

import asyncio

import pytest

from webby.core.message import Envelope
from webby.core.robot import Robot
from webby.exceptions import AdapterError
from webby.plugins.base import PluginMeta, WebbyPlugin
from webby.plugins.registry import PluginRegistry


class RecordingPlugin(WebbyPlugin):
    meta = PluginMeta(name="recording", version="1.0.0")

    def __init__(self):
        self.events: list[str] = []

    async def initialize(self, robot) -> None:
        self.events.append("initialize")
        robot.hear("record", lambda res: self.events.append("heard"))

    async def start(self) -> None:
        self.events.append("start")

    async def stop(self) -> None:
        self.events.append("stop")


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_run_and_shutdown(self, config, mock_adapter, make_text):
        plugin = RecordingPlugin()
        registry = PluginRegistry()
        registry.register(plugin)
        robot = Robot(config, mock_adapter, plugin_registry=registry)

        await robot.run()
        assert robot.running
        assert mock_adapter.started
        await robot.receive(make_text("record"))
        await robot.shutdown()

        assert not robot.running
        assert mock_adapter.stopped
        assert plugin.events == ["initialize", "start", "heard", "stop"]

    @pytest.mark.asyncio
    async def test_lifecycle_events(self, robot):
        names = []

        async def handler(event):
            names.append(event.name)

        robot.on("robot.running", handler)
        robot.on("robot.stopped", handler)
        await robot.run()
        await robot.shutdown()
        assert names == ["robot.running", "robot.stopped"]

    @pytest.mark.asyncio
    async def test_adapter_messages_reach_robot(self, robot, mock_adapter, make_text):
        calls = []
        robot.hear("hi", lambda res: calls.append("hi"))
        await mock_adapter.receive(make_text("hi"))
        assert calls == ["hi"]

    @pytest.mark.asyncio
    async def test_message_in_event(self, robot, make_text):
        seen = []

        async def handler(event):
            seen.append(event.data)

        robot.on("message.in", handler)
        await robot.receive(make_text("hi"))
        assert seen == [{"kind": "text", "room": "general"}]

    @pytest.mark.asyncio
    async def test_error_reported_event(self, robot):
        seen = []

        async def handler(event):
            seen.append(event.data["error_type"])

        robot.on("error.reported", handler)
        await robot.errors.report(KeyError("x"))
        assert seen == ["KeyError"]

    @pytest.mark.asyncio
    async def test_loop_exception_handler_routes_to_error_channel(self, robot):
        loop = asyncio.get_running_loop()
        previous = loop.get_exception_handler()
        await robot.run()
        try:
            err = RuntimeError("orphan task failure")
            loop.call_exception_handler({"message": "Task failed", "exception": err})
            await asyncio.sleep(0)
            await asyncio.sleep(0)
            assert any(r.error is err for r in robot.errors.history)
        finally:
            await robot.shutdown()
        assert loop.get_exception_handler() is previous

    @pytest.mark.asyncio
    async def test_loop_exception_without_exception_object(self, robot):
        loop = asyncio.get_running_loop()
        await robot.run()
        try:
            loop.call_exception_handler({"message": "something odd"})
        finally:
            await robot.shutdown()
        assert str(robot.errors.history[-1].error) == "something odd"


class TestOutbound:
    @pytest.mark.asyncio
    async def test_send_and_reply(self, robot, mock_adapter):
        env = Envelope(room="ops")
        await robot.send(env, "a")
        await robot.reply(env, "b")
        assert [o["method"] for o in mock_adapter.outbound] == ["send", "reply"]

    @pytest.mark.asyncio
    async def test_message_room(self, robot, mock_adapter):
        await robot.message_room("ops", "deploy done")
        assert mock_adapter.outbound == [
            {"method": "send", "room": "ops", "strings": ["deploy done"]}
        ]

    @pytest.mark.asyncio
    async def test_unknown_adapter_method(self, robot):
        with pytest.raises(AdapterError, match="does not support"):
            await robot.deliver("teleport", Envelope(room="ops"), "x")

    @pytest.mark.asyncio
    async def test_send_without_adapter(self, config):
        robot = Robot(config)
        with pytest.raises(AdapterError, match="no adapter"):
            await robot.send(Envelope(room="ops"), "x")
