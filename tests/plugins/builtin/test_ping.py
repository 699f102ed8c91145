"""Tests for the built-in ping plugin."""

from __future__ import annotations

import pytest

from webby.plugins.builtin.ping import PingPlugin


async def _with_ping(robot):
    await PingPlugin().initialize(robot)
    return robot


class TestPingPlugin:
    @pytest.mark.asyncio
    async def test_ping(self, robot, mock_adapter, make_text):
        await _with_ping(robot)
        await robot.receive(make_text("webby ping"))
        assert mock_adapter.sent_strings == ["PONG"]

    @pytest.mark.asyncio
    async def test_ping_requires_address(self, robot, mock_adapter, make_text):
        await _with_ping(robot)
        await robot.receive(make_text("ping"))
        assert mock_adapter.sent_strings == []

    @pytest.mark.asyncio
    async def test_echo(self, robot, mock_adapter, make_text):
        await _with_ping(robot)
        await robot.receive(make_text("@Webby: echo hello there"))
        assert mock_adapter.sent_strings == ["hello there"]

    @pytest.mark.asyncio
    async def test_time(self, robot, mock_adapter, make_text):
        await _with_ping(robot)
        await robot.receive(make_text("Webby, time"))
        assert len(mock_adapter.sent_strings) == 1
        assert mock_adapter.sent_strings[0].startswith("Server time is: ")

    @pytest.mark.asyncio
    async def test_listener_ids(self, robot):
        await _with_ping(robot)
        ids = [listener.id for listener in robot.listeners]
        assert ids == ["ping.ping", "ping.echo", "ping.time"]

    def test_meta(self):
        assert PingPlugin.meta.name == "ping"
