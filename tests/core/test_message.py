"""Tests for message variants."""

from __future__ import annotations

import re

import pytest
from pydantic import ValidationError

from webby.core.message import (
    TEXT_KINDS,
    CatchAllMessage,
    EnterMessage,
    Envelope,
    LeaveMessage,
    MessageKind,
    TextMessage,
    TopicMessage,
    User,
)


class TestMessage:
    def test_kinds(self, user):
        assert TextMessage(user=user, text="hi").kind is MessageKind.TEXT
        assert EnterMessage(user=user).kind is MessageKind.ENTER
        assert LeaveMessage(user=user).kind is MessageKind.LEAVE
        assert TopicMessage(user=user, text="t").kind is MessageKind.TOPIC
        wrapped = CatchAllMessage(message=EnterMessage(user=user))
        assert wrapped.kind is MessageKind.CATCH_ALL

    def test_text_kinds(self):
        assert TEXT_KINDS == {MessageKind.TEXT, MessageKind.TOPIC}

    def test_room_comes_from_user(self, user):
        assert TextMessage(user=user, text="hi").room == "general"

    def test_done_starts_false_and_finish_is_sticky(self, user):
        msg = TextMessage(user=user, text="hi")
        assert msg.done is False
        msg.finish()
        assert msg.done is True
        msg.finish()
        assert msg.done is True

    def test_done_is_read_only(self, user):
        msg = TextMessage(user=user, text="hi")
        with pytest.raises(AttributeError):
            msg.done = False  # type: ignore[misc]

    def test_text_match(self, user):
        msg = TextMessage(user=user, text="deploy api now")
        m = msg.match(re.compile(r"deploy (\w+)"))
        assert m is not None and m.group(1) == "api"
        assert msg.match("nothing") is None
        assert str(msg) == "deploy api now"

    def test_user_allows_extra_fields(self):
        u = User(id="7", name="bob", room="ops", email="bob@example.com")
        assert u.model_extra == {"email": "bob@example.com"}


class TestCatchAllMessage:
    def test_inherits_user(self, user):
        inner = TextMessage(user=user, text="hi")
        wrapped = CatchAllMessage(message=inner)
        assert wrapped.user == user
        assert wrapped.room == "general"

    def test_keeps_the_same_inner_object(self, user):
        inner = TextMessage(user=user, text="hi")
        wrapped = CatchAllMessage(message=inner)
        assert wrapped.message is inner

    def test_has_its_own_done_flag(self, user):
        inner = TextMessage(user=user, text="hi")
        wrapped = CatchAllMessage(message=inner)
        wrapped.finish()
        assert wrapped.done
        assert not inner.done

    def test_cannot_wrap_catch_all(self, user):
        wrapped = CatchAllMessage(message=TextMessage(user=user, text="hi"))
        with pytest.raises(ValidationError, match="cannot wrap another catch-all"):
            CatchAllMessage(message=wrapped)


class TestEnvelope:
    def test_defaults(self):
        env = Envelope(room="ops")
        assert env.room == "ops"
        assert env.user is None
        assert env.message is None
