"""Tests for trigger matching and event selection."""

from __future__ import annotations

import pytest

from src.webhook.dispatcher import TriggerRule, iter_triggered
from src.webhook.models import decode_payload
from tests.conftest import TRIGGER, encode, make_message_event, make_payload, make_text_event


def _triggered(*events: dict) -> list:
    payload = decode_payload(encode(make_payload(*events)))
    return list(iter_triggered(payload, TriggerRule(TRIGGER)))


class TestTriggerRule:
    def test_strips_trigger_and_trims(self) -> None:
        assert TriggerRule("Nick:>").extract("Nick:>hello there") == "hello there"

    def test_trims_both_ends(self) -> None:
        assert TriggerRule("Nick:>").extract("  Nick:>   hello there \n") == "hello there"

    def test_trigger_in_middle(self) -> None:
        assert TriggerRule("Nick:>").extract("hey Nick:> what's up") == "hey  what's up"

    def test_no_trigger_returns_none(self) -> None:
        assert TriggerRule("Nick:>").extract("just chatting") is None

    def test_case_sensitive(self) -> None:
        assert TriggerRule("Nick:>").extract("nick:> hello") is None

    def test_no_whitespace_normalization(self) -> None:
        assert TriggerRule("Nick:>").extract("Nick :> hello") is None

    def test_trigger_only_gives_empty_prompt(self) -> None:
        assert TriggerRule("Nick:>").extract("Nick:>") == ""

    def test_repeated_trigger_removed_everywhere(self) -> None:
        assert TriggerRule("Nick:>").extract("Nick:>a Nick:>b") == "a b"

    def test_uses_configured_trigger_not_a_fixed_one(self) -> None:
        rule = TriggerRule("@bot")
        assert rule.extract("@bot tell me a joke") == "tell me a joke"
        assert rule.extract("Nick:> tell me a joke") is None

    def test_empty_trigger_refused(self) -> None:
        with pytest.raises(ValueError):
            TriggerRule("")


class TestIterTriggered:
    def test_matching_text_event_selected(self) -> None:
        result = _triggered(make_text_event(text="Nick:>hello there"))
        assert len(result) == 1
        assert result[0].prompt == "hello there"
        assert result[0].reply_token == "reply-token-1"
        assert result[0].index == 0

    def test_non_matching_text_skipped(self) -> None:
        assert _triggered(make_text_event(text="just chatting")) == []

    def test_non_message_events_skipped(self) -> None:
        result = _triggered(
            {"type": "follow", "replyToken": "rt"},
            {"type": "beacon", "replyToken": "rt2"},
            {"type": "unfollow"},
        )
        assert result == []

    def test_non_text_messages_skipped(self) -> None:
        result = _triggered(
            make_message_event({"id": "1", "type": "sticker", "packageId": "1", "stickerId": "2"}),
            make_message_event({"id": "2", "type": "hologram", "text": "Nick:>sneaky"}),
        )
        assert result == []

    def test_multiple_matches_in_payload_order(self) -> None:
        result = _triggered(
            make_text_event(text="Nick:>first", reply_token="a"),
            make_text_event(text="no trigger", reply_token="b"),
            {"type": "follow", "replyToken": "c"},
            make_text_event(text="Nick:>second", reply_token="d"),
        )
        assert [(t.index, t.reply_token, t.prompt) for t in result] == [
            (0, "a", "first"),
            (3, "d", "second"),
        ]
