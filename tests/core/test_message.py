"""Tests for the Message record and clocks."""

import pytest
from pydantic import ValidationError

from twinqueue.core.dto import Message
from twinqueue.core.queue_service import ManualClock, SystemClock


class TestMessage:
    """Message state transitions."""

    def test_new_message_is_unclaimed(self):
        msg = Message(body=b"hello")
        assert msg.receipt_token is None
        assert not msg.is_claimed
        assert msg.text == "hello"

    def test_claim_sets_token_and_visibility(self):
        msg = Message(body=b"hello").claim("tok", now=1_000, timeout=500)
        assert msg.receipt_token == "tok"
        assert msg.visible_at == 1_500
        assert msg.is_claimed
        assert not msg.is_visible(1_499)
        assert msg.is_visible(1_500)

    def test_claim_returns_a_new_instance(self):
        original = Message(body=b"hello")
        claimed = original.claim("tok", now=0, timeout=10)
        assert original.receipt_token is None
        assert claimed is not original

    def test_claiming_twice_is_rejected(self):
        msg = Message(body=b"x").claim("tok", now=0, timeout=10)
        with pytest.raises(ValueError, match="already been claimed"):
            msg.claim("other", now=0, timeout=10)

    def test_claim_requires_token(self):
        with pytest.raises(ValueError):
            Message(body=b"x").claim("", now=0, timeout=10)

    def test_refresh_keeps_token(self):
        msg = Message(body=b"x").claim("tok", now=0, timeout=10)
        refreshed = msg.refresh_visibility(now=50, timeout=10)
        assert refreshed.receipt_token == "tok"
        assert refreshed.visible_at == 60

    def test_refresh_of_unclaimed_message_is_rejected(self):
        with pytest.raises(ValueError):
            Message(body=b"x").refresh_visibility(now=0, timeout=10)

    def test_messages_are_frozen(self):
        msg = Message(body=b"x")
        with pytest.raises(ValidationError):
            msg.receipt_token = "forged"

    def test_unknown_fields_are_rejected(self):
        with pytest.raises(ValidationError):
            Message(body=b"x", priority=1)


class TestClocks:
    """Clock implementations."""

    def test_manual_clock_advances(self):
        clock = ManualClock(start=100)
        assert clock.now() == 100
        assert clock.advance(50) == 150
        clock.set(200)
        assert clock.now() == 200

    def test_manual_clock_never_goes_backwards(self):
        clock = ManualClock(start=100)
        with pytest.raises(ValueError):
            clock.advance(-1)
        with pytest.raises(ValueError):
            clock.set(99)

    def test_system_clock_is_non_decreasing(self, monkeypatch):
        clock = SystemClock()
        readings = iter([5_000_000_000, 4_000_000_000, 6_000_000_000])
        monkeypatch.setattr("twinqueue.core.queue_service.clock.time.time_ns", lambda: next(readings))

        assert clock.now() == 5_000
        assert clock.now() == 5_000
        assert clock.now() == 6_000
