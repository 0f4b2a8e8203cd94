"""Tests for the shared expiration tick."""
from datetime import timedelta

import pytest

from travel_checkout.application.services.expiration_scheduler import ExpirationScheduler
from tests.conftest import START, FakeClock


def test_all_callbacks_see_the_same_now_in_subscription_order():
    clock = FakeClock()
    scheduler = ExpirationScheduler(clock)
    seen = []

    def first(now):
        seen.append(("first", now))
        clock.advance(seconds=5)

    def second(now):
        seen.append(("second", now))

    scheduler.subscribe(first)
    scheduler.subscribe(second)
    scheduler.tick()

    assert seen == [("first", START), ("second", START)]


def test_tick_collects_non_none_results():
    scheduler = ExpirationScheduler(FakeClock())
    scheduler.subscribe(lambda now: None)
    scheduler.subscribe(lambda now: "expired")

    assert scheduler.tick() == ["expired"]
    assert scheduler.tick_count == 1


def test_explicit_now_overrides_clock():
    scheduler = ExpirationScheduler(FakeClock())
    received = []
    scheduler.subscribe(received.append)

    later = START + timedelta(minutes=3)
    scheduler.tick(later)

    assert received == [later]


def test_unsubscribed_callback_is_not_called():
    scheduler = ExpirationScheduler(FakeClock())
    calls = []
    token = scheduler.subscribe(lambda now: calls.append(now))

    assert scheduler.unsubscribe(token) is True
    assert scheduler.unsubscribe(token) is False
    scheduler.tick()

    assert calls == []


def test_callback_removed_mid_round_is_skipped():
    scheduler = ExpirationScheduler(FakeClock())
    calls = []
    tokens = {}

    def remover(now):
        scheduler.unsubscribe(tokens["victim"])

    scheduler.subscribe(remover)
    tokens["victim"] = scheduler.subscribe(lambda now: calls.append("victim"))
    scheduler.tick()

    assert calls == []


def test_no_callback_runs_after_shutdown():
    scheduler = ExpirationScheduler(FakeClock())
    calls = []
    scheduler.subscribe(lambda now: calls.append(now))

    scheduler.shutdown()
    assert scheduler.tick() == []
    assert calls == []
    assert scheduler.closed
    assert scheduler.subscriber_count == 0


def test_shutdown_mid_round_stops_remaining_callbacks():
    scheduler = ExpirationScheduler(FakeClock())
    calls = []
    scheduler.subscribe(lambda now: scheduler.shutdown())
    scheduler.subscribe(lambda now: calls.append("late"))

    scheduler.tick()

    assert calls == []


def test_subscribe_after_shutdown_fails():
    scheduler = ExpirationScheduler(FakeClock())
    scheduler.shutdown()

    with pytest.raises(RuntimeError):
        scheduler.subscribe(lambda now: None)
