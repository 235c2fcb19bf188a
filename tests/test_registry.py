"""Tests for the subscriber registry."""

import logging

import pytest

from swrcache.registry import SubscriberRegistry


@pytest.fixture
def registry() -> SubscriberRegistry:
    return SubscriberRegistry()


class TestSubscribe:
    """Tests for subscribe / notify / unsubscribe."""

    def test_notify_calls_subscribers(self, registry: SubscriberRegistry) -> None:
        calls: list[str] = []
        registry.subscribe("k", lambda: calls.append("a"))
        registry.subscribe("k", lambda: calls.append("b"))
        registry.subscribe("other", lambda: calls.append("other"))

        registry.notify("k")
        assert sorted(calls) == ["a", "b"]

    def test_notify_without_subscribers_is_noop(
        self, registry: SubscriberRegistry
    ) -> None:
        registry.notify("nobody")

    def test_every_notify_fires(self, registry: SubscriberRegistry) -> None:
        calls: list[int] = []
        registry.subscribe("k", lambda: calls.append(1))
        for _ in range(3):
            registry.notify("k")
        assert len(calls) == 3

    def test_same_callback_registered_twice_is_independent(
        self, registry: SubscriberRegistry
    ) -> None:
        calls: list[int] = []

        def callback() -> None:
            calls.append(1)

        unsubscribe_first = registry.subscribe("k", callback)
        registry.subscribe("k", callback)
        registry.notify("k")
        assert len(calls) == 2

        unsubscribe_first()
        registry.notify("k")
        assert len(calls) == 3
        assert registry.subscriber_count("k") == 1

    def test_unsubscribe_twice_is_noop(self, registry: SubscriberRegistry) -> None:
        unsubscribe = registry.subscribe("k", lambda: None)
        registry.subscribe("k", lambda: None)
        unsubscribe()
        unsubscribe()
        assert registry.subscriber_count("k") == 1

    def test_last_unsubscribe_drops_key(self, registry: SubscriberRegistry) -> None:
        unsubscribe = registry.subscribe("k", lambda: None)
        assert registry.keys() == ["k"]
        unsubscribe()
        assert registry.keys() == []
        assert registry.subscriber_count("k") == 0

    def test_callback_may_unsubscribe_during_notify(
        self, registry: SubscriberRegistry
    ) -> None:
        calls: list[str] = []
        unsubscribe = None

        def once() -> None:
            calls.append("once")
            assert unsubscribe is not None
            unsubscribe()

        unsubscribe = registry.subscribe("k", once)
        registry.notify("k")
        registry.notify("k")
        assert calls == ["once"]

    def test_raising_callback_is_logged_and_others_still_run(
        self, registry: SubscriberRegistry, caplog: pytest.LogCaptureFixture
    ) -> None:
        calls: list[str] = []

        def broken() -> None:
            raise RuntimeError("render failed")

        registry.subscribe("k", broken)
        registry.subscribe("k", lambda: calls.append("ok"))

        with caplog.at_level(logging.ERROR, logger="swrcache.registry"):
            registry.notify("k")

        assert calls == ["ok"]
        assert "Subscriber for k raised" in caplog.text

    def test_clear(self, registry: SubscriberRegistry) -> None:
        registry.subscribe("a", lambda: None)
        registry.subscribe("b", lambda: None)
        registry.clear()
        assert registry.keys() == []
