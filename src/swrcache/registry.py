"""Per-key notification callbacks."""

import logging
from collections.abc import Callable

from swrcache.types import Subscriber

logger = logging.getLogger(__name__)


class _Registration:
    """Wraps a callback so the same function can be registered twice."""

    __slots__ = ("callback",)

    def __init__(self, callback: Subscriber) -> None:
        self.callback = callback


class SubscriberRegistry:
    """Maps canonical keys to the callbacks watching them.

    Notification is synchronous and unbatched: every ``notify`` call runs
    every callback registered for that key before returning.
    """

    def __init__(self) -> None:
        self._subscribers: dict[str, set[_Registration]] = {}

    def subscribe(self, key: str, callback: Subscriber) -> Callable[[], None]:
        """Register ``callback`` for ``key``. Returns an unsubscribe function."""
        registration = _Registration(callback)
        self._subscribers.setdefault(key, set()).add(registration)

        def unsubscribe() -> None:
            current = self._subscribers.get(key)
            if current is None:
                return
            current.discard(registration)
            if not current:
                del self._subscribers[key]

        return unsubscribe

    def notify(self, key: str) -> None:
        registrations = self._subscribers.get(key)
        if not registrations:
            return
        # Callbacks may (un)subscribe while we iterate
        for registration in list(registrations):
            try:
                registration.callback()
            except Exception:
                logger.exception("Subscriber for %s raised", key)

    def subscriber_count(self, key: str) -> int:
        return len(self._subscribers.get(key, ()))

    def keys(self) -> list[str]:
        return list(self._subscribers)

    def clear(self) -> None:
        self._subscribers.clear()
