"""Notification fan-out for election engines.

Engines publish an ElectionEvent after every accepted mutation. Where the
event goes (event log, structured log, a test list) is decided by whoever
subscribes. Publishing happens after the state change, so a subscriber
never sees a change that was later rejected.
"""

from __future__ import annotations

from typing import Callable

from ballotbox.models.election import ElectionEvent


Subscriber = Callable[[ElectionEvent], None]


class Notifier:
    """Synchronous publish/subscribe channel for election events."""

    def __init__(self) -> None:
        self._subscribers: list[Subscriber] = []

    def subscribe(self, subscriber: Subscriber) -> None:
        if subscriber not in self._subscribers:
            self._subscribers.append(subscriber)

    def unsubscribe(self, subscriber: Subscriber) -> None:
        if subscriber in self._subscribers:
            self._subscribers.remove(subscriber)

    def publish(self, event: ElectionEvent) -> None:
        """Deliver an event to every subscriber, in subscription order."""
        for subscriber in list(self._subscribers):
            subscriber(event)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)
