# -*- mode: python; coding: utf-8 -*-
#
# Copyright (C) 2025 Benjamin Thomas Schwertfeger
# All rights reserved.
# https://github.com/btschwertfeger
#

"""
In-process publish/subscribe used to decouple the scheduler from side effects
like notifications.

Published order events:

* ``order_created``, ``order_cancelled``, ``order_expired``: ``{"order"}``
* ``order_executed``: ``{"order", "price", "result"}``
* ``order_retry``: ``{"order", "retry_count", "reason"}``
* ``order_failed``: ``{"order", "reason"}``
* ``order_recovered``: ``{"order"}``
* ``notification``: ``{"message"}``
"""

from dataclasses import dataclass, field
from logging import getLogger
from typing import Any, Callable, Self

LOG = getLogger(__name__)


@dataclass
class Event:
    """Event passed to subscribers of the event bus"""

    type: str
    data: dict[str, Any] = field(default_factory=dict)


class EventBus:
    """
    Central event bus for communication between components.

    Subscribers are called synchronously in order of subscription. A failing
    subscriber is logged and skipped, so that publishing an event never
    interrupts the state change it reports.
    """

    def __init__(self: Self) -> None:
        self._subscribers: dict[str, list[Callable[[Event], None]]] = {}

    def subscribe(
        self: Self,
        event_type: str,
        callback: Callable[[Event], None],
    ) -> None:
        """Subscribe to an event type"""
        self._subscribers.setdefault(event_type, []).append(callback)

    def unsubscribe(
        self: Self,
        event_type: str,
        callback: Callable[[Event], None],
    ) -> None:
        """Remove a callback, unknown callbacks are ignored"""
        if callback in (callbacks := self._subscribers.get(event_type, [])):
            callbacks.remove(callback)

    def publish(self: Self, event_type: str, data: dict[str, Any]) -> None:
        """Publish an event to all subscribers"""
        if not (callbacks := self._subscribers.get(event_type)):
            return

        event = Event(type=event_type, data=data)
        for callback in list(callbacks):
            try:
                callback(event)
            except Exception as exc:  # noqa: BLE001
                LOG.error(
                    "Subscriber of '%s' failed: %s",
                    event_type,
                    exc,
                    exc_info=exc,
                )
