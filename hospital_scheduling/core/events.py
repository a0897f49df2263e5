"""In-process domain events.

Services publish after their transaction commits. Subscribers are other parts
of the application (notifications, audit); a failing subscriber is logged and
does not affect the publisher or the remaining subscribers.
"""

import logging
from collections import defaultdict
from collections.abc import Callable
from threading import Lock
from typing import Any

SLOT_REQUESTED = 'SlotRequested'
SLOT_APPROVED = 'SlotApproved'
SLOT_REJECTED = 'SlotRejected'
BOOKING_COMMITTED = 'BookingCommitted'
BOOKING_CANCELLED = 'BookingCancelled'

EventHandler = Callable[[str, dict[str, Any]], None]

logger = logging.getLogger(__name__)

_subscribers: dict[str, list[EventHandler]] = defaultdict(list)
_subscribers_lock = Lock()


def subscribe(event_name: str, handler: EventHandler) -> None:
    with _subscribers_lock:
        _subscribers[event_name].append(handler)


def unsubscribe(event_name: str, handler: EventHandler) -> None:
    with _subscribers_lock:
        if handler in _subscribers[event_name]:
            _subscribers[event_name].remove(handler)


def clear_subscribers() -> None:
    with _subscribers_lock:
        _subscribers.clear()


def publish(event_name: str, payload: dict[str, Any]) -> None:
    with _subscribers_lock:
        handlers = list(_subscribers[event_name])

    logger.info('Publishing %s to %d subscriber(s): %s', event_name, len(handlers), payload)
    for handler in handlers:
        try:
            handler(event_name, payload)
        except Exception:
            logger.exception('Subscriber %r failed while handling %s', handler, event_name)
