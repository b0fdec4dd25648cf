"""In-process publish/subscribe bus.

Learn: The bus is fire-and-forget. If no one is listening, the event is
lost. That's fine for dashboard refreshes: the frontend can always
query the API to catch up.

publish() calls every callback synchronously, in subscription order,
against a snapshot of the subscriber table. A callback that subscribes
or unsubscribes (itself or others) mid-publish can't make the loop skip
or repeat anyone. Callbacks must not block: a live connection should
queue the frame and return, which is what StreamSession does.
"""

import itertools
from dataclasses import dataclass
from typing import Callable

import structlog

from campus_portal.events.models import Event

logger = structlog.get_logger()

Callback = Callable[[Event], None]


@dataclass(frozen=True)
class Subscription:
    """Handle returned by subscribe(); pass it back to unsubscribe()."""

    id: int
    callback: Callback


class NotificationBus:
    """Synchronous fan-out of events to registered callbacks."""

    def __init__(self) -> None:
        self._subscribers: dict[int, Subscription] = {}
        self._ids = itertools.count(1)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self, callback: Callback) -> Subscription:
        subscription = Subscription(id=next(self._ids), callback=callback)
        self._subscribers[subscription.id] = subscription
        return subscription

    def unsubscribe(self, subscription: Subscription) -> bool:
        """Remove a subscription. Returns False if it was already gone."""
        return self._subscribers.pop(subscription.id, None) is not None

    def publish(self, event: Event) -> int:
        """Deliver an event to everyone subscribed right now.

        Returns the number of callbacks that ran without raising.
        """
        delivered = 0
        for subscription in list(self._subscribers.values()):
            try:
                subscription.callback(event)
            except Exception:
                logger.exception(
                    "bus.subscriber_failed",
                    subscription_id=subscription.id,
                    event_type=event.type.value,
                )
            else:
                delivered += 1
        return delivered
