"""
In-process message bus scoped by boundary.

Messages published without a boundary reach every subscriber. Messages with
a boundary reach only subscribers listening on the same boundary; when a
subscriber's boundary is a record id, the message boundary must be a record
id as well.
"""

from dataclasses import dataclass
from typing import Any, Callable, List, Optional

from loguru import logger

from tablebuddy.services.messages import is_record_id


@dataclass(frozen=True)
class BusMessage:
    key: str
    value: Any = None
    boundary: Optional[str] = None


@dataclass(eq=False)
class Subscription:
    handler: Callable[[BusMessage], None]
    boundary: Optional[str] = None
    use_record_id_as_boundary: bool = False

    def accepts(self, message: BusMessage) -> bool:
        if message.boundary is None:
            return True
        if not self.use_record_id_as_boundary:
            return message.boundary == self.boundary
        return (
            is_record_id(self.boundary)
            and is_record_id(message.boundary)
            and message.boundary == self.boundary
        )


class MessageBus:
    """Publish/subscribe by boundary id and topic key"""

    def __init__(self):
        self._subscriptions: List[Subscription] = []

    def subscribe(
        self,
        handler: Callable[[BusMessage], None],
        boundary: Optional[str] = None,
        use_record_id_as_boundary: Optional[bool] = None,
    ) -> Subscription:
        if use_record_id_as_boundary is None:
            use_record_id_as_boundary = bool(boundary) and is_record_id(boundary)
        subscription = Subscription(handler, boundary, use_record_id_as_boundary)
        self._subscriptions.append(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    def publish(self, key: str, value: Any = None, boundary: Optional[str] = None) -> None:
        message = BusMessage(key=key, value=value, boundary=boundary)
        receivers = [s for s in self._subscriptions if s.accepts(message)]
        logger.debug(f"Publishing '{key}' (boundary={boundary}) to {len(receivers)} subscriber(s)")
        for subscription in receivers:
            subscription.handler(message)
