"""
Market Data Bus

Typed in-process publish/subscribe channels, one per event kind.

- Synchronous delivery to the subscribers registered at publish time
- No buffering and no replay: late subscribers never see earlier events
- Subscriber lists are explicit and enumerable
- A failing subscriber is logged; the remaining subscribers still receive the event
"""

from typing import Callable, Generic, Tuple, TypeVar

from exchanges.structs.common import FundingEvent, OrderbookEvent
from infrastructure.logging import get_logger

E = TypeVar('E')
Subscriber = Callable[[E], None]
Unsubscribe = Callable[[], None]


class Channel(Generic[E]):
    """Publish/subscribe channel for a single event type."""

    def __init__(self, name: str):
        self.name = name
        self._subscribers: Tuple[Subscriber, ...] = ()
        self.logger = get_logger(f"market_data.bus.{name}")

    @property
    def subscribers(self) -> Tuple[Subscriber, ...]:
        return self._subscribers

    def subscribe(self, callback: Subscriber) -> Unsubscribe:
        """
        Register a subscriber.

        Returns:
            Callable that removes this subscription
        """
        self._subscribers = self._subscribers + (callback,)

        def unsubscribe() -> None:
            self.unsubscribe(callback)

        return unsubscribe

    def unsubscribe(self, callback: Subscriber) -> bool:
        if callback not in self._subscribers:
            return False
        subscribers = list(self._subscribers)
        subscribers.remove(callback)
        self._subscribers = tuple(subscribers)
        return True

    def publish(self, event: E) -> int:
        """
        Deliver event to every current subscriber.

        Returns:
            Number of subscribers that handled the event without error
        """
        delivered = 0
        for callback in self._subscribers:
            try:
                callback(event)
                delivered += 1
            except Exception as e:
                self.logger.error("Subscriber failed",
                                  channel=self.name,
                                  error_type=type(e).__name__,
                                  error_message=str(e))
        return delivered


class DataBus:
    """Orderbook and funding channels shared by providers and consumers."""

    def __init__(self):
        self.orderbook: Channel[OrderbookEvent] = Channel("orderbook")
        self.funding: Channel[FundingEvent] = Channel("funding")

    def on_orderbook(self, callback: Callable[[OrderbookEvent], None]) -> Unsubscribe:
        return self.orderbook.subscribe(callback)

    def on_funding(self, callback: Callable[[FundingEvent], None]) -> Unsubscribe:
        return self.funding.subscribe(callback)

    def publish_orderbook(self, event: OrderbookEvent) -> int:
        return self.orderbook.publish(event)

    def publish_funding(self, event: FundingEvent) -> int:
        return self.funding.publish(event)
