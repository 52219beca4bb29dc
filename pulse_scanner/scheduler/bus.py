"""
PULSE SCANNER: Replay-Latest Subscription Bus
Synchronous fan-out to listeners in subscription order. A new subscriber
immediately receives the latest published value.
"""
from typing import Callable, Generic, List, Optional, TypeVar

from pulse_scanner.utils.logger import get_logger

logger = get_logger("subscription_bus")

T = TypeVar("T")
Listener = Callable[[T], None]

_UNSET = object()


class Subscription:
    """Token returned by subscribe(); unsubscribe() is idempotent."""

    def __init__(self, bus: "SubscriptionBus", listener: Callable):
        self._bus = bus
        self._listener = listener
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def unsubscribe(self) -> None:
        if not self._active:
            return
        self._active = False
        self._bus._remove(self)

    def __call__(self) -> None:
        self.unsubscribe()


class SubscriptionBus(Generic[T]):
    """Replay-latest pub/sub channel for one value stream."""

    def __init__(self, name: str, initial=_UNSET):
        self.name = name
        self._latest = initial
        self._subscriptions: List[Subscription] = []

    @property
    def latest(self) -> Optional[T]:
        return None if self._latest is _UNSET else self._latest

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def subscribe(self, listener: Listener) -> Subscription:
        sub = Subscription(self, listener)
        self._subscriptions.append(sub)
        if self._latest is not _UNSET:
            self._deliver(sub, self._latest)
        return sub

    def publish(self, value: T) -> None:
        self._latest = value
        # Snapshot so listeners may unsubscribe during delivery
        for sub in list(self._subscriptions):
            if sub.active:
                self._deliver(sub, value)

    def _deliver(self, sub: Subscription, value: T) -> None:
        try:
            sub._listener(value)
        except Exception as e:
            logger.error("listener_error", bus=self.name, listener=repr(sub._listener), error=str(e))

    def _remove(self, sub: Subscription) -> None:
        try:
            self._subscriptions.remove(sub)
        except ValueError:
            pass

    def clear(self) -> None:
        for sub in list(self._subscriptions):
            sub.unsubscribe()
