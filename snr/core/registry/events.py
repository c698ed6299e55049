"""
Registry notifications.

Notifications are observable records of committed state changes. They are
not consumed by the registry itself. A call buffers the notifications it
raises and publishes them only after its state changes commit; a call that
fails publishes nothing.
"""

from dataclasses import dataclass
from typing import Callable, List, Union

from snr.utils.logger import get_logger

logger = get_logger("registry.events")


@dataclass(frozen=True)
class ReservationMade:
    commitment: bytes
    reserver: bytes
    deadline: int


@dataclass(frozen=True)
class NameRegistered:
    name: str
    owner: bytes
    expiration: int


@dataclass(frozen=True)
class RegistrationDisplaced:
    """An expired record was overwritten; its owner was credited the fee."""
    name: str
    displaced_owner: bytes


@dataclass(frozen=True)
class RegistrationRenewed:
    name: str
    owner: bytes
    expiration: int


@dataclass(frozen=True)
class RegistrationDeleted:
    name: str


RegistryEvent = Union[
    ReservationMade,
    NameRegistered,
    RegistrationDisplaced,
    RegistrationRenewed,
    RegistrationDeleted,
]

Subscriber = Callable[[RegistryEvent], None]


class EventBus:
    """
    Fan-out of published notifications.

    Attributes:
        history: Every published event, in order
    """

    def __init__(self, keep_history: bool = True):
        self.keep_history = keep_history
        self.history: List[RegistryEvent] = []
        self._subscribers: List[Subscriber] = []

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a subscriber; returns a function that unsubscribes it."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def publish(self, events: List[RegistryEvent]) -> None:
        for event in events:
            if self.keep_history:
                self.history.append(event)
            logger.debug(f"Event {type(event).__name__}")
            for callback in list(self._subscribers):
                callback(event)


__all__ = [
    "ReservationMade",
    "NameRegistered",
    "RegistrationDisplaced",
    "RegistrationRenewed",
    "RegistrationDeleted",
    "RegistryEvent",
    "EventBus",
]
