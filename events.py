"""Bridge events for off-chain observers."""

import inspect
import logging
from dataclasses import dataclass, asdict
from typing import Any, Awaitable, Callable, Dict, List, Tuple, Union

from core.types import Address, Identifier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NativeDeposited:
    recipients: Tuple[Address, ...]
    amounts: Tuple[int, ...]
    aux_data: bytes
    message_id: Identifier


@dataclass(frozen=True)
class TokenDeposited:
    token: Address
    sender: Address
    recipients: Tuple[Address, ...]
    amounts: Tuple[int, ...]
    aux_data: bytes
    message_id: Identifier


@dataclass(frozen=True)
class NativeWithdrawn:
    recipient: Address
    amount: int


@dataclass(frozen=True)
class TokenWithdrawn:
    token: Address
    recipient: Address
    amount: int


BridgeEvent = Union[NativeDeposited, TokenDeposited, NativeWithdrawn, TokenWithdrawn]
Subscriber = Callable[[BridgeEvent], Union[None, Awaitable[None]]]


def event_name(event: BridgeEvent) -> str:
    return type(event).__name__


def event_addresses(event: BridgeEvent) -> List[Address]:
    """Every address an event concerns, used for per-address lookups."""
    addresses: List[Address] = []
    for field in ("token", "sender", "recipient"):
        value = getattr(event, field, None)
        if value:
            addresses.append(value)
    addresses.extend(getattr(event, "recipients", ()))
    return addresses


def event_to_dict(event: BridgeEvent) -> Dict[str, Any]:
    """JSON-friendly form: bytes as 0x-hex, amounts as decimal strings."""
    data = asdict(event)
    for key, value in data.items():
        if isinstance(value, bytes):
            data[key] = "0x" + value.hex()
        elif key == "amount":
            data[key] = str(value)
        elif key == "amounts":
            data[key] = [str(v) for v in value]
        elif isinstance(value, tuple):
            data[key] = list(value)
    data["event"] = event_name(event)
    return data


class EventLog:
    """Ordered history of published events plus push subscribers.

    Events reach the log only after the call that produced them has
    committed.
    """

    def __init__(self):
        self.history: List[BridgeEvent] = []
        self._subscribers: List[Subscriber] = []

    def subscribe(self, subscriber: Subscriber) -> None:
        self._subscribers.append(subscriber)

    def unsubscribe(self, subscriber: Subscriber) -> None:
        if subscriber in self._subscribers:
            self._subscribers.remove(subscriber)

    async def publish(self, events: List[BridgeEvent]) -> None:
        """Record committed events and notify subscribers."""
        for event in events:
            self.history.append(event)
            logger.info(f"Event {event_name(event)}: {event_to_dict(event)}")

            for subscriber in list(self._subscribers):
                try:
                    if inspect.iscoroutinefunction(subscriber):
                        await subscriber(event)
                    else:
                        subscriber(event)
                except Exception as e:
                    logger.error(f"Error in event subscriber: {e}", exc_info=True)
