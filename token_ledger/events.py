"""
Ledger Event Module

Events are the observable side channel of the ledger: every committed
operation produces exactly one event, which is appended to the event log
and then published to subscribers through the dispatcher.
"""

from enum import Enum
from typing import Callable, Dict, List, Any, Optional
from dataclasses import dataclass, field
from datetime import datetime, timezone
import uuid
import logging
from threading import RLock

from .address import Address


class LedgerEventType(Enum):
    """Events emitted by the token ledger"""
    TRANSFER = "Transfer"
    APPROVAL = "Approval"
    BURN = "Burn"


# Event data fields that hold account addresses
ADDRESS_FIELDS = ("from", "to", "owner", "spender")


@dataclass
class EventPayload:
    """
    Payload for ledger events

    Data holds addresses as hex strings and values as decimal strings so
    the payload serializes without loss.
    """
    event_type: LedgerEventType
    data: Dict[str, str]
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @property
    def value(self) -> int:
        return int(self.data["value"])

    def accounts(self) -> List[Address]:
        """Addresses referenced by this event"""
        return [Address.parse(self.data[key]) for key in ADDRESS_FIELDS if key in self.data]

    def involves(self, account: Address) -> bool:
        return account in self.accounts()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization"""
        return {
            'event_type': self.event_type.value,
            'data': dict(self.data),
            'timestamp': self.timestamp.isoformat(),
            'event_id': self.event_id
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EventPayload':
        """Create from dictionary"""
        return cls(
            event_type=LedgerEventType(data['event_type']),
            data=dict(data['data']),
            timestamp=datetime.fromisoformat(data['timestamp']) if isinstance(data['timestamp'], str) else data['timestamp'],
            event_id=data['event_id']
        )


def create_transfer_event(from_account: Address, to_account: Address, value: int) -> EventPayload:
    return EventPayload(
        event_type=LedgerEventType.TRANSFER,
        data={"from": str(from_account), "to": str(to_account), "value": str(value)}
    )


def create_approval_event(owner: Address, spender: Address, value: int) -> EventPayload:
    return EventPayload(
        event_type=LedgerEventType.APPROVAL,
        data={"owner": str(owner), "spender": str(spender), "value": str(value)}
    )


def create_burn_event(from_account: Address, value: int) -> EventPayload:
    return EventPayload(
        event_type=LedgerEventType.BURN,
        data={"from": str(from_account), "value": str(value)}
    )


def _handler_name(handler: Callable) -> str:
    return getattr(handler, "__name__", repr(handler))


class EventDispatcher:
    """Central event dispatcher, publish/subscribe pattern"""

    def __init__(self):
        self._handlers: Dict[LedgerEventType, List[Callable]] = {}
        self._global_handlers: List[Callable] = []  # catch-all handlers
        self._lock = RLock()
        self.logger = logging.getLogger("token_ledger.events")

    def subscribe(self, event_type: LedgerEventType, handler: Callable) -> None:
        """Subscribe to a specific event type"""
        with self._lock:
            self._handlers.setdefault(event_type, []).append(handler)
            self.logger.debug(f"Subscribed handler {_handler_name(handler)} to {event_type.value}")

    def subscribe_all(self, handler: Callable) -> None:
        """Subscribe to ALL events"""
        with self._lock:
            self._global_handlers.append(handler)
            self.logger.debug(f"Subscribed global handler {_handler_name(handler)}")

    def unsubscribe(self, event_type: LedgerEventType, handler: Callable) -> None:
        """Unsubscribe from a specific event type"""
        with self._lock:
            try:
                self._handlers.get(event_type, []).remove(handler)
                self.logger.debug(f"Unsubscribed handler {_handler_name(handler)} from {event_type.value}")
            except ValueError:
                self.logger.warning(f"Handler {_handler_name(handler)} was not subscribed to {event_type.value}")

    def unsubscribe_all(self, handler: Callable) -> None:
        """Unsubscribe a catch-all handler"""
        with self._lock:
            try:
                self._global_handlers.remove(handler)
                self.logger.debug(f"Unsubscribed global handler {_handler_name(handler)}")
            except ValueError:
                self.logger.warning(f"Global handler {_handler_name(handler)} was not subscribed")

    def publish(self, event: EventPayload) -> None:
        """Publish event to all subscribers"""
        with self._lock:
            self.logger.debug(f"Publishing event {event.event_type.value} {event.data}")

            handlers = list(self._handlers.get(event.event_type, [])) + list(self._global_handlers)
            for handler in handlers:
                try:
                    handler(event)
                except Exception as e:
                    # The event is already committed; a subscriber cannot undo it
                    self.logger.error(f"Error in event handler {_handler_name(handler)} for {event.event_type.value}: {e}")

    def clear(self) -> None:
        """Clear all handlers"""
        with self._lock:
            self._handlers.clear()
            self._global_handlers.clear()
            self.logger.info("All event handlers cleared")

    def get_handler_count(self, event_type: Optional[LedgerEventType] = None) -> int:
        """Get count of handlers for a specific event type or all"""
        with self._lock:
            if event_type:
                return len(self._handlers.get(event_type, []))
            total = sum(len(handlers) for handlers in self._handlers.values())
            return total + len(self._global_handlers)
