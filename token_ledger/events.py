"""
Event System Module

Ledger event records (Transfer and Approval) and a publish/subscribe
dispatcher. Subscribers observe committed mutations but can never affect
ledger state: a failing subscriber is logged and skipped.
"""

from enum import Enum
from typing import Callable, Dict, List, Any
from dataclasses import dataclass, field
from datetime import datetime, timezone
import hashlib
import json
import uuid
import logging
from threading import RLock


class TokenEvent(Enum):
    """Observable ledger event kinds"""
    TRANSFER = "Transfer"  # args: from, to, value
    APPROVAL = "Approval"  # args: owner, spender, value


@dataclass(frozen=True)
class LedgerEvent:
    """
    Immutable event record

    Amounts in args are ints in memory and decimal strings once serialized.
    previous_hash/current_hash chain each record to the one before it.
    """
    sequence: int
    event_type: TokenEvent
    args: Dict[str, Any]
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    previous_hash: str = ""
    current_hash: str = ""

    @property
    def value(self) -> int:
        return self.args["value"]

    def involves(self, account: str) -> bool:
        """Check if account appears in any party slot"""
        return account in (v for k, v in self.args.items() if k != "value")

    def _serialized_args(self) -> Dict[str, str]:
        return {k: str(v) for k, v in self.args.items()}

    def calculate_hash(self) -> str:
        """SHA-256 over every field except current_hash"""
        hash_data = {
            'sequence': self.sequence,
            'event_type': self.event_type.value,
            'args': self._serialized_args(),
            'timestamp': self.timestamp.isoformat(),
            'event_id': self.event_id,
            'previous_hash': self.previous_hash,
        }
        json_data = json.dumps(hash_data, sort_keys=True, separators=(',', ':'))
        return hashlib.sha256(json_data.encode('utf-8')).hexdigest()

    def verify_hash(self) -> bool:
        return self.current_hash == self.calculate_hash()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization"""
        return {
            'sequence': self.sequence,
            'event_type': self.event_type.value,
            'args': self._serialized_args(),
            'timestamp': self.timestamp.isoformat(),
            'event_id': self.event_id,
            'previous_hash': self.previous_hash,
            'current_hash': self.current_hash,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LedgerEvent':
        """Create from dictionary"""
        args = dict(data['args'])
        args['value'] = int(args['value'])
        timestamp = data['timestamp']
        return cls(
            sequence=int(data['sequence']),
            event_type=TokenEvent(data['event_type']),
            args=args,
            timestamp=datetime.fromisoformat(timestamp) if isinstance(timestamp, str) else timestamp,
            event_id=data['event_id'],
            previous_hash=data.get('previous_hash', ""),
            current_hash=data.get('current_hash', ""),
        )


def transfer_args(source: str, target: str, value: int) -> Dict[str, Any]:
    return {"from": source, "to": target, "value": value}


def approval_args(owner: str, spender: str, value: int) -> Dict[str, Any]:
    return {"owner": owner, "spender": spender, "value": value}


class EventDispatcher:
    """Central event dispatcher - publish/subscribe pattern"""

    def __init__(self):
        self._handlers: Dict[TokenEvent, List[Callable]] = {}
        self._global_handlers: List[Callable] = []  # catch-all handlers
        self._lock = RLock()
        self.logger = logging.getLogger("token_ledger.events")

    def subscribe(self, event_type: TokenEvent, handler: Callable) -> None:
        """Subscribe to a specific event type"""
        with self._lock:
            self._handlers.setdefault(event_type, []).append(handler)
            self.logger.debug(f"Subscribed handler {_handler_name(handler)} to {event_type.value}")

    def subscribe_all(self, handler: Callable) -> None:
        """Subscribe to ALL events"""
        with self._lock:
            self._global_handlers.append(handler)
            self.logger.debug(f"Subscribed global handler {_handler_name(handler)}")

    def publish(self, event: LedgerEvent) -> None:
        """Publish event to all subscribers"""
        with self._lock:
            handlers = list(self._handlers.get(event.event_type, [])) + list(self._global_handlers)

        self.logger.debug(f"Publishing {event.event_type.value} #{event.sequence}")
        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                # Log but don't break the main operation
                self.logger.error(f"Error in event handler {_handler_name(handler)} for {event.event_type.value}: {e}")

    def clear(self) -> None:
        """Clear all handlers"""
        with self._lock:
            self._handlers.clear()
            self._global_handlers.clear()
            self.logger.info("All event handlers cleared")


def _handler_name(handler: Callable) -> str:
    return getattr(handler, "__name__", repr(handler))
