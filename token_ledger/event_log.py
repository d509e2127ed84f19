"""
Event Log Module

Append-only, ordered record of every Transfer and Approval the ledger emits.
Records are hash-chained with SHA-256 for tamper detection and written
through the ledger's storage backend, so an append inside a rolled-back
mutation disappears with it.
"""

from dataclasses import replace
from datetime import datetime, timezone
from typing import Dict, List, Optional, Any
import threading

from .events import LedgerEvent, TokenEvent
from .storage import StorageInterface


HEAD_RECORD_ID = "head"


class EventLog:
    """
    Hash-chained event log
    """

    def __init__(self, storage: StorageInterface, table_name: str = "ledger_events"):
        self.storage = storage
        self.table_name = table_name
        self.head_table = f"{table_name}_head"
        self._lock = threading.Lock()

    def _load_head(self) -> Dict[str, Any]:
        """Load sequence and hash of the most recent event"""
        head = self.storage.load(self.head_table, HEAD_RECORD_ID)
        return head or {"sequence": 0, "hash": ""}

    def append(self, event_type: TokenEvent, args: Dict[str, Any]) -> LedgerEvent:
        """
        Append an event with hash chaining

        Args:
            event_type: Transfer or Approval
            args: Event arguments (party identifiers and integer value)

        Returns:
            The stored LedgerEvent
        """
        with self._lock:
            # Re-load the head from storage so a rolled-back append never leaks
            head = self._load_head()
            sequence = int(head["sequence"]) + 1

            draft = LedgerEvent(
                sequence=sequence,
                event_type=event_type,
                args=dict(args),
                timestamp=datetime.now(timezone.utc),
                previous_hash=head["hash"],
            )
            event = replace(draft, current_hash=draft.calculate_hash())

            self.storage.save(self.table_name, f"{sequence:020d}", event.to_dict())
            self.storage.save(self.head_table, HEAD_RECORD_ID, {"sequence": sequence, "hash": event.current_hash})
            return event

    def get_events(self, limit: Optional[int] = None) -> List[LedgerEvent]:
        """
        Get events in emission order

        Args:
            limit: Return only the most recent N events

        Returns:
            List of LedgerEvent objects sorted by sequence
        """
        events = [LedgerEvent.from_dict(data) for data in self.storage.load_all(self.table_name)]
        events.sort(key=lambda e: e.sequence)
        if limit:
            events = events[-limit:]
        return events

    def get_events_for_account(self, account: str, limit: Optional[int] = None) -> List[LedgerEvent]:
        """Get events in which account is a party"""
        events = [e for e in self.get_events() if e.involves(account)]
        if limit:
            events = events[-limit:]
        return events

    def count_events(self) -> int:
        return self.storage.count(self.table_name)

    def get_latest_hash(self) -> Optional[str]:
        """Get the hash of the most recent event"""
        return self._load_head()["hash"] or None

    def verify_integrity(self) -> Dict[str, Any]:
        """
        Verify the integrity of the entire event chain

        Returns:
            Dictionary with integrity check results
        """
        result = {
            'valid': True,
            'total_events': 0,
            'hash_errors': [],
            'chain_breaks': [],
            'sequence_gaps': [],
        }

        events = self.get_events()
        result['total_events'] = len(events)

        previous_hash = ""
        for position, event in enumerate(events):
            if not event.verify_hash():
                result['valid'] = False
                result['hash_errors'].append({
                    'sequence': event.sequence,
                    'expected_hash': event.calculate_hash(),
                    'actual_hash': event.current_hash,
                })
            if event.previous_hash != previous_hash:
                result['valid'] = False
                result['chain_breaks'].append({
                    'sequence': event.sequence,
                    'expected_previous_hash': previous_hash,
                    'actual_previous_hash': event.previous_hash,
                })
            if event.sequence != position + 1:
                result['valid'] = False
                result['sequence_gaps'].append({
                    'expected_sequence': position + 1,
                    'actual_sequence': event.sequence,
                })
            previous_hash = event.current_hash

        return result
