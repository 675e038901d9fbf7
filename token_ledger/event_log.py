"""
Event Log Module

Hash-chained, append-only log of committed ledger events with SHA-256 for
tamper detection. Records are numbered by a gap-free sequence that gives the
total order external consumers (indexers, relayers) replay events in.
"""

import hashlib
import json
import threading
from datetime import datetime, timezone
from dataclasses import dataclass
from typing import Dict, List, Optional, Any

from .address import Address
from .events import EventPayload, LedgerEventType
from .storage import StorageInterface, StorageRecord


def _record_id(sequence: int) -> str:
    # Zero padded so lexical order equals sequence order
    return f"{sequence:020d}"


@dataclass
class EventRecord(StorageRecord):
    """
    Immutable log entry with hash chaining
    """
    sequence: int
    event_id: str
    event_type: LedgerEventType
    data: Dict[str, str]
    previous_hash: str
    current_hash: str

    def calculate_hash(self) -> str:
        """
        Calculate SHA-256 hash of this record
        Hash includes all fields except current_hash to prevent circular reference
        """
        hash_data = {
            'sequence': self.sequence,
            'event_id': self.event_id,
            'created_at': self.created_at.isoformat(),
            'event_type': self.event_type.value,
            'data': self.data,
            'previous_hash': self.previous_hash
        }

        # Deterministic JSON string
        json_data = json.dumps(hash_data, sort_keys=True, separators=(',', ':'))
        return hashlib.sha256(json_data.encode('utf-8')).hexdigest()

    def verify_hash(self) -> bool:
        return self.current_hash == self.calculate_hash()

    def to_payload(self) -> EventPayload:
        return EventPayload(
            event_type=self.event_type,
            data=dict(self.data),
            timestamp=self.created_at,
            event_id=self.event_id
        )

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result['event_type'] = self.event_type.value
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EventRecord':
        return cls(
            id=data['id'],
            created_at=datetime.fromisoformat(data['created_at']),
            updated_at=datetime.fromisoformat(data['updated_at']),
            sequence=int(data['sequence']),
            event_id=data['event_id'],
            event_type=LedgerEventType(data['event_type']),
            data=dict(data['data']),
            previous_hash=data['previous_hash'],
            current_hash=data['current_hash']
        )


class EventLog:
    """
    Ordered, hash-chained event log backed by a storage backend
    """

    def __init__(self, storage: StorageInterface, table_name: str = "ledger_events"):
        self.storage = storage
        self.table_name = table_name
        self._lock = threading.Lock()

    def append(self, event: EventPayload) -> EventRecord:
        """
        Append an event to the log

        The tip is re-read from storage on every append, so a rolled back
        append leaves no trace in the chain.
        """
        with self._lock:
            sequence = self.storage.count(self.table_name)
            previous = self.get_event(sequence - 1) if sequence else None

            now = datetime.now(timezone.utc)
            record = EventRecord(
                id=_record_id(sequence),
                created_at=now,
                updated_at=now,
                sequence=sequence,
                event_id=event.event_id,
                event_type=event.event_type,
                data=dict(event.data),
                previous_hash=previous.current_hash if previous else "",
                current_hash=""
            )
            record.current_hash = record.calculate_hash()

            self.storage.save(self.table_name, record.id, record.to_dict())
            return record

    def get_event(self, sequence: int) -> Optional[EventRecord]:
        """Get a record by its sequence number"""
        if sequence < 0:
            return None
        data = self.storage.load(self.table_name, _record_id(sequence))
        if data:
            return EventRecord.from_dict(data)
        return None

    def _load_records(self) -> List[EventRecord]:
        records = [EventRecord.from_dict(data) for data in self.storage.load_all(self.table_name)]
        records.sort(key=lambda r: r.sequence)
        return records

    def get_events(
        self,
        event_type: Optional[LedgerEventType] = None,
        account: Optional[Address] = None,
        since: Optional[int] = None,
        limit: Optional[int] = None
    ) -> List[EventRecord]:
        """
        Get events in log order

        Args:
            event_type: Only events of this type
            account: Only events referencing this address in any role
            since: Only events with sequence >= since
            limit: Return at most this many events (the earliest matching)

        Returns:
            List of EventRecord objects sorted by sequence
        """
        records = self._load_records()

        if event_type:
            records = [r for r in records if r.event_type == event_type]
        if account is not None:
            records = [r for r in records if r.to_payload().involves(account)]
        if since is not None:
            records = [r for r in records if r.sequence >= since]
        if limit is not None:
            records = records[:limit]

        return records

    def count_events(self) -> int:
        return self.storage.count(self.table_name)

    def get_latest_hash(self) -> Optional[str]:
        """Get the hash at the tip of the chain"""
        count = self.count_events()
        if not count:
            return None
        return self.get_event(count - 1).current_hash

    def verify_integrity(self) -> Dict[str, Any]:
        """
        Verify the integrity of the entire chain

        Returns:
            Dictionary with integrity check results
        """
        result = {
            'valid': True,
            'total_events': 0,
            'hash_errors': [],
            'chain_breaks': [],
            'sequence_gaps': []
        }

        records = self._load_records()
        result['total_events'] = len(records)

        previous_hash = ""
        for position, record in enumerate(records):
            if record.sequence != position:
                result['valid'] = False
                result['sequence_gaps'].append({
                    'position': position,
                    'sequence': record.sequence
                })

            if not record.verify_hash():
                result['valid'] = False
                result['hash_errors'].append({
                    'sequence': record.sequence,
                    'expected_hash': record.calculate_hash(),
                    'actual_hash': record.current_hash
                })

            if record.previous_hash != previous_hash:
                result['valid'] = False
                result['chain_breaks'].append({
                    'sequence': record.sequence,
                    'expected_previous_hash': previous_hash,
                    'actual_previous_hash': record.previous_hash
                })
            previous_hash = record.current_hash

        return result
