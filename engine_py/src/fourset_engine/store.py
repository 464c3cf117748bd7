"""
In-memory versioned key-value store with change subscriptions.

Every record carries a version that increases by one on each write. Writers
pass the version they read; a mismatch raises StaleWrite so the caller can
re-read and retry. Subscribers are notified after each successful write or
delete, outside the store lock, with a copy of the stored record.
Notifications are delivered one at a time in commit order, so subscribers
must not write to the store from inside a callback.
"""

import copy
import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from .errors import StaleWrite

logger = logging.getLogger(__name__)


@dataclass
class Record:
    key: str
    version: int
    value: Any
    deleted: bool = False


Subscriber = Callable[[Record], None]


class StateStore:
    def __init__(self):
        self._records: Dict[str, Record] = {}
        self._lock = threading.Lock()
        self._subscribers: List[Subscriber] = []
        self._subscribers_lock = threading.Lock()
        # Tickets are handed out under _lock in commit order
        self._publish_turn = threading.Condition()
        self._next_ticket = 0
        self._serving = 0

    def read(self, key: str) -> Optional[Record]:
        """A deep copy of the current record, safe to mutate."""
        with self._lock:
            record = self._records.get(key)
            if record is None:
                return None
            return Record(key, record.version, copy.deepcopy(record.value))

    def create(self, key: str, value: Any) -> Record:
        """Insert a new record at version 1; fails if the key exists."""
        with self._lock:
            if key in self._records:
                raise StaleWrite(f"{key} already exists")
            record = Record(key, 1, copy.deepcopy(value))
            self._records[key] = record
            published = Record(key, 1, copy.deepcopy(value))
            ticket = self._take_ticket()
        self._publish(published, ticket)
        return published

    def write(self, key: str, value: Any, expected_version: int) -> Record:
        """Compare-and-set: replace the record only if it is still at expected_version."""
        with self._lock:
            current = self._records.get(key)
            if current is None:
                raise StaleWrite(f"{key} no longer exists")
            if current.version != expected_version:
                raise StaleWrite(
                    f"{key} is at version {current.version}, expected {expected_version}"
                )
            version = current.version + 1
            self._records[key] = Record(key, version, copy.deepcopy(value))
            published = Record(key, version, copy.deepcopy(value))
            ticket = self._take_ticket()
        self._publish(published, ticket)
        return published

    def delete(self, key: str, expected_version: Optional[int] = None) -> None:
        with self._lock:
            current = self._records.get(key)
            if current is None:
                return
            if expected_version is not None and current.version != expected_version:
                raise StaleWrite(
                    f"{key} is at version {current.version}, expected {expected_version}"
                )
            del self._records[key]
            published = Record(key, current.version + 1, None, deleted=True)
            ticket = self._take_ticket()
        self._publish(published, ticket)

    def keys(self, prefix: str = '') -> List[str]:
        with self._lock:
            return [k for k in self._records if k.startswith(prefix)]

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register for change notifications; returns an unsubscribe function."""
        with self._subscribers_lock:
            self._subscribers.append(callback)

        def unsubscribe():
            with self._subscribers_lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def _take_ticket(self) -> int:
        # Caller holds _lock
        ticket = self._next_ticket
        self._next_ticket += 1
        return ticket

    def _publish(self, record: Record, ticket: int) -> None:
        with self._publish_turn:
            while self._serving != ticket:
                self._publish_turn.wait()
        try:
            with self._subscribers_lock:
                subscribers = list(self._subscribers)
            for callback in subscribers:
                try:
                    callback(record)
                except Exception:
                    logger.exception(f"Subscriber failed for {record.key} v{record.version}")
        finally:
            with self._publish_turn:
                self._serving += 1
                self._publish_turn.notify_all()
