"""
Local payment ledger.

Append-only list of payment records kept in a key-value store, with an
explicit change notification for views that display it.
"""

import json
import logging
from typing import Callable, List

from .backends import KeyValueStorage
from .models import PaymentRecord

logger = logging.getLogger(__name__)

LEDGER_KEY = "payments"

LedgerListener = Callable[[List[PaymentRecord]], None]


class LedgerCache:
    """Client-side ledger of payment records.
    
    ``append`` is a plain read-modify-write over the stored JSON array. It
    performs no identity check: appending the same record twice yields
    two entries, so callers must append at most once per confirmed
    subscription.
    """

    def __init__(self, storage: KeyValueStorage, key: str = LEDGER_KEY):
        """Initialize the ledger.
        
        Args:
            storage: Backing key-value store
            key: Well-known key the serialized ledger lives under
        """
        self.storage = storage
        self.key = key
        self._listeners: List[LedgerListener] = []

    def records(self) -> List[PaymentRecord]:
        """Return all records in insertion order.
        
        Entries that do not parse as payment records are skipped.
        
        Raises:
            ValueError: If the stored value is not a JSON array
        """
        return self._parse(self._read_raw())

    def append(self, record: PaymentRecord) -> List[PaymentRecord]:
        """Append a record and notify listeners exactly once.
        
        Args:
            record: The record to add
            
        Returns:
            The ledger after the write
        """
        items = self._read_raw()
        items.append(record.to_dict())
        self.storage.set_item(self.key, json.dumps(items))
        logger.info("Ledger %s: appended %s (%d entries)", self.key, record.id, len(items))

        records = self._parse(items[:-1])
        records.append(record)
        self._notify(records)
        return records

    def clear(self) -> None:
        """Drop every record."""
        self.storage.remove_item(self.key)
        logger.info("Ledger %s cleared", self.key)
        self._notify([])

    def subscribe(self, listener: LedgerListener) -> Callable[[], None]:
        """Register a change listener.
        
        Returns:
            Callable that removes the listener again
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _read_raw(self) -> List[dict]:
        raw = self.storage.get_item(self.key)
        if not raw:
            return []
        try:
            items = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ValueError(f"Ledger {self.key} is not valid JSON: {e}") from e
        if not isinstance(items, list):
            raise ValueError(f"Ledger {self.key} must hold a JSON array")
        return items

    def _parse(self, items: List[dict]) -> List[PaymentRecord]:
        records = []
        for item in items:
            try:
                records.append(PaymentRecord.from_dict(item))
            except ValueError as e:
                logger.warning("Ledger %s: skipping unreadable entry: %s", self.key, e)
        return records

    def _notify(self, records: List[PaymentRecord]) -> None:
        # Write is already committed; listener errors are only logged.
        for listener in list(self._listeners):
            try:
                listener(records)
            except Exception:
                logger.exception("Ledger listener %r failed", listener)
