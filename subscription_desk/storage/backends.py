"""
Key-value storage backends.

The same small surface browsers offer as local storage, so the ledger and
the auth token can be handed to components instead of living in globals.
"""

from typing import Dict, Optional, Protocol

from .db import get_connection


class KeyValueStorage(Protocol):
    """String key to string value store."""

    def get_item(self, key: str) -> Optional[str]:
        ...

    def set_item(self, key: str, value: str) -> None:
        ...

    def remove_item(self, key: str) -> None:
        ...


class InMemoryStorage:
    """Process-local storage, mainly for tests."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._items: Dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)


class SqliteStorage:
    """Storage persisted to a single SQLite table.
    
    Every call opens its own connection and commits before returning, so
    each ``set_item`` is atomic on its own. Sequences of calls are not.
    """

    def __init__(self, db_path: str = ".subscription-desk.db"):
        """Initialize the storage and create its table if missing.
        
        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path
        self._initialize_schema()

    def _initialize_schema(self) -> None:
        conn = get_connection(self.db_path)
        try:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS kv_item (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
            """)
            conn.commit()
        finally:
            conn.close()

    def get_item(self, key: str) -> Optional[str]:
        conn = get_connection(self.db_path)
        try:
            row = conn.execute(
                "SELECT value FROM kv_item WHERE key = ?", (key,)
            ).fetchone()
            return row[0] if row else None
        finally:
            conn.close()

    def set_item(self, key: str, value: str) -> None:
        conn = get_connection(self.db_path)
        try:
            conn.execute("""
                INSERT INTO kv_item (key, value) VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value
            """, (key, value))
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def remove_item(self, key: str) -> None:
        conn = get_connection(self.db_path)
        try:
            conn.execute("DELETE FROM kv_item WHERE key = ?", (key,))
            conn.commit()
        finally:
            conn.close()
