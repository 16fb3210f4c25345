"""
Database connection management.

Provides the SQLite connection behind the persistent key-value store.
"""

import sqlite3
from pathlib import Path


def get_connection(db_path: str = ".subscription-desk.db") -> sqlite3.Connection:
    """Create and return a SQLite connection, creating parent folders if needed.
    
    Args:
        db_path: Path to SQLite database file
        
    Returns:
        SQLite connection
    """
    path = Path(db_path)
    if path.parent and not path.parent.exists():
        path.parent.mkdir(parents=True, exist_ok=True)
    return sqlite3.connect(str(path))
