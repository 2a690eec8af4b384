"""
Database connection management.

Provides the SQLite connection shared by the settings and ledger tables.
"""

import sqlite3
from pathlib import Path

DEFAULT_DB_PATH = "bolzoni_pricing.db"


def get_connection(db_path: str = DEFAULT_DB_PATH) -> sqlite3.Connection:
    """Open a connection whose rows can be read by column name.

    Args:
        db_path: Path to SQLite database file

    Returns:
        SQLite connection with foreign key constraints enabled
    """
    conn = sqlite3.connect(str(Path(db_path)))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn
