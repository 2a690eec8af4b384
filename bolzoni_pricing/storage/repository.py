"""
Repository pattern for data access.

Reads and writes system settings and the receivable/payable ledger.
"""

import json
import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from bolzoni_pricing.config.loader import SETTING_KEYS, ConfigurationSnapshot, build_snapshot

from .db import DEFAULT_DB_PATH, get_connection
from .models import FinancialTransaction, SystemSetting, TransactionType

logger = logging.getLogger(__name__)


class SettingsRepository:
    """Repository for the key/value system settings.

    Pricing settings are validated before they are written, so a stored
    configuration can always be turned into a snapshot.
    """

    def __init__(self, db_path: str = DEFAULT_DB_PATH):
        """Initialize the repository with a database path.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path

    def get_setting(self, key: str) -> Optional[SystemSetting]:
        """Get a single setting, or None if it was never stored."""
        conn = get_connection(self.db_path)
        try:
            row = conn.execute(
                "SELECT key, value, updated_at FROM system_setting WHERE key = ?",
                (key,),
            ).fetchone()
            if row is None:
                return None
            return SystemSetting(
                key=row["key"],
                value=row["value"],
                updated_at=datetime.fromisoformat(row["updated_at"]),
            )
        finally:
            conn.close()

    def get_settings(self) -> Dict[str, str]:
        """Get every stored setting as a key -> raw value mapping."""
        conn = get_connection(self.db_path)
        try:
            rows = conn.execute("SELECT key, value FROM system_setting ORDER BY key").fetchall()
            return {row["key"]: row["value"] for row in rows}
        finally:
            conn.close()

    def upsert_setting(self, key: str, value: Any) -> SystemSetting:
        """Insert or replace a setting.

        Dictionaries (custom fees) are stored as JSON. Pricing settings are
        validated against the rest of the stored configuration first.

        Args:
            key: Setting key
            value: New value

        Returns:
            The stored setting

        Raises:
            ValueError: If the value would make the pricing configuration invalid
        """
        raw_value = json.dumps(value) if isinstance(value, dict) else str(value)

        if key in SETTING_KEYS:
            settings = self.get_settings()
            settings[key] = raw_value
            _snapshot_from_settings(settings)

        updated_at = datetime.now()
        conn = get_connection(self.db_path)
        try:
            conn.execute("""
                INSERT INTO system_setting (key, value, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    updated_at = excluded.updated_at
            """, (key, raw_value, updated_at.isoformat()))
            conn.commit()
        finally:
            conn.close()

        logger.info("Setting %s updated", key)
        return SystemSetting(key=key, value=raw_value, updated_at=updated_at)

    def load_snapshot(self) -> ConfigurationSnapshot:
        """Read the pricing settings into a configuration snapshot."""
        return _snapshot_from_settings(self.get_settings())


def _snapshot_from_settings(settings: Dict[str, str]) -> ConfigurationSnapshot:
    raw: Dict[str, Any] = {k: v for k, v in settings.items() if k in SETTING_KEYS}
    if "custom_fees" in raw:
        try:
            raw["custom_fees"] = json.loads(raw["custom_fees"])
        except json.JSONDecodeError:
            raise ValueError("'custom_fees' must be a JSON object")
    return build_snapshot(raw)


# Global repository instance
_default_repository: Optional[SettingsRepository] = None


def get_repository(db_path: str = DEFAULT_DB_PATH) -> SettingsRepository:
    """Get the shared settings repository.

    Args:
        db_path: Path to SQLite database file

    Returns:
        An instance of SettingsRepository
    """
    global _default_repository
    if _default_repository is None or _default_repository.db_path != db_path:
        _default_repository = SettingsRepository(db_path)
    return _default_repository


def initialize_schema(db_path: str = DEFAULT_DB_PATH) -> None:
    """Create the settings and ledger tables if they don't exist.

    Args:
        db_path: Path to SQLite database file
    """
    conn = get_connection(db_path)
    try:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS system_setting (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS financial_transaction (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                type TEXT NOT NULL CHECK (type IN ('receivable', 'payable')),
                description TEXT NOT NULL,
                amount TEXT NOT NULL,
                event_id TEXT,
                due_date TEXT NOT NULL,
                paid_date TEXT,
                is_paid INTEGER NOT NULL DEFAULT 0,
                notes TEXT,
                created_at TEXT NOT NULL
            )
        """)
        conn.commit()
    finally:
        conn.close()


def insert_transactions(transactions: List[FinancialTransaction], db_path: str = DEFAULT_DB_PATH) -> List[int]:
    """Insert ledger rows atomically.

    All rows are written in a single transaction, so an installment plan
    is never recorded halfway.

    Args:
        transactions: Rows to record
        db_path: Path to SQLite database file

    Returns:
        Ids assigned to the rows, in input order
    """
    if not transactions:
        return []

    created_at = datetime.now().isoformat()
    conn = get_connection(db_path)
    try:
        ids = []
        conn.execute("BEGIN TRANSACTION")
        for tx in transactions:
            cursor = conn.execute("""
                INSERT INTO financial_transaction
                (type, description, amount, event_id, due_date, paid_date,
                 is_paid, notes, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                tx.type.value,
                tx.description,
                str(tx.amount),
                tx.event_id,
                tx.due_date.isoformat(),
                tx.paid_date.isoformat() if tx.paid_date else None,
                1 if tx.is_paid else 0,
                tx.notes,
                created_at,
            ))
            ids.append(cursor.lastrowid)
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()

    logger.info("Recorded %d ledger rows", len(ids))
    return ids


def fetch_transactions(
    tx_type: Optional[TransactionType] = None,
    event_id: Optional[str] = None,
    limit: int = 100,
    db_path: str = DEFAULT_DB_PATH,
) -> List[FinancialTransaction]:
    """Fetch ledger rows ordered by due date, then id.

    Args:
        tx_type: Optional filter for receivables or payables
        event_id: Optional filter for one event
        limit: Maximum number of rows to return
        db_path: Path to SQLite database file

    Returns:
        Matching ledger rows
    """
    conn = get_connection(db_path)
    try:
        query = """
            SELECT id, type, description, amount, event_id, due_date,
                   paid_date, is_paid, notes
            FROM financial_transaction
        """
        params: List[Any] = []
        conditions = []

        if tx_type is not None:
            conditions.append("type = ?")
            params.append(tx_type.value)
        if event_id is not None:
            conditions.append("event_id = ?")
            params.append(event_id)

        if conditions:
            query += " WHERE " + " AND ".join(conditions)

        query += " ORDER BY due_date, id LIMIT ?"
        params.append(limit)

        return [
            FinancialTransaction(
                id=row["id"],
                type=TransactionType(row["type"]),
                description=row["description"],
                amount=Decimal(row["amount"]),
                event_id=row["event_id"],
                due_date=date.fromisoformat(row["due_date"]),
                paid_date=date.fromisoformat(row["paid_date"]) if row["paid_date"] else None,
                is_paid=bool(row["is_paid"]),
                notes=row["notes"],
            )
            for row in conn.execute(query, params).fetchall()
        ]
    finally:
        conn.close()
