"""
Data models for storage layer.

Defines database entities and data structures.
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional


class TransactionType(Enum):
    """Direction of a financial transaction."""
    RECEIVABLE = "receivable"
    PAYABLE = "payable"


@dataclass(frozen=True)
class FinancialTransaction:
    """Receivable or payable recorded in the financial module.

    Amounts are kept as Decimal cents; the ledger stores them as text so
    no precision is lost on the way through SQLite.
    """
    type: TransactionType
    description: str
    amount: Decimal
    due_date: date
    event_id: Optional[str] = None
    is_paid: bool = False
    paid_date: Optional[date] = None
    notes: Optional[str] = None
    id: Optional[int] = None


@dataclass(frozen=True)
class SystemSetting:
    """Key/value setting edited from the settings screens."""
    key: str
    value: str
    updated_at: datetime
