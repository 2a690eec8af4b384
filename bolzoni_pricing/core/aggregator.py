"""
Event cost aggregation.

Keeps the running totals of an event being edited: selected characters,
ad hoc expenses, employee cachê and travel, plus the partial payments
logged against the contract.
"""

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Set

from bolzoni_pricing.config.loader import ConfigurationSnapshot

from .money import ZERO, parse_money, to_money

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExpenseEntry:
    """Free-form expense added to an event."""
    title: str
    amount: Decimal
    description: Optional[str] = None


@dataclass(frozen=True)
class EmployeeCacheEntry:
    """Employee assigned to an event with the cachê paid for it."""
    employee_id: str
    cache_value: Decimal
    character_id: Optional[str] = None


@dataclass(frozen=True)
class PaymentInstallmentRecord:
    """Partial payment logged by staff against an event."""
    amount: Decimal
    payment_date: Optional[date] = None
    payment_method: Optional[str] = None


@dataclass(frozen=True)
class EventCostBreakdown:
    """Cost totals of an event."""
    characters_total: Decimal
    expenses_total: Decimal
    travel_total: Decimal
    employee_cache_total: Decimal

    @property
    def proposed_contract_value(self) -> Decimal:
        """Client-facing value; employee cachê is an internal cost and stays out."""
        return self.characters_total + self.expenses_total + self.travel_total


@dataclass(frozen=True)
class PaymentSummary:
    """Paid vs pending balance of an event."""
    contract_value: Decimal
    total_paid: Decimal
    pending_value: Decimal


class EventCostAggregator:
    """Running cost totals for one event form.

    The contract value is pre-filled from the proposed value and follows
    every change to characters, expenses and distance until staff set it
    by hand. Editing an event that already carries a non-zero contract
    value counts as a manual value, so reopening a record never clobbers
    the amount that was agreed with the client.
    """

    def __init__(
        self,
        catalog: Mapping[str, Any],
        km_rate: Any = ZERO,
        contract_value: Any = None,
        editing: bool = False,
    ):
        """Initialize the aggregator.

        Args:
            catalog: Sale price of each rentable character, by id
            km_rate: Travel rate per km
            contract_value: Contract value already stored on the event
            editing: Whether an existing event is being edited
        """
        self.catalog = {item_id: parse_money(price) for item_id, price in catalog.items()}
        self.km_rate = parse_money(km_rate)
        self.distance_km = ZERO
        self.character_ids: Set[str] = set()
        self.expenses: List[ExpenseEntry] = []
        self.employees: Dict[str, EmployeeCacheEntry] = {}
        self.payments: List[PaymentInstallmentRecord] = []

        stored = parse_money(contract_value)
        self._manual_contract_value: Optional[Decimal] = None
        if editing and stored > 0:
            self._manual_contract_value = stored

    @classmethod
    def from_snapshot(
        cls,
        config: ConfigurationSnapshot,
        catalog: Mapping[str, Any],
        contract_value: Any = None,
        editing: bool = False,
    ) -> "EventCostAggregator":
        """Create an aggregator whose travel rate comes from the configuration snapshot."""
        return cls(catalog, km_rate=config.km_rate, contract_value=contract_value, editing=editing)

    # Characters

    def select_character(self, character_id: str) -> None:
        """Add a character to the selection; selecting twice is a no-op."""
        self.character_ids.add(character_id)

    def deselect_character(self, character_id: str) -> None:
        self.character_ids.discard(character_id)

    def toggle_character(self, character_id: str) -> bool:
        """Flip a character's selection and return whether it is now selected."""
        if character_id in self.character_ids:
            self.character_ids.discard(character_id)
            return False
        self.character_ids.add(character_id)
        return True

    # Expenses

    def add_expense(self, title: str, amount: Any, description: Optional[str] = None) -> ExpenseEntry:
        """Append an expense; an unreadable amount counts as zero."""
        entry = ExpenseEntry(title=title, amount=parse_money(amount), description=description)
        self.expenses.append(entry)
        return entry

    def remove_expense(self, index: int) -> ExpenseEntry:
        return self.expenses.pop(index)

    # Employees

    def assign_employee(
        self,
        employee_id: str,
        cache_value: Any,
        character_id: Optional[str] = None,
    ) -> EmployeeCacheEntry:
        """Assign an employee, replacing a previous assignment of the same id."""
        entry = EmployeeCacheEntry(
            employee_id=employee_id,
            cache_value=parse_money(cache_value),
            character_id=character_id,
        )
        self.employees[employee_id] = entry
        return entry

    def unassign_employee(self, employee_id: str) -> None:
        self.employees.pop(employee_id, None)

    # Travel

    def set_distance(self, distance_km: Any) -> None:
        """Set the travel distance; blank or negative distances count as zero."""
        distance = parse_money(distance_km)
        self.distance_km = distance if distance > 0 else ZERO

    # Totals

    def breakdown(self) -> EventCostBreakdown:
        """Compute the current cost breakdown."""
        characters_total = ZERO
        for character_id in sorted(self.character_ids):
            if character_id not in self.catalog:
                logger.warning("Character %s has no sale price, counting as 0", character_id)
                continue
            characters_total += self.catalog[character_id]

        return EventCostBreakdown(
            characters_total=to_money(characters_total),
            expenses_total=to_money(sum((e.amount for e in self.expenses), ZERO)),
            travel_total=to_money(self.distance_km * self.km_rate),
            employee_cache_total=to_money(
                sum((e.cache_value for e in self.employees.values()), ZERO)
            ),
        )

    @property
    def proposed_contract_value(self) -> Decimal:
        return self.breakdown().proposed_contract_value

    @property
    def contract_value(self) -> Decimal:
        """Manual contract value if set, otherwise the proposed value."""
        if self._manual_contract_value is not None:
            return self._manual_contract_value
        return self.proposed_contract_value

    @property
    def is_overridden(self) -> bool:
        return self._manual_contract_value is not None

    def override_contract_value(self, value: Any) -> Decimal:
        """Set the contract value by hand, suppressing automatic recompute."""
        self._manual_contract_value = to_money(parse_money(value))
        return self._manual_contract_value

    def reset_contract_value(self) -> Decimal:
        """Drop the manual value and follow the proposed value again."""
        self._manual_contract_value = None
        return self.contract_value

    # Payments

    def record_payment(
        self,
        amount: Any,
        payment_date: Optional[date] = None,
        payment_method: Optional[str] = None,
    ) -> PaymentInstallmentRecord:
        """Log a partial payment; an unreadable amount counts as zero."""
        record = PaymentInstallmentRecord(
            amount=parse_money(amount),
            payment_date=payment_date,
            payment_method=payment_method,
        )
        self.payments.append(record)
        return record

    def payment_summary(self, entry_ticket_value: Any = ZERO) -> PaymentSummary:
        """Summarize paid vs pending against the current contract value."""
        return summarize_payments(self.contract_value, self.payments, entry_ticket_value)


def summarize_payments(
    contract_value: Any,
    payments: List[PaymentInstallmentRecord],
    entry_ticket_value: Any = ZERO,
) -> PaymentSummary:
    """Sum logged payments and the entry ticket against a contract value.

    Args:
        contract_value: Agreed contract value
        payments: Partial payments logged against the event
        entry_ticket_value: Entry paid when the contract was signed

    Returns:
        PaymentSummary with pending value floored at zero
    """
    contract = to_money(parse_money(contract_value))
    total_paid = to_money(
        sum((p.amount for p in payments), ZERO) + parse_money(entry_ticket_value)
    )
    pending = contract - total_paid
    return PaymentSummary(
        contract_value=contract,
        total_paid=total_paid,
        pending_value=pending if pending > 0 else to_money(ZERO),
    )
