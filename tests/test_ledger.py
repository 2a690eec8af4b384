"""
Unit tests for ledger entry building.
"""

from datetime import date
from decimal import Decimal

import pytest

from bolzoni_pricing.config.loader import ConfigurationSnapshot
from bolzoni_pricing.core.ledger import (
    add_months,
    build_event_receivable,
    build_purchase_payables,
    submit_event_payment,
)
from bolzoni_pricing.storage.models import TransactionType


class TestAddMonths:
    """Test monthly due date arithmetic."""

    def test_same_day_next_months(self):
        assert add_months(date(2025, 11, 15), 3) == date(2026, 2, 15)

    def test_day_is_clamped_to_month_end(self):
        assert add_months(date(2025, 1, 31), 1) == date(2025, 2, 28)
        assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)

    def test_zero_months(self):
        assert add_months(date(2025, 5, 10), 0) == date(2025, 5, 10)


class TestPurchasePayables:
    """Test payables created for purchases."""

    def test_single_payment(self):
        payables = build_purchase_payables(
            "Tecido", "Loja Central", "459,90", date(2025, 6, 2), notes="NF 123"
        )
        assert len(payables) == 1
        payable = payables[0]
        assert payable.type == TransactionType.PAYABLE
        assert payable.description == "Compra: Tecido - Loja Central"
        assert payable.amount == Decimal("459.90")
        assert payable.due_date == date(2025, 6, 2)
        assert payable.notes == "NF 123"
        assert payable.is_paid is False

    def test_installments(self):
        payables = build_purchase_payables(
            "Fantasias", "Ateliê", "1000", date(2025, 1, 10),
            installments=3, first_installment_date=date(2025, 1, 31),
        )
        assert [p.amount for p in payables] == [Decimal("333.33")] * 3
        assert [p.due_date for p in payables] == [
            date(2025, 1, 31), date(2025, 2, 28), date(2025, 3, 31),
        ]
        assert payables[1].description == "Compra: Fantasias - Ateliê (2/3)"

    def test_installments_require_first_date(self):
        with pytest.raises(ValueError, match="first_installment_date"):
            build_purchase_payables("X", "Y", "100", date(2025, 1, 1), installments=2)

    def test_amount_must_be_positive(self):
        with pytest.raises(ValueError, match="must be > 0"):
            build_purchase_payables("X", "Y", "0", date(2025, 1, 1))


class TestEventReceivable:
    """Test the receivable recorded when an event completes."""

    def test_due_on_payment_date(self):
        receivable = build_event_receivable(
            "evt-1", "Aniversário Ana", "Maria", "1500.00",
            event_date=date(2025, 3, 8),
            completed_on=date(2025, 3, 15),
            payment_date=date(2025, 3, 20),
        )
        assert receivable.type == TransactionType.RECEIVABLE
        assert receivable.description == "Evento: Aniversário Ana - Maria"
        assert receivable.amount == Decimal("1500.00")
        assert receivable.due_date == date(2025, 3, 20)
        assert receivable.event_id == "evt-1"
        assert "15/03/2025" in receivable.notes

    def test_due_on_event_date_without_payment_date(self):
        receivable = build_event_receivable(
            "evt-1", "Festa", None, "900", date(2025, 3, 8), date(2025, 3, 8)
        )
        assert receivable.due_date == date(2025, 3, 8)
        assert receivable.description.endswith("- Cliente")

    def test_no_receivable_without_contract_value(self):
        assert build_event_receivable("evt-1", "Festa", "Ana", "0", date(2025, 3, 8), date(2025, 3, 8)) is None


class TestSubmitEventPayment:
    """Test receivables re-derived on submission."""

    def test_entry_and_even_installments(self):
        rows = submit_event_payment(
            ConfigurationSnapshot(), "evt-9", "Festa Junina", "1000", "200", "pix",
            first_due_date=date(2025, 7, 5), installments=3,
            entry_date=date(2025, 6, 1),
        )
        assert [r.amount for r in rows] == [
            Decimal("200.00"), Decimal("266.67"), Decimal("266.67"), Decimal("266.66"),
        ]
        assert sum(r.amount for r in rows) == Decimal("1000.00")
        assert rows[0].due_date == date(2025, 6, 1)
        assert [r.due_date for r in rows[1:]] == [date(2025, 7, 5), date(2025, 8, 5), date(2025, 9, 5)]
        assert all(r.event_id == "evt-9" for r in rows)
        assert rows[1].notes is None

    def test_credit_installments_include_fee_and_interest(self):
        rows = submit_event_payment(
            ConfigurationSnapshot(), "evt-9", "Festa", "1000", "0", "credit_card",
            first_due_date=date(2025, 7, 5), installments=5,
        )
        assert len(rows) == 5
        assert all(r.amount == Decimal("224.46") for r in rows)
        assert "5.49%" in rows[0].notes
        assert rows[1].notes is None

    def test_entry_only(self):
        rows = submit_event_payment(
            ConfigurationSnapshot(), "evt-9", "Festa", "500", "500", "cash",
            first_due_date=date(2025, 7, 5),
        )
        assert len(rows) == 1
        assert rows[0].amount == Decimal("500.00")
