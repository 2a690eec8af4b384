"""
Ledger entries derived from purchases and events.

Builds the receivable and payable rows recorded in the financial module.
Amounts are always re-derived here from stored inputs rather than taken
from what a form displayed.
"""

import calendar
from datetime import date
from typing import Any, List, Optional

from bolzoni_pricing.config.loader import ConfigurationSnapshot
from bolzoni_pricing.storage.models import FinancialTransaction, TransactionType

from .money import as_decimal, parse_money, to_money
from .quote import EventQuote, quote_event


def add_months(start: date, months: int) -> date:
    """Shift a date by whole months, clamping the day to the month's end."""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def build_purchase_payables(
    description: str,
    supplier: str,
    amount: Any,
    purchase_date: date,
    installments: Optional[int] = None,
    first_installment_date: Optional[date] = None,
    notes: Optional[str] = None,
) -> List[FinancialTransaction]:
    """Build the payables for a purchase.

    A purchase paid in installments produces one payable per installment,
    each for total / n rounded to cents, due monthly from the first
    installment date. Otherwise a single payable is due on the purchase date.

    Args:
        description: What was bought
        supplier: Who it was bought from
        amount: Purchase total
        purchase_date: Date of the purchase
        installments: Installment count, if paid in installments
        first_installment_date: Due date of the first installment
        notes: Free-form notes copied to every payable

    Returns:
        Payables in due date order

    Raises:
        ValueError: If the amount is invalid or installments lack a first date
    """
    total = parse_money(amount)
    if total <= 0:
        raise ValueError("purchase amount must be > 0")

    label = f"Compra: {description} - {supplier}"

    if installments and installments > 1:
        if first_installment_date is None:
            raise ValueError("first_installment_date is required for installment purchases")
        installment_amount = to_money(total / installments)
        return [
            FinancialTransaction(
                type=TransactionType.PAYABLE,
                description=f"{label} ({i + 1}/{installments})",
                amount=installment_amount,
                due_date=add_months(first_installment_date, i),
                notes=notes,
            )
            for i in range(installments)
        ]

    return [
        FinancialTransaction(
            type=TransactionType.PAYABLE,
            description=label,
            amount=to_money(total),
            due_date=purchase_date,
            notes=notes,
        )
    ]


def build_event_receivable(
    event_id: str,
    title: str,
    client_name: Optional[str],
    contract_value: Any,
    event_date: date,
    completed_on: date,
    payment_date: Optional[date] = None,
) -> Optional[FinancialTransaction]:
    """Build the receivable recorded when an event is completed.

    Returns:
        The receivable, or None when the contract value is not positive
    """
    amount = to_money(as_decimal(contract_value or 0))
    if amount <= 0:
        return None

    return FinancialTransaction(
        type=TransactionType.RECEIVABLE,
        description=f"Evento: {title} - {client_name or 'Cliente'}",
        amount=amount,
        due_date=payment_date or event_date,
        event_id=event_id,
        notes=f"Evento concluído em {completed_on.strftime('%d/%m/%Y')}",
    )


def submit_event_payment(
    config: ConfigurationSnapshot,
    event_id: str,
    title: str,
    contract_value: Any,
    entry_ticket_value: Any,
    payment_method: Any,
    first_due_date: date,
    card_type: Optional[Any] = None,
    installments: Any = 1,
    entry_date: Optional[date] = None,
) -> List[FinancialTransaction]:
    """Re-derive an event's quote and build its receivables.

    The entry, when there is one, becomes its own receivable. The financed
    balance is split into one receivable per installment, the last one
    absorbing the cents lost to rounding so the rows add up to the quote's
    total.

    Args:
        config: Configuration snapshot
        event_id: Event the receivables belong to
        title: Event title used in descriptions
        contract_value: Agreed contract value
        entry_ticket_value: Entry paid up front
        payment_method: Method for the remaining balance
        first_due_date: Due date of the first installment
        card_type: Card brand group for debit
        installments: Installment count
        entry_date: Due date of the entry (defaults to first_due_date)

    Returns:
        Receivables in due date order
    """
    quote: EventQuote = quote_event(
        config, contract_value, entry_ticket_value, payment_method, card_type, installments
    )
    pricing = quote.pricing
    entries: List[FinancialTransaction] = []

    entry = pricing.final_total - pricing.total_financed
    if entry > 0:
        entries.append(FinancialTransaction(
            type=TransactionType.RECEIVABLE,
            description=f"Evento: {title} - Entrada",
            amount=entry,
            due_date=entry_date or first_due_date,
            event_id=event_id,
        ))

    if not pricing.show_breakdown:
        return entries

    count = pricing.installment_count
    remaining = pricing.total_financed
    for i in range(count):
        amount = pricing.installment_amount if i < count - 1 else remaining
        remaining -= amount
        entries.append(FinancialTransaction(
            type=TransactionType.RECEIVABLE,
            description=f"Evento: {title} ({i + 1}/{count}) - {quote.payment_method.value}",
            amount=amount,
            due_date=add_months(first_due_date, i),
            event_id=event_id,
            notes=_fee_note(quote) if i == 0 else None,
        ))
    return entries


def _fee_note(quote: EventQuote) -> Optional[str]:
    pricing = quote.pricing
    if pricing.fee_amount == 0 and pricing.interest_amount == 0:
        return None
    return (
        f"Taxa {quote.resolution.fee_percentage}% = R$ {pricing.fee_amount}; "
        f"juros R$ {pricing.interest_amount}"
    )

