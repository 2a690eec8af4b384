"""
Installment pricing calculations.

Computes card fee, financed value and Price-table (compound interest)
installments for the balance left after the entry payment. The same
function backs the form preview and the values recorded on submission,
so it must stay pure and deterministic.
"""

from dataclasses import dataclass
from decimal import MAX_EMAX, MIN_EMIN, Decimal, InvalidOperation, Overflow, localcontext
from typing import Any

from .fee_schedule import FeeResolution, normalize_installments
from .money import ZERO, as_decimal, to_money

HUNDRED = Decimal("100")


@dataclass(frozen=True)
class PricingRequest:
    """Inputs of one pricing computation."""
    remaining_balance: Decimal
    fee_percentage: Decimal = ZERO
    monthly_interest_rate: Decimal = ZERO
    installment_count: int = 1
    has_installment_interest: bool = False
    entry_ticket_value: Decimal = ZERO

    def __post_init__(self):
        """Coerce numbers to Decimal and validate rates."""
        for name in ("remaining_balance", "fee_percentage",
                     "monthly_interest_rate", "entry_ticket_value"):
            object.__setattr__(self, name, as_decimal(getattr(self, name)))
        object.__setattr__(
            self, "installment_count", normalize_installments(self.installment_count)
        )

        if self.fee_percentage < 0:
            raise ValueError("fee_percentage cannot be negative")
        if self.monthly_interest_rate < 0:
            raise ValueError("monthly_interest_rate cannot be negative")
        if self.entry_ticket_value < 0:
            raise ValueError("entry_ticket_value cannot be negative")

    @classmethod
    def for_contract(
        cls,
        contract_value: Any,
        entry_ticket_value: Any,
        resolution: FeeResolution,
    ) -> "PricingRequest":
        """Build a request for the balance left after the entry payment."""
        contract = as_decimal(contract_value)
        entry = as_decimal(entry_ticket_value)
        return cls(
            remaining_balance=contract - entry,
            fee_percentage=resolution.fee_percentage,
            monthly_interest_rate=resolution.monthly_interest_rate,
            installment_count=resolution.installments,
            has_installment_interest=resolution.has_installment_interest,
            entry_ticket_value=entry,
        )


@dataclass(frozen=True)
class PricingResult:
    """Payment breakdown, every amount rounded to cents."""
    fee_amount: Decimal
    value_to_finance: Decimal
    installment_amount: Decimal
    total_financed: Decimal
    interest_amount: Decimal
    final_total: Decimal
    installment_count: int
    show_breakdown: bool = True


def calculate_pricing(request: PricingRequest) -> PricingResult:
    """Calculate fee, installments and interest for a pricing request.

    The fee is a surcharge added to the balance. With installment interest
    the financed value is amortized with the Price-table formula:

        installment = value * i(1+i)^n / ((1+i)^n - 1)

    Without interest, with a single installment or with a rate that is not
    positive, the financed value is simply divided by the count.

    Args:
        request: Pricing inputs

    Returns:
        PricingResult; when nothing remains to be paid after the entry,
        every amount is zero except final_total, which equals the entry

    Raises:
        ValueError: If the installment count is too large to amortize
    """
    entry = to_money(request.entry_ticket_value)
    count = request.installment_count
    remaining = to_money(request.remaining_balance)

    if remaining <= 0:
        zero = to_money(ZERO)
        return PricingResult(
            fee_amount=zero,
            value_to_finance=zero,
            installment_amount=zero,
            total_financed=zero,
            interest_amount=zero,
            final_total=entry,
            installment_count=count,
            show_breakdown=False,
        )

    fee_amount = to_money(remaining * request.fee_percentage / HUNDRED)
    value_to_finance = remaining + fee_amount
    rate = request.monthly_interest_rate / HUNDRED

    if not request.has_installment_interest or count <= 1 or rate <= 0:
        installment_amount = to_money(value_to_finance / count)
        total_financed = value_to_finance
        interest_amount = to_money(ZERO)
    else:
        installment_amount = _price_table_installment(value_to_finance, rate, count)
        # Clients pay n rounded installments, so the total follows them
        total_financed = installment_amount * count
        interest_amount = total_financed - value_to_finance

    return PricingResult(
        fee_amount=fee_amount,
        value_to_finance=value_to_finance,
        installment_amount=installment_amount,
        total_financed=total_financed,
        interest_amount=interest_amount,
        final_total=entry + total_financed,
        installment_count=count,
    )


def _price_table_installment(value: Decimal, rate: Decimal, count: int) -> Decimal:
    """Amortize value over count installments at a monthly rate (as a fraction)."""
    try:
        # (1+i)^n outgrows the default exponent range for long tiered plans
        with localcontext() as ctx:
            ctx.Emax = MAX_EMAX
            ctx.Emin = MIN_EMIN
            growth = (1 + rate) ** count
            return to_money(value * (rate * growth) / (growth - 1))
    except (Overflow, InvalidOperation):
        raise ValueError(f"installment_count {count} is too large to amortize")
