"""
Card fee and monthly interest resolution.

Resolves which processing fee and monthly interest rate apply to a
payment method, card type and installment count, from either the flat
schedule configured by hand or the processor's tiered rate card.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from bolzoni_pricing.config.loader import ConfigurationSnapshot, FeeMode


class PaymentMethod(Enum):
    """Payment methods accepted for events."""
    CASH = "cash"
    PIX = "pix"
    CREDIT_CARD = "credit_card"
    DEBIT_CARD = "debit_card"

    @classmethod
    def parse(cls, value: Any) -> "PaymentMethod":
        """Parse a method name, accepting the names stored by the back office.

        Raises:
            ValueError: If the method is unknown
        """
        if isinstance(value, cls):
            return value
        aliases = {
            "dinheiro": cls.CASH,
            "cartao_credito": cls.CREDIT_CARD,
            "cartao_debito": cls.DEBIT_CARD,
        }
        text = str(value or "").strip().lower()
        if text in aliases:
            return aliases[text]
        try:
            return cls(text)
        except ValueError:
            valid = [method.value for method in cls]
            raise ValueError(f"Unknown payment method {value!r}, expected one of: {valid}")

    @property
    def is_card(self) -> bool:
        return self in (PaymentMethod.CREDIT_CARD, PaymentMethod.DEBIT_CARD)


class CardType(Enum):
    """Card brand groups priced separately for debit."""
    VISA_MASTER = "visa_master"
    OTHERS = "others"

    @classmethod
    def parse(cls, value: Any) -> "CardType":
        """Parse a card brand group; blank means visa_master.

        Raises:
            ValueError: If the card type is unknown
        """
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower() or cls.VISA_MASTER.value
        try:
            return cls(text)
        except ValueError:
            valid = [card.value for card in cls]
            raise ValueError(f"Unknown card type {value!r}, expected one of: {valid}")


class SettlementSpeed(Enum):
    """How fast card receivables are settled."""
    STANDARD = "standard"  # d1 for credit cash, d30 for installments
    INSTANT = "instant"


class FeesNotConfigured(Exception):
    """Raised when the flat schedule is selected but no flat fees are stored."""


@dataclass(frozen=True)
class FeeResolution:
    """Fee and interest parameters that apply to one payment choice."""
    fee_percentage: Decimal
    monthly_interest_rate: Decimal
    has_installment_interest: bool
    fee_type: str
    installments: int


# Monthly rate (%) implied by the processor's installment simulations
MONTHLY_INTEREST_BY_INSTALLMENTS = {
    1: Decimal("0.00"),
    2: Decimal("0.53"),
    3: Decimal("1.05"),
    4: Decimal("1.58"),
    5: Decimal("2.10"),
    6: Decimal("2.24"),
    7: Decimal("2.39"),
    8: Decimal("2.53"),
    9: Decimal("2.68"),
    10: Decimal("2.82"),
    11: Decimal("2.96"),
    12: Decimal("3.11"),
}

_EXTRAPOLATION_STEP = (
    MONTHLY_INTEREST_BY_INSTALLMENTS[10] - MONTHLY_INTEREST_BY_INSTALLMENTS[5]
) / 5


def normalize_installments(value: Any) -> int:
    """Coerce an installment count to an integer >= 1.

    Missing, non-numeric and non-positive values all become 1.
    """
    if value is None or isinstance(value, bool):
        return 1
    try:
        count = int(str(value).strip())
    except ValueError:
        try:
            count = int(float(str(value).strip()))
        except (ValueError, OverflowError):
            return 1
    return count if count >= 1 else 1


def monthly_interest_for_installments(installments: int) -> Decimal:
    """Look up the tiered monthly interest rate for an installment count.

    Counts above 12 are extrapolated linearly from the 12x rate using the
    slope between the 5x and 10x rates.

    Args:
        installments: Number of installments

    Returns:
        Monthly interest rate in percent
    """
    if installments in MONTHLY_INTEREST_BY_INSTALLMENTS:
        return MONTHLY_INTEREST_BY_INSTALLMENTS[installments]
    if installments > 12:
        return MONTHLY_INTEREST_BY_INSTALLMENTS[12] + _EXTRAPOLATION_STEP * (installments - 12)
    return Decimal("0")


def resolve_fee(
    config: ConfigurationSnapshot,
    payment_method: Any,
    card_type: Optional[Any] = None,
    installments: Any = 1,
    settlement_speed: Optional[SettlementSpeed] = None,
) -> FeeResolution:
    """Resolve the fee percentage and monthly interest for a payment choice.

    Args:
        config: Configuration snapshot to read the schedule from
        payment_method: PaymentMethod or its stored name
        card_type: CardType or its name; only used for debit (default visa_master)
        installments: Requested installment count (clamped to >= 1)
        settlement_speed: Settlement speed for tiered credit fees

    Returns:
        FeeResolution for the payment choice

    Raises:
        ValueError: If the payment method or card type is unknown
        FeesNotConfigured: If the flat schedule is selected but not configured
    """
    method = PaymentMethod.parse(payment_method)
    count = normalize_installments(installments)

    if not method.is_card:
        return FeeResolution(
            fee_percentage=Decimal("0"),
            monthly_interest_rate=Decimal("0"),
            has_installment_interest=False,
            fee_type="none",
            installments=count,
        )

    if config.mode == FeeMode.TIERED:
        monthly_rate = monthly_interest_for_installments(count)
    else:
        monthly_rate = config.manual_monthly_interest_rate

    has_interest = (
        method == PaymentMethod.CREDIT_CARD and count > 1 and monthly_rate > 0
    )
    is_installment = count > 1

    if config.mode == FeeMode.FLAT:
        fees = config.flat_fees
        if fees is None:
            raise FeesNotConfigured("Custom fees are not configured")

        if method == PaymentMethod.DEBIT_CARD:
            fee, fee_type = fees.debit, "custom_debit"
        elif is_installment:
            fee, fee_type = fees.credit_installments, "custom_credit_installments"
        else:
            fee, fee_type = fees.credit_cash, "custom_credit_cash"
    else:
        tier = config.selected_tier()
        if method == PaymentMethod.DEBIT_CARD:
            brand = CardType.parse(card_type)
            fee, fee_type = tier.debit[brand.value], f"sumup_debit_{brand.value}"
        elif is_installment:
            speed = "instant" if settlement_speed == SettlementSpeed.INSTANT else "d30"
            fee, fee_type = tier.credit_installments[speed], "sumup_credit_installments"
        else:
            speed = "instant" if settlement_speed == SettlementSpeed.INSTANT else "d1"
            fee, fee_type = tier.credit_cash[speed], "sumup_credit_cash"

    return FeeResolution(
        fee_percentage=fee,
        monthly_interest_rate=monthly_rate,
        has_installment_interest=has_interest,
        fee_type=fee_type,
        installments=count,
    )
