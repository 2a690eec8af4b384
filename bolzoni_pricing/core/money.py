"""
Money and percentage parsing.

Handles the loose monetary strings staff type into forms.
"""

import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

CENT = Decimal("0.01")
ZERO = Decimal("0")

# "1.234" or "12.345.678": dots grouping thousands, no decimal part
_THOUSANDS_ONLY = re.compile(r"^-?[1-9]\d{0,2}(\.\d{3})+$")


def parse_money(value: Any) -> Decimal:
    """Parse a monetary value, treating anything unparsable as zero.

    Accepts Decimal, int, float and strings in either plain ("1234.56")
    or Brazilian ("R$ 1.234,56") notation. A string whose dots all
    separate groups of three digits, such as "1.234", is read as
    Brazilian thousands (1234); floats are taken as they are.

    Args:
        value: Raw value from a form field or settings store

    Returns:
        Parsed Decimal, or 0 when the value cannot be read
    """
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        return value if value.is_finite() else ZERO
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        parsed = Decimal(str(value))
        return parsed if parsed.is_finite() else ZERO
    if not isinstance(value, str):
        return ZERO

    text = value.strip().replace("R$", "").replace(" ", "")
    if not text:
        return ZERO

    if "," in text or _THOUSANDS_ONLY.match(text):
        # pt-BR: dots group thousands, comma marks decimals
        text = text.replace(".", "").replace(",", ".")

    try:
        parsed = Decimal(text)
    except InvalidOperation:
        return ZERO
    return parsed if parsed.is_finite() else ZERO


def as_decimal(value: Any) -> Decimal:
    """Convert a trusted numeric value to Decimal.

    Raises:
        ValueError: If the value is not a finite number
    """
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise ValueError(f"Expected a number, got {value!r}")
    else:
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValueError(f"Expected a number, got {value!r}")
    if not result.is_finite():
        raise ValueError(f"Expected a finite number, got {value!r}")
    return result


def to_money(amount: Decimal) -> Decimal:
    """Round to cents, half up."""
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)
