"""
Configuration management and loading.

Builds the pricing configuration snapshot from YAML files or from the
key/value settings stored by the back office.
"""

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml


class FeeMode(Enum):
    """Which fee schedule the back office has selected."""
    FLAT = "custom"
    TIERED = "sumup"

    @classmethod
    def parse(cls, value: str) -> "FeeMode":
        """Parse a stored mode name, accepting both stored and descriptive names."""
        aliases = {
            "custom": cls.FLAT,
            "flat": cls.FLAT,
            "sumup": cls.TIERED,
            "tiered": cls.TIERED,
        }
        if not isinstance(value, str) or value.strip().lower() not in aliases:
            raise ValueError(f"Invalid fee type: {value!r}. Use 'sumup' or 'custom'")
        return aliases[value.strip().lower()]


@dataclass(frozen=True)
class FlatFees:
    """Flat card fees configured by hand, in percent."""
    debit: Decimal
    credit_cash: Decimal
    credit_installments: Decimal


@dataclass(frozen=True)
class FeeTier:
    """One revenue tier of the card processor's published rate card.

    Percentages are keyed by card brand (debit) or by settlement speed
    (credit cash: d1/instant, credit installments: d30/instant).
    """
    name: str
    debit: Dict[str, Decimal]
    credit_cash: Dict[str, Decimal]
    credit_installments: Dict[str, Decimal]


def _tier(name: str, credit_cash_d1: str, credit_cash_instant: str,
          installments_d30: str, installments_instant: str) -> FeeTier:
    return FeeTier(
        name=name,
        debit={"visa_master": Decimal("1.05"), "others": Decimal("2.55")},
        credit_cash={
            "d1": Decimal(credit_cash_d1),
            "instant": Decimal(credit_cash_instant),
        },
        credit_installments={
            "d30": Decimal(installments_d30),
            "instant": Decimal(installments_instant),
        },
    )


# Rate card as published in August 2025, ordered by monthly revenue
DEFAULT_TIERS: Tuple[FeeTier, ...] = (
    _tier("Até R$ 5.000/mês", "4.49", "4.69", "5.49", "5.69"),
    _tier("R$ 5.000 a R$ 20.000/mês", "4.09", "4.29", "5.09", "5.29"),
    _tier("R$ 20.000 a R$ 50.000/mês", "3.79", "3.99", "4.79", "4.99"),
    _tier("Acima de R$ 50.000/mês", "3.49", "3.69", "4.49", "4.69"),
)


@dataclass(frozen=True)
class ConfigurationSnapshot:
    """Everything a pricing computation reads from settings.

    Fetched once per computation and passed explicitly, so pricing never
    reaches into ambient storage.
    """
    mode: FeeMode = FeeMode.TIERED
    flat_fees: Optional[FlatFees] = None
    tier_index: int = 0
    tiers: Tuple[FeeTier, ...] = field(default=DEFAULT_TIERS)
    manual_monthly_interest_rate: Decimal = Decimal("0")
    km_rate: Decimal = Decimal("0")

    def __post_init__(self):
        """Validate numeric settings."""
        if self.tier_index < 0:
            raise ValueError("tier_index cannot be negative")
        if self.manual_monthly_interest_rate < 0:
            raise ValueError("manual_monthly_interest_rate cannot be negative")
        if self.km_rate < 0:
            raise ValueError("km_rate cannot be negative")
        if not self.tiers:
            raise ValueError("at least one fee tier is required")

    def selected_tier(self) -> FeeTier:
        """Get the configured tier, falling back to the first one."""
        if self.tier_index < len(self.tiers):
            return self.tiers[self.tier_index]
        return self.tiers[0]


SETTING_KEYS = {"fee_type", "custom_fees", "sumup_tier", "monthly_interest_rate", "km_value"}

_CUSTOM_FEE_ALIASES = {
    "debit": "debit",
    "credit_cash": "credit_cash",
    "creditCash": "credit_cash",
    "credit_installments": "credit_installments",
    "creditInstallments": "credit_installments",
}


def load_pricing_config(path: str) -> ConfigurationSnapshot:
    """Load and validate pricing configuration from a YAML file.

    Args:
        path: Path to YAML configuration file

    Returns:
        Validated ConfigurationSnapshot

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If configuration is invalid
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Pricing config file not found: {path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in config file {path}: {e}")

    if not raw_config:
        raise ValueError("Configuration file is empty")
    if not isinstance(raw_config, dict):
        raise ValueError("Configuration must be a dictionary")

    return build_snapshot(raw_config)


def build_snapshot(raw: Mapping[str, Any]) -> ConfigurationSnapshot:
    """Build a snapshot from raw settings keyed like the settings table.

    Missing keys take the back office defaults: tiered schedule, tier 0,
    no manual interest and no km rate.

    Args:
        raw: Mapping with any of fee_type, custom_fees, sumup_tier,
            monthly_interest_rate and km_value

    Returns:
        Validated ConfigurationSnapshot

    Raises:
        ValueError: If a setting is unknown or invalid
    """
    unknown_keys = set(raw.keys()) - SETTING_KEYS
    if unknown_keys:
        raise ValueError(f"Unknown configuration keys: {unknown_keys}")

    mode = FeeMode.parse(raw.get("fee_type") or "sumup")

    flat_fees = None
    custom_fees = raw.get("custom_fees")
    if custom_fees is not None:
        flat_fees = _parse_custom_fees(custom_fees)

    tier_index = _parse_tier_index(raw.get("sumup_tier", 0))

    return ConfigurationSnapshot(
        mode=mode,
        flat_fees=flat_fees,
        tier_index=tier_index,
        manual_monthly_interest_rate=_parse_rate(
            raw.get("monthly_interest_rate", 0), "monthly_interest_rate"
        ),
        km_rate=_parse_rate(raw.get("km_value", 0), "km_value"),
    )


def _parse_custom_fees(data: Any) -> FlatFees:
    """Parse flat fee percentages; entries left out count as 0%."""
    if not isinstance(data, dict):
        raise ValueError("'custom_fees' must be a dictionary")

    values = {}
    for key, value in data.items():
        if key not in _CUSTOM_FEE_ALIASES:
            raise ValueError(f"Unknown keys in custom_fees: {{{key!r}}}")
        values[_CUSTOM_FEE_ALIASES[key]] = _parse_rate(value or 0, f"custom_fees.{key}")

    return FlatFees(
        debit=values.get("debit", Decimal("0")),
        credit_cash=values.get("credit_cash", Decimal("0")),
        credit_installments=values.get("credit_installments", Decimal("0")),
    )


def _parse_tier_index(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError("'sumup_tier' must be an integer")
    try:
        index = int(str(value).strip())
    except ValueError:
        raise ValueError(f"'sumup_tier' must be an integer, got {value!r}")
    if index < 0:
        raise ValueError("'sumup_tier' cannot be negative")
    return index


def _parse_rate(value: Any, path: str) -> Decimal:
    """Parse a non-negative rate such as 2.1, "2,10" or "4,49%".

    Raises:
        ValueError: If the value is not a finite non-negative number
    """
    if isinstance(value, bool) or not isinstance(value, (int, float, str, Decimal)):
        raise ValueError(f"'{path}' must be a number")

    text = str(value).strip().replace("%", "").replace(",", ".")
    try:
        rate = Decimal(text)
    except InvalidOperation:
        raise ValueError(f"'{path}' must be a number, got {value!r}")

    if not rate.is_finite() or rate < 0:
        raise ValueError(f"'{path}' must be a non-negative number")
    return rate
