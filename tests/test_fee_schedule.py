"""
Unit tests for fee resolution.

Tests flat and tiered schedules, interest lookup and input clamping.
"""

from decimal import Decimal

import pytest

from bolzoni_pricing.config.loader import ConfigurationSnapshot, FeeMode, FlatFees
from bolzoni_pricing.core.fee_schedule import (
    CardType,
    FeesNotConfigured,
    PaymentMethod,
    SettlementSpeed,
    monthly_interest_for_installments,
    normalize_installments,
    resolve_fee,
)


def flat_config(rate: str = "1.99", fees: bool = True) -> ConfigurationSnapshot:
    """Create a flat schedule configuration."""
    return ConfigurationSnapshot(
        mode=FeeMode.FLAT,
        flat_fees=FlatFees(
            debit=Decimal("1.50"),
            credit_cash=Decimal("3.00"),
            credit_installments=Decimal("4.00"),
        ) if fees else None,
        manual_monthly_interest_rate=Decimal(rate),
    )


class TestPaymentMethod:
    """Test payment method parsing."""

    def test_parse_english_names(self):
        assert PaymentMethod.parse("credit_card") == PaymentMethod.CREDIT_CARD
        assert PaymentMethod.parse("PIX") == PaymentMethod.PIX

    def test_parse_stored_portuguese_names(self):
        """Verify the names stored by the back office are accepted."""
        assert PaymentMethod.parse("cartao_credito") == PaymentMethod.CREDIT_CARD
        assert PaymentMethod.parse("cartao_debito") == PaymentMethod.DEBIT_CARD
        assert PaymentMethod.parse("dinheiro") == PaymentMethod.CASH

    def test_unknown_method_raises_error(self):
        with pytest.raises(ValueError, match="Unknown payment method"):
            PaymentMethod.parse("boleto")


class TestInstallmentNormalization:
    """Test installment count clamping."""

    @pytest.mark.parametrize("value,expected", [
        (None, 1),
        ("", 1),
        ("abc", 1),
        (-3, 1),
        ("0", 1),
        ("2.7", 2),
        (True, 1),
        (12, 12),
        ("18", 18),
    ])
    def test_normalize(self, value, expected):
        assert normalize_installments(value) == expected


class TestMonthlyInterestLookup:
    """Test the tiered monthly interest table."""

    def test_table_values(self):
        assert monthly_interest_for_installments(1) == Decimal("0.00")
        assert monthly_interest_for_installments(5) == Decimal("2.10")
        assert monthly_interest_for_installments(10) == Decimal("2.82")
        assert monthly_interest_for_installments(12) == Decimal("3.11")

    def test_extrapolates_above_twelve(self):
        """Verify counts above 12 follow the 5x-10x slope."""
        # (2.82 - 2.10) / 5 = 0.144 per installment
        assert monthly_interest_for_installments(13) == Decimal("3.254")
        assert monthly_interest_for_installments(18) == Decimal("3.974")

    def test_extrapolation_keeps_growing(self):
        rates = [monthly_interest_for_installments(n) for n in range(12, 25)]
        assert rates == sorted(rates)
        assert len(set(rates)) == len(rates)


class TestNonCardMethods:
    """Test methods that never carry fees."""

    @pytest.mark.parametrize("method", ["cash", "pix", "dinheiro"])
    def test_no_fee_and_no_interest(self, method):
        resolution = resolve_fee(ConfigurationSnapshot(), method, installments=6)
        assert resolution.fee_percentage == 0
        assert resolution.monthly_interest_rate == 0
        assert resolution.has_installment_interest is False
        assert resolution.fee_type == "none"
        assert resolution.installments == 6

    def test_no_schedule_lookup_for_cash(self):
        """Verify an unconfigured flat schedule does not matter for cash."""
        resolution = resolve_fee(flat_config(fees=False), "cash")
        assert resolution.fee_percentage == 0


class TestTieredSchedule:
    """Test the processor's tiered rate card."""

    def test_debit_visa_master_by_default(self):
        resolution = resolve_fee(ConfigurationSnapshot(), "debit_card")
        assert resolution.fee_percentage == Decimal("1.05")
        assert resolution.fee_type == "sumup_debit_visa_master"
        assert resolution.has_installment_interest is False

    def test_debit_other_brands(self):
        resolution = resolve_fee(ConfigurationSnapshot(), "debit_card", CardType.OTHERS)
        assert resolution.fee_percentage == Decimal("2.55")
        assert resolution.fee_type == "sumup_debit_others"

    def test_debit_never_carries_interest(self):
        resolution = resolve_fee(ConfigurationSnapshot(), "debit_card", "others", installments=4)
        assert resolution.has_installment_interest is False

    def test_unknown_card_type_raises_error(self):
        with pytest.raises(ValueError, match="Unknown card type"):
            resolve_fee(ConfigurationSnapshot(), "debit_card", "amex")

    @pytest.mark.parametrize("card_type,expected", [
        ("VISA_MASTER", CardType.VISA_MASTER),
        (" Others ", CardType.OTHERS),
        ("", CardType.VISA_MASTER),
        (None, CardType.VISA_MASTER),
        (CardType.OTHERS, CardType.OTHERS),
    ])
    def test_card_type_parsing_ignores_case(self, card_type, expected):
        """Verify card types are read like payment methods."""
        assert CardType.parse(card_type) == expected

    def test_uppercase_card_type_resolves(self):
        resolution = resolve_fee(ConfigurationSnapshot(), "DEBIT_CARD", "OTHERS")
        assert resolution.fee_percentage == Decimal("2.55")
        assert resolution.fee_type == "sumup_debit_others"

    def test_credit_cash(self):
        resolution = resolve_fee(ConfigurationSnapshot(), "credit_card", installments=1)
        assert resolution.fee_percentage == Decimal("4.49")
        assert resolution.fee_type == "sumup_credit_cash"
        assert resolution.monthly_interest_rate == Decimal("0.00")
        assert resolution.has_installment_interest is False

    def test_credit_installments(self):
        resolution = resolve_fee(ConfigurationSnapshot(), "cartao_credito", installments=5)
        assert resolution.fee_percentage == Decimal("5.49")
        assert resolution.fee_type == "sumup_credit_installments"
        assert resolution.monthly_interest_rate == Decimal("2.10")
        assert resolution.has_installment_interest is True

    def test_instant_settlement(self):
        resolution = resolve_fee(
            ConfigurationSnapshot(), "credit_card", installments=5,
            settlement_speed=SettlementSpeed.INSTANT,
        )
        assert resolution.fee_percentage == Decimal("5.69")

    def test_selected_tier(self):
        config = ConfigurationSnapshot(tier_index=2)
        assert resolve_fee(config, "credit_card").fee_percentage == Decimal("3.79")
        assert resolve_fee(config, "credit_card", installments=3).fee_percentage == Decimal("4.79")

    def test_missing_tier_falls_back_to_first(self):
        config = ConfigurationSnapshot(tier_index=9)
        assert resolve_fee(config, "credit_card").fee_percentage == Decimal("4.49")

    def test_invalid_installments_are_clamped(self):
        resolution = resolve_fee(ConfigurationSnapshot(), "credit_card", installments="-2")
        assert resolution.installments == 1
        assert resolution.has_installment_interest is False

    def test_thirteen_installments_are_extrapolated(self):
        resolution = resolve_fee(ConfigurationSnapshot(), "credit_card", installments=13)
        assert resolution.monthly_interest_rate == Decimal("3.254")
        assert resolution.monthly_interest_rate > monthly_interest_for_installments(12)


class TestFlatSchedule:
    """Test fees configured by hand."""

    def test_debit(self):
        resolution = resolve_fee(flat_config(), "debit_card")
        assert resolution.fee_percentage == Decimal("1.50")
        assert resolution.fee_type == "custom_debit"

    def test_credit_cash(self):
        resolution = resolve_fee(flat_config(), "credit_card", installments=1)
        assert resolution.fee_percentage == Decimal("3.00")
        assert resolution.fee_type == "custom_credit_cash"
        assert resolution.has_installment_interest is False

    def test_credit_installments_use_manual_rate(self):
        resolution = resolve_fee(flat_config(), "credit_card", installments=3)
        assert resolution.fee_percentage == Decimal("4.00")
        assert resolution.fee_type == "custom_credit_installments"
        assert resolution.monthly_interest_rate == Decimal("1.99")
        assert resolution.has_installment_interest is True

    def test_zero_manual_rate_means_no_interest(self):
        resolution = resolve_fee(flat_config(rate="0"), "credit_card", installments=6)
        assert resolution.has_installment_interest is False

    def test_not_configured(self):
        """Verify a missing flat schedule is signalled, not guessed."""
        with pytest.raises(FeesNotConfigured):
            resolve_fee(flat_config(fees=False), "credit_card", installments=2)
