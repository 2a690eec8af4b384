"""
Event payment quotes.

Ties fee resolution and pricing together. Both the form preview and the
submission path call quote_event, so they can never disagree.
"""

import logging
import threading
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional

from bolzoni_pricing.config.loader import ConfigurationSnapshot

from .fee_schedule import (
    FeeResolution,
    FeesNotConfigured,
    PaymentMethod,
    SettlementSpeed,
    normalize_installments,
    resolve_fee,
)
from .pricing import PricingRequest, PricingResult, calculate_pricing

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EventQuote:
    """Fee resolution and the pricing derived from it."""
    payment_method: PaymentMethod
    resolution: FeeResolution
    pricing: PricingResult
    fees_configured: bool = True


def zero_fee_resolution(installments: Any = 1) -> FeeResolution:
    """Resolution used when no fee schedule can be read."""
    return FeeResolution(
        fee_percentage=Decimal("0"),
        monthly_interest_rate=Decimal("0"),
        has_installment_interest=False,
        fee_type="none",
        installments=normalize_installments(installments),
    )


def quote_event(
    config: ConfigurationSnapshot,
    contract_value: Any,
    entry_ticket_value: Any,
    payment_method: Any,
    card_type: Optional[Any] = None,
    installments: Any = 1,
    settlement_speed: Optional[SettlementSpeed] = None,
) -> EventQuote:
    """Quote the payment of an event's contract value.

    Args:
        config: Configuration snapshot
        contract_value: Agreed contract value
        entry_ticket_value: Entry paid up front
        payment_method: Method for the remaining balance
        card_type: Card brand group for debit
        installments: Installment count (clamped to >= 1)
        settlement_speed: Settlement speed for tiered credit fees

    Returns:
        EventQuote with the resolution and pricing

    Raises:
        ValueError: If the payment method, card type or amounts are invalid
    """
    method = PaymentMethod.parse(payment_method)
    try:
        resolution = resolve_fee(config, method, card_type, installments, settlement_speed)
        fees_configured = True
    except FeesNotConfigured as e:
        logger.warning("%s; quoting %s without fees", e, method.value)
        resolution = zero_fee_resolution(installments)
        fees_configured = False

    pricing = calculate_pricing(
        PricingRequest.for_contract(contract_value, entry_ticket_value, resolution)
    )
    logger.debug(
        "Quoted %s %sx: fee %s%%, final total %s",
        method.value, resolution.installments, resolution.fee_percentage, pricing.final_total,
    )
    return EventQuote(
        payment_method=method,
        resolution=resolution,
        pricing=pricing,
        fees_configured=fees_configured,
    )


class PreviewSequencer:
    """Orders fee lookups made while a form is being edited.

    Every lookup takes a ticket before it starts. A response is applied only
    if its ticket is still the newest one, so a slow response to a
    superseded lookup is discarded instead of overwriting a newer result.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._latest = 0
        self._applied: Optional[FeeResolution] = None

    def begin(self) -> int:
        """Start a lookup, superseding every lookup still in flight."""
        with self._lock:
            self._latest += 1
            return self._latest

    def is_current(self, ticket: int) -> bool:
        with self._lock:
            return ticket == self._latest

    def complete(self, ticket: int, resolution: FeeResolution) -> bool:
        """Apply a lookup's result if it is still the newest one.

        Returns:
            True if the resolution was applied, False if it was superseded
        """
        with self._lock:
            if ticket != self._latest:
                logger.debug("Discarding superseded fee lookup %s (latest %s)", ticket, self._latest)
                return False
            self._applied = resolution
            return True

    def fail(self, ticket: int, installments: Any = 1) -> bool:
        """Record a failed lookup; the current one falls back to zero fees."""
        return self.complete(ticket, zero_fee_resolution(installments))

    @property
    def current(self) -> FeeResolution:
        """Latest applied resolution, zero fees until one arrives."""
        with self._lock:
            return self._applied or zero_fee_resolution()
