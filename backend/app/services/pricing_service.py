"""Centralized pricing calculations for bookings."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Dict, Union

from app.core.constants import (
    CANCELLATION_FEE_PERCENTAGE,
    PLATFORM_FEE,
    STRIPE_FEE_FIXED,
    STRIPE_FEE_PERCENTAGE,
    TAX_RATE,
)
from app.core.exceptions import ValidationException

CENT = Decimal("0.01")
MINUTES_PER_HOUR = Decimal(60)

Money = Union[Decimal, int, float, str]


def to_decimal(value: Money) -> Decimal:
    """Convert user or DB input to Decimal without float artefacts."""
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise ValidationException("amount must be a number", details={"value": str(value)}) from exc


def round_money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class FeeBreakdown:
    """Charge breakdown in major currency units, each rounded to the cent."""

    gross_amount: Decimal
    platform_fee: Decimal
    stripe_fee: Decimal
    tax_fee: Decimal
    total_amount: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {key: str(value) for key, value in asdict(self).items()}


class PricingService:
    """
    Stateless pricing rules.

    Every output is computed from unrounded intermediates and rounded half-up
    exactly once, so stored totals can be recomputed to the cent.
    """

    @staticmethod
    def calculate_gross(hourly_rate: Money, duration_minutes: int) -> Decimal:
        rate = to_decimal(hourly_rate)
        return round_money(rate * Decimal(duration_minutes) / MINUTES_PER_HOUR)

    @staticmethod
    def verify_gross(submitted: Money, hourly_rate: Money, duration_minutes: int) -> Decimal:
        """
        Reject client-submitted prices that differ from the computed gross.

        Returns the computed gross on success.
        """
        expected = PricingService.calculate_gross(hourly_rate, duration_minutes)
        provided = to_decimal(submitted)
        if provided != expected:
            raise ValidationException(
                f"Invalid gross amount. Expected {expected}",
                code="PRICE_MISMATCH",
                details={"expected": str(expected), "submitted": str(provided)},
            )
        return expected

    @staticmethod
    def fee_breakdown(gross_amount: Money) -> FeeBreakdown:
        gross = to_decimal(gross_amount)
        total_raw = (gross * (1 + TAX_RATE + PLATFORM_FEE) + STRIPE_FEE_FIXED) / (
            1 - STRIPE_FEE_PERCENTAGE
        )
        stripe_raw = total_raw * STRIPE_FEE_PERCENTAGE + STRIPE_FEE_FIXED
        return FeeBreakdown(
            gross_amount=round_money(gross),
            platform_fee=round_money(gross * PLATFORM_FEE),
            stripe_fee=round_money(stripe_raw),
            tax_fee=round_money(gross * TAX_RATE),
            total_amount=round_money(total_raw),
        )

    @staticmethod
    def to_minor_units(amount: Money) -> int:
        """Dollars to cents for the payment processor."""
        return int((to_decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))

    @staticmethod
    def cancellation_penalty(gross_amount: Money) -> Decimal:
        return round_money(to_decimal(gross_amount) * CANCELLATION_FEE_PERCENTAGE)
