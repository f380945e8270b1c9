'''
Lesson pricing: platform commission and tax on top of the teacher's base price.
'''
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from ..common.config import settings
from ..common.exceptions import InvalidPriceError
from ..models.pricing import PricingBreakdown

CENTS = Decimal("0.01")


def to_money(value) -> Decimal:
    """Converts ints, floats, strings and Decimals to a cent-quantized Decimal."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def calculate_pricing(
    base_price,
    commission_rate: Optional[Decimal] = None,
    tax_rate: Optional[Decimal] = None
) -> PricingBreakdown:
    """
    commission = base * commission_rate
    tax        = (base + commission) * tax_rate
    total      = base + commission + tax

    Each component is rounded to cents, and the total is the sum of the
    rounded components so the breakdown always adds up.
    """
    commission_rate = settings.COMMISSION_RATE if commission_rate is None else Decimal(str(commission_rate))
    tax_rate = settings.TAX_RATE if tax_rate is None else Decimal(str(tax_rate))

    base = to_money(base_price)
    if base <= 0:
        raise InvalidPriceError(f"Lesson price must be positive, got {base_price}.")

    commission = to_money(base * commission_rate)
    tax = to_money((base + commission) * tax_rate)
    return PricingBreakdown(
        base_price=base,
        commission=commission,
        tax=tax,
        total_amount=base + commission + tax,
    )


def teacher_earning(price: Decimal, commission: Decimal) -> Decimal:
    """The amount released to the teacher once a lesson completes."""
    return to_money(price - commission)
