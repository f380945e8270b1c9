'''

'''
from decimal import Decimal
from pydantic import BaseModel, ConfigDict


class PricingBreakdown(BaseModel):
    """
    Result of the pricing calculation. Frozen: it is computed once at
    booking and copied onto the lesson.
    """
    base_price: Decimal
    commission: Decimal
    tax: Decimal
    total_amount: Decimal

    model_config = ConfigDict(frozen=True)
