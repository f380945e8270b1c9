'''
Payout gate: minimum withdrawal amounts per payout method.
'''
from decimal import Decimal

from ..common.config import settings
from ..common.exceptions import BelowMinimumThresholdError, ValidationError
from ..database.db_enums import PayoutMethod


def minimum_for_method(method: PayoutMethod | str) -> Decimal:
    method = PayoutMethod(method)
    if method == PayoutMethod.PAYPAL:
        return settings.PAYPAL_MINIMUM_PAYOUT
    return settings.BANK_TRANSFER_MINIMUM_PAYOUT


def check_payout_amount(amount: Decimal, method: PayoutMethod | str) -> Decimal:
    """
    Returns the method's minimum when the amount clears it.
    Raises BelowMinimumThresholdError otherwise. No fee is deducted.
    """
    try:
        method = PayoutMethod(method)
    except ValueError:
        raise ValidationError(f"Unknown payout method '{method}'.")
    minimum = minimum_for_method(method)
    if amount < minimum:
        raise BelowMinimumThresholdError(minimum=minimum, method=method.value)
    return minimum
