'''
Payment adapters for charging students.

Each adapter wraps one external payment provider and reports a plain
success/failure. The providers themselves are outside this service, so the
built-in adapters approve every charge.
'''
from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol

from ..common.exceptions import UnsupportedPaymentMethodError
from ..common.logger import log
from ..database.db_enums import PaymentMethodType


@dataclass(frozen=True)
class ChargeRequest:
    """Normalized charge handed to a payment adapter."""
    payment_reference: str
    amount: Decimal
    currency: str
    description: str


class PaymentAdapter(Protocol):
    """Provider interface used by the payment ledger."""

    method: PaymentMethodType

    async def charge(self, request: ChargeRequest) -> bool:
        """Charges the student. Returns True on success."""


class PayPalAdapter:
    method = PaymentMethodType.PAYPAL

    async def charge(self, request: ChargeRequest) -> bool:
        log.info(f"PayPal charge {request.payment_reference}: {request.amount} {request.currency}")
        return True


class CardAdapter:
    """Visa and Mastercard go through the same card processor."""

    def __init__(self, method: PaymentMethodType):
        self.method = method

    async def charge(self, request: ChargeRequest) -> bool:
        log.info(f"Card ({self.method.value}) charge {request.payment_reference}: {request.amount} {request.currency}")
        return True


class WalletPayAdapter:
    """Google Pay, Apple Pay and WeChat Pay tokenized wallet charges."""

    def __init__(self, method: PaymentMethodType):
        self.method = method

    async def charge(self, request: ChargeRequest) -> bool:
        log.info(f"{self.method.value} charge {request.payment_reference}: {request.amount} {request.currency}")
        return True


_ADAPTERS: dict[PaymentMethodType, PaymentAdapter] = {
    PaymentMethodType.PAYPAL: PayPalAdapter(),
    PaymentMethodType.VISA: CardAdapter(PaymentMethodType.VISA),
    PaymentMethodType.MASTERCARD: CardAdapter(PaymentMethodType.MASTERCARD),
    PaymentMethodType.GOOGLE_PAY: WalletPayAdapter(PaymentMethodType.GOOGLE_PAY),
    PaymentMethodType.APPLE_PAY: WalletPayAdapter(PaymentMethodType.APPLE_PAY),
    PaymentMethodType.WECHAT_PAY: WalletPayAdapter(PaymentMethodType.WECHAT_PAY),
}


def get_payment_adapter(method: str) -> PaymentAdapter:
    try:
        return _ADAPTERS[PaymentMethodType(method)]
    except ValueError:
        raise UnsupportedPaymentMethodError(f"Unsupported payment method '{method}'.")


def register_payment_adapter(adapter: PaymentAdapter) -> None:
    """Replaces the adapter for a method, e.g. with a real provider integration."""
    _ADAPTERS[adapter.method] = adapter
