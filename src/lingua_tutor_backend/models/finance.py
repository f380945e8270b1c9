'''

'''
from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from ..database.db_enums import (
    PayoutMethod,
    PayoutStatus,
    PaymentStatus,
    WalletTransactionType,
)


# --- 1. API Input Models ---

class PayoutRequestCreate(BaseModel):
    """
    Validates the request body for a teacher's withdrawal.
    The minimum per method is enforced by the payout gate, not here.
    """
    amount: Decimal = Field(..., gt=0, decimal_places=2)
    method: PayoutMethod


class StudentPaymentCreate(BaseModel):
    # Plain string so unknown methods reach the adapter registry
    method: str


# --- 2. API Output Models ---

class PayoutRequestRead(BaseModel):
    id: UUID
    teacher_id: UUID
    amount: Decimal
    method: PayoutMethod
    minimum_amount: Decimal
    status: PayoutStatus
    requested_at: datetime
    processed_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class PaymentRead(BaseModel):
    id: UUID
    payment_reference: str
    lesson_id: Optional[UUID] = None
    method: str
    amount: Decimal
    currency: str
    status: PaymentStatus
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class WalletTransactionRead(BaseModel):
    id: UUID
    amount: Decimal
    transaction_type: WalletTransactionType
    lesson_id: Optional[UUID] = None
    payout_request_id: Optional[UUID] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class WalletRead(BaseModel):
    user_id: UUID
    balance: Decimal
    currency: str
    transactions: list[WalletTransactionRead] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)
