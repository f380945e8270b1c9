'''
Payment ledger: teacher wallets and student charges.

Lesson earnings credit a teacher's wallet and payout requests debit it. Both
are recorded as wallet transactions.
'''
from decimal import Decimal
from typing import Annotated
from uuid import UUID
from fastapi import Depends, HTTPException, status
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..database.engine import get_db_session
from ..database import models as db_models
from ..database.db_enums import (
    LessonStatus,
    PaymentStatus,
    UserRole,
    WalletTransactionType,
)
from ..core.payment_methods import ChargeRequest, get_payment_adapter
from ..core.pricing import to_money
from ..common.config import settings
from ..common.exceptions import (
    InsufficientBalanceError,
    InvalidLessonTransitionError,
    LessonNotFoundError,
)
from ..common.logger import log
from ..common.security_utils import generate_reference
from .security import authorize_role


class PaymentLedgerService:
    """
    Credits teacher wallets when lessons settle and records student charges
    made through the payment adapters.
    """
    def __init__(self, db: Annotated[AsyncSession, Depends(get_db_session)]):
        self.db = db

    async def _get_or_create_wallet(self, user_id: UUID) -> db_models.Wallets:
        result = await self.db.execute(
            select(db_models.Wallets).filter(db_models.Wallets.user_id == user_id)
        )
        wallet = result.scalars().first()
        if wallet is None:
            log.info(f"Creating wallet for user {user_id}")
            wallet = db_models.Wallets(
                user_id=user_id,
                balance=Decimal("0.00"),
                currency=settings.CURRENCY
            )
            self.db.add(wallet)
            await self.db.flush()
        return wallet

    async def credit_teacher(
        self,
        teacher_id: UUID,
        amount: Decimal,
        lesson_id: UUID
    ) -> db_models.WalletTransactions:
        """
        Adds a lesson earning to the teacher's wallet. The balance is
        incremented in SQL so concurrent credits cannot overwrite each other.
        """
        amount = to_money(amount)
        wallet = await self._get_or_create_wallet(teacher_id)

        transaction = db_models.WalletTransactions(
            wallet_id=wallet.id,
            amount=amount,
            transaction_type=WalletTransactionType.LESSON_EARNING.value,
            lesson_id=lesson_id,
        )
        self.db.add(transaction)
        await self.db.execute(
            update(db_models.Wallets)
            .where(db_models.Wallets.id == wallet.id)
            .values(balance=db_models.Wallets.balance + amount)
            .execution_options(synchronize_session=False)
        )
        await self.db.flush()
        await self.db.refresh(wallet)
        log.info(f"Credited {amount} to wallet of teacher {teacher_id} for lesson {lesson_id}. New balance: {wallet.balance}")
        return transaction

    async def debit_for_payout(self, teacher_id: UUID, amount: Decimal) -> db_models.WalletTransactions:
        """
        Reserves a payout amount from the teacher's wallet. The balance check
        and the deduction are one conditional UPDATE, so two requests cannot
        both spend the same funds.
        """
        amount = to_money(amount)
        wallet = await self._get_or_create_wallet(teacher_id)

        result = await self.db.execute(
            update(db_models.Wallets)
            .where(
                db_models.Wallets.id == wallet.id,
                db_models.Wallets.balance >= amount
            )
            .values(balance=db_models.Wallets.balance - amount)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            await self.db.refresh(wallet)
            log.warning(f"Payout of {amount} rejected for teacher {teacher_id}: balance is {wallet.balance}")
            raise InsufficientBalanceError("Insufficient balance")

        transaction = db_models.WalletTransactions(
            wallet_id=wallet.id,
            amount=-amount,
            transaction_type=WalletTransactionType.PAYOUT.value,
        )
        self.db.add(transaction)
        await self.db.flush()
        await self.db.refresh(wallet)
        log.info(f"Reserved {amount} from wallet of teacher {teacher_id} for a payout. New balance: {wallet.balance}")
        return transaction

    async def get_wallet(self, current_user: db_models.Users) -> db_models.Wallets:
        authorize_role(current_user, [UserRole.TEACHER, UserRole.ADMIN])
        wallet = await self._get_or_create_wallet(current_user.id)
        result = await self.db.execute(
            select(db_models.Wallets).options(
                selectinload(db_models.Wallets.transactions)
            ).filter(db_models.Wallets.id == wallet.id)
            .execution_options(populate_existing=True)
        )
        return result.scalars().one()

    async def process_student_payment(
        self,
        current_user: db_models.Users,
        lesson_id: UUID,
        method: str
    ) -> db_models.Payments:
        """
        Charges the student for a lesson's total through the adapter for
        `method`. Both outcomes are recorded; a failed charge can be retried.
        """
        log.info(f"User {current_user.id} paying for lesson {lesson_id} via '{method}'")
        authorize_role(current_user, [UserRole.STUDENT])
        adapter = get_payment_adapter(method)

        lesson = await self.db.get(db_models.Lessons, lesson_id)
        if lesson is None:
            raise LessonNotFoundError(f"Lesson {lesson_id} not found.")
        if lesson.student_id != current_user.id:
            log.warning(f"User {current_user.id} tried to pay for lesson {lesson_id} owned by {lesson.student_id}")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You can only pay for your own lessons."
            )
        if lesson.status == LessonStatus.CANCELLED.value:
            raise InvalidLessonTransitionError(f"Lesson {lesson_id} is cancelled and cannot be paid.")

        already_paid = await self.db.execute(
            select(db_models.Payments.id).filter(
                db_models.Payments.lesson_id == lesson_id,
                db_models.Payments.status == PaymentStatus.SUCCEEDED.value
            ).limit(1)
        )
        if already_paid.scalars().first() is not None:
            raise InvalidLessonTransitionError(f"Lesson {lesson_id} has already been paid.")

        request = ChargeRequest(
            payment_reference=generate_reference("PAY", 12),
            amount=lesson.total_amount,
            currency=settings.CURRENCY,
            description=f"Lesson {lesson.id} on {lesson.lesson_date}",
        )
        succeeded = await adapter.charge(request)

        payment = db_models.Payments(
            payment_reference=request.payment_reference,
            user_id=current_user.id,
            lesson_id=lesson.id,
            method=adapter.method.value,
            amount=request.amount,
            currency=request.currency,
            status=PaymentStatus.SUCCEEDED.value if succeeded else PaymentStatus.FAILED.value,
        )
        self.db.add(payment)
        await self.db.flush()
        if succeeded:
            log.info(f"Payment {payment.payment_reference} succeeded for lesson {lesson_id}")
        else:
            log.warning(f"Payment {payment.payment_reference} failed for lesson {lesson_id}")
        return payment

    async def list_payments(self, current_user: db_models.Users) -> list[db_models.Payments]:
        result = await self.db.execute(
            select(db_models.Payments)
            .filter(db_models.Payments.user_id == current_user.id)
            .order_by(db_models.Payments.created_at.desc())
        )
        return list(result.scalars().all())
