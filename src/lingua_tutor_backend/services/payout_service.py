'''
Teacher payout requests.
'''
from decimal import Decimal
from typing import Annotated
from fastapi import Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..database.engine import get_db_session
from ..database import models as db_models
from ..database.db_enums import UserRole, PayoutMethod, PayoutStatus, NotificationType
from ..core.payouts import check_payout_amount
from ..core.pricing import to_money
from ..common.exceptions import ValidationError
from ..common.logger import log
from .security import authorize_role
from .notification_service import NotificationService
from .ledger_service import PaymentLedgerService


class PayoutService:
    """
    Teachers withdraw their earnings through payout requests. The minimum
    amount per method is enforced on the amount as requested, before anything
    is written, and the funds are reserved from the wallet.
    """
    def __init__(
        self,
        db: Annotated[AsyncSession, Depends(get_db_session)],
        notification_service: Annotated[NotificationService, Depends(NotificationService)],
        ledger_service: Annotated[PaymentLedgerService, Depends(PaymentLedgerService)]
    ):
        self.db = db
        self.notification_service = notification_service
        self.ledger_service = ledger_service

    async def request_payout(
        self,
        current_user: db_models.Users,
        amount: Decimal,
        method: PayoutMethod | str
    ) -> db_models.PayoutRequests:
        log.info(f"Teacher {current_user.id} requesting payout of {amount} via {method}")
        authorize_role(current_user, [UserRole.TEACHER])

        minimum = check_payout_amount(amount, method)
        if to_money(amount) != amount:
            raise ValidationError("Payout amounts cannot have fractions of a cent.")
        method = PayoutMethod(method)

        transaction = await self.ledger_service.debit_for_payout(current_user.id, amount)

        payout = db_models.PayoutRequests(
            teacher_id=current_user.id,
            amount=to_money(amount),
            method=method.value,
            minimum_amount=minimum,
            status=PayoutStatus.PENDING.value,
        )
        self.db.add(payout)
        await self.db.flush()
        transaction.payout_request_id = payout.id
        await self.db.flush()

        await self.notification_service.notify(
            current_user.id,
            NotificationType.PAYOUT_REQUESTED,
            "Payout requested",
            f"Your {method.value} payout of {payout.amount} is pending review.",
        )
        log.info(f"Payout request {payout.id} created for teacher {current_user.id}")
        return payout

    async def list_payouts(self, current_user: db_models.Users) -> list[db_models.PayoutRequests]:
        authorize_role(current_user, [UserRole.TEACHER, UserRole.ADMIN])
        stmt = select(db_models.PayoutRequests)
        if current_user.role == UserRole.TEACHER.value:
            stmt = stmt.filter(db_models.PayoutRequests.teacher_id == current_user.id)
        stmt = stmt.order_by(db_models.PayoutRequests.requested_at.desc())
        result = await self.db.execute(stmt)
        return list(result.scalars().all())
