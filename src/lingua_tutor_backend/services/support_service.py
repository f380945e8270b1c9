'''

'''
from typing import Annotated
from uuid import UUID
from fastapi import Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..database.engine import get_db_session
from ..database import models as db_models
from ..database.db_enums import UserRole, TicketPriority, TicketStatus
from ..common.exceptions import NotFoundError
from ..common.logger import log
from ..common.security_utils import generate_reference
from ..models import support as support_models


class SupportService:
    """
    Support tickets. Users see their own tickets and admins see all of them.
    """
    def __init__(self, db: Annotated[AsyncSession, Depends(get_db_session)]):
        self.db = db

    async def create_ticket(
        self,
        current_user: db_models.Users,
        ticket_data: support_models.SupportTicketCreate
    ) -> db_models.SupportTickets:
        ticket = db_models.SupportTickets(
            ticket_reference=generate_reference("TKT"),
            user_id=current_user.id,
            category=ticket_data.category.value,
            title=ticket_data.title,
            description=ticket_data.description,
            priority=TicketPriority.MEDIUM.value,
            status=TicketStatus.OPEN.value,
        )
        self.db.add(ticket)
        await self.db.flush()
        log.info(f"User {current_user.id} opened support ticket {ticket.ticket_reference} ({ticket.category})")
        return ticket

    async def list_tickets(self, current_user: db_models.Users) -> list[db_models.SupportTickets]:
        stmt = select(db_models.SupportTickets)
        if current_user.role != UserRole.ADMIN.value:
            stmt = stmt.filter(db_models.SupportTickets.user_id == current_user.id)
        stmt = stmt.order_by(db_models.SupportTickets.created_at.desc())
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_ticket(self, ticket_id: UUID, current_user: db_models.Users) -> db_models.SupportTickets:
        ticket = await self.db.get(db_models.SupportTickets, ticket_id)
        if ticket is None:
            raise NotFoundError(f"Support ticket {ticket_id} not found.")
        if current_user.role != UserRole.ADMIN.value and ticket.user_id != current_user.id:
            log.warning(f"User {current_user.id} tried to read ticket {ticket_id} of user {ticket.user_id}")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You do not have permission to view this ticket."
            )
        return ticket
