'''

'''
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from ..database.db_enums import TicketCategory, TicketPriority, TicketStatus


class SupportTicketCreate(BaseModel):
    category: TicketCategory
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)


class SupportTicketRead(BaseModel):
    id: UUID
    ticket_reference: str
    user_id: UUID
    category: TicketCategory
    title: str
    description: str
    priority: TicketPriority
    status: TicketStatus
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
