'''

'''
from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from ..database.db_enums import NotificationType


class NotificationRead(BaseModel):
    id: UUID
    lesson_id: Optional[UUID] = None
    notification_type: NotificationType
    title: str
    message: str
    is_read: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
