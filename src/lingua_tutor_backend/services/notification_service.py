'''
Notification outbox.

Notifications are written in the caller's transaction, so a transition that
rolls back never leaves a message behind for something that did not happen.
'''
from typing import Annotated, Optional
from uuid import UUID
from fastapi import Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..database.engine import get_db_session
from ..database import models as db_models
from ..database.db_enums import NotificationType
from ..common.exceptions import NotFoundError
from ..common.logger import log


class NotificationService:
    def __init__(self, db: Annotated[AsyncSession, Depends(get_db_session)]):
        self.db = db

    async def notify(
        self,
        user_id: UUID,
        notification_type: NotificationType,
        title: str,
        message: str,
        lesson_id: Optional[UUID] = None
    ) -> db_models.Notifications:
        notification = db_models.Notifications(
            user_id=user_id,
            lesson_id=lesson_id,
            notification_type=notification_type.value,
            title=title,
            message=message,
        )
        self.db.add(notification)
        await self.db.flush()
        log.info(f"Queued '{notification_type.value}' notification for user {user_id} (lesson: {lesson_id})")
        return notification

    async def list_for_user(self, current_user: db_models.Users, unread_only: bool = False) -> list[db_models.Notifications]:
        log.info(f"Listing notifications for user {current_user.id} (unread_only={unread_only})")
        stmt = select(db_models.Notifications).filter(
            db_models.Notifications.user_id == current_user.id
        )
        if unread_only:
            stmt = stmt.filter(db_models.Notifications.is_read.is_(False))
        stmt = stmt.order_by(db_models.Notifications.created_at.desc())
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def mark_read(self, notification_id: UUID, current_user: db_models.Users) -> db_models.Notifications:
        """
        Marks one of the user's notifications as read. Another user's
        notification is reported as not found.
        """
        notification = await self.db.get(db_models.Notifications, notification_id)
        if notification is None or notification.user_id != current_user.id:
            raise NotFoundError(f"Notification {notification_id} not found.")
        notification.is_read = True
        await self.db.flush()
        return notification
