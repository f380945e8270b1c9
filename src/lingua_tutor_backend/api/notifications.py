'''
API endpoints for the current user's notifications.
'''
from typing import Annotated, Any
from uuid import UUID
from fastapi import APIRouter, Depends, Query

from ..database import models as db_models
from ..models import notifications as notification_models
from ..services.security import verify_token_and_get_user
from ..services.notification_service import NotificationService

class NotificationsAPI:
    def __init__(self):
        self.router = APIRouter(
            prefix="/notifications",
            tags=["Notifications"]
        )
        self._register_routes()

    def _register_routes(self):
        self.router.add_api_route(
                "/",
                self.list_notifications,
                methods=["GET"],
                response_model=list[notification_models.NotificationRead])
        self.router.add_api_route(
                "/{notification_id}/read",
                self.mark_read,
                methods=["PATCH"],
                response_model=notification_models.NotificationRead)

    async def list_notifications(
        self,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        notification_service: Annotated[NotificationService, Depends(NotificationService)],
        unread_only: Annotated[bool, Query(alias="unreadOnly")] = False
    ) -> list[Any]:
        return await notification_service.list_for_user(current_user, unread_only=unread_only)

    async def mark_read(
        self,
        notification_id: UUID,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        notification_service: Annotated[NotificationService, Depends(NotificationService)]
    ) -> Any:
        return await notification_service.mark_read(notification_id, current_user)

# Instantiate the class and export its router
notifications_api = NotificationsAPI()
router = notifications_api.router
