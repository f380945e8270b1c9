'''
API endpoints for support tickets.
'''
from typing import Annotated, Any
from uuid import UUID
from fastapi import APIRouter, Depends, status

from ..database import models as db_models
from ..models import support as support_models
from ..services.security import verify_token_and_get_user
from ..services.support_service import SupportService

class SupportAPI:
    """
    A class to encapsulate endpoints for Support Tickets.
    """
    def __init__(self):
        self.router = APIRouter(
            prefix="/support",
            tags=["Support"]
        )
        self._register_routes()

    def _register_routes(self):
        """Registers all the API routes for this class."""
        self.router.add_api_route(
                "/tickets",
                self.create_ticket,
                methods=["POST"],
                status_code=status.HTTP_201_CREATED,
                response_model=support_models.SupportTicketRead)
        self.router.add_api_route(
                "/tickets",
                self.list_tickets,
                methods=["GET"],
                response_model=list[support_models.SupportTicketRead])
        self.router.add_api_route(
                "/tickets/{ticket_id}",
                self.get_ticket,
                methods=["GET"],
                response_model=support_models.SupportTicketRead)

    async def create_ticket(
        self,
        ticket_data: support_models.SupportTicketCreate,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        support_service: Annotated[SupportService, Depends(SupportService)]
    ) -> Any:
        return await support_service.create_ticket(current_user, ticket_data)

    async def list_tickets(
        self,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        support_service: Annotated[SupportService, Depends(SupportService)]
    ) -> list[Any]:
        """
        Lists the current user's tickets. Admins see every ticket.
        """
        return await support_service.list_tickets(current_user)

    async def get_ticket(
        self,
        ticket_id: UUID,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        support_service: Annotated[SupportService, Depends(SupportService)]
    ) -> Any:
        return await support_service.get_ticket(ticket_id, current_user)

# Instantiate the class and export its router
support_api = SupportAPI()
router = support_api.router
