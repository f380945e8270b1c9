'''
API endpoints for booking lessons.
'''
from typing import Annotated, Any
from fastapi import APIRouter, Depends, status

from ..database import models as db_models
from ..models import lessons as lesson_models
from ..services.security import verify_token_and_get_user
from ..services.lesson_service import LessonService

class BookingsAPI:
    """
    A class to encapsulate endpoints for Bookings.
    """
    def __init__(self):
        self.router = APIRouter(
            prefix="/bookings",
            tags=["Bookings"]
        )
        self._register_routes()

    def _register_routes(self):
        """Registers all the API routes for this class."""
        self.router.add_api_route(
                "/",
                self.create_booking,
                methods=["POST"],
                status_code=status.HTTP_201_CREATED,
                response_model=lesson_models.LessonRead)
        self.router.add_api_route(
                "/",
                self.list_bookings,
                methods=["GET"],
                response_model=list[lesson_models.LessonRead])

    async def create_booking(
        self,
        command: lesson_models.BookLessonCommand,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        lesson_service: Annotated[LessonService, Depends(LessonService)]
    ) -> Any:
        """
        Books a lesson with a teacher. Restricted to Students.
        """
        return await lesson_service.book_lesson(current_user, command)

    async def list_bookings(
        self,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        lesson_service: Annotated[LessonService, Depends(LessonService)]
    ) -> list[Any]:
        return await lesson_service.list_lessons_for_user(current_user)

# Instantiate the class and export its router
bookings_api = BookingsAPI()
router = bookings_api.router
