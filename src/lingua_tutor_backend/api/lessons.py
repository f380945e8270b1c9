'''
API endpoints for the lesson lifecycle: attendance, completion, reschedule,
cancellation and payment.
'''
from typing import Annotated, Any, Optional
from uuid import UUID
from fastapi import APIRouter, Depends, Query, status

from ..database import models as db_models
from ..database.db_enums import LessonStatus
from ..models import lessons as lesson_models
from ..models import finance as finance_models
from ..services.security import verify_token_and_get_user
from ..services.lesson_service import LessonService
from ..services.ledger_service import PaymentLedgerService

class LessonsAPI:
    """
    A class to encapsulate endpoints for Lessons.
    """
    def __init__(self):
        self.router = APIRouter(
            prefix="/lessons",
            tags=["Lessons"]
        )
        self._register_routes()

    def _register_routes(self):
        """Registers all the API routes for this class."""
        self.router.add_api_route(
                "/",
                self.list_lessons,
                methods=["GET"],
                response_model=list[lesson_models.LessonRead])
        self.router.add_api_route(
                "/{lesson_id}",
                self.get_lesson,
                methods=["GET"],
                response_model=lesson_models.LessonRead)
        self.router.add_api_route(
                "/{lesson_id}/absence",
                self.mark_absent,
                methods=["POST"],
                response_model=lesson_models.LessonRead)
        self.router.add_api_route(
                "/{lesson_id}/complete",
                self.complete_lesson,
                methods=["POST"],
                response_model=lesson_models.LessonRead)
        self.router.add_api_route(
                "/{lesson_id}/reschedule",
                self.accept_reschedule,
                methods=["POST"],
                response_model=lesson_models.LessonRead)
        self.router.add_api_route(
                "/{lesson_id}/cancel",
                self.cancel_lesson,
                methods=["POST"],
                response_model=lesson_models.LessonRead)
        self.router.add_api_route(
                "/{lesson_id}/payments",
                self.pay_for_lesson,
                methods=["POST"],
                status_code=status.HTTP_201_CREATED,
                response_model=finance_models.PaymentRead)

    async def list_lessons(
        self,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        lesson_service: Annotated[LessonService, Depends(LessonService)],
        lesson_status: Annotated[Optional[LessonStatus], Query(alias="status")] = None
    ) -> list[Any]:
        """
        Lists the current user's lessons, optionally filtered by status.
        """
        return await lesson_service.list_lessons_for_user(current_user, lesson_status)

    async def get_lesson(
        self,
        lesson_id: UUID,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        lesson_service: Annotated[LessonService, Depends(LessonService)]
    ) -> Any:
        return await lesson_service.get_lesson_for_user(lesson_id, current_user)

    async def mark_absent(
        self,
        lesson_id: UUID,
        command: lesson_models.MarkAbsentCommand,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        lesson_service: Annotated[LessonService, Depends(LessonService)]
    ) -> Any:
        """
        Records that the student or the teacher missed the lesson.
        Reported by the lesson's teacher or an admin.
        """
        return await lesson_service.mark_absent(current_user, lesson_id, command)

    async def complete_lesson(
        self,
        lesson_id: UUID,
        command: lesson_models.CompleteLessonCommand,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        lesson_service: Annotated[LessonService, Depends(LessonService)]
    ) -> Any:
        """
        The student confirms the lesson took place, which releases the teacher's payment.
        """
        return await lesson_service.complete_lesson(current_user, lesson_id, command)

    async def accept_reschedule(
        self,
        lesson_id: UUID,
        command: lesson_models.AcceptRescheduleCommand,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        lesson_service: Annotated[LessonService, Depends(LessonService)]
    ) -> Any:
        return await lesson_service.accept_reschedule(current_user, lesson_id, command)

    async def cancel_lesson(
        self,
        lesson_id: UUID,
        command: lesson_models.CancelLessonCommand,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        lesson_service: Annotated[LessonService, Depends(LessonService)]
    ) -> Any:
        """
        Cancels a lesson that has not started yet. The response carries the
        refund percentage and amount.
        """
        return await lesson_service.cancel_lesson(current_user, lesson_id, command)

    async def pay_for_lesson(
        self,
        lesson_id: UUID,
        payment_data: finance_models.StudentPaymentCreate,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        ledger_service: Annotated[PaymentLedgerService, Depends(PaymentLedgerService)]
    ) -> Any:
        return await ledger_service.process_student_payment(current_user, lesson_id, payment_data.method)

# Instantiate the class and export its router
lessons_api = LessonsAPI()
router = lessons_api.router
