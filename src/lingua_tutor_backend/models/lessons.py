'''
API models and lifecycle commands for lessons.
'''
from datetime import date, datetime, time
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, computed_field

from ..database.db_enums import (
    LessonStatus,
    AttendanceStatus,
    CompletionStatus,
    AbsentParty,
)


# --- 1. Commands (API input) ---

class BookLessonCommand(BaseModel):
    """
    Validates the request body for booking a lesson.
    When price is omitted the teacher's listed price is used.
    """
    teacher_id: UUID
    lesson_date: date = Field(..., alias="date")
    start_time: time
    duration_minutes: int = Field(..., alias="duration", gt=0, le=240)
    price: Optional[Decimal] = Field(None, gt=0)
    language: Optional[str] = None
    notes: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)


class MarkAbsentCommand(BaseModel):
    party: AbsentParty


class CompleteLessonCommand(BaseModel):
    student_confirmation: bool


class AcceptRescheduleCommand(BaseModel):
    lesson_date: date = Field(..., alias="date")
    start_time: time

    model_config = ConfigDict(populate_by_name=True)


class CancelLessonCommand(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


# --- 2. API Output Models ---

class LessonRead(BaseModel):
    """
    The API model for a lesson. Money fields are the values frozen at booking.
    """
    id: UUID
    student_id: UUID
    teacher_id: UUID
    language: Optional[str] = None
    lesson_date: date
    start_time: time
    end_time: time
    duration_minutes: int
    price: Decimal
    commission: Decimal
    tax: Decimal
    total_amount: Decimal
    status: LessonStatus
    attendance_status: AttendanceStatus
    completion_status: CompletionStatus
    reschedule_count: int
    reschedule_deadline: Optional[datetime] = None
    auto_complete_at: datetime
    reminder_sent: bool
    payment_released_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    refund_percentage: Optional[int] = None
    refund_amount: Optional[Decimal] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @computed_field
    @property
    def payment_released(self) -> bool:
        return self.payment_released_at is not None

    model_config = ConfigDict(from_attributes=True)
