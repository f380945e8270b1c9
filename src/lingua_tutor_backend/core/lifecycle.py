'''
Lesson lifecycle rules.

Pure decisions over a lesson's current state. Each transition is described by
its own frozen dataclass carrying only the fields that transition changes;
the LessonService applies them and performs the side effects.

    scheduled ──► completed      (manual / auto)
        │   ├───► rescheduled ──► scheduled (student accepts a new slot)
        │   │          └────────► completed (auto, no response)
        │   ├───► cancelled      (teacher absent)
        │   └───► cancelled      (cancelled before it starts, with a refund)
        └──────── no-show
'''
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Optional, Union
from uuid import UUID

from ..common.clock import combine
from ..common.config import settings
from ..common.exceptions import InvalidLessonTransitionError, ValidationError
from ..database.db_enums import (
    LessonStatus,
    AttendanceStatus,
    CompletionStatus,
    TERMINAL_LESSON_STATUSES,
)
from .pricing import to_money


def is_terminal(lesson) -> bool:
    return lesson.status in {s.value for s in TERMINAL_LESSON_STATUSES}


def lesson_starts_at(lesson) -> datetime:
    return combine(lesson.lesson_date, lesson.start_time)


# --- Scheduling ---

@dataclass(frozen=True)
class LessonSchedule:
    lesson_date: date
    start_time: time
    end_time: time
    starts_at: datetime
    ends_at: datetime
    reminder_at: datetime
    auto_complete_at: datetime


def plan_schedule(lesson_date: date, start_time: time, duration_minutes: int) -> LessonSchedule:
    """Derives end time, reminder time and auto-completion deadline for a slot."""
    if duration_minutes <= 0:
        raise ValidationError("Lesson duration must be a positive number of minutes.")
    starts_at = combine(lesson_date, start_time)
    ends_at = starts_at + timedelta(minutes=duration_minutes)
    return LessonSchedule(
        lesson_date=lesson_date,
        start_time=starts_at.time(),
        end_time=ends_at.time(),
        starts_at=starts_at,
        ends_at=ends_at,
        reminder_at=starts_at - timedelta(minutes=settings.REMINDER_MINUTES_BEFORE),
        auto_complete_at=ends_at + timedelta(hours=settings.AUTO_COMPLETE_AFTER_HOURS),
    )


# --- Transitions ---

@dataclass(frozen=True)
class OfferReschedule:
    """First student absence: the student may pick a new slot within the window."""
    reschedule_deadline: datetime
    response_due_at: datetime
    reschedule_count: int
    status: str = LessonStatus.RESCHEDULED.value
    attendance_status: str = AttendanceStatus.ABSENT.value

    def values(self) -> dict:
        return {
            "status": self.status,
            "attendance_status": self.attendance_status,
            "reschedule_deadline": self.reschedule_deadline,
            "reschedule_count": self.reschedule_count,
        }


@dataclass(frozen=True)
class CompleteLesson:
    """Moves a lesson into `completed`; the payment release follows it."""
    completion_status: str
    attendance_status: Optional[str] = None
    status: str = LessonStatus.COMPLETED.value

    def values(self) -> dict:
        values = {"status": self.status, "completion_status": self.completion_status}
        if self.attendance_status is not None:
            values["attendance_status"] = self.attendance_status
        return values


@dataclass(frozen=True)
class CancelForTeacherAbsence:
    status: str = LessonStatus.CANCELLED.value
    attendance_status: str = AttendanceStatus.ABSENT.value

    def values(self) -> dict:
        return {"status": self.status, "attendance_status": self.attendance_status}


@dataclass(frozen=True)
class ReenterSchedule:
    """The student accepted a reschedule offer."""
    schedule: LessonSchedule
    status: str = LessonStatus.SCHEDULED.value
    attendance_status: str = AttendanceStatus.PENDING.value

    def values(self) -> dict:
        return {
            "status": self.status,
            "attendance_status": self.attendance_status,
            "lesson_date": self.schedule.lesson_date,
            "start_time": self.schedule.start_time,
            "end_time": self.schedule.end_time,
            "auto_complete_at": self.schedule.auto_complete_at,
            "reminder_sent": False,
        }


@dataclass(frozen=True)
class CancelBooking:
    """A participant called the lesson off before it started."""
    cancelled_by: UUID
    cancellation_reason: Optional[str]
    refund_percentage: int
    refund_amount: Decimal
    status: str = LessonStatus.CANCELLED.value

    def values(self) -> dict:
        return {
            "status": self.status,
            "cancelled_by": self.cancelled_by,
            "cancellation_reason": self.cancellation_reason,
            "refund_percentage": self.refund_percentage,
            "refund_amount": self.refund_amount,
        }


LessonTransition = Union[OfferReschedule, CompleteLesson, CancelForTeacherAbsence, ReenterSchedule, CancelBooking]
StudentAbsenceOutcome = Union[OfferReschedule, CompleteLesson]


def _require_status(lesson, allowed: set[str], action: str) -> None:
    if is_terminal(lesson):
        raise InvalidLessonTransitionError(
            f"Cannot {action}: lesson {lesson.id} is already {lesson.status}."
        )
    if lesson.status not in allowed:
        raise InvalidLessonTransitionError(
            f"Cannot {action} while lesson {lesson.id} is {lesson.status}."
        )


def _require_started(lesson, now: datetime, action: str) -> None:
    if now < lesson_starts_at(lesson):
        raise InvalidLessonTransitionError(
            f"Cannot {action}: lesson {lesson.id} has not started yet."
        )


def decide_student_absence(lesson, now: datetime) -> StudentAbsenceOutcome:
    """
    The first absence earns one reschedule offer; any later absence forces
    auto-completion. reschedule_count therefore never exceeds 1.
    """
    _require_status(lesson, {LessonStatus.SCHEDULED.value}, "record a student absence")
    _require_started(lesson, now, "record a student absence")

    if lesson.reschedule_count == 0:
        return OfferReschedule(
            reschedule_deadline=now + timedelta(days=settings.RESCHEDULE_WINDOW_DAYS),
            response_due_at=now + timedelta(hours=settings.RESCHEDULE_RESPONSE_HOURS),
            reschedule_count=1,
        )
    return CompleteLesson(
        completion_status=CompletionStatus.AUTO.value,
        attendance_status=AttendanceStatus.ABSENT.value,
    )


def should_suspend_teacher(absence_count: int) -> bool:
    return absence_count >= settings.TEACHER_SUSPENSION_ABSENCES


def decide_teacher_absence(lesson, now: datetime) -> CancelForTeacherAbsence:
    """
    The lesson is cancelled. Whether the teacher is suspended depends on the
    absence counter after it is incremented, see should_suspend_teacher.
    """
    _require_status(lesson, {LessonStatus.SCHEDULED.value}, "record a teacher absence")
    _require_started(lesson, now, "record a teacher absence")
    return CancelForTeacherAbsence()


def decide_completion(lesson, completion_status: CompletionStatus) -> Optional[CompleteLesson]:
    """
    Returns None when the lesson is already completed: completing twice is a
    no-op. Cancelled and no-show lessons cannot be completed.
    """
    if lesson.status == LessonStatus.COMPLETED.value:
        return None
    if is_terminal(lesson):
        raise InvalidLessonTransitionError(
            f"Cannot complete lesson {lesson.id}: it is {lesson.status}."
        )
    if lesson.completion_status != CompletionStatus.PENDING.value:
        return None
    return CompleteLesson(completion_status=completion_status.value)


def decide_reschedule_acceptance(
    lesson,
    new_date: date,
    new_start_time: time,
    now: datetime
) -> ReenterSchedule:
    _require_status(lesson, {LessonStatus.RESCHEDULED.value}, "accept a reschedule")

    if lesson.reschedule_deadline is not None and now > lesson.reschedule_deadline:
        raise InvalidLessonTransitionError(
            f"The reschedule window for lesson {lesson.id} closed at {lesson.reschedule_deadline}."
        )

    schedule = plan_schedule(new_date, new_start_time, lesson.duration_minutes)
    if schedule.starts_at <= now:
        raise ValidationError("A rescheduled lesson must start in the future.")
    if lesson.reschedule_deadline is not None and schedule.starts_at > lesson.reschedule_deadline:
        raise ValidationError("The new slot must start before the reschedule deadline.")
    return ReenterSchedule(schedule=schedule)


def is_awaiting_reschedule_response(lesson) -> bool:
    return lesson.status == LessonStatus.RESCHEDULED.value


# --- Cancellation ---

def refund_percentage(lesson_start: datetime, now: datetime) -> int:
    """Full refund 48h or more ahead, half 24h or more ahead, nothing later."""
    hours_left = (lesson_start - now).total_seconds() / 3600
    if hours_left >= settings.FULL_REFUND_HOURS:
        return 100
    if hours_left >= settings.PARTIAL_REFUND_HOURS:
        return settings.PARTIAL_REFUND_PERCENT
    return 0


def decide_cancellation(lesson, cancelled_by: UUID, reason: Optional[str], now: datetime) -> CancelBooking:
    """
    Only a scheduled lesson that has not started can be cancelled. The
    refund is a share of what the student was charged; the teacher is not paid.
    """
    _require_status(lesson, {LessonStatus.SCHEDULED.value}, "cancel the lesson")
    lesson_start = lesson_starts_at(lesson)
    if now >= lesson_start:
        raise InvalidLessonTransitionError(
            f"Cannot cancel lesson {lesson.id}: it started at {lesson_start}."
        )

    percentage = refund_percentage(lesson_start, now)
    return CancelBooking(
        cancelled_by=cancelled_by,
        cancellation_reason=reason,
        refund_percentage=percentage,
        refund_amount=to_money(lesson.total_amount * percentage / 100),
    )
