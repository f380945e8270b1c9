'''
Lesson lifecycle service.

Every state change is written with a conditional UPDATE guarded on the state
the decision was made from. A caller whose update matches no row lost a race
and must not run the transition's side effects. Payment release is claimed
the same way on payment_released_at, so a lesson pays its teacher once.
'''
from datetime import datetime
from typing import Annotated, Optional
from uuid import UUID
from fastapi import Depends, HTTPException, status
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..database.engine import get_db_session
from ..database import models as db_models
from ..database.db_enums import (
    UserRole,
    LessonStatus,
    AttendanceStatus,
    CompletionStatus,
    AbsentParty,
    NotificationType,
    TaskType,
    TERMINAL_LESSON_STATUSES,
)
from ..core import lifecycle
from ..core.pricing import calculate_pricing, teacher_earning
from ..common.clock import combine, utc_now
from ..common.exceptions import (
    InvalidLessonTransitionError,
    LessonNotFoundError,
    TeacherNotFoundError,
    TeacherSuspendedError,
    ValidationError,
)
from ..common.logger import log
from ..models import lessons as lesson_models
from .security import authorize_role
from .notification_service import NotificationService
from .ledger_service import PaymentLedgerService
from .task_scheduler import TaskSchedulerService

_TERMINAL_VALUES = [s.value for s in TERMINAL_LESSON_STATUSES]


class LessonService:
    """
    Books lessons and drives them through their lifecycle. Transitions come
    from user commands (absence, completion, reschedule, cancellation) and
    from scheduled tasks (reminder, reschedule response check,
    auto-completion).
    """
    def __init__(
        self,
        db: Annotated[AsyncSession, Depends(get_db_session)],
        notification_service: Annotated[NotificationService, Depends(NotificationService)],
        ledger_service: Annotated[PaymentLedgerService, Depends(PaymentLedgerService)],
        scheduler: Annotated[TaskSchedulerService, Depends(TaskSchedulerService)]
    ):
        self.db = db
        self.notification_service = notification_service
        self.ledger_service = ledger_service
        self.scheduler = scheduler

    # --- 1. Lookup & Authorization ---

    async def get_lesson(self, lesson_id: UUID) -> db_models.Lessons:
        result = await self.db.execute(
            select(db_models.Lessons)
            .filter(db_models.Lessons.id == lesson_id)
            .execution_options(populate_existing=True)
        )
        lesson = result.scalars().first()
        if lesson is None:
            log.warning(f"Lesson {lesson_id} not found.")
            raise LessonNotFoundError(f"Lesson {lesson_id} not found.")
        return lesson

    def _authorize_participant(self, lesson: db_models.Lessons, current_user: db_models.Users) -> None:
        if current_user.role == UserRole.ADMIN.value:
            return
        if current_user.id not in (lesson.student_id, lesson.teacher_id):
            log.warning(f"User {current_user.id} denied access to lesson {lesson.id}")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You do not have access to this lesson."
            )

    def _authorize_student(self, lesson: db_models.Lessons, current_user: db_models.Users) -> None:
        if current_user.id != lesson.student_id:
            log.warning(f"User {current_user.id} is not the student of lesson {lesson.id}")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Only the lesson's student can perform this action."
            )

    def _authorize_absence_reporter(self, lesson: db_models.Lessons, current_user: db_models.Users) -> None:
        if current_user.role == UserRole.ADMIN.value or current_user.id == lesson.teacher_id:
            return
        log.warning(f"User {current_user.id} may not report attendance for lesson {lesson.id}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the lesson's teacher or an admin can report an absence."
        )

    async def get_lesson_for_user(self, lesson_id: UUID, current_user: db_models.Users) -> db_models.Lessons:
        lesson = await self.get_lesson(lesson_id)
        self._authorize_participant(lesson, current_user)
        return lesson

    async def list_lessons_for_user(
        self,
        current_user: db_models.Users,
        lesson_status: Optional[LessonStatus] = None
    ) -> list[db_models.Lessons]:
        log.info(f"Listing lessons for user {current_user.id} (Role: {current_user.role}, status: {lesson_status})")
        stmt = select(db_models.Lessons)
        if current_user.role == UserRole.STUDENT.value:
            stmt = stmt.filter(db_models.Lessons.student_id == current_user.id)
        elif current_user.role == UserRole.TEACHER.value:
            stmt = stmt.filter(db_models.Lessons.teacher_id == current_user.id)
        if lesson_status is not None:
            stmt = stmt.filter(db_models.Lessons.status == lesson_status.value)
        stmt = stmt.order_by(db_models.Lessons.lesson_date, db_models.Lessons.start_time)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    # --- 2. Guarded Writes ---

    async def _apply(self, lesson: db_models.Lessons, transition: lifecycle.LessonTransition, *conditions) -> bool:
        """
        Writes the transition only if the row still matches `conditions`.
        Returns False when another caller changed the lesson first.
        """
        result = await self.db.execute(
            update(db_models.Lessons)
            .where(db_models.Lessons.id == lesson.id, *conditions)
            .values(**transition.values(), updated_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return False
        await self.db.refresh(lesson)
        return True

    async def _complete(self, lesson: db_models.Lessons, transition: lifecycle.CompleteLesson) -> bool:
        completed = await self._apply(
            lesson,
            transition,
            db_models.Lessons.completion_status == CompletionStatus.PENDING.value,
            db_models.Lessons.status.not_in(_TERMINAL_VALUES)
        )
        if not completed:
            log.info(f"Lesson {lesson.id} was already settled. Completion is a no-op.")
            await self.db.refresh(lesson)
            return False

        log.info(f"Lesson {lesson.id} completed ({transition.completion_status}).")
        await self.scheduler.cancel_pending(lesson.id)
        await self.db.execute(
            update(db_models.TeacherProfiles)
            .where(db_models.TeacherProfiles.user_id == lesson.teacher_id)
            .values(completed_lessons=db_models.TeacherProfiles.completed_lessons + 1)
            .execution_options(synchronize_session=False)
        )
        for user_id in (lesson.student_id, lesson.teacher_id):
            await self.notification_service.notify(
                user_id,
                NotificationType.LESSON_COMPLETED,
                "Lesson completed",
                f"The lesson on {lesson.lesson_date} at {lesson.start_time:%H:%M} is complete.",
                lesson_id=lesson.id
            )
        await self._release_payment(lesson)
        return True

    async def _release_payment(self, lesson: db_models.Lessons) -> bool:
        """Credits price minus commission to the teacher, at most once per lesson."""
        claim = await self.db.execute(
            update(db_models.Lessons)
            .where(
                db_models.Lessons.id == lesson.id,
                db_models.Lessons.payment_released_at.is_(None)
            )
            .values(payment_released_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        if claim.rowcount != 1:
            log.warning(f"Payment for lesson {lesson.id} was already released. Skipping.")
            return False

        earning = teacher_earning(lesson.price, lesson.commission)
        await self.ledger_service.credit_teacher(lesson.teacher_id, earning, lesson.id)
        await self.notification_service.notify(
            lesson.teacher_id,
            NotificationType.PAYMENT_RELEASED,
            "Payment released",
            f"{earning} has been added to your wallet.",
            lesson_id=lesson.id
        )
        await self.db.refresh(lesson)
        log.info(f"Released {earning} to teacher {lesson.teacher_id} for lesson {lesson.id}")
        return True

    async def _schedule_slot_tasks(self, lesson: db_models.Lessons, schedule: lifecycle.LessonSchedule) -> None:
        cycle = lesson.reschedule_count
        await self.scheduler.schedule(lesson.id, TaskType.REMINDER, schedule.reminder_at, cycle)
        await self.scheduler.schedule(lesson.id, TaskType.AUTO_COMPLETE, schedule.auto_complete_at, cycle)

    # --- 3. Booking ---

    async def book_lesson(
        self,
        current_user: db_models.Users,
        command: lesson_models.BookLessonCommand,
        now: Optional[datetime] = None
    ) -> db_models.Lessons:
        """
        Books a lesson with a teacher. Price, commission, tax and total are
        fixed here and never recomputed afterwards.
        """
        log.info(f"Student {current_user.id} booking teacher {command.teacher_id} on {command.lesson_date} {command.start_time}")
        authorize_role(current_user, [UserRole.STUDENT])
        now = now or utc_now()

        result = await self.db.execute(
            select(db_models.Users).options(
                selectinload(db_models.Users.teacher_profile)
            ).filter(
                db_models.Users.id == command.teacher_id,
                db_models.Users.role == UserRole.TEACHER.value
            )
        )
        teacher = result.scalars().first()
        if teacher is None or teacher.teacher_profile is None:
            raise TeacherNotFoundError(f"Teacher {command.teacher_id} not found.")
        profile = teacher.teacher_profile
        if profile.is_suspended:
            log.warning(f"Booking rejected: teacher {teacher.id} is suspended.")
            raise TeacherSuspendedError(f"Teacher {teacher.id} is suspended and cannot be booked.")

        pricing = calculate_pricing(command.price if command.price is not None else profile.price)
        schedule = lifecycle.plan_schedule(command.lesson_date, command.start_time, command.duration_minutes)
        if schedule.starts_at <= now:
            raise ValidationError("A lesson must be booked for a future time.")

        if command.language:
            language = command.language
        else:
            language = profile.languages[0] if profile.languages else None

        lesson = db_models.Lessons(
            student_id=current_user.id,
            teacher_id=teacher.id,
            language=language,
            lesson_date=schedule.lesson_date,
            start_time=schedule.start_time,
            end_time=schedule.end_time,
            duration_minutes=command.duration_minutes,
            price=pricing.base_price,
            commission=pricing.commission,
            tax=pricing.tax,
            total_amount=pricing.total_amount,
            status=LessonStatus.SCHEDULED.value,
            attendance_status=AttendanceStatus.PENDING.value,
            completion_status=CompletionStatus.PENDING.value,
            reschedule_count=0,
            auto_complete_at=schedule.auto_complete_at,
            reminder_sent=False,
            notes=command.notes,
        )
        self.db.add(lesson)
        await self.db.flush()

        await self._schedule_slot_tasks(lesson, schedule)
        await self.notification_service.notify(
            teacher.id,
            NotificationType.LESSON_BOOKED,
            "New lesson booked",
            f"{current_user.full_name or current_user.email} booked a lesson on {schedule.lesson_date} at {schedule.start_time:%H:%M}.",
            lesson_id=lesson.id
        )
        log.info(f"Booked lesson {lesson.id}: total {pricing.total_amount}")
        return lesson

    # --- 4. Attendance ---

    async def mark_absent(
        self,
        current_user: db_models.Users,
        lesson_id: UUID,
        command: lesson_models.MarkAbsentCommand,
        now: Optional[datetime] = None
    ) -> db_models.Lessons:
        lesson = await self.get_lesson(lesson_id)
        self._authorize_absence_reporter(lesson, current_user)
        if command.party == AbsentParty.STUDENT:
            return await self.mark_student_absent(lesson_id, now=now)
        return await self.mark_teacher_absent(lesson_id, now=now)

    async def mark_student_absent(self, lesson_id: UUID, now: Optional[datetime] = None) -> db_models.Lessons:
        """
        First absence: offer a reschedule within the window and start the
        response timer. Any later absence auto-completes the lesson.
        """
        now = now or utc_now()
        lesson = await self.get_lesson(lesson_id)
        outcome = lifecycle.decide_student_absence(lesson, now)
        log.info(f"Student absent for lesson {lesson_id} (reschedule_count={lesson.reschedule_count})")

        if isinstance(outcome, lifecycle.CompleteLesson):
            if not await self._complete(lesson, outcome):
                raise InvalidLessonTransitionError(f"Lesson {lesson_id} changed while recording the absence.")
            return lesson

        applied = await self._apply(
            lesson,
            outcome,
            db_models.Lessons.status == LessonStatus.SCHEDULED.value,
            db_models.Lessons.reschedule_count == 0
        )
        if not applied:
            raise InvalidLessonTransitionError(f"Lesson {lesson_id} changed while recording the absence.")

        await self.scheduler.cancel_pending(lesson.id)
        await self.scheduler.schedule(
            lesson.id,
            TaskType.RESCHEDULE_RESPONSE_CHECK,
            outcome.response_due_at,
            lesson.reschedule_count
        )
        await self.notification_service.notify(
            lesson.student_id,
            NotificationType.RESCHEDULE_OFFER,
            "You missed your lesson",
            f"You can reschedule once before {outcome.reschedule_deadline:%Y-%m-%d %H:%M} UTC. "
            f"Please respond by {outcome.response_due_at:%Y-%m-%d %H:%M} UTC.",
            lesson_id=lesson.id
        )
        log.info(f"Reschedule offered for lesson {lesson_id} until {outcome.reschedule_deadline}")
        return lesson

    async def mark_teacher_absent(self, lesson_id: UUID, now: Optional[datetime] = None) -> db_models.Lessons:
        """
        Cancels the lesson and counts the absence against the teacher.
        Reaching the suspension threshold suspends the teacher.
        """
        now = now or utc_now()
        lesson = await self.get_lesson(lesson_id)
        transition = lifecycle.decide_teacher_absence(lesson, now)
        log.info(f"Teacher {lesson.teacher_id} absent for lesson {lesson_id}")

        applied = await self._apply(
            lesson,
            transition,
            db_models.Lessons.status == LessonStatus.SCHEDULED.value
        )
        if not applied:
            raise InvalidLessonTransitionError(f"Lesson {lesson_id} changed while recording the absence.")

        await self.db.execute(
            update(db_models.TeacherProfiles)
            .where(db_models.TeacherProfiles.user_id == lesson.teacher_id)
            .values(absence_count=db_models.TeacherProfiles.absence_count + 1)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(
            select(db_models.TeacherProfiles)
            .filter(db_models.TeacherProfiles.user_id == lesson.teacher_id)
            .execution_options(populate_existing=True)
        )
        profile = result.scalars().first()
        if profile is None:
            raise TeacherNotFoundError(f"Teacher {lesson.teacher_id} has no profile.")

        if lifecycle.should_suspend_teacher(profile.absence_count) and not profile.is_suspended:
            profile.is_suspended = True
            profile.suspended_at = utc_now()
            await self.db.flush()
            log.warning(f"Teacher {lesson.teacher_id} suspended after {profile.absence_count} absences.")
            await self.notification_service.notify(
                lesson.teacher_id,
                NotificationType.TEACHER_SUSPENDED,
                "Account suspended",
                f"Your account was suspended after {profile.absence_count} missed lessons.",
                lesson_id=lesson.id
            )

        await self.scheduler.cancel_pending(lesson.id)
        await self.notification_service.notify(
            lesson.student_id,
            NotificationType.REFUND_OR_RESCHEDULE_CHOICE,
            "Your teacher missed the lesson",
            "The lesson was cancelled. Choose a refund or book a new slot.",
            lesson_id=lesson.id
        )
        return lesson

    # --- 5. Reschedule & Cancellation ---

    async def accept_reschedule(
        self,
        current_user: db_models.Users,
        lesson_id: UUID,
        command: lesson_models.AcceptRescheduleCommand,
        now: Optional[datetime] = None
    ) -> db_models.Lessons:
        now = now or utc_now()
        lesson = await self.get_lesson(lesson_id)
        self._authorize_student(lesson, current_user)

        transition = lifecycle.decide_reschedule_acceptance(lesson, command.lesson_date, command.start_time, now)
        applied = await self._apply(
            lesson,
            transition,
            db_models.Lessons.status == LessonStatus.RESCHEDULED.value
        )
        if not applied:
            raise InvalidLessonTransitionError(f"Lesson {lesson_id} is no longer awaiting a reschedule.")

        await self.scheduler.cancel_pending(lesson.id)
        await self._schedule_slot_tasks(lesson, transition.schedule)
        await self.notification_service.notify(
            lesson.teacher_id,
            NotificationType.LESSON_RESCHEDULED,
            "Lesson rescheduled",
            f"The missed lesson was moved to {lesson.lesson_date} at {lesson.start_time:%H:%M}.",
            lesson_id=lesson.id
        )
        log.info(f"Lesson {lesson_id} rescheduled to {combine(lesson.lesson_date, lesson.start_time)}")
        return lesson

    async def cancel_lesson(
        self,
        current_user: db_models.Users,
        lesson_id: UUID,
        command: lesson_models.CancelLessonCommand,
        now: Optional[datetime] = None
    ) -> db_models.Lessons:
        """
        Cancels a scheduled lesson before it starts. The student, the teacher
        or an admin may cancel. The refund share depends on how far ahead the
        cancellation is; the refund itself is paid out by the payment provider.
        """
        now = now or utc_now()
        lesson = await self.get_lesson(lesson_id)
        self._authorize_participant(lesson, current_user)

        transition = lifecycle.decide_cancellation(lesson, current_user.id, command.reason, now)
        applied = await self._apply(
            lesson,
            transition,
            db_models.Lessons.status == LessonStatus.SCHEDULED.value
        )
        if not applied:
            raise InvalidLessonTransitionError(f"Lesson {lesson_id} changed while it was being cancelled.")

        await self.scheduler.cancel_pending(lesson.id)
        for user_id in (lesson.student_id, lesson.teacher_id):
            await self.notification_service.notify(
                user_id,
                NotificationType.LESSON_CANCELLED,
                "Lesson cancelled",
                f"The lesson on {lesson.lesson_date} at {lesson.start_time:%H:%M} was cancelled. "
                f"Refund: {lesson.refund_percentage}% ({lesson.refund_amount}).",
                lesson_id=lesson.id
            )
        log.info(f"Lesson {lesson_id} cancelled by {current_user.id} with a {lesson.refund_percentage}% refund")
        return lesson

    # --- 6. Completion ---

    async def complete_lesson(
        self,
        current_user: db_models.Users,
        lesson_id: UUID,
        command: lesson_models.CompleteLessonCommand
    ) -> db_models.Lessons:
        """
        Manual completion by the student. Without confirmation nothing
        changes, and completing an already completed lesson is a no-op.
        """
        lesson = await self.get_lesson(lesson_id)
        self._authorize_student(lesson, current_user)

        if not command.student_confirmation:
            log.info(f"Completion of lesson {lesson_id} not confirmed by the student. Nothing to do.")
            return lesson

        transition = lifecycle.decide_completion(lesson, CompletionStatus.MANUAL)
        if transition is None:
            log.info(f"Lesson {lesson_id} already completed.")
            return lesson
        await self._complete(lesson, transition)
        return lesson

    # --- 7. Scheduled Transitions ---

    async def auto_complete_lesson(self, lesson_id: UUID) -> db_models.Lessons:
        lesson = await self.get_lesson(lesson_id)
        if lifecycle.is_terminal(lesson) or lesson.completion_status != CompletionStatus.PENDING.value:
            log.info(f"Auto-complete skipped for lesson {lesson_id} ({lesson.status}/{lesson.completion_status}).")
            return lesson
        await self._complete(lesson, lifecycle.CompleteLesson(completion_status=CompletionStatus.AUTO.value))
        return lesson

    async def check_reschedule_response(self, lesson_id: UUID) -> db_models.Lessons:
        """The student did not pick a new slot in time: the lesson auto-completes."""
        lesson = await self.get_lesson(lesson_id)
        if not lifecycle.is_awaiting_reschedule_response(lesson):
            log.info(f"Reschedule check skipped for lesson {lesson_id} ({lesson.status}).")
            return lesson
        log.info(f"No reschedule response for lesson {lesson_id}. Auto-completing.")
        await self._complete(lesson, lifecycle.CompleteLesson(completion_status=CompletionStatus.AUTO.value))
        return lesson

    async def send_reminder(self, lesson_id: UUID) -> db_models.Lessons:
        lesson = await self.get_lesson(lesson_id)
        if lesson.status != LessonStatus.SCHEDULED.value or lesson.reminder_sent:
            log.info(f"Reminder skipped for lesson {lesson_id} ({lesson.status}, sent={lesson.reminder_sent}).")
            return lesson

        claim = await self.db.execute(
            update(db_models.Lessons)
            .where(
                db_models.Lessons.id == lesson.id,
                db_models.Lessons.reminder_sent.is_(False)
            )
            .values(reminder_sent=True)
            .execution_options(synchronize_session=False)
        )
        if claim.rowcount != 1:
            return lesson
        await self.db.refresh(lesson)

        for user_id in (lesson.student_id, lesson.teacher_id):
            await self.notification_service.notify(
                user_id,
                NotificationType.LESSON_REMINDER,
                "Lesson starting soon",
                f"Your lesson starts at {lesson.start_time:%H:%M} UTC on {lesson.lesson_date}.",
                lesson_id=lesson.id
            )
        log.info(f"Reminder sent for lesson {lesson_id}")
        return lesson
