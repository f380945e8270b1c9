import pytest
import uuid
from decimal import Decimal
from datetime import date, datetime, time, timedelta
from types import SimpleNamespace

from src.lingua_tutor_backend.core import lifecycle
from src.lingua_tutor_backend.database.db_enums import (
    LessonStatus,
    AttendanceStatus,
    CompletionStatus,
)
from src.lingua_tutor_backend.common.exceptions import InvalidLessonTransitionError, ValidationError

NOW = datetime(2030, 3, 1, 9, 0)
# Ten minutes after make_lesson's default start
STARTED = datetime(2030, 3, 4, 15, 10)


def make_lesson(**overrides):
    fields = dict(
        id=uuid.uuid4(),
        status=LessonStatus.SCHEDULED.value,
        attendance_status=AttendanceStatus.PENDING.value,
        completion_status=CompletionStatus.PENDING.value,
        reschedule_count=0,
        reschedule_deadline=None,
        lesson_date=date(2030, 3, 4),
        start_time=time(15, 0),
        duration_minutes=60,
        total_amount=Decimal("32.10"),
    )
    fields.update(overrides)
    return SimpleNamespace(**fields)


class TestPlanSchedule:

    def test_derived_times(self):
        schedule = lifecycle.plan_schedule(date(2030, 3, 4), time(15, 0), 60)

        assert schedule.end_time == time(16, 0)
        assert schedule.reminder_at == datetime(2030, 3, 4, 14, 30)
        assert schedule.auto_complete_at == datetime(2030, 3, 6, 16, 0)

    def test_lesson_crossing_midnight(self):
        schedule = lifecycle.plan_schedule(date(2030, 3, 4), time(23, 30), 60)

        assert schedule.end_time == time(0, 30)
        assert schedule.ends_at == datetime(2030, 3, 5, 0, 30)

    def test_non_positive_duration(self):
        with pytest.raises(ValidationError):
            lifecycle.plan_schedule(date(2030, 3, 4), time(15, 0), 0)


class TestStudentAbsence:

    def test_first_absence_offers_reschedule(self):
        outcome = lifecycle.decide_student_absence(make_lesson(), STARTED)

        assert isinstance(outcome, lifecycle.OfferReschedule)
        assert outcome.reschedule_count == 1
        assert outcome.reschedule_deadline == STARTED + timedelta(days=7)
        assert outcome.response_due_at == STARTED + timedelta(hours=24)
        assert outcome.values()["status"] == LessonStatus.RESCHEDULED.value
        assert outcome.values()["attendance_status"] == AttendanceStatus.ABSENT.value

    def test_second_absence_forces_auto_completion(self):
        outcome = lifecycle.decide_student_absence(make_lesson(reschedule_count=1), STARTED)

        assert isinstance(outcome, lifecycle.CompleteLesson)
        assert outcome.values() == {
            "status": LessonStatus.COMPLETED.value,
            "completion_status": CompletionStatus.AUTO.value,
            "attendance_status": AttendanceStatus.ABSENT.value,
        }

    @pytest.mark.parametrize("lesson_status", [
        LessonStatus.COMPLETED.value,
        LessonStatus.CANCELLED.value,
        LessonStatus.NO_SHOW.value,
        LessonStatus.RESCHEDULED.value,
    ])
    def test_only_scheduled_lessons(self, lesson_status):
        with pytest.raises(InvalidLessonTransitionError):
            lifecycle.decide_student_absence(make_lesson(status=lesson_status), STARTED)

    @pytest.mark.parametrize("now", [NOW, datetime(2030, 3, 4, 14, 59)])
    def test_not_before_the_lesson_starts(self, now):
        with pytest.raises(InvalidLessonTransitionError):
            lifecycle.decide_student_absence(make_lesson(), now)


class TestTeacherAbsence:

    def test_cancels_lesson(self):
        transition = lifecycle.decide_teacher_absence(make_lesson(), STARTED)
        assert transition.values() == {
            "status": LessonStatus.CANCELLED.value,
            "attendance_status": AttendanceStatus.ABSENT.value,
        }

    def test_terminal_lesson_rejected(self):
        with pytest.raises(InvalidLessonTransitionError):
            lifecycle.decide_teacher_absence(make_lesson(status=LessonStatus.COMPLETED.value), STARTED)

    def test_not_before_the_lesson_starts(self):
        with pytest.raises(InvalidLessonTransitionError):
            lifecycle.decide_teacher_absence(make_lesson(), NOW)

    def test_at_the_start_time(self):
        lifecycle.decide_teacher_absence(make_lesson(), datetime(2030, 3, 4, 15, 0))

    @pytest.mark.parametrize("count, suspended", [(1, False), (2, False), (3, True), (4, True)])
    def test_suspension_threshold(self, count, suspended):
        assert lifecycle.should_suspend_teacher(count) is suspended


class TestCompletion:

    def test_pending_lesson_completes(self):
        transition = lifecycle.decide_completion(make_lesson(), CompletionStatus.MANUAL)
        assert transition.values() == {
            "status": LessonStatus.COMPLETED.value,
            "completion_status": CompletionStatus.MANUAL.value,
        }

    def test_completed_lesson_is_noop(self):
        lesson = make_lesson(status=LessonStatus.COMPLETED.value, completion_status=CompletionStatus.AUTO.value)
        assert lifecycle.decide_completion(lesson, CompletionStatus.MANUAL) is None

    @pytest.mark.parametrize("lesson_status", [LessonStatus.CANCELLED.value, LessonStatus.NO_SHOW.value])
    def test_cancelled_or_no_show_rejected(self, lesson_status):
        with pytest.raises(InvalidLessonTransitionError):
            lifecycle.decide_completion(make_lesson(status=lesson_status), CompletionStatus.MANUAL)


class TestRescheduleAcceptance:

    def rescheduled(self):
        return make_lesson(
            status=LessonStatus.RESCHEDULED.value,
            attendance_status=AttendanceStatus.ABSENT.value,
            reschedule_count=1,
            reschedule_deadline=NOW + timedelta(days=7),
        )

    def test_new_slot_reenters_schedule(self):
        transition = lifecycle.decide_reschedule_acceptance(self.rescheduled(), date(2030, 3, 5), time(10, 0), NOW)

        values = transition.values()
        assert values["status"] == LessonStatus.SCHEDULED.value
        assert values["attendance_status"] == AttendanceStatus.PENDING.value
        assert values["lesson_date"] == date(2030, 3, 5)
        assert values["end_time"] == time(11, 0)
        assert values["auto_complete_at"] == datetime(2030, 3, 7, 11, 0)
        assert values["reminder_sent"] is False

    def test_window_closed(self):
        late = NOW + timedelta(days=8)
        with pytest.raises(InvalidLessonTransitionError):
            lifecycle.decide_reschedule_acceptance(self.rescheduled(), date(2030, 3, 10), time(10, 0), late)

    def test_slot_in_the_past(self):
        with pytest.raises(ValidationError):
            lifecycle.decide_reschedule_acceptance(self.rescheduled(), date(2030, 2, 28), time(10, 0), NOW)

    def test_slot_after_deadline(self):
        with pytest.raises(ValidationError):
            lifecycle.decide_reschedule_acceptance(self.rescheduled(), date(2030, 3, 20), time(10, 0), NOW)

    def test_not_awaiting_reschedule(self):
        with pytest.raises(InvalidLessonTransitionError):
            lifecycle.decide_reschedule_acceptance(make_lesson(), date(2030, 3, 5), time(10, 0), NOW)


class TestCancellation:

    @pytest.mark.parametrize("hours_left, percentage", [
        (72, 100),
        (48, 100),
        (47.5, 50),
        (24, 50),
        (23.9, 0),
        (0.1, 0),
    ])
    def test_refund_tiers(self, hours_left, percentage):
        start = datetime(2030, 3, 4, 15, 0)
        assert lifecycle.refund_percentage(start, start - timedelta(hours=hours_left)) == percentage

    def test_cancel_ahead_of_time(self):
        cancelled_by = uuid.uuid4()
        transition = lifecycle.decide_cancellation(make_lesson(), cancelled_by, "Sick", datetime(2030, 3, 3, 9, 0))

        assert transition.values() == {
            "status": LessonStatus.CANCELLED.value,
            "cancelled_by": cancelled_by,
            "cancellation_reason": "Sick",
            "refund_percentage": 50,
            "refund_amount": Decimal("16.05"),
        }

    def test_late_cancellation_refunds_nothing(self):
        transition = lifecycle.decide_cancellation(make_lesson(), uuid.uuid4(), None, datetime(2030, 3, 4, 14, 0))
        assert transition.refund_percentage == 0
        assert transition.refund_amount == Decimal("0.00")

    @pytest.mark.parametrize("now", [datetime(2030, 3, 4, 15, 0), STARTED])
    def test_started_lesson_cannot_be_cancelled(self, now):
        with pytest.raises(InvalidLessonTransitionError):
            lifecycle.decide_cancellation(make_lesson(), uuid.uuid4(), None, now)

    @pytest.mark.parametrize("lesson_status", [
        LessonStatus.COMPLETED.value,
        LessonStatus.CANCELLED.value,
        LessonStatus.NO_SHOW.value,
        LessonStatus.RESCHEDULED.value,
    ])
    def test_only_scheduled_lessons(self, lesson_status):
        with pytest.raises(InvalidLessonTransitionError):
            lifecycle.decide_cancellation(make_lesson(status=lesson_status), uuid.uuid4(), None, NOW)
