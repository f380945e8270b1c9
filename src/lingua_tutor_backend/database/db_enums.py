'''
Static enums shared by the ORM models, the Pydantic API models and the services.
'''
import enum


class ListableEnum(str, enum.Enum):
    """A custom Enum base class that can list all member values."""
    @classmethod
    def get_all_names(cls) -> list[str]:
        return [member.value for member in cls]


class UserRole(ListableEnum):
    STUDENT = 'student'
    TEACHER = 'teacher'
    ADMIN = 'admin'


# --- Lesson lifecycle ---

class LessonStatus(ListableEnum):
    SCHEDULED = 'scheduled'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'
    RESCHEDULED = 'rescheduled'
    NO_SHOW = 'no-show'


TERMINAL_LESSON_STATUSES = frozenset({
    LessonStatus.COMPLETED,
    LessonStatus.CANCELLED,
    LessonStatus.NO_SHOW,
})


class AttendanceStatus(ListableEnum):
    PENDING = 'pending'
    ATTENDED = 'attended'
    ABSENT = 'absent'


class CompletionStatus(ListableEnum):
    PENDING = 'pending'
    MANUAL = 'manual'
    AUTO = 'auto'
    DISPUTED = 'disputed'


class AbsentParty(ListableEnum):
    STUDENT = 'student'
    TEACHER = 'teacher'


# --- Money ---

class PayoutMethod(ListableEnum):
    PAYPAL = 'paypal'
    BANK_TRANSFER = 'bank_transfer'


class PayoutStatus(ListableEnum):
    PENDING = 'pending'
    APPROVED = 'approved'
    REJECTED = 'rejected'
    PROCESSED = 'processed'


class PaymentMethodType(ListableEnum):
    PAYPAL = 'paypal'
    VISA = 'visa'
    MASTERCARD = 'mastercard'
    GOOGLE_PAY = 'google_pay'
    APPLE_PAY = 'apple_pay'
    WECHAT_PAY = 'wechat_pay'


class PaymentStatus(ListableEnum):
    SUCCEEDED = 'succeeded'
    FAILED = 'failed'


class WalletTransactionType(ListableEnum):
    LESSON_EARNING = 'lesson_earning'
    PAYOUT = 'payout'


# --- Support ---

class TicketCategory(ListableEnum):
    BOOKING_ISSUES = 'booking_issues'
    PAYMENT_PROBLEMS = 'payment_problems'
    TECHNICAL_BUGS = 'technical_bugs'
    INAPPROPRIATE_BEHAVIOR = 'inappropriate_behavior'


class TicketPriority(ListableEnum):
    LOW = 'low'
    MEDIUM = 'medium'
    HIGH = 'high'
    URGENT = 'urgent'


class TicketStatus(ListableEnum):
    OPEN = 'open'
    IN_PROGRESS = 'in_progress'
    RESOLVED = 'resolved'
    CLOSED = 'closed'


# --- Notifications & Scheduling ---

class NotificationType(ListableEnum):
    LESSON_BOOKED = 'lesson_booked'
    LESSON_RESCHEDULED = 'lesson_rescheduled'
    LESSON_CANCELLED = 'lesson_cancelled'
    LESSON_REMINDER = 'lesson_reminder'
    RESCHEDULE_OFFER = 'reschedule_offer'
    REFUND_OR_RESCHEDULE_CHOICE = 'refund_or_reschedule_choice'
    LESSON_COMPLETED = 'lesson_completed'
    PAYMENT_RELEASED = 'payment_released'
    TEACHER_SUSPENDED = 'teacher_suspended'
    PAYOUT_REQUESTED = 'payout_requested'


class TaskType(ListableEnum):
    REMINDER = 'reminder'
    RESCHEDULE_RESPONSE_CHECK = 'reschedule_response_check'
    AUTO_COMPLETE = 'auto_complete'


class TaskStatus(ListableEnum):
    PENDING = 'pending'
    RUNNING = 'running'
    DONE = 'done'
    CANCELLED = 'cancelled'
    FAILED = 'failed'


class TeacherSortKey(ListableEnum):
    RATING = 'rating'
    PRICE_LOW = 'price-low'
    PRICE_HIGH = 'price-high'
    REVIEWS = 'reviews'
    EXPERIENCE = 'experience'
