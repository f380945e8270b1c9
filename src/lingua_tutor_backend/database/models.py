from typing import Optional

from sqlalchemy import Boolean, CheckConstraint, Date, DateTime, Enum, ForeignKeyConstraint, Index, Integer, JSON, Numeric, PrimaryKeyConstraint, String, Text, Time, UniqueConstraint, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
import datetime
import decimal
import uuid

from ..common.clock import utc_now
from .db_enums import (
    UserRole, LessonStatus, AttendanceStatus, CompletionStatus, PayoutMethod,
    PayoutStatus, PaymentMethodType, PaymentStatus, WalletTransactionType,
    TicketCategory, TicketPriority, TicketStatus, NotificationType, TaskType, TaskStatus
)

JsonList = JSON().with_variant(JSONB(), 'postgresql')


class Base(DeclarativeBase):
    pass


class Users(Base):
    __tablename__ = 'users'
    __table_args__ = (
        PrimaryKeyConstraint('id', name='users_pkey'),
        UniqueConstraint('email', name='users_email_key')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(String(255))
    password: Mapped[str] = mapped_column(String(255))
    role: Mapped[str] = mapped_column(Enum(*UserRole.get_all_names(), name='user_role'), default=UserRole.STUDENT.value)
    timezone: Mapped[str] = mapped_column(Text, default='UTC')
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    first_name: Mapped[Optional[str]] = mapped_column(Text)
    last_name: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=utc_now)

    teacher_profile: Mapped[Optional['TeacherProfiles']] = relationship(
        'TeacherProfiles',
        back_populates='user',
        uselist=False,
        cascade='all, delete-orphan'
    )
    wallet: Mapped[Optional['Wallets']] = relationship(
        'Wallets',
        back_populates='user',
        uselist=False,
        cascade='all, delete-orphan'
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()


class TeacherProfiles(Base):
    __tablename__ = 'teacher_profiles'
    __table_args__ = (
        CheckConstraint('price > 0', name='teacher_profiles_positive_price'),
        CheckConstraint('absence_count >= 0', name='teacher_profiles_absence_count_check'),
        ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE', name='teacher_profiles_user_id_fkey'),
        PrimaryKeyConstraint('user_id', name='teacher_profiles_pkey'),
        Index('idx_teacher_profiles_country', 'country')
    )

    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    languages: Mapped[list] = mapped_column(JsonList, default=list)
    native_language: Mapped[str] = mapped_column(Text)
    specialties: Mapped[list] = mapped_column(JsonList, default=list)
    price: Mapped[decimal.Decimal] = mapped_column(Numeric(10, 2))
    currency: Mapped[str] = mapped_column(String(3), default='USD')
    rating: Mapped[decimal.Decimal] = mapped_column(Numeric(3, 2), default=decimal.Decimal('0'))
    review_count: Mapped[int] = mapped_column(Integer, default=0)
    experience: Mapped[int] = mapped_column(Integer, default=0)
    country: Mapped[str] = mapped_column(Text)
    description: Mapped[Optional[str]] = mapped_column(Text)
    completed_lessons: Mapped[int] = mapped_column(Integer, default=0)
    absence_count: Mapped[int] = mapped_column(Integer, default=0)
    is_suspended: Mapped[bool] = mapped_column(Boolean, default=False)
    suspended_at: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime)

    user: Mapped['Users'] = relationship('Users', back_populates='teacher_profile')


class Lessons(Base):
    __tablename__ = 'lessons'
    __table_args__ = (
        CheckConstraint('duration_minutes > 0', name='lessons_positive_duration'),
        CheckConstraint('reschedule_count >= 0 AND reschedule_count <= 1', name='lessons_reschedule_count_check'),
        ForeignKeyConstraint(['student_id'], ['users.id'], ondelete='CASCADE', name='lessons_student_id_fkey'),
        ForeignKeyConstraint(['teacher_id'], ['users.id'], ondelete='CASCADE', name='lessons_teacher_id_fkey'),
        PrimaryKeyConstraint('id', name='lessons_pkey'),
        Index('idx_lessons_student_id', 'student_id'),
        Index('idx_lessons_teacher_id', 'teacher_id'),
        Index('idx_lessons_status', 'status')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    student_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    teacher_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    language: Mapped[Optional[str]] = mapped_column(Text)
    lesson_date: Mapped[datetime.date] = mapped_column(Date)
    start_time: Mapped[datetime.time] = mapped_column(Time)
    end_time: Mapped[datetime.time] = mapped_column(Time)
    duration_minutes: Mapped[int] = mapped_column(Integer)

    # Money: derived once at booking
    price: Mapped[decimal.Decimal] = mapped_column(Numeric(10, 2))
    commission: Mapped[decimal.Decimal] = mapped_column(Numeric(10, 2))
    tax: Mapped[decimal.Decimal] = mapped_column(Numeric(10, 2))
    total_amount: Mapped[decimal.Decimal] = mapped_column(Numeric(10, 2))

    status: Mapped[str] = mapped_column(Enum(*LessonStatus.get_all_names(), name='lesson_status_enum'), default=LessonStatus.SCHEDULED.value)
    attendance_status: Mapped[str] = mapped_column(Enum(*AttendanceStatus.get_all_names(), name='attendance_status_enum'), default=AttendanceStatus.PENDING.value)
    completion_status: Mapped[str] = mapped_column(Enum(*CompletionStatus.get_all_names(), name='completion_status_enum'), default=CompletionStatus.PENDING.value)
    reschedule_count: Mapped[int] = mapped_column(Integer, default=0)
    reschedule_deadline: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime)
    auto_complete_at: Mapped[datetime.datetime] = mapped_column(DateTime)
    reminder_sent: Mapped[bool] = mapped_column(Boolean, default=False)
    payment_released_at: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime)
    cancelled_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    cancellation_reason: Mapped[Optional[str]] = mapped_column(Text)
    refund_percentage: Mapped[Optional[int]] = mapped_column(Integer)
    refund_amount: Mapped[Optional[decimal.Decimal]] = mapped_column(Numeric(10, 2))
    notes: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=utc_now)
    updated_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=utc_now, onupdate=utc_now)

    student: Mapped['Users'] = relationship('Users', foreign_keys='[Lessons.student_id]')
    teacher: Mapped['Users'] = relationship('Users', foreign_keys='[Lessons.teacher_id]')
    scheduled_tasks: Mapped[list['ScheduledTasks']] = relationship('ScheduledTasks', back_populates='lesson', cascade='all, delete-orphan')


class PayoutRequests(Base):
    __tablename__ = 'payout_requests'
    __table_args__ = (
        CheckConstraint('amount >= minimum_amount', name='payout_requests_minimum_check'),
        ForeignKeyConstraint(['teacher_id'], ['users.id'], ondelete='CASCADE', name='payout_requests_teacher_id_fkey'),
        PrimaryKeyConstraint('id', name='payout_requests_pkey'),
        Index('idx_payout_requests_teacher_id', 'teacher_id')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    teacher_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    amount: Mapped[decimal.Decimal] = mapped_column(Numeric(12, 2))
    method: Mapped[str] = mapped_column(Enum(*PayoutMethod.get_all_names(), name='payout_method_enum'))
    minimum_amount: Mapped[decimal.Decimal] = mapped_column(Numeric(12, 2))
    status: Mapped[str] = mapped_column(Enum(*PayoutStatus.get_all_names(), name='payout_status_enum'), default=PayoutStatus.PENDING.value)
    requested_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=utc_now)
    processed_at: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime)

    teacher: Mapped['Users'] = relationship('Users')


class Wallets(Base):
    __tablename__ = 'wallets'
    __table_args__ = (
        ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE', name='wallets_user_id_fkey'),
        PrimaryKeyConstraint('id', name='wallets_pkey'),
        UniqueConstraint('user_id', name='wallets_user_id_key')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    balance: Mapped[decimal.Decimal] = mapped_column(Numeric(12, 2), default=decimal.Decimal('0.00'))
    currency: Mapped[str] = mapped_column(String(3), default='USD')
    updated_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=utc_now, onupdate=utc_now)

    user: Mapped['Users'] = relationship('Users', back_populates='wallet')
    transactions: Mapped[list['WalletTransactions']] = relationship('WalletTransactions', back_populates='wallet', cascade='all, delete-orphan')


class WalletTransactions(Base):
    __tablename__ = 'wallet_transactions'
    __table_args__ = (
        ForeignKeyConstraint(['wallet_id'], ['wallets.id'], ondelete='CASCADE', name='wallet_transactions_wallet_id_fkey'),
        ForeignKeyConstraint(['lesson_id'], ['lessons.id'], ondelete='SET NULL', name='wallet_transactions_lesson_id_fkey'),
        ForeignKeyConstraint(['payout_request_id'], ['payout_requests.id'], ondelete='SET NULL', name='wallet_transactions_payout_request_id_fkey'),
        PrimaryKeyConstraint('id', name='wallet_transactions_pkey'),
        # One earning per lesson, enforced by the database as well as by the service
        UniqueConstraint('lesson_id', 'transaction_type', name='wallet_transactions_lesson_type_key')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    wallet_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    amount: Mapped[decimal.Decimal] = mapped_column(Numeric(12, 2))
    transaction_type: Mapped[str] = mapped_column(Enum(*WalletTransactionType.get_all_names(), name='wallet_transaction_type_enum'))
    lesson_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    payout_request_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=utc_now)

    wallet: Mapped['Wallets'] = relationship('Wallets', back_populates='transactions')


class Payments(Base):
    __tablename__ = 'payments'
    __table_args__ = (
        ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE', name='payments_user_id_fkey'),
        ForeignKeyConstraint(['lesson_id'], ['lessons.id'], ondelete='SET NULL', name='payments_lesson_id_fkey'),
        PrimaryKeyConstraint('id', name='payments_pkey'),
        UniqueConstraint('payment_reference', name='payments_payment_reference_key')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    payment_reference: Mapped[str] = mapped_column(String(30))
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    lesson_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    method: Mapped[str] = mapped_column(Enum(*PaymentMethodType.get_all_names(), name='payment_method_enum'))
    amount: Mapped[decimal.Decimal] = mapped_column(Numeric(12, 2))
    currency: Mapped[str] = mapped_column(String(3), default='USD')
    status: Mapped[str] = mapped_column(Enum(*PaymentStatus.get_all_names(), name='payment_status_enum'))
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=utc_now)


class SupportTickets(Base):
    __tablename__ = 'support_tickets'
    __table_args__ = (
        ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE', name='support_tickets_user_id_fkey'),
        PrimaryKeyConstraint('id', name='support_tickets_pkey'),
        UniqueConstraint('ticket_reference', name='support_tickets_ticket_reference_key'),
        Index('idx_support_tickets_user_id', 'user_id')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    ticket_reference: Mapped[str] = mapped_column(String(20))
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    category: Mapped[str] = mapped_column(Enum(*TicketCategory.get_all_names(), name='ticket_category_enum'))
    title: Mapped[str] = mapped_column(String(255))
    description: Mapped[str] = mapped_column(Text)
    priority: Mapped[str] = mapped_column(Enum(*TicketPriority.get_all_names(), name='ticket_priority_enum'), default=TicketPriority.MEDIUM.value)
    status: Mapped[str] = mapped_column(Enum(*TicketStatus.get_all_names(), name='ticket_status_enum'), default=TicketStatus.OPEN.value)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=utc_now)
    updated_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=utc_now, onupdate=utc_now)


class Notifications(Base):
    __tablename__ = 'notifications'
    __table_args__ = (
        ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE', name='notifications_user_id_fkey'),
        ForeignKeyConstraint(['lesson_id'], ['lessons.id'], ondelete='SET NULL', name='notifications_lesson_id_fkey'),
        PrimaryKeyConstraint('id', name='notifications_pkey'),
        Index('idx_notifications_user_id', 'user_id')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    lesson_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    notification_type: Mapped[str] = mapped_column(Enum(*NotificationType.get_all_names(), name='notification_type_enum'))
    title: Mapped[str] = mapped_column(String(255))
    message: Mapped[str] = mapped_column(Text)
    is_read: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=utc_now)


class ScheduledTasks(Base):
    __tablename__ = 'scheduled_tasks'
    __table_args__ = (
        ForeignKeyConstraint(['lesson_id'], ['lessons.id'], ondelete='CASCADE', name='scheduled_tasks_lesson_id_fkey'),
        PrimaryKeyConstraint('id', name='scheduled_tasks_pkey'),
        UniqueConstraint('idempotency_key', name='scheduled_tasks_idempotency_key_key'),
        Index('idx_scheduled_tasks_due', 'status', 'due_at')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    lesson_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    task_type: Mapped[str] = mapped_column(Enum(*TaskType.get_all_names(), name='task_type_enum'))
    due_at: Mapped[datetime.datetime] = mapped_column(DateTime)
    idempotency_key: Mapped[str] = mapped_column(String(120))
    status: Mapped[str] = mapped_column(Enum(*TaskStatus.get_all_names(), name='task_status_enum'), default=TaskStatus.PENDING.value)
    attempts: Mapped[int] = mapped_column(Integer, default=0)
    claimed_at: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime)
    last_error: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=utc_now)
    finished_at: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime)

    lesson: Mapped['Lessons'] = relationship('Lessons', back_populates='scheduled_tasks')
