'''
Pytest configuration for the FastAPI application.

This file sets up fixtures for:
1. Forcing the application into TEST_MODE before any application code is imported.
2. Providing a fresh in-memory database and session for each service test.
3. Providing a FastAPI TestClient (with its own fresh database) for endpoint testing.
4. Providing instances of all service classes, pre-injected with the test session.
'''
import os

os.environ["TEST_MODE"] = "True"
os.environ["SCHEDULER_ENABLED"] = "False"

import pytest
from typing import AsyncGenerator, Awaitable, Callable, TypeVar
from unittest.mock import AsyncMock, MagicMock

# --- FastAPI & Testing Imports ---
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, AsyncEngine, async_sessionmaker
from sqlalchemy.pool import StaticPool

# --- Application Imports ---
from src.lingua_tutor_backend.main import app
from src.lingua_tutor_backend.common.config import settings
from src.lingua_tutor_backend.database import engine as db_engine
from src.lingua_tutor_backend.database import models as db_models
from src.lingua_tutor_backend.database.db_enums import PaymentMethodType
from src.lingua_tutor_backend.core.payment_methods import PaymentAdapter
from src.lingua_tutor_backend.services.user_service import UserService
from src.lingua_tutor_backend.services.teacher_service import TeacherService
from src.lingua_tutor_backend.services.notification_service import NotificationService
from src.lingua_tutor_backend.services.ledger_service import PaymentLedgerService
from src.lingua_tutor_backend.services.task_scheduler import TaskSchedulerService
from src.lingua_tutor_backend.services.lesson_service import LessonService
from src.lingua_tutor_backend.services.payout_service import PayoutService
from src.lingua_tutor_backend.services.support_service import SupportService

from tests.database.factories import AdminFactory, StudentFactory, TeacherFactory
from tests.helpers import persist

T = TypeVar("T")


@pytest.fixture(scope="session")
def anyio_backend():
    """
    Override the default 'anyio_backend' fixture.
    1. Forces the backend to 'asyncio' (solves 'trio' error).
    2. Promotes the scope to 'session' (solves 'ScopeMismatch').
    """
    return "asyncio"


# --- 1. Endpoint Fixtures ---

@pytest.fixture(scope="function")
def client() -> TestClient:
    """
    The core fixture for endpoint tests.

    1. Asserts TEST_MODE so the in-memory database URL is used.
    2. Runs the app's lifespan, which creates a *fresh* engine and the tables.
       Every test therefore starts from an empty database.
    3. The real `get_db_session` is used, so each request commits like production.
    """
    assert settings.TEST_MODE is True, \
        "TEST_MODE was not set to True! Check your .env file or environment."

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def run_in_app(client: TestClient) -> Callable[[Callable[[AsyncSession], Awaitable[T]]], T]:
    """
    Runs `fn(session)` on the app's event loop against the app's database and
    commits. Used to seed rows the API cannot create (admins, ratings).
    """
    def _run(fn: Callable[[AsyncSession], Awaitable[T]]) -> T:
        async def _runner():
            async with db_engine.AsyncSessionLocal() as session:
                result = await fn(session)
                await session.commit()
                return result
        return client.portal.call(_runner)
    return _run


# --- 2. Function-Scoped Database Fixtures (For Service Tests) ---

@pytest.fixture(scope="function")
async def test_engine() -> AsyncGenerator[AsyncEngine, None]:
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await db_engine.create_tables(engine)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture(scope="function")
def session_factory(test_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return db_engine.build_session_factory(test_engine)


@pytest.fixture(scope="function")
async def db_session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession, None]:
    """
    Provides a single session on a fresh in-memory database for
    service-level tests.
    """
    session = session_factory()
    try:
        yield session
    finally:
        await session.rollback()
        await session.close()


# --- 3. SERVICE FIXTURES ---

@pytest.fixture(scope="function")
def user_service(db_session: AsyncSession) -> UserService:
    return UserService(db=db_session)

@pytest.fixture(scope="function")
def teacher_service(db_session: AsyncSession, user_service: UserService) -> TeacherService:
    return TeacherService(db=db_session, user_service=user_service)

@pytest.fixture(scope="function")
def notification_service(db_session: AsyncSession) -> NotificationService:
    return NotificationService(db=db_session)

@pytest.fixture(scope="function")
def ledger_service(db_session: AsyncSession) -> PaymentLedgerService:
    return PaymentLedgerService(db=db_session)

@pytest.fixture(scope="function")
def task_scheduler(db_session: AsyncSession) -> TaskSchedulerService:
    return TaskSchedulerService(db=db_session)

@pytest.fixture(scope="function")
def lesson_service(
    db_session: AsyncSession,
    notification_service: NotificationService,
    ledger_service: PaymentLedgerService,
    task_scheduler: TaskSchedulerService
) -> LessonService:
    return LessonService(
        db=db_session,
        notification_service=notification_service,
        ledger_service=ledger_service,
        scheduler=task_scheduler
    )

@pytest.fixture(scope="function")
def payout_service(
    db_session: AsyncSession,
    notification_service: NotificationService,
    ledger_service: PaymentLedgerService
) -> PayoutService:
    return PayoutService(
        db=db_session,
        notification_service=notification_service,
        ledger_service=ledger_service
    )

@pytest.fixture(scope="function")
def support_service(db_session: AsyncSession) -> SupportService:
    return SupportService(db=db_session)

@pytest.fixture(scope="function")
def mock_payment_adapter() -> PaymentAdapter:
    """A declining adapter, for exercising the failed-charge path."""
    adapter = MagicMock(spec=PaymentAdapter)
    adapter.method = PaymentMethodType.VISA
    adapter.charge = AsyncMock(return_value=False)
    return adapter


# --- 4. DATA FIXTURES ---

@pytest.fixture(scope="function")
async def test_admin_orm(db_session: AsyncSession) -> db_models.Users:
    return await persist(db_session, AdminFactory())

@pytest.fixture(scope="function")
async def test_student_orm(db_session: AsyncSession) -> db_models.Users:
    return await persist(db_session, StudentFactory())

@pytest.fixture(scope="function")
async def test_other_student_orm(db_session: AsyncSession) -> db_models.Users:
    return await persist(db_session, StudentFactory())

@pytest.fixture(scope="function")
async def test_teacher_orm(db_session: AsyncSession) -> db_models.Users:
    return await persist(db_session, TeacherFactory())
