'''
Helpers shared by the service and endpoint tests.
'''
from sqlalchemy.ext.asyncio import AsyncSession

from src.lingua_tutor_backend.database import models as db_models
from src.lingua_tutor_backend.models import lessons as lesson_models
from src.lingua_tutor_backend.services.security import JWTHandler
from src.lingua_tutor_backend.services.lesson_service import LessonService

from tests.constants import (
    TEST_PASSWORD_STUDENT,
    TEST_PASSWORD_TEACHER,
    TEST_NOW,
    TEST_LESSON_DATE,
    TEST_LESSON_START,
    TEST_LESSON_DURATION,
)


async def persist(session: AsyncSession, *objects):
    """Adds factory-built objects and flushes them so their IDs are usable."""
    session.add_all(objects)
    await session.flush()
    return objects[0] if len(objects) == 1 else objects


def auth_headers_for_user(user: db_models.Users) -> dict:
    """Creates a JWT token for the given user and returns auth headers."""
    token = JWTHandler.create_access_token(subject=user.email, role=user.role)
    return {"Authorization": f"Bearer {token}"}


async def book(
    lesson_service: LessonService,
    student: db_models.Users,
    teacher: db_models.Users,
    **overrides
) -> db_models.Lessons:
    fields = dict(
        teacher_id=teacher.id,
        lesson_date=TEST_LESSON_DATE,
        start_time=TEST_LESSON_START,
        duration_minutes=TEST_LESSON_DURATION,
    )
    fields.update(overrides)
    command = lesson_models.BookLessonCommand(**fields)
    return await lesson_service.book_lesson(student, command, now=TEST_NOW)


# --- Endpoint helpers ---

def login(client, email: str, password: str) -> dict:
    response = client.post("/auth/login", data={"username": email, "password": password})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


def signup_student(client, email: str = "student@example.com", password: str = TEST_PASSWORD_STUDENT) -> tuple[dict, dict]:
    """Signs a student up through the API. Returns the user JSON and auth headers."""
    response = client.post("/auth/signup/student", json={
        "email": email,
        "password": password,
        "first_name": "Sam",
        "last_name": "Student",
    })
    assert response.status_code == 201, response.text
    return response.json(), login(client, email, password)


def signup_teacher(client, email: str = "teacher@example.com", password: str = TEST_PASSWORD_TEACHER, **profile) -> tuple[dict, dict]:
    """Signs a teacher up through the API. Returns the profile JSON and auth headers."""
    body = {
        "email": email,
        "password": password,
        "first_name": "Tina",
        "last_name": "Teacher",
        "languages": ["English"],
        "native_language": "English",
        "price": "25.00",
        "country": "USA",
    }
    body.update(profile)
    response = client.post("/auth/signup/teacher", json=body)
    assert response.status_code == 201, response.text
    return response.json(), login(client, email, password)


def booking_body(teacher_id, **overrides) -> dict:
    body = {
        "teacher_id": str(teacher_id),
        "date": TEST_LESSON_DATE.isoformat(),
        "start_time": TEST_LESSON_START.isoformat(),
        "duration": TEST_LESSON_DURATION,
    }
    body.update(overrides)
    return body
