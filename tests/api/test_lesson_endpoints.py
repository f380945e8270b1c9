import pytest
from datetime import datetime, timedelta
from decimal import Decimal
from uuid import UUID, uuid4
from fastapi.testclient import TestClient
from sqlalchemy import update

from src.lingua_tutor_backend.database import models as db_models

from tests.helpers import signup_student, signup_teacher, booking_body


@pytest.fixture
def accounts(client: TestClient) -> dict:
    teacher, teacher_headers = signup_teacher(client)
    student, student_headers = signup_student(client)
    other, other_headers = signup_student(client, "other@example.com")
    return {
        "teacher": teacher,
        "teacher_headers": teacher_headers,
        "student": student,
        "student_headers": student_headers,
        "other_headers": other_headers,
    }


def create_booking(client: TestClient, accounts: dict, **overrides) -> dict:
    response = client.post(
        "/bookings/",
        json=booking_body(accounts["teacher"]["id"], **overrides),
        headers=accounts["student_headers"]
    )
    assert response.status_code == 201, response.text
    return response.json()


def start_lesson(run_in_app, lesson: dict) -> None:
    """Moves a booked lesson to yesterday so it has already started."""
    async def _backdate(session):
        await session.execute(
            update(db_models.Lessons)
            .where(db_models.Lessons.id == UUID(lesson["id"]))
            .values(lesson_date=(datetime.utcnow() - timedelta(days=1)).date())
        )
    run_in_app(_backdate)


class TestBookingEndpoints:

    def test_book_lesson(self, client: TestClient, accounts: dict):
        lesson = create_booking(client, accounts)

        assert Decimal(lesson["price"]) == Decimal("25.00")
        assert Decimal(lesson["commission"]) == Decimal("5.00")
        assert Decimal(lesson["tax"]) == Decimal("2.10")
        assert Decimal(lesson["total_amount"]) == Decimal("32.10")
        assert lesson["status"] == "scheduled"
        assert lesson["payment_released"] is False

        listed = client.get("/bookings/", headers=accounts["student_headers"]).json()
        assert [l["id"] for l in listed] == [lesson["id"]]

    def test_invalid_booking_body(self, client: TestClient, accounts: dict):
        response = client.post(
            "/bookings/",
            json=booking_body(accounts["teacher"]["id"], duration=0),
            headers=accounts["student_headers"]
        )
        assert response.status_code == 400

    def test_teacher_cannot_book(self, client: TestClient, accounts: dict):
        response = client.post(
            "/bookings/",
            json=booking_body(accounts["teacher"]["id"]),
            headers=accounts["teacher_headers"]
        )
        assert response.status_code == 403

    def test_unknown_teacher(self, client: TestClient, accounts: dict):
        response = client.post("/bookings/", json=booking_body(uuid4()), headers=accounts["student_headers"])
        assert response.status_code == 404


class TestLessonLifecycleEndpoints:

    def test_reschedule_then_complete_and_release(self, client: TestClient, run_in_app, accounts: dict):
        lesson = create_booking(client, accounts)
        start_lesson(run_in_app, lesson)
        lesson_url = f"/lessons/{lesson['id']}"

        response = client.post(f"{lesson_url}/absence", json={"party": "student"}, headers=accounts["teacher_headers"])
        assert response.status_code == 200
        assert response.json()["status"] == "rescheduled"
        assert response.json()["reschedule_count"] == 1

        new_day = (datetime.utcnow() + timedelta(days=2)).date()
        response = client.post(
            f"{lesson_url}/reschedule",
            json={"date": new_day.isoformat(), "start_time": "12:00:00"},
            headers=accounts["student_headers"]
        )
        assert response.status_code == 200
        assert response.json()["status"] == "scheduled"
        assert response.json()["lesson_date"] == new_day.isoformat()

        response = client.post(
            f"{lesson_url}/complete",
            json={"student_confirmation": True},
            headers=accounts["student_headers"]
        )
        assert response.status_code == 200
        assert response.json()["completion_status"] == "manual"
        assert response.json()["payment_released"] is True

        # completing again changes nothing
        response = client.post(
            f"{lesson_url}/complete",
            json={"student_confirmation": True},
            headers=accounts["student_headers"]
        )
        assert response.status_code == 200

        wallet = client.get("/wallet/", headers=accounts["teacher_headers"]).json()
        assert Decimal(wallet["balance"]) == Decimal("20.00")
        assert len(wallet["transactions"]) == 1

    def test_teacher_absence_cancels(self, client: TestClient, run_in_app, accounts: dict):
        lesson = create_booking(client, accounts)
        lesson_url = f"/lessons/{lesson['id']}"

        response = client.post(f"{lesson_url}/absence", json={"party": "teacher"}, headers=accounts["teacher_headers"])
        assert response.status_code == 409

        start_lesson(run_in_app, lesson)

        response = client.post(f"{lesson_url}/absence", json={"party": "student"}, headers=accounts["student_headers"])
        assert response.status_code == 403

        response = client.post(f"{lesson_url}/absence", json={"party": "teacher"}, headers=accounts["teacher_headers"])
        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"

        response = client.post(
            f"{lesson_url}/complete",
            json={"student_confirmation": True},
            headers=accounts["student_headers"]
        )
        assert response.status_code == 409

        cancelled = client.get("/lessons/", params={"status": "cancelled"}, headers=accounts["student_headers"]).json()
        assert [l["id"] for l in cancelled] == [lesson["id"]]

        notifications = client.get("/notifications/", headers=accounts["student_headers"]).json()
        assert "refund_or_reschedule_choice" in [n["notification_type"] for n in notifications]

    def test_cancel_booking(self, client: TestClient, accounts: dict):
        lesson = create_booking(client, accounts)
        cancel_url = f"/lessons/{lesson['id']}/cancel"

        response = client.post(cancel_url, json={}, headers=accounts["other_headers"])
        assert response.status_code == 403

        response = client.post(cancel_url, json={"reason": "Exams moved"}, headers=accounts["student_headers"])
        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"
        assert response.json()["cancellation_reason"] == "Exams moved"
        assert response.json()["refund_percentage"] == 100
        assert Decimal(response.json()["refund_amount"]) == Decimal("32.10")
        assert response.json()["payment_released"] is False

        response = client.post(cancel_url, json={}, headers=accounts["teacher_headers"])
        assert response.status_code == 409

        notifications = client.get("/notifications/", headers=accounts["teacher_headers"]).json()
        assert "lesson_cancelled" in [n["notification_type"] for n in notifications]

    def test_started_lesson_cannot_be_cancelled(self, client: TestClient, run_in_app, accounts: dict):
        lesson = create_booking(client, accounts)
        start_lesson(run_in_app, lesson)

        response = client.post(f"/lessons/{lesson['id']}/cancel", json={}, headers=accounts["teacher_headers"])
        assert response.status_code == 409

    def test_lesson_access(self, client: TestClient, accounts: dict):
        lesson = create_booking(client, accounts)

        assert client.get(f"/lessons/{lesson['id']}", headers=accounts["teacher_headers"]).status_code == 200
        assert client.get(f"/lessons/{lesson['id']}", headers=accounts["other_headers"]).status_code == 403
        assert client.get(f"/lessons/{uuid4()}", headers=accounts["student_headers"]).status_code == 404

    def test_pay_for_lesson(self, client: TestClient, accounts: dict):
        lesson = create_booking(client, accounts)
        payments_url = f"/lessons/{lesson['id']}/payments"

        response = client.post(payments_url, json={"method": "bitcoin"}, headers=accounts["student_headers"])
        assert response.status_code == 400

        response = client.post(payments_url, json={"method": "apple_pay"}, headers=accounts["student_headers"])
        assert response.status_code == 201
        assert response.json()["status"] == "succeeded"
        assert Decimal(response.json()["amount"]) == Decimal("32.10")

        response = client.post(payments_url, json={"method": "paypal"}, headers=accounts["student_headers"])
        assert response.status_code == 409
