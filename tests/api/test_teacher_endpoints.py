import pytest
from decimal import Decimal
from uuid import uuid4
from fastapi.testclient import TestClient

from tests.helpers import persist
from tests.database.factories import TeacherFactory


@pytest.fixture
def seeded_teachers(run_in_app) -> dict:
    async def _seed(session):
        return await persist(
            session,
            TeacherFactory(
                first_name="Lena", last_name="Vogel",
                teacher_profile__languages=["German"],
                teacher_profile__price=Decimal("35.00"),
                teacher_profile__rating=Decimal("4.95"),
                teacher_profile__review_count=80,
                teacher_profile__country="Germany",
            ),
            TeacherFactory(
                first_name="Omar", last_name="Haddad",
                teacher_profile__languages=["Arabic", "English"],
                teacher_profile__price=Decimal("18.00"),
                teacher_profile__rating=Decimal("4.60"),
                teacher_profile__review_count=30,
                teacher_profile__country="Egypt",
            ),
        )
    lena, omar = run_in_app(_seed)
    return {"lena": lena, "omar": omar}


class TestTeacherEndpoints:

    def test_list_teachers_is_public(self, client: TestClient, seeded_teachers: dict):
        response = client.get("/teachers/")

        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 2
        assert [t["name"] for t in body["teachers"]] == ["Lena Vogel", "Omar Haddad"]

    def test_query_parameters(self, client: TestClient, seeded_teachers: dict):
        response = client.get("/teachers/", params={"sortBy": "price-low", "priceMax": "20", "language": "english"})
        assert [t["name"] for t in response.json()["teachers"]] == ["Omar Haddad"]

        response = client.get("/teachers/", params={"country": "germany", "rating": "4.9"})
        assert [t["name"] for t in response.json()["teachers"]] == ["Lena Vogel"]

    def test_invalid_query_parameter(self, client: TestClient):
        assert client.get("/teachers/", params={"page": 0}).status_code == 400

    def test_featured(self, client: TestClient, seeded_teachers: dict):
        response = client.get("/teachers/featured")
        assert response.status_code == 200
        assert [t["name"] for t in response.json()] == ["Lena Vogel"]

    def test_get_teacher(self, client: TestClient, seeded_teachers: dict):
        response = client.get(f"/teachers/{seeded_teachers['omar'].id}")

        assert response.status_code == 200
        assert response.json()["languages"] == ["Arabic", "English"]
        assert client.get(f"/teachers/{uuid4()}").status_code == 404
