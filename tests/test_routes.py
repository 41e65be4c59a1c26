"""Tests for the /analyses router."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from dailydrop.core.database import get_db
from dailydrop.core.dependency import get_analysis_service
from main import app

from conftest import add_entries, make_user

HEADERS = {"X-User-Id": "user-1"}


@pytest.fixture
def client(session_factory, service):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_analysis_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestAuthentication:
    def test_missing_user_header(self, client) -> None:
        response = client.get("/analyses/eligibility")
        assert response.status_code == 401

    def test_blank_user_header(self, client) -> None:
        response = client.get("/analyses", headers={"X-User-Id": "  "})
        assert response.status_code == 401


class TestEligibilityRoute:
    def test_reports_counts(self, client, db) -> None:
        make_user(db)
        add_entries(db, "user-1", 2)

        response = client.get("/analyses/eligibility", headers=HEADERS)

        assert response.status_code == 200
        assert response.json() == {"is_eligible": False, "unanalyzed_count": 2, "required_count": 3}

    def test_unknown_user(self, client) -> None:
        response = client.get("/analyses/eligibility", headers={"X-User-Id": "ghost"})
        assert response.status_code == 404


class TestCreateRoute:
    def test_created(self, client, db) -> None:
        make_user(db)
        add_entries(db, "user-1", 3)

        response = client.post("/analyses", headers=HEADERS)

        assert response.status_code == 201
        body = response.json()
        assert body["user_id"] == "user-1"
        assert body["summary"] == "You grow most when you name your fears out loud."
        assert body["is_favorited"] is False

    def test_failure_carries_kind_and_metadata(self, client, db) -> None:
        make_user(db)
        add_entries(db, "user-1", 1)

        response = client.post("/analyses", headers=HEADERS)

        assert response.status_code == 400
        body = response.json()
        assert body["kind"] == "validation"
        assert "at least 3" in body["message"]
        assert body["metadata"]["entry_count"] == 1
        assert body["metadata"]["required_count"] == 3


class TestReadRoutes:
    @pytest.fixture
    def analysis_id(self, client, db) -> int:
        make_user(db)
        add_entries(db, "user-1", 3)
        return client.post("/analyses", headers=HEADERS).json()["id"]

    def test_list(self, client, analysis_id) -> None:
        response = client.get("/analyses", headers=HEADERS)

        assert response.status_code == 200
        assert [a["id"] for a in response.json()] == [analysis_id]

    def test_list_is_per_user(self, client, analysis_id) -> None:
        response = client.get("/analyses", headers={"X-User-Id": "user-2"})
        assert response.json() == []

    def test_get_own(self, client, analysis_id) -> None:
        response = client.get(f"/analyses/{analysis_id}", headers=HEADERS)
        assert response.status_code == 200
        assert response.json()["id"] == analysis_id

    def test_get_other_users(self, client, analysis_id) -> None:
        response = client.get(f"/analyses/{analysis_id}", headers={"X-User-Id": "user-2"})
        assert response.status_code == 403

    def test_get_missing(self, client, analysis_id) -> None:
        response = client.get("/analyses/9999", headers=HEADERS)
        assert response.status_code == 404

    def test_favorite(self, client, analysis_id) -> None:
        response = client.put(f"/analyses/{analysis_id}/favorite", headers=HEADERS, json={"is_favorited": True})

        assert response.status_code == 200
        assert response.json()["is_favorited"] is True

    def test_favorite_other_users(self, client, analysis_id) -> None:
        response = client.put(
            f"/analyses/{analysis_id}/favorite",
            headers={"X-User-Id": "user-2"},
            json={"is_favorited": True},
        )
        assert response.status_code == 403


class TestHealthRoute:
    def test_healthy(self, client) -> None:
        response = client.get("/analyses/health")

        assert response.status_code == 200
        assert response.json()["healthy"] is True
