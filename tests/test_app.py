"""Tests for the FastAPI application routes."""
from __future__ import annotations

import json
import sqlite3
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from sat_practice import app as app_module
from sat_practice.app import app
from sat_practice.config import Settings
from sat_practice.db import Database
from sat_practice.prompts import DEFAULT_PROMPTS
from sat_practice.providers.base import NetworkFailure

ADMIN = {"X-User-Id": "admin-1"}

MATH_RAW = "Question: 2+2?\nA) 3\nB) 4\nC) 5\nD) 6\nCorrect Answer: B"
READING_RAW = json.dumps({
    "passage": "Owls hunt at night.",
    "questions": [
        {"question": "When do owls hunt?", "choices": ["A) Night", "B) Noon"], "correctAnswer": "A"},
        {"question": "Who hunts?", "choices": ["A) Owls", "B) Cows"], "correctAnswer": "A"},
    ],
})


class FakeSource:
    """Question source with one canned completion per category value."""

    def __init__(self):
        self.completions = {
            "math_with_calculator": MATH_RAW,
            "math_no_calculator": MATH_RAW,
            "reading_passage": READING_RAW,
        }
        self.error: Exception | None = None

    async def fetch(self, category, passage=None):
        if self.error:
            raise self.error
        return self.completions.get(category.value, "")

    def name(self) -> str:
        return "fake-source"


@pytest.fixture
def test_app(tmp_path):
    """Set up test app with temporary database and settings."""
    db = Database(tmp_path / "test.db")
    db.seed_prompts(DEFAULT_PROMPTS)
    db.add_admin("admin-1")
    settings = Settings(db_path=str(tmp_path / "test.db"))
    source = FakeSource()

    # Set globals BEFORE creating TestClient so startup() is a no-op
    app_module._db = db
    app_module._settings = settings
    app_module._active_sessions.clear()

    with patch("sat_practice.app.save_settings"), \
         patch("sat_practice.app._get_source", return_value=source):
        client = TestClient(app, raise_server_exceptions=False)
        yield client, db, source
        client.close()

    db.close()
    app_module._db = None
    app_module._settings = None
    app_module._active_sessions.clear()


def _start(client) -> str:
    resp = client.post("/api/session/start")
    assert resp.status_code == 200
    return resp.json()["session_id"]


class TestCategoriesAPI:
    def test_list(self, test_app):
        client, _, _ = test_app
        data = client.get("/api/categories").json()
        assert "reading_passage" in data["categories"]
        assert len(data["categories"]) == 6


class TestSessionAPI:
    def test_start(self, test_app):
        client, _, _ = test_app
        data = client.post("/api/session/start").json()
        assert data["question"] is None
        assert data["progress"]["total"] == 0

    def test_unknown_session(self, test_app):
        client, _, _ = test_app
        assert client.get("/api/session/nope").status_code == 404
        assert client.post("/api/session/nope/check").status_code == 404

    def test_request_math(self, test_app):
        client, db, _ = test_app
        sid = _start(client)
        resp = client.post(f"/api/session/{sid}/category", json={"category": "math_with_calculator"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["tier"] == "heuristic"
        assert data["question"]["question"] == "2+2?"
        assert data["question"]["choices"][1] == "B) 4"
        assert db.get_response_count() == 1

    def test_response_logged_with_user(self, test_app):
        client, db, _ = test_app
        sid = _start(client)
        client.post(
            f"/api/session/{sid}/category",
            json={"category": "reading_passage"},
            headers={"X-User-Id": "student-7"},
        )
        row = db.get_recent_responses()[0]
        assert row["user_id"] == "student-7"
        assert row["passage"] == "Owls hunt at night."

    def test_failed_parse_not_logged(self, test_app):
        client, db, _ = test_app
        sid = _start(client)
        resp = client.post(f"/api/session/{sid}/category", json={"category": "writing_passage"})
        assert resp.status_code == 200
        assert resp.json()["usable"] is False
        assert db.get_response_count() == 0

    def test_log_failure_is_not_fatal(self, test_app):
        client, db, _ = test_app
        sid = _start(client)
        with patch.object(db, "log_response", side_effect=sqlite3.OperationalError("locked")):
            resp = client.post(f"/api/session/{sid}/category", json={"category": "math_no_calculator"})
        assert resp.status_code == 200
        assert resp.json()["question"]["question"] == "2+2?"

    def test_invalid_category(self, test_app):
        client, _, _ = test_app
        sid = _start(client)
        resp = client.post(f"/api/session/{sid}/category", json={"category": "poetry"})
        assert resp.status_code == 422

    def test_network_failure(self, test_app):
        client, _, source = test_app
        sid = _start(client)
        source.error = NetworkFailure("HTTP error! status: 500")
        resp = client.post(f"/api/session/{sid}/category", json={"category": "reading_passage"})
        assert resp.status_code == 502
        assert "status: 500" in resp.json()["detail"]

    def test_select_check_correct(self, test_app):
        client, _, _ = test_app
        sid = _start(client)
        client.post(f"/api/session/{sid}/category", json={"category": "math_with_calculator"})
        assert client.post(f"/api/session/{sid}/select", json={"answer": "B"}).status_code == 200
        data = client.post(f"/api/session/{sid}/check").json()
        assert data["outcome"] == "correct"
        assert data["correct_answer"] == "B"
        assert data["session"]["progress"]["correct"] == 1

    def test_check_incorrect_advances(self, test_app):
        client, _, _ = test_app
        sid = _start(client)
        client.post(f"/api/session/{sid}/category", json={"category": "reading_passage"})
        client.post(f"/api/session/{sid}/select", json={"answer": "B"})
        data = client.post(f"/api/session/{sid}/check").json()
        assert data["outcome"] == "incorrect"
        assert data["message"] == "The correct answer was A"
        assert data["session"]["progress"]["current"] == 2

    def test_check_without_selection(self, test_app):
        client, _, _ = test_app
        sid = _start(client)
        client.post(f"/api/session/{sid}/category", json={"category": "math_with_calculator"})
        assert client.post(f"/api/session/{sid}/check").status_code == 400

    def test_select_empty_answer(self, test_app):
        client, _, _ = test_app
        sid = _start(client)
        assert client.post(f"/api/session/{sid}/select", json={"answer": " "}).status_code == 400

    def test_navigation(self, test_app):
        client, _, _ = test_app
        sid = _start(client)
        client.post(f"/api/session/{sid}/category", json={"category": "reading_passage"})
        assert client.post(f"/api/session/{sid}/next").json()["progress"]["current"] == 2
        assert client.post(f"/api/session/{sid}/next").json()["progress"]["current"] == 2
        assert client.post(f"/api/session/{sid}/previous").json()["progress"]["current"] == 1

    def test_least_recently_used_session_evicted(self, test_app):
        client, _, _ = test_app
        with patch("sat_practice.app._MAX_SESSIONS", 2):
            first = _start(client)
            second = _start(client)
            client.get(f"/api/session/{first}")  # touch, so second is now oldest
            third = _start(client)
        assert client.get(f"/api/session/{second}").status_code == 404
        assert client.get(f"/api/session/{first}").status_code == 200
        assert client.get(f"/api/session/{third}").status_code == 200
        assert len(app_module._active_sessions) == 2

    def test_end(self, test_app):
        client, _, _ = test_app
        sid = _start(client)
        data = client.delete(f"/api/session/{sid}").json()
        assert data["answered"] == 0
        assert client.get(f"/api/session/{sid}").status_code == 404


class TestAdminAPI:
    def test_anonymous(self, test_app):
        client, _, _ = test_app
        assert client.get("/api/admin/prompts").status_code == 401

    def test_non_admin(self, test_app):
        client, _, _ = test_app
        resp = client.get("/api/admin/prompts", headers={"X-User-Id": "student-7"})
        assert resp.status_code == 403

    def test_list(self, test_app):
        client, _, _ = test_app
        prompts = client.get("/api/admin/prompts", headers=ADMIN).json()["prompts"]
        assert len(prompts) == 6
        assert all(p["is_default"] for p in prompts)

    def test_update(self, test_app):
        client, db, _ = test_app
        target = db.list_prompts()[0]
        resp = client.put(f"/api/admin/prompts/{target.id}", json={"content": "New text"}, headers=ADMIN)
        assert resp.status_code == 200
        assert resp.json()["content"] == "New text"
        assert db.get_prompt_by_id(target.id).content == "New text"

    def test_update_unknown(self, test_app):
        client, _, _ = test_app
        resp = client.put("/api/admin/prompts/missing", json={"content": "x"}, headers=ADMIN)
        assert resp.status_code == 404

    def test_update_empty(self, test_app):
        client, db, _ = test_app
        target = db.list_prompts()[0]
        resp = client.put(f"/api/admin/prompts/{target.id}", json={"content": ""}, headers=ADMIN)
        assert resp.status_code == 400

    def test_seed(self, test_app):
        client, _, _ = test_app
        assert client.post("/api/admin/prompts/seed", headers=ADMIN).json() == {"seeded": 0}


class TestSettingsAPI:
    def test_get_settings(self, test_app):
        client, _, _ = test_app
        data = client.get("/api/settings").json()
        assert data["question_source"] == "generate"

    def test_update_settings(self, test_app):
        client, _, _ = test_app
        resp = client.put("/api/settings", json={"question_source": "api", "bogus": 1})
        assert resp.status_code == 200
        assert resp.json()["question_source"] == "api"
        assert "bogus" not in resp.json()
        assert app_module.get_settings().question_source == "api"

    def test_update_invalid(self, test_app):
        client, _, _ = test_app
        resp = client.put("/api/settings", json={"llm_provider": "eliza"})
        assert resp.status_code == 400
        assert app_module.get_settings().llm_provider == "together"
