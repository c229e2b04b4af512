"""Smoke tests for API routes."""

import inspect
from datetime import date
from unittest.mock import MagicMock, patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from pronunciation_progress.api.routes import router, score_attempt
from pronunciation_progress.assessment.scorer import Scorer
from pronunciation_progress.progression.engine import EngineRegistry
from pronunciation_progress.storage.stats_store import InMemoryStatsStore


class FailingSaveStore(InMemoryStatsStore):
    def save(self, user_id, stats):
        raise OSError("read-only filesystem")


@pytest.fixture
def mock_settings(tmp_path):
    settings = MagicMock()
    settings.history_dir = tmp_path / "history"
    settings.history_dir.mkdir()
    settings.history_limit = 20
    settings.leaderboard_size = 10
    return settings


@pytest.fixture
def store():
    return InMemoryStatsStore()


@pytest.fixture
def client(mock_settings, store):
    app = FastAPI()
    app.include_router(router)
    registry = EngineRegistry(store, clock=lambda: date(2026, 3, 2))
    with (
        patch("pronunciation_progress.api.routes.get_settings", return_value=mock_settings),
        patch("pronunciation_progress.api.routes.get_registry", return_value=registry),
        patch("pronunciation_progress.api.routes.get_scorer", return_value=Scorer()),
    ):
        with TestClient(app) as c:
            yield c


ATTEMPT = {"transcript": "hello word", "reference_text": "hello world"}


class TestHealthCheck:
    def test_health_returns_ok(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}


class TestScore:
    def test_score_attempt(self, client):
        response = client.post("/api/score", json=ATTEMPT)
        assert response.status_code == 200
        data = response.json()
        assert data["score"]["accuracy"] == 100
        assert data["score"]["overall"] == 96
        assert data["label"] == "Excellent"
        assert len(data["words"]) == 2

    def test_empty_reference(self, client):
        response = client.post("/api/score", json={"transcript": "hi", "reference_text": " "})
        assert response.status_code == 422


class TestSessions:
    def test_record_session(self, client, store):
        response = client.post("/api/users/learner/sessions", json=ATTEMPT)
        assert response.status_code == 200
        data = response.json()
        assert data["outcome"]["xp_gained"] == 50
        assert data["outcome"]["goal_xp"] == 200
        assert [b["id"] for b in data["outcome"]["new_badges"]] == ["first_steps", "accuracy_master"]
        assert data["stats"]["session_count"] == 1
        assert store.load("learner").xp == 250

        history = client.get("/api/users/learner/history").json()
        assert len(history) == 1
        assert history[0]["reference_text"] == "hello world"

    def test_stats_for_new_user(self, client):
        response = client.get("/api/users/newcomer/stats")
        assert response.status_code == 200
        data = response.json()
        assert data["level"] == 1
        assert len(data["daily_goals"]) == 3

    def test_user_badges(self, client):
        client.post("/api/users/learner/sessions", json=ATTEMPT)
        response = client.get("/api/users/learner/badges")
        assert [b["id"] for b in response.json()] == ["first_steps", "accuracy_master"]

    def test_persistence_failure_returns_outcome(self, mock_settings):
        app = FastAPI()
        app.include_router(router)
        registry = EngineRegistry(FailingSaveStore(), clock=lambda: date(2026, 3, 2))
        with (
            patch("pronunciation_progress.api.routes.get_settings", return_value=mock_settings),
            patch("pronunciation_progress.api.routes.get_registry", return_value=registry),
            patch("pronunciation_progress.api.routes.get_scorer", return_value=Scorer()),
        ):
            with TestClient(app) as c:
                response = c.post("/api/users/learner/sessions", json=ATTEMPT)
        assert response.status_code == 503
        assert response.json()["outcome"]["xp_gained"] == 50

    def test_invalid_user_id_history(self, client):
        response = client.get("/api/users/bad.id/history")
        assert response.status_code == 422


class TestCatalogs:
    def test_badges(self, client):
        response = client.get("/api/badges")
        assert response.status_code == 200
        assert len(response.json()) == 5

    def test_challenges(self, client):
        response = client.get("/api/challenges")
        assert [c["id"] for c in response.json()][0] == "daily_pronunciation"

    def test_leaderboard(self, client, store):
        client.post("/api/users/learner/sessions", json=ATTEMPT)
        response = client.get("/api/users/other/leaderboard")
        entries = response.json()
        assert [e["user_id"] for e in entries] == ["learner", "other"]
        assert entries[1]["is_current_user"]


class TestHistoryFailures:
    def test_corrupt_history_does_not_fail_recorded_session(self, client, store, mock_settings):
        (mock_settings.history_dir / "alice.json").write_text("{not json")
        response = client.post("/api/users/alice/sessions", json=ATTEMPT)
        assert response.status_code == 200
        assert response.json()["stats"]["session_count"] == 1
        assert store.load("alice").session_count == 1

    def test_corrupt_history_read_unavailable(self, client, mock_settings):
        (mock_settings.history_dir / "alice.json").write_text("{not json")
        response = client.get("/api/users/alice/history")
        assert response.status_code == 503


class TestWordLength:
    def test_overlong_word_rejected(self, client):
        attempt = {"transcript": "a" * 65, "reference_text": "hello world"}
        response = client.post("/api/score", json=attempt)
        assert response.status_code == 422

    def test_overlong_reference_word_rejected(self, client):
        attempt = {"transcript": "hello", "reference_text": "b" * 65}
        response = client.post("/api/users/learner/sessions", json=attempt)
        assert response.status_code == 422

    def test_longest_allowed_word_accepted(self, client):
        word = "c" * 64
        response = client.post("/api/score", json={"transcript": word, "reference_text": word})
        assert response.status_code == 200
        assert response.json()["score"]["accuracy"] == 100

    def test_scoring_runs_off_the_event_loop(self):
        assert not inspect.iscoroutinefunction(score_attempt)
