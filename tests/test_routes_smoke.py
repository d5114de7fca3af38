"""Smoke tests for API routes."""

import pytest
from fastapi.testclient import TestClient

from edugame_progress.config import Settings
from edugame_progress.main import create_app
from edugame_progress.progress.store import ProgressStore
from edugame_progress.storage.key_value import JsonKeyValueStore


@pytest.fixture
def settings(tmp_path):
    return Settings(data_dir=tmp_path, profile_id="tester", app_secret=None)


@pytest.fixture
def client(settings):
    app = create_app(settings)
    with TestClient(app) as c:
        yield c


class TestHealthCheck:
    def test_health_returns_ok(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}


class TestProgress:
    def test_fresh_progress(self, client):
        data = client.get("/api/progress").json()
        assert data["achievements"] == []
        assert data["auto_adjust_enabled"] is True
        assert data["experience_levels"]["Binary Game"] == "rookie"

    def test_unknown_game_defaults(self, client):
        data = client.get("/api/games/Maze Game").json()
        assert data == {
            "game_id": "Maze Game",
            "completed": False,
            "score": 0,
            "percentage": 0.0,
            "experience_level": "rookie",
        }

    def test_complete_game(self, client):
        response = client.post(
            "/api/games/Binary Game/complete", json={"score": 8, "percentage": 0.8}
        )
        assert response.status_code == 200
        assert response.json()["experience_level"] == "pro"
        assert client.get("/api/progress").json()["achievements"] == ["Completed Binary Game"]

    def test_complete_game_rejects_bad_percentage(self, client):
        response = client.post(
            "/api/games/Binary Game/complete", json={"score": 8, "percentage": 1.5}
        )
        assert response.status_code == 422

    def test_set_experience_level(self, client):
        response = client.put(
            "/api/games/Color Game/experience-level", json={"level": "pro"}
        )
        assert response.status_code == 200
        assert response.json()["experience_level"] == "pro"

    def test_set_experience_level_rejects_unknown(self, client):
        response = client.put(
            "/api/games/Color Game/experience-level", json={"level": "legend"}
        )
        assert response.status_code == 422

    def test_auto_adjust_toggle(self, client):
        response = client.put("/api/settings/auto-adjust", json={"enabled": False})
        assert response.json() == {"auto_adjust_enabled": False}

    def test_save_profile(self, client):
        response = client.put(
            "/api/profile",
            json={"user_name": "Ada", "user_age": "9", "favorite_color": "gameBlue"},
        )
        assert response.json() == {
            "user_name": "Ada",
            "user_age": "9",
            "favorite_color": "gameBlue",
        }

    def test_first_launch(self, client):
        assert client.post("/api/first-launch").json() == {"first_launch": False}

    def test_reset(self, client, settings):
        client.post("/api/games/Binary Game/complete", json={"score": 8, "percentage": 0.8})
        client.post("/api/game-state-keys", json={"key": "quizLastQuestion"})
        JsonKeyValueStore(settings.profile_path).write_batch(
            {"BinaryGamePhase": 2, "quizLastQuestion": 4}
        )

        data = client.post("/api/progress/reset").json()

        assert data["achievements"] == []
        assert data["experience_levels"]["Binary Game"] == "rookie"
        remaining = JsonKeyValueStore(settings.profile_path).read_all()
        assert "BinaryGamePhase" not in remaining
        assert "quizLastQuestion" not in remaining

    def test_progress_persisted_to_profile_file(self, client, settings):
        client.post("/api/games/Color Game/complete", json={"score": 4, "percentage": 0.4})
        store = ProgressStore(JsonKeyValueStore(settings.profile_path))
        assert store.get_score("Color Game") == 4


class TestAuth:
    def test_secret_required(self, tmp_path):
        settings = Settings(data_dir=tmp_path, app_secret="s3cret")
        with TestClient(create_app(settings)) as client:
            assert client.get("/api/progress").status_code == 401
            ok = client.get("/api/progress", headers={"X-App-Secret": "s3cret"})
            assert ok.status_code == 200

    def test_health_open_without_secret(self, tmp_path):
        settings = Settings(data_dir=tmp_path, app_secret="s3cret")
        with TestClient(create_app(settings)) as client:
            assert client.get("/api/health").status_code == 200
