"""
API tests for the dubcast FastAPI application.

The app is built around the fixture orchestrator so requests exercise the
real registry, codec and reconciler against LocalStorage.
"""

import pytest
from fastapi.testclient import TestClient

from dubcast.api.main import create_app


@pytest.fixture
def orchestrator(make_orchestrator):
    return make_orchestrator(include_origin_track=False)


@pytest.fixture
def client(orchestrator, database):
    app = create_app(orchestrator=orchestrator, database=database)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def dubbed(client, source_video):
    response = client.post("/api/v1/dubbing", json={
        "target_languages": ["ja", "en"],
        "source_url": str(source_video),
        "section_id": "42",
    })
    assert response.status_code == 200
    return response.json()


class TestHealth:
    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["docs"] == "/docs"

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["service"] == "dubcast-api"
        assert "X-Process-Time" in response.headers
        assert response.headers["X-Request-ID"]

    def test_request_id_is_echoed(self, client):
        response = client.get("/health", headers={"X-Request-ID": "lesson-42-run"})
        assert response.headers["X-Request-ID"] == "lesson-42-run"

    def test_detailed_health(self, client):
        response = client.get("/health/detailed")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["components"]["database"] == "healthy"
        assert data["components"]["storage_backend"] == "local"


class TestDubbing:
    def test_create_dubbing(self, dubbed, storage):
        assert dubbed["success"] is True
        assert dubbed["partial"] is False
        assert dubbed["ready_languages"] == ["en", "ja"]
        assert [o["status"] for o in dubbed["outcomes"]] == ["ready", "ready"]
        assert dubbed["manifest_url"] == "https://cdn.example.com/assets/curriculumsection/42/master.m3u8"
        assert storage.exists("assets/curriculumsection/42/master.m3u8")

    def test_repeat_is_already_ready(self, client, dubbed):
        response = client.post("/api/v1/dubbing", json={"target_languages": ["ja"], "section_id": "42"})
        assert response.status_code == 200
        assert response.json()["outcomes"][0]["status"] == "already_ready"

    def test_partial_success_is_ok(self, client, provider, source_video):
        provider.failing = {"de"}
        response = client.post("/api/v1/dubbing", json={
            "target_languages": ["en", "de"], "source_url": str(source_video),
        })
        assert response.status_code == 200
        data = response.json()
        assert data["partial"] is True
        failed = [o for o in data["outcomes"] if o["status"] == "failed"]
        assert [o["language"] for o in failed] == ["de"]

    def test_all_failed_is_unprocessable(self, client, provider, source_video):
        provider.failing = {"ja"}
        response = client.post("/api/v1/dubbing", json={
            "target_languages": ["ja"], "source_url": str(source_video),
        })
        assert response.status_code == 422
        data = response.json()
        assert data["error"] == "ProcessingError"
        assert data["details"]["outcomes"][0]["error_type"] == "ProviderError"

    def test_unsupported_language(self, client, source_video):
        response = client.post("/api/v1/dubbing", json={
            "target_languages": ["en", "klingon"], "source_url": str(source_video),
        })
        assert response.status_code == 400
        assert response.json()["details"]["languages"] == ["klingon"]

    def test_new_asset_needs_source(self, client):
        response = client.post("/api/v1/dubbing", json={"target_languages": ["en"], "section_id": "1"})
        assert response.status_code == 400
        assert response.json()["details"]["field"] == "source_url"

    def test_empty_language_list(self, client):
        response = client.post("/api/v1/dubbing", json={"target_languages": []})
        assert response.status_code == 422

    def test_unknown_asset(self, client):
        response = client.post("/api/v1/dubbing", json={"target_languages": ["en"], "asset_id": "nope"})
        assert response.status_code == 404


class TestMasterRefresh:
    def test_refresh(self, client, dubbed, invalidator):
        response = client.post("/api/v1/master/refresh", json={"asset_id": dubbed["asset_id"]})
        assert response.status_code == 200
        data = response.json()
        assert data["uploaded"] is True
        assert data["ready_languages"] == ["en", "ja"]
        assert len(invalidator.paths) == 2

    def test_refresh_unknown_section(self, client):
        response = client.post("/api/v1/master/refresh", json={"section_id": "missing"})
        assert response.status_code == 404

    def test_refresh_requires_key(self, client):
        response = client.post("/api/v1/master/refresh", json={})
        assert response.status_code == 400


class TestTracks:
    def test_list_assets(self, client, dubbed):
        response = client.get("/api/v1/assets")
        assert response.status_code == 200
        data = response.json()
        assert [a["section_id"] for a in data] == ["42"]
        assert data[0]["asset_id"] == dubbed["asset_id"]
        assert data[0]["master_key"] == "assets/curriculumsection/42/master.m3u8"

    def test_list_assets_paging(self, client, dubbed):
        assert client.get("/api/v1/assets", params={"skip": 1}).json() == []
        assert client.get("/api/v1/assets", params={"limit": 0}).status_code == 422

    def test_list_tracks(self, client, dubbed):
        response = client.get(f"/api/v1/assets/{dubbed['asset_id']}/tracks")
        assert response.status_code == 200
        data = response.json()
        assert data["section_id"] == "42"
        assert {t["language"]: t["status"] for t in data["tracks"]} == {"en": "ready", "ja": "ready"}

    def test_list_tracks_unknown_asset(self, client):
        assert client.get("/api/v1/assets/nope/tracks").status_code == 404

    def test_retry_failed_track(self, client, provider, source_video):
        provider.failing = {"ko"}
        created = client.post("/api/v1/dubbing", json={
            "target_languages": ["en", "ko"], "source_url": str(source_video),
        }).json()

        response = client.post(f"/api/v1/assets/{created['asset_id']}/tracks/KO/retry")
        assert response.status_code == 200
        assert response.json()["status"] == "pending"
        assert response.json()["error_message"] is None

    def test_retry_ready_track_conflicts(self, client, dubbed):
        response = client.post(f"/api/v1/assets/{dubbed['asset_id']}/tracks/ja/retry")
        assert response.status_code == 409
        assert response.json()["details"]["current"] == "ready"

    def test_retry_unknown_track(self, client, dubbed):
        response = client.post(f"/api/v1/assets/{dubbed['asset_id']}/tracks/zh/retry")
        assert response.status_code == 404
