"""
Tests for the JSON API and the landing page.
"""

import time

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from webi_catalog.api.packages import router
from webi_catalog.core.dependencies import get_catalog_service
from webi_catalog.main import app as main_app

from tests.conftest import TREE_PATH, FakeGitHub, make_service


@pytest.fixture
def fake(five_packages):
    return FakeGitHub(five_packages)


@pytest.fixture
def client(fake):
    service = make_service(fake)
    app = FastAPI()
    app.include_router(router, prefix="/api")
    app.dependency_overrides[get_catalog_service] = lambda: service
    return TestClient(app)


class TestPackagesEndpoint:
    """Tests for /api/packages."""

    def test_lists_all(self, client):
        response = client.get("/api/packages")
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["count"] == 5
        assert "timestamp" in body

    def test_camel_case_fields(self, client):
        data = client.get("/api/packages").json()["data"]
        node = next(p for p in data if p["name"] == "node")
        assert node["installCommand"]["curl"] == "curl -sS https://webinstall.dev/node | bash"
        assert "updatedAt" in node
        assert node["platforms"] == {"linux": True, "macos": True, "windows": True}
        assert "version" not in node

    def test_search(self, client):
        body = client.get("/api/packages", params={"q": "doc"}).json()
        assert [p["name"] for p in body["data"]] == ["docker"]

    def test_category_filter(self, client):
        body = client.get("/api/packages", params={"category": "Rust"}).json()
        assert [p["name"] for p in body["data"]] == ["rustup"]

    def test_platform_filter(self, client):
        body = client.get("/api/packages", params={"platform": "windows"}).json()
        assert [p["name"] for p in body["data"]] == ["node"]

    def test_unknown_platform_returns_all(self, client):
        assert client.get("/api/packages", params={"platform": "beos"}).json()["count"] == 5

    def test_refresh_refetches_tree(self, client, fake):
        client.get("/api/packages")
        client.get("/api/packages", params={"refresh": "true"})
        assert fake.calls[TREE_PATH] == 2

    def test_single_package(self, client):
        response = client.get("/api/packages/jq")
        assert response.status_code == 200
        assert response.json()["data"]["category"] == "CLI Utilities"

    def test_missing_package(self, client):
        response = client.get("/api/packages/nope")
        assert response.status_code == 404
        assert response.json()["success"] is False


class TestOtherEndpoints:
    """Tests for categories, stats, repository and cache endpoints."""

    def test_categories(self, client):
        body = client.get("/api/categories").json()
        assert body["data"] == ["CLI Utilities", "Containers", "JavaScript Runtime", "Rust"]
        assert body["count"] == 4

    def test_stats(self, client):
        data = client.get("/api/stats").json()["data"]
        assert data["totalPackages"] == 5
        assert data["categoriesCount"] == 4
        assert data["platformCounts"] == {"linux": 5, "macos": 5, "windows": 1}

    def test_repository(self, client):
        data = client.get("/api/repository").json()["data"]
        assert data["stars"] == 2345

    def test_clear_cache(self, client, fake):
        client.get("/api/packages")
        assert client.post("/api/cache/clear").json()["success"] is True
        client.get("/api/packages")
        assert fake.calls[TREE_PATH] == 2


class TestErrorResponses:
    """Tests for failure envelopes."""

    def test_first_load_failure_is_500(self, client, fake):
        fake.tree_status = 500
        response = client.get("/api/packages")
        assert response.status_code == 500
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "Failed to fetch packages"

    def test_rate_limit_is_503(self, fake):
        reset = int(time.time()) + 600
        fake.tree_status = 403
        fake.tree_headers = {"x-ratelimit-remaining": "0", "x-ratelimit-limit": "60", "x-ratelimit-reset": str(reset)}
        service = make_service(fake)
        app = FastAPI()
        app.include_router(router, prefix="/api")
        app.dependency_overrides[get_catalog_service] = lambda: service

        response = TestClient(app).get("/api/stats")
        assert response.status_code == 503
        assert 0 < int(response.headers["Retry-After"]) <= 600
        assert "GITHUB_TOKEN" in response.json()["message"]


class TestLandingPage:
    """Tests for the HTML landing page and health check."""

    def test_index_renders_stats(self, fake):
        service = make_service(fake)
        main_app.dependency_overrides[get_catalog_service] = lambda: service
        try:
            response = TestClient(main_app).get("/")
        finally:
            main_app.dependency_overrides.clear()
        assert response.status_code == 200
        assert "5 packages in 4 categories" in response.text

    def test_index_failure_message(self, fake):
        fake.tree_status = 500
        service = make_service(fake)
        main_app.dependency_overrides[get_catalog_service] = lambda: service
        try:
            response = TestClient(main_app).get("/")
        finally:
            main_app.dependency_overrides.clear()
        assert response.status_code == 200
        assert "Failed to load packages" in response.text

    def test_health(self):
        assert TestClient(main_app).get("/health").json() == {"status": "ok"}
