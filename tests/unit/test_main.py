"""Tests for the FastAPI application factory module."""

from unittest.mock import patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from voter_intake.core.config import Settings
from voter_intake.main import create_app


class TestCreateApp:
    """Tests for create_app."""

    @pytest.fixture
    def app(self, settings: Settings) -> FastAPI:
        with patch("voter_intake.main.get_settings", return_value=settings):
            return create_app()

    def test_app_metadata(self, app: FastAPI) -> None:
        assert app.title == "Voter Intake API"

    def test_routes_mounted_under_prefix(self, app: FastAPI) -> None:
        paths = {route.path for route in app.routes}  # type: ignore[attr-defined]
        assert "/api/v1/ingest" in paths
        assert "/api/v1/submissions/{submission_id}/transition" in paths
        assert "/api/v1/batches/{batch_id}/submit" in paths
        assert "/api/v1/dashboard/stats" in paths

    def test_health_without_auth(self, app: FastAPI) -> None:
        client = TestClient(app)
        response = client.get("/api/v1/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}
        assert "X-Request-ID" in response.headers

    def test_openapi_schema(self, app: FastAPI) -> None:
        response = TestClient(app).get("/openapi.json")
        assert response.status_code == 200
        assert response.json()["info"]["title"] == "Voter Intake API"

    def test_value_and_permission_error_handlers(self, app: FastAPI) -> None:
        @app.get("/boom/value")
        async def value_boom() -> None:
            raise ValueError("bad value")

        @app.get("/boom/permission")
        async def permission_boom() -> None:
            raise PermissionError("not yours")

        client = TestClient(app, raise_server_exceptions=False)
        value = client.get("/boom/value")
        assert value.status_code == 400
        assert value.json() == {"detail": "bad value"}
        permission = client.get("/boom/permission")
        assert permission.status_code == 403
        assert permission.json() == {"detail": "not yours"}
