"""Tests for health check endpoints."""

from fastapi.testclient import TestClient

from react_orchestrator import __version__
from react_orchestrator.api.main import app
from react_orchestrator.config import config

client = TestClient(app)


class TestHealthEndpoint:
    """Tests for /health endpoint."""

    def test_health_returns_200(self):
        """Health check should return 200 OK."""
        response = client.get("/health")
        assert response.status_code == 200

    def test_health_returns_healthy_status(self):
        """Health check should return healthy status."""
        data = client.get("/health").json()
        assert data["status"] == "healthy"

    def test_health_includes_version(self):
        """Health check should include the package version."""
        data = client.get("/health").json()
        assert data["version"] == __version__

    def test_health_includes_model(self):
        """Health check should report the configured model."""
        data = client.get("/health").json()
        assert data["model"] == config.llm.model
