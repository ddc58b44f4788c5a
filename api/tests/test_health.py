"""Tests for health endpoints."""

from fastapi.testclient import TestClient


def test_liveness(client: TestClient) -> None:
    """Test the liveness endpoint."""
    response = client.get("/health/live")
    assert response.status_code == 200
    assert response.json() == {"status": "alive"}


def test_readiness_without_stores(client: TestClient) -> None:
    """Readiness fails until the engine is wired."""
    response = client.get("/health/ready")
    assert response.status_code == 503
    data = response.json()
    assert data["status"] == "not_ready"
    assert data["services"]["session_registry"] is False
    assert data["open_sessions"] == 0


def test_readiness_with_stores(wired_client: TestClient, cassandra, catalog) -> None:
    """Readiness passes once catalog, progress store and registry are wired."""
    from src.main import app
    from src.progress.service import ProgressService

    app.state.progress_service = ProgressService(cassandra, "ks", catalog)
    try:
        response = wired_client.get("/health/ready")
    finally:
        del app.state.progress_service

    assert response.status_code == 200
    assert response.json()["status"] == "ready"
    assert "environment" in response.json()


def test_health(client: TestClient) -> None:
    """Test the general health endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["app_name"] == "coursepath"
    assert "version" in data
    assert "environment" in data


def test_root(client: TestClient) -> None:
    """Test the root endpoint."""
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert "message" in data
    assert "Coursepath" in data["message"]
    assert "version" in data
