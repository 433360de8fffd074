"""Test health check endpoint."""

from fastapi.testclient import TestClient

from app.main import app

client = TestClient(app)


def test_health_check():
    """Test that /health returns 200 with status ok."""
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"


def test_openapi_lists_session_routes():
    paths = client.get("/openapi.json").json()["paths"]
    assert "/v1/sessions" in paths
    assert "/v1/sessions/{session_id}/export" in paths
