"""Tests for health check endpoints."""

from datetime import datetime
from unittest.mock import AsyncMock
from unittest.mock import MagicMock


def test_health_check(client):
    """Test basic health check endpoint."""
    response = client.get("/health")

    assert response.status_code == 200
    data = response.json()

    assert data["status"] == "healthy"
    assert data["service"] == "Notification Send Worker"
    assert data["version"] == "v1"
    assert data["send_worker_enabled"] is False

    # Verify timestamp is a valid ISO format
    datetime.fromisoformat(data["timestamp"])


def test_liveness_without_consumer(client):
    """Test liveness is OK when the consumer was never started."""
    response = client.get("/health/live")

    assert response.status_code == 200
    assert response.json() == {"status": "alive", "consumer_running": False}


def test_liveness_with_stopped_consumer(app, client):
    """Test liveness fails once a started consumer task has finished."""
    task = MagicMock()
    task.done.return_value = True
    app.state.queue_consumer_task = task

    response = client.get("/health/live")

    assert response.status_code == 503
    assert response.json()["consumer_running"] is False


def test_liveness_with_running_consumer(app, client):
    """Test liveness reports a running consumer."""
    task = MagicMock()
    task.done.return_value = False
    app.state.queue_consumer_task = task

    response = client.get("/health/live")

    assert response.status_code == 200
    assert response.json()["consumer_running"] is True


def test_readiness_without_database(client):
    """Test readiness fails when no database is configured."""
    response = client.get("/health/ready")

    assert response.status_code == 503
    data = response.json()
    assert data["status"] == "not_ready"
    assert data["database"] == "unavailable"
    assert data["queue_length"] is None


def test_readiness_with_healthy_database(app, client, mock_db_pool, mock_queue_client):
    """Test readiness passes with a healthy database and reports the queue length."""
    mock_queue_client.get_queue_length.return_value = 42
    app.state.db_pool = mock_db_pool
    app.state.queue_client = mock_queue_client

    response = client.get("/health/ready")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ready"
    assert data["database"] == "ok"
    assert data["queue_length"] == 42


def test_readiness_with_failing_database(app, client):
    """Test readiness fails when the database health check fails."""
    db_pool = MagicMock()
    db_pool.health_check = AsyncMock(return_value=False)
    app.state.db_pool = db_pool

    response = client.get("/health/ready")

    assert response.status_code == 503

