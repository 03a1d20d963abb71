"""Fixtures for the FastAPI application and settings."""

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient


@pytest.fixture
def mock_settings():
    """Settings with the send worker disabled, so the app starts without a database or queue."""
    from notify_send.settings import Settings

    with patch.dict(
        "os.environ",
        {
            "MICROSOFT_APP_ID": "test-bot-app-id",
            "MICROSOFT_APP_PASSWORD": "test-bot-app-password",
            "ENABLE_SEND_WORKER": "false",
            "LOG_LEVEL": "DEBUG",
        },
        clear=True,
    ):
        settings = Settings(_env_file=None)
    yield settings


@pytest.fixture
def app(mock_settings):
    """Create FastAPI test application with mocked settings."""
    from notify_send.main import create_app

    app = create_app(settings=mock_settings)
    yield app


@pytest.fixture
def client(app):
    """Create FastAPI test client rooted at the API prefix."""
    with TestClient(app, base_url="http://testserver/api") as test_client:
        yield test_client
