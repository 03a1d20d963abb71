"""Unit tests for settings.py."""

from unittest.mock import patch

import pytest
from pydantic import ValidationError

from notify_send.settings import Settings

REQUIRED_ENV = {
    "MICROSOFT_APP_ID": "app-id",
    "MICROSOFT_APP_PASSWORD": "app-password",
}


def _settings(**env) -> Settings:
    with patch.dict("os.environ", {**REQUIRED_ENV, **env}, clear=True):
        return Settings(_env_file=None)


class TestSettings:
    """Tests for Settings loading from the environment."""

    def test_defaults(self):
        settings = _settings()

        assert settings.max_number_of_attempts == 1
        assert settings.send_retry_delay_number_of_minutes == 11
        assert settings.max_delivery_count_for_dead_letter == 10
        assert settings.send_queue_name == "company-communicator-send"
        assert settings.enable_send_worker is True

    def test_snake_case_env_names(self):
        settings = _settings(MAX_NUMBER_OF_ATTEMPTS="3", SEND_RETRY_DELAY_NUMBER_OF_MINUTES="5")

        assert settings.max_number_of_attempts == 3
        assert settings.send_retry_delay_number_of_minutes == 5

    def test_legacy_env_names(self):
        """Test the function-app setting names are accepted."""
        settings = _settings(MaxNumberOfAttempts="4", SendRetryDelayNumberOfMinutes="7")

        assert settings.max_number_of_attempts == 4
        assert settings.send_retry_delay_number_of_minutes == 7

    def test_missing_credentials_raise(self):
        with patch.dict("os.environ", {}, clear=True):
            with pytest.raises(ValidationError):
                Settings(_env_file=None)

    def test_attempts_must_be_positive(self):
        with pytest.raises(ValidationError):
            _settings(MAX_NUMBER_OF_ATTEMPTS="0")

    def test_batch_size_limited_to_queue_maximum(self):
        with pytest.raises(ValidationError):
            _settings(QUEUE_BATCH_SIZE="64")
