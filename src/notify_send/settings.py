"""Settings for the notification send worker."""

from typing import Optional

from pydantic import AliasChoices
from pydantic import Field
from pydantic_settings import BaseSettings
from pydantic_settings import SettingsConfigDict


class Settings(BaseSettings):
    """
    Settings for the notification send worker.

    [pydantic.BaseSettings](https://docs.pydantic.dev/latest/concepts/pydantic_settings/) reads
    configuration values from environment variables and, for local development, a .env file.

    Environment variable names are treated case-insensitively. The two retry knobs also accept
    the legacy function-app names (MaxNumberOfAttempts, SendRetryDelayNumberOfMinutes).
    """

    # Bot identity (client credentials)
    microsoft_app_id: str
    """Bot application (client) ID used for token issuance and as the bot member id (required)."""

    microsoft_app_password: str
    """Bot application secret (required)."""

    bot_token_url: str = "https://login.microsoftonline.com/botframework.com/oauth2/v2.0/token"
    """Token endpoint for the client credentials flow."""

    bot_token_scope: str = "https://api.botframework.com/.default"
    """Scope requested for the bot access token."""

    # Send retry policy
    max_number_of_attempts: int = Field(
        default=1,
        ge=1,
        validation_alias=AliasChoices("max_number_of_attempts", "MaxNumberOfAttempts"),
    )
    """In-process attempts per HTTP call before escalating to a global backoff."""

    send_retry_delay_number_of_minutes: int = Field(
        default=11,
        ge=1,
        validation_alias=AliasChoices("send_retry_delay_number_of_minutes", "SendRetryDelayNumberOfMinutes"),
    )
    """Minutes a throttled work item waits on the queue before it is retried."""

    max_delivery_count_for_dead_letter: int = 10
    """Queue delivery count at which a failing message is moved to the poison queue."""

    http_timeout_seconds: float = 30.0
    """Timeout for calls to the token endpoint and the bot connector."""

    # Table store
    domain_db_connection_string: Optional[str] = None
    """PostgreSQL connection string for the notification tables."""

    # Azure Storage Queue
    azure_queue_connection_string: Optional[str] = None
    """Azure Storage Queue connection string."""

    azure_queue_account_url: Optional[str] = None
    """Queue account URL (https://<account>.queue.core.windows.net), used with managed identity
    when no connection string is set."""

    send_queue_name: str = "company-communicator-send"
    """Queue holding the per-recipient work items."""

    queue_batch_size: int = Field(default=16, ge=1, le=32)
    """Messages received per poll; each is processed concurrently."""

    queue_visibility_timeout: int = 600
    """Seconds a received message stays invisible while it is processed."""

    queue_poll_interval_seconds: float = 5.0
    """Sleep between polls when the queue is empty."""

    enable_send_worker: bool = True
    """Start the queue consumer on application startup."""

    log_level: str = "INFO"
    """Minimum level for the stdout log sink."""

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",  # Load from .env file if it exists (local development)
        env_file_encoding="utf-8",
        extra="ignore",
        validate_default=True,
        populate_by_name=True,
    )
