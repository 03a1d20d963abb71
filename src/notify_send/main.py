import asyncio
import os
from textwrap import dedent

import httpx
import pydantic
from fastapi import FastAPI
from fastapi.routing import APIRoute
from loguru import logger

from notify_send.bot_auth.token_cache import TokenCache
from notify_send.db.pool import NotificationDBPool
from notify_send.db.repository_notification import GlobalSendingNotificationRepository
from notify_send.db.repository_notification import SendingNotificationRepository
from notify_send.db.repository_sent_notification import SentNotificationRepository
from notify_send.db.repository_user_data import UserDataRepository
from notify_send.errors import handle_broad_exceptions
from notify_send.errors import handle_pydantic_validation_errors
from notify_send.monitoring.logger import configure_logger
from notify_send.queue.queue_client import SendQueueClient
from notify_send.queue.queue_consumer import start_queue_consumer
from notify_send.routes.routes_health import ROUTER_HEALTH
from notify_send.sender.conversation import ConversationResolver
from notify_send.sender.orchestrator import DispatchOrchestrator
from notify_send.sender.outcome import OutcomeRecorder
from notify_send.sender.retry_scheduler import RetryScheduler
from notify_send.sender.send_loop import SendAttemptLoop
from notify_send.sender.throttle import ThrottleCoordinator
from notify_send.settings import Settings


def _detect_environment() -> str:
    """Detect if running in Azure Web App or locally."""
    # Azure Web App sets WEBSITE_INSTANCE_ID
    if os.getenv("WEBSITE_INSTANCE_ID"):
        return "azure-web-app"
    return "local"


def build_queue_client(settings: Settings) -> SendQueueClient | None:
    """Send queue client from a connection string, or from the account URL with managed identity."""
    if settings.azure_queue_connection_string:
        return SendQueueClient.from_connection_string(settings.azure_queue_connection_string, settings.send_queue_name)
    if settings.azure_queue_account_url:
        return SendQueueClient.from_account_url(settings.azure_queue_account_url, settings.send_queue_name)
    return None


def build_orchestrator(
    settings: Settings,
    db_pool: NotificationDBPool,
    http_client: httpx.AsyncClient,
    queue_client: SendQueueClient,
) -> DispatchOrchestrator:
    """Wire the send pipeline components around one shared HTTP client and token cache."""
    send_loop = SendAttemptLoop(http_client)
    throttle = ThrottleCoordinator(GlobalSendingNotificationRepository(db_pool))

    token_cache = TokenCache(
        http_client=http_client,
        client_id=settings.microsoft_app_id,
        client_secret=settings.microsoft_app_password,
        token_url=settings.bot_token_url,
        scope=settings.bot_token_scope,
    )

    return DispatchOrchestrator(
        token_cache=token_cache,
        sending_notifications=SendingNotificationRepository(db_pool),
        throttle=throttle,
        resolver=ConversationResolver(
            send_loop,
            UserDataRepository(db_pool),
            bot_app_id=settings.microsoft_app_id,
            max_attempts=settings.max_number_of_attempts,
        ),
        send_loop=send_loop,
        recorder=OutcomeRecorder(SentNotificationRepository(db_pool)),
        retry_scheduler=RetryScheduler(
            queue_client,
            throttle,
            retry_delay_minutes=settings.send_retry_delay_number_of_minutes,
        ),
        max_attempts=settings.max_number_of_attempts,
        max_delivery_count=settings.max_delivery_count_for_dead_letter,
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create the FastAPI application hosting the send worker.

    Configuration is loaded directly from environment variables via pydantic-settings.
    - Azure Web App: Set variables as App Settings (Configuration > Application settings)
    - Local development: Use a .env file in the repository root
    """
    settings = settings or Settings()

    configure_logger(level=settings.log_level)

    logger.info(
        "Configuration loaded successfully",
        environment=_detect_environment(),
        app_id_set=bool(settings.microsoft_app_id),
        db_configured=bool(settings.domain_db_connection_string),
        queue_configured=bool(settings.azure_queue_connection_string or settings.azure_queue_account_url),
        max_number_of_attempts=settings.max_number_of_attempts,
        send_retry_delay_minutes=settings.send_retry_delay_number_of_minutes,
    )

    app = FastAPI(
        title="Notification Send Worker",
        version="v1",
        description=dedent(
            """
        Delivers queued per-recipient notifications through the bot connector.

        The HTTP surface only exposes health probes; work arrives on the send queue.
        """
        ),
        generate_unique_id_function=custom_generate_unique_id,
    )
    app.state.settings = settings

    app.include_router(ROUTER_HEALTH, prefix="/api")

    queue_client = build_queue_client(settings)

    if settings.enable_send_worker and settings.domain_db_connection_string and queue_client:
        logger.info("Initializing send worker", queue=settings.send_queue_name)

        db_pool = NotificationDBPool(settings.domain_db_connection_string)
        http_client = httpx.AsyncClient(timeout=settings.http_timeout_seconds)

        app.state.db_pool = db_pool
        app.state.queue_client = queue_client
        app.state.http_client = http_client
        app.state.orchestrator = build_orchestrator(settings, db_pool, http_client, queue_client)

        @app.on_event("startup")
        async def startup_send_worker():
            """Initialize the table store and queues, then start the queue consumer."""
            await app.state.db_pool.initialize()
            await app.state.queue_client.initialize()

            app.state.queue_consumer_task = asyncio.create_task(
                start_queue_consumer(app.state.queue_client, app.state.orchestrator, settings)
            )
            logger.success("Send queue consumer started")

        @app.on_event("shutdown")
        async def shutdown_send_worker():
            """Stop the consumer and close connections."""
            task = getattr(app.state, "queue_consumer_task", None)
            if task is not None:
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass

            await app.state.http_client.aclose()
            await app.state.queue_client.close()
            await app.state.db_pool.close()
            logger.info("Send worker stopped")

    else:
        logger.info(
            "Send worker disabled (enable_send_worker=false, or database/queue not configured)",
            enable_send_worker=settings.enable_send_worker,
        )

    app.add_exception_handler(
        exc_class_or_status_code=pydantic.ValidationError,
        handler=handle_pydantic_validation_errors,
    )

    app.middleware("http")(handle_broad_exceptions)

    return app


def custom_generate_unique_id(route: APIRoute):
    """
    Generate prettier `operationId`s in the OpenAPI schema.

    These become the function names in generated client SDKs.
    """
    if route.tags:
        return f"{route.tags[0]}-{route.name}"
    return route.name


if __name__ == "__main__":
    import uvicorn

    app = create_app()
    uvicorn.run(app, host="0.0.0.0", port=8000)
