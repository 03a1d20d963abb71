"""
Notification Database Connection Pool

Manages the asyncpg connection pool for the notification tables.
Creates the notify schema from schema.sql on first start.

Schema Evolution:
-----------------
When adding/removing/renaming tables in schema.sql:
1. Update the schema.sql file with new DDL
2. Update NotificationDBPool.EXPECTED_TABLES with the new table names
"""

from pathlib import Path
from typing import Optional

import asyncpg
from loguru import logger

SCHEMA_NAME = "notify"


class NotificationDBPool:
    """Notification database connection pool manager."""

    EXPECTED_TABLES = {
        "user_data",
        "sending_notifications",
        "global_sending_notification_data",
        "sent_notifications",
    }

    def __init__(self, connection_string: str):
        """
        Initialize the pool manager.

        Args:
            connection_string: PostgreSQL connection string for the notification database
        """
        self.connection_string = connection_string
        self.pool: Optional[asyncpg.Pool] = None
        self._pool_initialized = False

    async def initialize(self) -> None:
        """Create the connection pool and make sure the schema exists."""
        if self._pool_initialized and self.pool is not None:
            logger.debug("Notification DB pool already initialized")
            return

        try:
            logger.info("Initializing notification database pool")

            # Sized for one connection per concurrently processed queue message
            self.pool = await asyncpg.create_pool(
                self.connection_string,
                min_size=2,
                max_size=20,
                command_timeout=60,
                timeout=15,
            )

            async with self.pool.acquire() as conn:
                result = await conn.fetchval("SELECT 1")
                if result != 1:
                    raise RuntimeError("Pool validation query failed")

            await self._run_migrations()

            self._pool_initialized = True
            logger.success("Notification database initialized successfully")

        except Exception as e:
            logger.error("Failed to initialize notification DB pool: {error}", error=str(e), exc_info=True)
            if self.pool:
                await self.pool.close()
                self.pool = None
            raise

    async def _run_migrations(self) -> None:
        """Execute schema.sql (idempotent DDL) and verify every expected table exists."""
        schema_path = Path(__file__).parent / "schema.sql"
        if not schema_path.exists():
            raise FileNotFoundError(f"schema.sql not found at {schema_path}")

        async with self.pool.acquire() as conn:
            await conn.execute(schema_path.read_text())

            rows = await conn.fetch(
                """
                SELECT table_name
                FROM information_schema.tables
                WHERE table_schema = $1
                """,
                SCHEMA_NAME,
            )
            existing_tables = {row["table_name"] for row in rows}

        missing_tables = self.EXPECTED_TABLES - existing_tables
        if missing_tables:
            logger.error(f"Notification schema is missing tables: {missing_tables}")
            raise RuntimeError(f"Incomplete database schema: missing tables {missing_tables}")

        logger.success(f"All {len(self.EXPECTED_TABLES)} notification tables verified")

    async def close(self) -> None:
        """Close the connection pool gracefully."""
        if self.pool:
            logger.info("Closing notification database pool")
            await self.pool.close()
            self.pool = None
            self._pool_initialized = False

    def acquire(self):
        """
        Acquire a database connection from the pool.

        Usage:
            async with pool.acquire() as conn:
                result = await conn.fetchrow("SELECT * FROM ...")
        """
        if not self.pool:
            raise RuntimeError("Notification DB pool not initialized - call initialize() first")
        return self.pool.acquire()

    async def health_check(self) -> bool:
        """
        Check if database connection is healthy.

        Returns:
            True if connection is healthy, False otherwise
        """
        try:
            if not self.pool:
                return False

            async with self.pool.acquire() as conn:
                result = await conn.fetchval("SELECT 1")
                return result == 1
        except Exception as e:
            logger.error(f"Notification DB health check failed: {e}")
            return False
