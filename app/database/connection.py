# app/database/connection.py
import asyncpg
import json
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional
from app.config import Settings
import logging

logger = logging.getLogger(__name__)

async def _init_connection(connection: asyncpg.Connection):
    """Decode JSONB columns into Python objects"""
    await connection.set_type_codec(
        'jsonb',
        encoder=json.dumps,
        decoder=json.loads,
        schema='pg_catalog'
    )

class DatabaseConnection:
    def __init__(self, settings: Settings):
        self.settings = settings
        self._pool: Optional[asyncpg.Pool] = None

    async def get_pool(self) -> asyncpg.Pool:
        """Get or create database connection pool"""
        if self._pool is None:
            try:
                self._pool = await asyncpg.create_pool(
                    self.settings.database_url,
                    min_size=self.settings.db_pool_min_size,
                    max_size=self.settings.db_pool_max_size,
                    command_timeout=self.settings.db_command_timeout,
                    init=_init_connection
                )
                logger.info("Database connection pool created")
            except Exception as e:
                logger.error(f"Failed to create database pool: {e}")
                raise
        return self._pool

    async def close_pool(self):
        """Close database connection pool"""
        if self._pool:
            await self._pool.close()
            self._pool = None
            logger.info("Database connection pool closed")

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[asyncpg.Connection]:
        """Borrow a connection and always hand it back to the pool"""
        pool = await self.get_pool()
        connection = await pool.acquire()
        try:
            yield connection
        finally:
            await pool.release(connection)

    async def is_healthy(self) -> bool:
        try:
            async with self.acquire() as conn:
                await conn.fetchval('SELECT 1')
            return True
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return False
