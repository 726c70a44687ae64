# app/utils/rate_limiting.py
import asyncpg
import logging
from datetime import datetime, timedelta, timezone

logger = logging.getLogger(__name__)

class RateLimiter:
    def __init__(self, connection: asyncpg.Connection):
        self.conn = connection

    async def check_rate_limit(
        self,
        identifier: str,
        max_requests: int = 100,
        window: int = 900,
        endpoint: str = "contact"
    ) -> bool:
        """Check if request is within rate limits"""
        window_start = datetime.now(timezone.utc) - timedelta(seconds=window)
        try:
            # Clean old entries first
            await self.conn.execute(
                "DELETE FROM rate_limits WHERE window_start < $1",
                window_start
            )

            # Check current count for this identifier
            current_count = await self.conn.fetchval("""
                SELECT COALESCE(SUM(requests_count), 0)
                FROM rate_limits
                WHERE identifier = $1 AND endpoint = $2
                AND window_start >= $3
            """, identifier, endpoint, window_start)

            if current_count and current_count >= max_requests:
                logger.warning(f"Rate limit exceeded for {identifier} on {endpoint}")
                return False

            # Record this request
            await self.conn.execute("""
                INSERT INTO rate_limits (identifier, endpoint, requests_count, window_start)
                VALUES ($1, $2, 1, NOW())
            """, identifier, endpoint)

            return True

        except Exception as e:
            logger.error(f"Rate limiting check failed: {e}")
            # Allow request if rate limiting fails
            return True
