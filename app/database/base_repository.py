# app/database/base_repository.py
import asyncpg
from datetime import datetime
from typing import Any, Dict, FrozenSet, List, Optional, Tuple
from app.database.queries import build_where
import logging

logger = logging.getLogger(__name__)

class CollectionRepository:
    """Counting and grouping queries shared by every table-backed collection"""

    table: str = ""
    timestamp_column: str = "created_at"
    filter_columns: FrozenSet[str] = frozenset()
    groupable_columns: FrozenSet[str] = frozenset()
    search_columns: Tuple[str, ...] = ()

    def __init__(self, connection: asyncpg.Connection):
        self.conn = connection

    def _where(
        self,
        filters: Optional[Dict[str, Any]] = None,
        search: Optional[str] = None,
        since: Optional[datetime] = None,
        start: int = 1
    ) -> Tuple[str, List[Any]]:
        filters = filters or {}
        unknown = set(filters) - self.filter_columns
        if unknown:
            raise ValueError(f"Cannot filter {self.table} by {', '.join(sorted(unknown))}")
        return build_where(
            equals=filters,
            search=search,
            search_columns=self.search_columns,
            since=since,
            since_column=self.timestamp_column,
            start=start
        )

    async def count(
        self,
        filters: Optional[Dict[str, Any]] = None,
        search: Optional[str] = None
    ) -> int:
        where, params = self._where(filters, search)
        return await self.conn.fetchval(f"SELECT COUNT(*) FROM {self.table}{where}", *params)

    async def count_since(self, cutoff: datetime) -> int:
        where, params = self._where(since=cutoff)
        return await self.conn.fetchval(f"SELECT COUNT(*) FROM {self.table}{where}", *params)

    async def count_by(self, column: str, since: Optional[datetime] = None) -> Dict[str, int]:
        """Row counts per distinct value of ``column``, largest group first"""
        if column not in self.groupable_columns:
            raise ValueError(f"Cannot group {self.table} by {column}")

        where, params = self._where(since=since)
        rows = await self.conn.fetch(f"""
            SELECT {column} AS value, COUNT(*) AS count
            FROM {self.table}{where}
            GROUP BY {column}
            ORDER BY count DESC, value
        """, *params)
        return {row['value']: row['count'] for row in rows}

    async def daily_counts(self, since: datetime) -> List[Dict[str, Any]]:
        """New rows per UTC calendar day, oldest first; empty days are absent"""
        where, params = self._where(since=since)
        rows = await self.conn.fetch(f"""
            SELECT ({self.timestamp_column} AT TIME ZONE 'UTC')::date AS day, COUNT(*) AS count
            FROM {self.table}{where}
            GROUP BY day
            ORDER BY day
        """, *params)
        return [{"date": row['day'], "count": row['count']} for row in rows]

    async def delete(self, record_id) -> bool:
        deleted = await self.conn.fetchval(
            f"DELETE FROM {self.table} WHERE id = $1 RETURNING id",
            record_id
        )
        if deleted:
            logger.info(f"Deleted {self.table} row {record_id}")
        return deleted is not None
