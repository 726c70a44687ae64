# app/database/contact_repository.py
import asyncpg
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID
from app.database.base_repository import CollectionRepository
from app.errors import NotFoundError
import logging

logger = logging.getLogger(__name__)

# Contact columns plus the display-safe subset of the assigned user
CONTACT_SELECT = """
    SELECT c.*, u.display_name AS assigned_name, u.email AS assigned_email
"""

class ContactRepository(CollectionRepository):
    table = "contacts"
    timestamp_column = "created_at"
    filter_columns = frozenset({"status", "priority", "source"})
    groupable_columns = frozenset({"status", "priority", "source"})
    search_columns = ("name", "email", "phone")

    async def find_recent_by_email(self, email: str, since: datetime) -> Optional[Dict[str, Any]]:
        """Latest contact request from ``email`` created at or after ``since``"""
        result = await self.conn.fetchrow("""
            SELECT id, email, created_at
            FROM contacts
            WHERE email = $1 AND created_at >= $2
            ORDER BY created_at DESC
            LIMIT 1
        """, email, since)
        return dict(result) if result else None

    async def create(
        self,
        name: str,
        email: str,
        phone: str,
        description: str,
        source: str,
        ip_address: Optional[str],
        user_agent: Optional[str],
        notes: List[Dict[str, Any]]
    ) -> Dict[str, Any]:
        """Insert a contact together with its initial notes"""
        result = await self.conn.fetchrow("""
            INSERT INTO contacts (
                name, email, phone, description, source,
                ip_address, user_agent, notes
            ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8::jsonb)
            RETURNING *
        """, name, email, phone, description, source, ip_address, user_agent, notes)

        logger.info(f"Created contact {result['id']} for {email}")
        return dict(result)

    async def list(
        self,
        filters: Optional[Dict[str, Any]] = None,
        search: Optional[str] = None,
        offset: int = 0,
        limit: int = 10
    ) -> List[Dict[str, Any]]:
        where, params = self._where(filters, search)
        param_count = len(params) + 1

        rows = await self.conn.fetch(f"""
            {CONTACT_SELECT}
            FROM (
                SELECT * FROM contacts{where}
                ORDER BY created_at DESC
                LIMIT ${param_count} OFFSET ${param_count + 1}
            ) c
            LEFT JOIN users u ON u.id = c.assigned_to
            ORDER BY c.created_at DESC
        """, *params, limit, offset)
        return [dict(row) for row in rows]

    async def get(self, contact_id: UUID) -> Optional[Dict[str, Any]]:
        result = await self.conn.fetchrow(f"""
            {CONTACT_SELECT}
            FROM contacts c
            LEFT JOIN users u ON u.id = c.assigned_to
            WHERE c.id = $1
        """, contact_id)
        return dict(result) if result else None

    async def update(
        self,
        contact_id: UUID,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        assigned_to: Optional[UUID] = None,
        new_notes: Optional[List[Dict[str, Any]]] = None,
        unassign: bool = False
    ) -> Optional[Dict[str, Any]]:
        """Apply an admin update in one statement; notes are only ever appended"""
        try:
            result = await self.conn.fetchrow(f"""
                WITH c AS (
                    UPDATE contacts SET
                        status = COALESCE($2, status),
                        priority = COALESCE($3, priority),
                        assigned_to = CASE WHEN $6::boolean THEN NULL ELSE COALESCE($4, assigned_to) END,
                        notes = notes || COALESCE($5::jsonb, '[]'::jsonb),
                        updated_at = NOW()
                    WHERE id = $1
                    RETURNING *
                )
                {CONTACT_SELECT}
                FROM c
                LEFT JOIN users u ON u.id = c.assigned_to
            """, contact_id, status, priority, assigned_to, new_notes, unassign)
        except asyncpg.ForeignKeyViolationError:
            logger.warning(f"Contact {contact_id} assigned to unknown user {assigned_to}")
            raise NotFoundError("Assigned user not found")

        return dict(result) if result else None

    async def recent(self, limit: int = 5) -> List[Dict[str, Any]]:
        rows = await self.conn.fetch("""
            SELECT id, name, email, status, priority, created_at
            FROM contacts
            ORDER BY created_at DESC
            LIMIT $1
        """, limit)
        return [dict(row) for row in rows]
