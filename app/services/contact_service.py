# app/services/contact_service.py
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID
from app.database.contact_repository import ContactRepository
from app.errors import ConflictError, NotFoundError
from app.models.common import Pagination
from app.models.contact import Contact, ContactCreate, ContactNote, ContactUpdate
from app.services import stats_service
import logging

logger = logging.getLogger(__name__)

SYSTEM_AUTHOR = "system"

class ContactService:
    """Service for contact form intake and admin follow-up"""

    def __init__(self, repository: ContactRepository, duplicate_window_hours: int = 24):
        self.repo = repository
        self.duplicate_window_hours = duplicate_window_hours

    async def create_contact(
        self,
        submission: ContactCreate,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        source: str = "website",
        now: Optional[datetime] = None
    ) -> Contact:
        """Store a public submission with its system note.

        A second request from the same email inside the duplicate window is
        rejected.
        """
        now = now or stats_service.utc_now()
        since = now - timedelta(hours=self.duplicate_window_hours)

        if await self.repo.find_recent_by_email(submission.email, since):
            logger.warning(f"Duplicate contact request rejected: {submission.email}")
            raise ConflictError(
                "A contact request with this email was already submitted "
                f"in the last {self.duplicate_window_hours} hours"
            )

        creation_note = ContactNote(
            text=f"Contact form submitted from {source}",
            added_by=SYSTEM_AUTHOR,
            added_at=now
        )

        row = await self.repo.create(
            name=submission.name,
            email=submission.email,
            phone=submission.phone,
            description=submission.description,
            source=source,
            ip_address=ip_address,
            user_agent=user_agent,
            notes=[creation_note.model_dump(mode="json")]
        )
        return Contact.from_row(row)

    async def list_contacts(
        self,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        search: Optional[str] = None,
        page: int = 1,
        page_size: int = 10
    ) -> Tuple[List[Contact], Pagination]:
        filters = {"status": status, "priority": priority}

        total = await self.repo.count(filters, search)
        pagination = Pagination.build(page, page_size, total)
        rows = []
        if pagination.offset < total:
            rows = await self.repo.list(filters, search, offset=pagination.offset, limit=page_size)

        return [Contact.from_row(row) for row in rows], pagination

    async def get_contact(self, contact_id: UUID) -> Contact:
        row = await self.repo.get(contact_id)
        if row is None:
            raise NotFoundError("Contact not found")
        return Contact.from_row(row)

    async def update_contact(
        self,
        contact_id: UUID,
        update: ContactUpdate,
        author: str = "admin",
        now: Optional[datetime] = None
    ) -> Contact:
        new_notes = None
        if update.notes:
            note = ContactNote(
                text=update.notes,
                added_by=author,
                added_at=now or stats_service.utc_now()
            )
            new_notes = [note.model_dump(mode="json")]

        row = await self.repo.update(
            contact_id,
            status=update.status.value if update.status else None,
            priority=update.priority.value if update.priority else None,
            assigned_to=update.assigned_to,
            unassign=update.clears_assignment,
            new_notes=new_notes
        )
        if row is None:
            raise NotFoundError("Contact not found")

        logger.info(f"Contact {contact_id} updated by {author}")
        return Contact.from_row(row)

    async def delete_contact(self, contact_id: UUID):
        if not await self.repo.delete(contact_id):
            raise NotFoundError("Contact not found")

    async def get_stats(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        return await stats_service.collection_stats(self.repo, ["status", "priority"], now)
