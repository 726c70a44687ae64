# app/routes/contacts.py
from fastapi import APIRouter, Depends, Query, Request, status
from typing import Optional
from uuid import UUID
from app.auth.dependencies import require_admin
from app.auth.models import UserResponse
from app.dependencies import RateLimit, get_contact_service
from app.errors import AppError, InternalError
from app.models.contact import ContactCreate, ContactPriority, ContactStatus, ContactUpdate
from app.services.contact_service import ContactService
from app.utils.client import client_ip, user_agent
import logging

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/contact", tags=["Contacts"])

@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(RateLimit("contact"))]
)
async def create_contact(
    submission: ContactCreate,
    req: Request,
    contact_service: ContactService = Depends(get_contact_service)
):
    """Public contact form"""
    try:
        contact = await contact_service.create_contact(
            submission,
            ip_address=client_ip(req),
            user_agent=user_agent(req)
        )

        return {
            "success": True,
            "message": "Contact request submitted successfully! We will get back to you soon.",
            "data": {
                "id": str(contact.id),
                "name": contact.name,
                "email": contact.email,
                "status": contact.status.value,
                "createdAt": contact.created_at.isoformat()
            }
        }

    except AppError:
        raise
    except Exception as e:
        logger.error(f"Contact creation error: {e}")
        raise InternalError("Failed to submit contact request. Please try again later.") from e

@router.get("")
async def list_contacts(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: Optional[ContactStatus] = None,
    priority: Optional[ContactPriority] = None,
    search: Optional[str] = Query(None, max_length=100),
    admin: UserResponse = Depends(require_admin),
    contact_service: ContactService = Depends(get_contact_service)
):
    """Paginated contacts, newest first"""
    try:
        contacts, pagination = await contact_service.list_contacts(
            status=status.value if status else None,
            priority=priority.value if priority else None,
            search=search or None,
            page=page,
            page_size=limit
        )

        return {
            "success": True,
            "data": [contact.to_response() for contact in contacts],
            "pagination": pagination.to_response()
        }

    except AppError:
        raise
    except Exception as e:
        logger.error(f"Get contacts error: {e}")
        raise InternalError("Failed to fetch contacts") from e

@router.get("/stats")
async def get_contact_stats(
    admin: UserResponse = Depends(require_admin),
    contact_service: ContactService = Depends(get_contact_service)
):
    try:
        return {"success": True, "data": await contact_service.get_stats()}
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Get contact stats error: {e}")
        raise InternalError("Failed to fetch contact statistics") from e

@router.get("/{contact_id}")
async def get_contact(
    contact_id: UUID,
    admin: UserResponse = Depends(require_admin),
    contact_service: ContactService = Depends(get_contact_service)
):
    try:
        contact = await contact_service.get_contact(contact_id)
        return {"success": True, "data": contact.to_response()}
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Get contact error: {e}")
        raise InternalError("Failed to fetch contact") from e

@router.put("/{contact_id}")
async def update_contact(
    contact_id: UUID,
    update: ContactUpdate,
    admin: UserResponse = Depends(require_admin),
    contact_service: ContactService = Depends(get_contact_service)
):
    """Update status, priority or assignment, and append a note"""
    try:
        contact = await contact_service.update_contact(
            contact_id,
            update,
            author=admin.name or "admin"
        )
        return {
            "success": True,
            "message": "Contact updated successfully",
            "data": contact.to_response()
        }
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Update contact error: {e}")
        raise InternalError("Failed to update contact") from e

@router.delete("/{contact_id}")
async def delete_contact(
    contact_id: UUID,
    admin: UserResponse = Depends(require_admin),
    contact_service: ContactService = Depends(get_contact_service)
):
    try:
        await contact_service.delete_contact(contact_id)
        return {"success": True, "message": "Contact deleted successfully"}
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Delete contact error: {e}")
        raise InternalError("Failed to delete contact") from e
