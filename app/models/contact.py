# app/models/contact.py
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import UUID
from pydantic import BaseModel, ConfigDict, EmailStr, Field, computed_field, field_validator
from app.models.common import CamelModel


class ContactStatus(str, Enum):
    NEW = "new"
    CONTACTED = "contacted"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ContactPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class ContactCreate(BaseModel):
    """Public contact form submission"""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=2, max_length=100, pattern=r"^[a-zA-Z\s]+$")
    email: EmailStr
    phone: str = Field(pattern=r"^\+?[0-9]{10,15}$")
    description: str = Field(min_length=10, max_length=1000)

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, value: str) -> str:
        return value.lower()


class ContactUpdate(CamelModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    status: Optional[ContactStatus] = None
    priority: Optional[ContactPriority] = None
    assigned_to: Optional[UUID] = None
    notes: Optional[str] = Field(None, min_length=1, max_length=500)

    @property
    def clears_assignment(self) -> bool:
        """True when assignedTo was sent as an explicit null"""
        return "assigned_to" in self.model_fields_set and self.assigned_to is None


class ContactNote(CamelModel):
    text: str
    added_by: str = "system"
    added_at: datetime


class AssignedUser(CamelModel):
    id: UUID
    name: Optional[str] = None
    email: Optional[str] = None


class Contact(CamelModel):
    id: UUID
    name: str
    email: str
    phone: str
    description: str
    status: ContactStatus = ContactStatus.NEW
    priority: ContactPriority = ContactPriority.MEDIUM
    source: str = "website"
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    notes: List[ContactNote] = []
    assigned_to: Optional[AssignedUser] = None
    follow_up_date: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    @computed_field(alias="contactAge")
    @property
    def contact_age(self) -> int:
        """Whole days since the request was submitted"""
        return (datetime.now(timezone.utc) - self.created_at).days

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Contact":
        data = dict(row)
        assigned_id = data.pop("assigned_to", None)
        assigned = {
            "id": assigned_id,
            "name": data.pop("assigned_name", None),
            "email": data.pop("assigned_email", None),
        }
        data["assigned_to"] = assigned if assigned_id else None
        return cls.model_validate(data)
