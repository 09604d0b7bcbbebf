from pydantic import BaseModel, EmailStr, field_validator
from typing import List, Optional
from datetime import datetime, timezone
from ticketing.models.ticket import TicketStatus
from ticketing.schemas.reference import CategoryRead, PriorityRead
from ticketing.schemas.user import UserSummary

def _blank_to_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value

class TicketCreate(BaseModel):
    subject: str
    description: str
    requester_phone: str
    priority_id: str
    requester_email: Optional[EmailStr] = None
    requester_name: Optional[str] = None
    location: Optional[str] = None
    assignee_id: Optional[str] = None
    category_ids: List[str] = []

    @field_validator("assignee_id", "requester_email", "requester_name", "location", mode="before")
    @classmethod
    def blank_optional(cls, value):
        return _blank_to_none(value)

class TicketUpdate(BaseModel):
    """Partial update. Only fields present in the payload are applied."""

    status: Optional[TicketStatus] = None
    priority_id: Optional[str] = None
    assignee_id: Optional[str] = None
    category_ids: Optional[List[str]] = None
    subject: Optional[str] = None
    description: Optional[str] = None
    requester_email: Optional[EmailStr] = None
    requester_name: Optional[str] = None
    requester_phone: Optional[str] = None
    location: Optional[str] = None

    @field_validator("assignee_id", "requester_email", "requester_name", "location", mode="before")
    @classmethod
    def blank_optional(cls, value):
        return _blank_to_none(value)

class TicketFilter(BaseModel):
    status: Optional[TicketStatus] = None
    priority_id: Optional[str] = None
    assignee_id: Optional[str] = None
    created_by_id: Optional[str] = None
    updated_by_id: Optional[str] = None
    category_id: Optional[str] = None
    search: Optional[str] = None
    created_from: Optional[datetime] = None
    created_to: Optional[datetime] = None
    updated_from: Optional[datetime] = None
    updated_to: Optional[datetime] = None

    @field_validator(
        "priority_id", "assignee_id", "created_by_id", "updated_by_id", "category_id", "search", mode="before"
    )
    @classmethod
    def blank_optional(cls, value):
        return _blank_to_none(value)

    @field_validator("created_from", "created_to", "updated_from", "updated_to")
    @classmethod
    def as_utc(cls, value):
        # Stored timestamps are UTC; compare like with like.
        if value is not None and value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value

class CommentCreate(BaseModel):
    content: str
    is_internal: bool = False

class CommentRead(BaseModel):
    id: str
    ticket_id: str
    author_id: str
    content: str
    is_internal: bool
    created_at: datetime
    author: Optional[UserSummary] = None

    class Config:
        from_attributes = True

class AttachmentCreate(BaseModel):
    original_filename: str
    stored_filename: str
    mime_type: str
    size: int

class AttachmentRead(BaseModel):
    id: str
    ticket_id: str
    uploaded_by_id: str
    original_filename: str
    stored_filename: str
    mime_type: str
    size: int
    uploaded_at: datetime
    uploaded_by: Optional[UserSummary] = None

    class Config:
        from_attributes = True

class EventRead(BaseModel):
    id: int
    ticket_id: str
    user_id: str
    change_type: str
    old_value: Optional[str] = None
    new_value: Optional[str] = None
    ip_address: Optional[str] = None
    created_at: datetime
    user: Optional[UserSummary] = None

    class Config:
        from_attributes = True

class TicketRead(BaseModel):
    id: str
    ticket_code: str
    subject: str
    description: str
    requester_email: Optional[str] = None
    requester_name: Optional[str] = None
    requester_phone: str
    location: Optional[str] = None
    status: TicketStatus
    priority_id: str
    assignee_id: Optional[str] = None
    created_by_id: str
    updated_by_id: str
    created_at: datetime
    updated_at: datetime
    resolved_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    priority: Optional[PriorityRead] = None
    assignee: Optional[UserSummary] = None
    created_by: Optional[UserSummary] = None
    updated_by: Optional[UserSummary] = None
    categories: List[CategoryRead] = []

    class Config:
        from_attributes = True

class TicketDetail(TicketRead):
    comments: List[CommentRead] = []
    attachments: List[AttachmentRead] = []
    events: List[EventRead] = []

class TicketPage(BaseModel):
    data: List[TicketRead]
    total: int
    skip: int
    take: int

class BulkAssign(BaseModel):
    ticket_ids: List[str]
    assignee_id: str

class BulkStatus(BaseModel):
    ticket_ids: List[str]
    status: TicketStatus

class BulkResult(BaseModel):
    updated: int

class StatusCount(BaseModel):
    status: TicketStatus
    count: int

class PriorityCount(BaseModel):
    priority_id: str
    priority_name: str
    count: int

class TicketStats(BaseModel):
    total: int
    by_status: List[StatusCount]
    by_priority: List[PriorityCount]
    recent_7_days: int

class MessageResponse(BaseModel):
    message: str
