"""Ticket lifecycle: intake, partial updates, comments and attachment metadata.

Every mutation goes through here (or through ``ticketing.services.bulk``) so
that it can be diffed into audit events. Each public function is one
transaction.
"""

import logging
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session, selectinload

from ticketing.core.database import atomic
from ticketing.core.errors import NotFound, ValidationError
from ticketing.models.attachment import Attachment
from ticketing.models.base import utcnow
from ticketing.models.comment import Comment
from ticketing.models.reference import Category, TicketPriority
from ticketing.models.ticket import Ticket, TicketCategory, TicketStatus
from ticketing.models.user import User
from ticketing.schemas.ticket import (
    AttachmentCreate,
    AttachmentRead,
    CommentCreate,
    CommentRead,
    EventRead,
    TicketCreate,
    TicketDetail,
    TicketRead,
    TicketUpdate,
)
from ticketing.schemas.user import ActorContext
from ticketing.services import audit
from ticketing.services.ticket_codes import assign_code

logger = logging.getLogger(__name__)

REQUIRED_TEXT_FIELDS = ("subject", "description", "requester_phone")


def _require(**fields):
    missing = [name for name, value in fields.items() if value is None or not str(value).strip()]
    if missing:
        raise ValidationError(f"Missing required field(s): {', '.join(missing)}")


def _dedupe(ids: Iterable[str]) -> List[str]:
    seen = []
    for ident in ids:
        if ident and ident.strip() and ident not in seen:
            seen.append(ident)
    return seen


def get_ticket_row(db: Session, ticket_id: str, detail: bool = False) -> Ticket:
    query = db.query(Ticket).options(
        selectinload(Ticket.priority),
        selectinload(Ticket.assignee),
        selectinload(Ticket.created_by),
        selectinload(Ticket.updated_by),
        selectinload(Ticket.categories),
    )
    if detail:
        query = query.options(
            selectinload(Ticket.comments).selectinload(Comment.author),
            selectinload(Ticket.visible_attachments).selectinload(Attachment.uploaded_by),
            selectinload(Ticket.events),
        )
    ticket = query.filter(Ticket.id == ticket_id).first()
    if ticket is None:
        raise NotFound("Ticket", ticket_id)
    return ticket


def get_active_priority(db: Session, priority_id: str) -> TicketPriority:
    priority = db.query(TicketPriority).filter(TicketPriority.id == priority_id).first()
    if priority is None:
        raise NotFound("Priority", priority_id)
    if not priority.is_active:
        raise ValidationError(f"Priority {priority.name} is not active")
    return priority


def get_active_user(db: Session, user_id: str) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise NotFound("User", user_id)
    if not user.is_active:
        raise ValidationError(f"User {user_id} is not active")
    return user


def get_active_categories(db: Session, category_ids: List[str]) -> List[Category]:
    if not category_ids:
        return []
    categories = db.query(Category).filter(Category.id.in_(category_ids)).all()
    found = {category.id for category in categories}
    missing = [ident for ident in category_ids if ident not in found]
    if missing:
        raise NotFound("Category", ", ".join(missing))
    inactive = sorted(category.name for category in categories if not category.is_active)
    if inactive:
        raise ValidationError(f"Inactive categories: {', '.join(inactive)}")
    return categories


def apply_status(ticket: Ticket, status: TicketStatus, now=None) -> Optional[audit.FieldChange]:
    """Set ``status`` and its timestamp side effects; return the diff, if any.

    resolved_at and closed_at are stamped on first entry and kept on reopen.
    """
    change = audit.status_change(ticket.status, status)
    now = now or utcnow()
    ticket.status = status
    if status == TicketStatus.RESOLVED and ticket.resolved_at is None:
        ticket.resolved_at = now
    if status == TicketStatus.CLOSED and ticket.closed_at is None:
        ticket.closed_at = now
    return change


def _apply_categories(ticket: Ticket, categories: List[Category]) -> Optional[audit.FieldChange]:
    change = audit.category_change(ticket.categories, categories)
    if change is None:
        return None
    wanted = {category.id for category in categories}
    current = {link.category_id: link for link in ticket.category_links}
    for category_id, link in current.items():
        if category_id not in wanted:
            ticket.category_links.remove(link)
    for category in categories:
        if category.id not in current:
            ticket.category_links.append(TicketCategory(category_id=category.id))
    return change


def create_ticket(db: Session, ticket_in: TicketCreate, actor: ActorContext) -> Ticket:
    _require(
        subject=ticket_in.subject,
        description=ticket_in.description,
        requester_phone=ticket_in.requester_phone,
        priority_id=ticket_in.priority_id,
    )
    category_ids = _dedupe(ticket_in.category_ids or [])

    with atomic(db):
        priority = get_active_priority(db, ticket_in.priority_id)
        assignee = get_active_user(db, ticket_in.assignee_id) if ticket_in.assignee_id else None
        get_active_categories(db, category_ids)

        ticket = Ticket(
            subject=ticket_in.subject.strip(),
            description=ticket_in.description.strip(),
            requester_email=ticket_in.requester_email,
            requester_name=ticket_in.requester_name,
            requester_phone=ticket_in.requester_phone.strip(),
            location=ticket_in.location,
            status=TicketStatus.NEW,
            priority_id=priority.id,
            assignee_id=assignee.id if assignee else None,
            created_by_id=actor.id,
            updated_by_id=actor.id,
        )
        ticket.category_links = [TicketCategory(category_id=ident) for ident in category_ids]
        code = assign_code(db, ticket)
        ticket_id = ticket.id

    logger.info(f"Created ticket {code} by {actor.id}")
    return get_ticket_row(db, ticket_id)


def update_ticket(db: Session, ticket_id: str, ticket_in: TicketUpdate, actor: ActorContext) -> Ticket:
    fields = ticket_in.model_fields_set

    with atomic(db):
        ticket = get_ticket_row(db, ticket_id)
        changes = []

        if "status" in fields:
            if ticket_in.status is None:
                raise ValidationError("status cannot be null")
            changes.append(apply_status(ticket, ticket_in.status))

        if "priority_id" in fields:
            _require(priority_id=ticket_in.priority_id)
            priority = get_active_priority(db, ticket_in.priority_id)
            changes.append(audit.priority_change(ticket.priority, priority))
            ticket.priority_id = priority.id
            ticket.priority = priority

        if "assignee_id" in fields:
            assignee = get_active_user(db, ticket_in.assignee_id) if ticket_in.assignee_id else None
            changes.append(audit.assignee_change(ticket.assignee, assignee))
            ticket.assignee_id = assignee.id if assignee else None
            ticket.assignee = assignee

        if "category_ids" in fields:
            categories = get_active_categories(db, _dedupe(ticket_in.category_ids or []))
            changes.append(_apply_categories(ticket, categories))

        for name, diff in audit.TEXT_FIELD_DIFFS.items():
            if name not in fields:
                continue
            value = getattr(ticket_in, name)
            if name in REQUIRED_TEXT_FIELDS:
                _require(**{name: value})
                value = value.strip()
            change = diff(getattr(ticket, name), value)
            if change is not None:
                setattr(ticket, name, value)
                changes.append(change)

        events = audit.record_events(db, ticket, changes, actor)
        if events:
            ticket.updated_by_id = actor.id

    if events:
        logger.info(f"Updated ticket {ticket_id} by {actor.id}: {len(events)} change(s)")
    return get_ticket_row(db, ticket_id)


def get_ticket(db: Session, ticket_id: str, actor: ActorContext) -> TicketDetail:
    """Ticket with comments, live attachments and events, oldest first.

    Internal comments are left out for customers.
    """
    ticket = get_ticket_row(db, ticket_id, detail=True)
    comments = [c for c in ticket.comments if not (actor.is_customer and c.is_internal)]
    return TicketDetail(
        **TicketRead.model_validate(ticket).model_dump(),
        comments=[CommentRead.model_validate(c) for c in comments],
        attachments=[AttachmentRead.model_validate(a) for a in ticket.visible_attachments],
        events=[EventRead.model_validate(e) for e in ticket.events],
    )


def add_comment(db: Session, ticket_id: str, comment_in: CommentCreate, actor: ActorContext) -> Comment:
    _require(content=comment_in.content)
    with atomic(db):
        get_ticket_row(db, ticket_id)
        comment = Comment(
            ticket_id=ticket_id,
            author_id=actor.id,
            content=comment_in.content,
            is_internal=bool(comment_in.is_internal),
        )
        db.add(comment)
    db.refresh(comment)
    return comment


def add_attachment(db: Session, ticket_id: str, attachment_in: AttachmentCreate, actor: ActorContext) -> Attachment:
    _require(
        original_filename=attachment_in.original_filename,
        stored_filename=attachment_in.stored_filename,
        mime_type=attachment_in.mime_type,
    )
    if attachment_in.size < 0:
        raise ValidationError("size must not be negative")
    with atomic(db):
        get_ticket_row(db, ticket_id)
        attachment = Attachment(
            ticket_id=ticket_id,
            uploaded_by_id=actor.id,
            original_filename=attachment_in.original_filename,
            stored_filename=attachment_in.stored_filename,
            mime_type=attachment_in.mime_type,
            size=attachment_in.size,
        )
        db.add(attachment)
    db.refresh(attachment)
    return attachment


def delete_attachment(db: Session, attachment_id: str, actor: ActorContext) -> None:
    """Soft delete. A missing or already deleted attachment is NotFound."""
    with atomic(db):
        attachment = (
            db.query(Attachment)
            .filter(Attachment.id == attachment_id, Attachment.is_deleted == False)  # noqa: E712
            .first()
        )
        if attachment is None:
            raise NotFound("Attachment", attachment_id)
        attachment.is_deleted = True
        attachment.deleted_at = utcnow()
        attachment.deleted_by_id = actor.id
    logger.info(f"Attachment {attachment_id} soft-deleted by {actor.id}")
