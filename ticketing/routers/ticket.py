from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Optional
from datetime import datetime
from ticketing.core.deps import get_db, get_actor
from ticketing.models.ticket import TicketStatus
from ticketing.schemas.ticket import (
    AttachmentCreate,
    AttachmentRead,
    BulkAssign,
    BulkResult,
    BulkStatus,
    CommentCreate,
    CommentRead,
    MessageResponse,
    TicketCreate,
    TicketDetail,
    TicketFilter,
    TicketPage,
    TicketRead,
    TicketStats,
    TicketUpdate,
)
from ticketing.schemas.user import ActorContext
from ticketing.services import bulk, filters, stats, tickets

router = APIRouter(prefix="/api/tickets", tags=["tickets"])

@router.get("/", response_model=TicketPage)
def list_tickets(
    skip: int = 0,
    take: Optional[int] = None,
    status_filter: Optional[TicketStatus] = Query(None, alias="status"),
    priority: Optional[str] = None,
    assignee: Optional[str] = None,
    created_by: Optional[str] = None,
    updated_by: Optional[str] = None,
    category: Optional[str] = None,
    search: Optional[str] = None,
    created_at_from: Optional[datetime] = None,
    created_at_to: Optional[datetime] = None,
    updated_at_from: Optional[datetime] = None,
    updated_at_to: Optional[datetime] = None,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
):
    params = TicketFilter(
        status=status_filter,
        priority_id=priority,
        assignee_id=assignee,
        created_by_id=created_by,
        updated_by_id=updated_by,
        category_id=category,
        search=search,
        created_from=created_at_from,
        created_to=created_at_to,
        updated_from=updated_at_from,
        updated_to=updated_at_to,
    )
    return filters.list_tickets(db, params, skip=skip, take=take)

@router.get("/stats", response_model=TicketStats)
def get_stats(db: Session = Depends(get_db), actor: ActorContext = Depends(get_actor)):
    return stats.ticket_stats(db)

@router.get("/{ticket_id}", response_model=TicketDetail)
def get_ticket(ticket_id: str, db: Session = Depends(get_db), actor: ActorContext = Depends(get_actor)):
    return tickets.get_ticket(db, ticket_id, actor)

@router.post("/", response_model=TicketRead, status_code=status.HTTP_201_CREATED)
def create_ticket(ticket_in: TicketCreate, db: Session = Depends(get_db), actor: ActorContext = Depends(get_actor)):
    ticket = tickets.create_ticket(db, ticket_in, actor)
    return TicketRead.model_validate(ticket)

@router.put("/{ticket_id}", response_model=TicketRead)
def update_ticket(
    ticket_id: str,
    ticket_in: TicketUpdate,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
):
    ticket = tickets.update_ticket(db, ticket_id, ticket_in, actor)
    return TicketRead.model_validate(ticket)

@router.post("/{ticket_id}/comments", response_model=CommentRead, status_code=status.HTTP_201_CREATED)
def add_comment(
    ticket_id: str,
    comment_in: CommentCreate,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
):
    comment = tickets.add_comment(db, ticket_id, comment_in, actor)
    return CommentRead.model_validate(comment)

@router.post("/bulk-assign", response_model=BulkResult)
def bulk_assign(payload: BulkAssign, db: Session = Depends(get_db), actor: ActorContext = Depends(get_actor)):
    return bulk.bulk_assign(db, payload.ticket_ids, payload.assignee_id, actor)

@router.post("/bulk-status", response_model=BulkResult)
def bulk_status(payload: BulkStatus, db: Session = Depends(get_db), actor: ActorContext = Depends(get_actor)):
    return bulk.bulk_status(db, payload.ticket_ids, payload.status, actor)

@router.post("/{ticket_id}/attachments", response_model=AttachmentRead, status_code=status.HTTP_201_CREATED)
def add_attachment(
    ticket_id: str,
    attachment_in: AttachmentCreate,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
):
    attachment = tickets.add_attachment(db, ticket_id, attachment_in, actor)
    return AttachmentRead.model_validate(attachment)

@router.post("/attachments/{attachment_id}/delete", response_model=MessageResponse)
def delete_attachment(attachment_id: str, db: Session = Depends(get_db), actor: ActorContext = Depends(get_actor)):
    tickets.delete_attachment(db, attachment_id, actor)
    return {"message": "Attachment deleted successfully"}
