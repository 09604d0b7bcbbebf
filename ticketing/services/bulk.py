"""Bulk assign / bulk status over a set of ticket ids.

Each call is a single transaction: every matched ticket is mutated and gets
exactly one event, or nothing is written at all. Ids that do not resolve to a
ticket are skipped and simply not counted in ``updated``.
"""

import logging
from typing import List

from sqlalchemy.orm import Session, selectinload

from ticketing.core.database import atomic
from ticketing.core.errors import ValidationError
from ticketing.models.base import utcnow
from ticketing.models.ticket import Ticket, TicketStatus
from ticketing.schemas.ticket import BulkResult
from ticketing.schemas.user import ActorContext
from ticketing.services import audit
from ticketing.services.tickets import apply_status, get_active_user

logger = logging.getLogger(__name__)


def _unique_ids(ticket_ids: List[str]) -> List[str]:
    ids = list(dict.fromkeys(ident for ident in ticket_ids if ident))
    if not ids:
        raise ValidationError("ticket_ids must contain at least one id")
    return ids


def _load_tickets(db: Session, ids: List[str]) -> List[Ticket]:
    return (
        db.query(Ticket)
        .options(selectinload(Ticket.assignee))
        .filter(Ticket.id.in_(ids))
        .order_by(Ticket.id)
        .with_for_update()
        .all()
    )


def bulk_assign(db: Session, ticket_ids: List[str], assignee_id: str, actor: ActorContext) -> BulkResult:
    ids = _unique_ids(ticket_ids)
    with atomic(db):
        assignee = get_active_user(db, assignee_id)
        tickets = _load_tickets(db, ids)
        for ticket in tickets:
            # The caller asked for this explicitly, so an event is written even
            # when the ticket already had this assignee.
            change = audit.FieldChange(
                audit.ASSIGNEE_CHANGED,
                ticket.assignee.full_name if ticket.assignee else None,
                assignee.full_name,
            )
            ticket.assignee_id = assignee.id
            ticket.assignee = assignee
            ticket.updated_by_id = actor.id
            audit.record_events(db, ticket, [change], actor)

    skipped = len(ids) - len(tickets)
    logger.info(f"Bulk assign to {assignee_id} by {actor.id}: {len(tickets)} updated, {skipped} skipped")
    return BulkResult(updated=len(tickets))


def bulk_status(db: Session, ticket_ids: List[str], status: TicketStatus, actor: ActorContext) -> BulkResult:
    ids = _unique_ids(ticket_ids)
    try:
        status = TicketStatus(status)
    except ValueError:
        raise ValidationError(f"Unknown status: {status}")
    now = utcnow()
    with atomic(db):
        tickets = _load_tickets(db, ids)
        for ticket in tickets:
            old_value = ticket.status.value if ticket.status else None
            apply_status(ticket, status, now)
            ticket.updated_by_id = actor.id
            change = audit.FieldChange(audit.STATUS_CHANGED, old_value, status.value)
            audit.record_events(db, ticket, [change], actor)

    skipped = len(ids) - len(tickets)
    logger.info(f"Bulk status {status.value} by {actor.id}: {len(tickets)} updated, {skipped} skipped")
    return BulkResult(updated=len(tickets))
