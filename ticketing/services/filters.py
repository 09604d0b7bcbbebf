"""Translate a TicketFilter into SQL clauses and run the paginated list."""

import logging
from typing import List

from sqlalchemy import and_, exists, func, or_
from sqlalchemy.orm import Session, selectinload
from sqlalchemy.sql.elements import ColumnElement

from ticketing.core.config import settings
from ticketing.core.errors import ValidationError
from ticketing.models.ticket import Ticket, TicketCategory
from ticketing.schemas.ticket import TicketFilter, TicketPage, TicketRead

logger = logging.getLogger(__name__)

SEARCH_COLUMNS = (
    Ticket.ticket_code,
    Ticket.subject,
    Ticket.description,
    Ticket.requester_name,
    Ticket.requester_email,
)


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def build_filter(params: TicketFilter) -> List[ColumnElement]:
    """Return the clauses for ``params``; every clause must hold (AND).

    Absent fields contribute nothing, so an empty filter matches every ticket.
    """
    clauses = []
    if params.status is not None:
        clauses.append(Ticket.status == params.status)
    if params.priority_id is not None:
        clauses.append(Ticket.priority_id == params.priority_id)
    if params.assignee_id is not None:
        clauses.append(Ticket.assignee_id == params.assignee_id)
    if params.created_by_id is not None:
        clauses.append(Ticket.created_by_id == params.created_by_id)
    if params.updated_by_id is not None:
        clauses.append(Ticket.updated_by_id == params.updated_by_id)
    if params.category_id is not None:
        clauses.append(
            exists().where(
                and_(
                    TicketCategory.ticket_id == Ticket.id,
                    TicketCategory.category_id == params.category_id,
                )
            )
        )
    if params.search:
        pattern = f"%{_escape_like(params.search)}%"
        clauses.append(or_(*(column.ilike(pattern, escape="\\") for column in SEARCH_COLUMNS)))

    # Date bounds are inclusive and either side may be left open.
    if params.created_from is not None:
        clauses.append(Ticket.created_at >= params.created_from)
    if params.created_to is not None:
        clauses.append(Ticket.created_at <= params.created_to)
    if params.updated_from is not None:
        clauses.append(Ticket.updated_at >= params.updated_from)
    if params.updated_to is not None:
        clauses.append(Ticket.updated_at <= params.updated_to)
    return clauses


def list_tickets(db: Session, params: TicketFilter = None, skip: int = 0, take: int = None) -> TicketPage:
    params = params or TicketFilter()
    take = settings.DEFAULT_PAGE_SIZE if take is None else take
    if skip < 0:
        raise ValidationError("skip must not be negative")
    if take < 0:
        raise ValidationError("take must not be negative")
    take = min(take, settings.MAX_PAGE_SIZE)

    clauses = build_filter(params)
    total = db.query(func.count(Ticket.id)).filter(*clauses).scalar() or 0
    tickets = (
        db.query(Ticket)
        .filter(*clauses)
        .options(
            selectinload(Ticket.priority),
            selectinload(Ticket.assignee),
            selectinload(Ticket.created_by),
            selectinload(Ticket.updated_by),
            selectinload(Ticket.categories),
        )
        .order_by(Ticket.created_at.desc(), Ticket.id)
        .offset(skip)
        .limit(take)
        .all()
    )
    logger.debug(f"Listed {len(tickets)} tickets (total: {total}, filters: {len(clauses)})")
    return TicketPage(
        data=[TicketRead.model_validate(ticket) for ticket in tickets],
        total=total,
        skip=skip,
        take=take,
    )
