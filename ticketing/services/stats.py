from datetime import datetime, timedelta

from sqlalchemy import func
from sqlalchemy.orm import Session

from ticketing.core.config import settings
from ticketing.models.base import utcnow
from ticketing.models.reference import TicketPriority
from ticketing.models.ticket import Ticket
from ticketing.schemas.ticket import PriorityCount, StatusCount, TicketStats


def ticket_stats(db: Session, now: datetime = None) -> TicketStats:
    """Snapshot counts for dashboards; computed on every call."""
    now = now or utcnow()
    total = db.query(func.count(Ticket.id)).scalar() or 0

    by_status = (
        db.query(Ticket.status, func.count(Ticket.id))
        .group_by(Ticket.status)
        .order_by(Ticket.status)
        .all()
    )

    # Group on the foreign key first, then resolve names from the small
    # priorities table.
    by_priority = db.query(Ticket.priority_id, func.count(Ticket.id)).group_by(Ticket.priority_id).all()
    priority_ids = [priority_id for priority_id, _ in by_priority]
    names = dict(
        db.query(TicketPriority.id, TicketPriority.name).filter(TicketPriority.id.in_(priority_ids)).all()
        if priority_ids
        else []
    )

    since = now - timedelta(days=settings.STATS_RECENT_DAYS)
    recent = db.query(func.count(Ticket.id)).filter(Ticket.created_at >= since).scalar() or 0

    return TicketStats(
        total=total,
        by_status=[StatusCount(status=status, count=count) for status, count in by_status],
        by_priority=[
            PriorityCount(priority_id=priority_id, priority_name=names.get(priority_id, "Unknown"), count=count)
            for priority_id, count in by_priority
        ],
        recent_7_days=recent,
    )
