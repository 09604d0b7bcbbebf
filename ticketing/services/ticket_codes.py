"""Human-readable ticket codes: ``TKT-YYYYMMDD-NNNN``.

The per-day sequence is derived from the number of tickets created since
midnight UTC. Two writers can compute the same candidate; the unique
constraint on ``tickets.ticket_code`` decides who wins and the loser moves on
to the next number. No in-process locking is involved, so this holds across
any number of service instances.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ticketing.core.config import settings
from ticketing.core.errors import GenerationExhausted
from ticketing.models.base import utcnow
from ticketing.models.ticket import Ticket

logger = logging.getLogger(__name__)


def day_start(now: datetime) -> datetime:
    now = now.astimezone(timezone.utc)
    return datetime(now.year, now.month, now.day, tzinfo=timezone.utc)


def format_code(day: datetime, sequence: int) -> str:
    return f"{settings.TICKET_CODE_PREFIX}-{day:%Y%m%d}-{sequence:04d}"


def count_issued_today(db: Session, now: datetime) -> int:
    return db.query(func.count(Ticket.id)).filter(Ticket.created_at >= day_start(now)).scalar() or 0


def next_code(db: Session, now: datetime = None, attempt: int = 0) -> str:
    now = now or utcnow()
    return format_code(day_start(now), count_issued_today(db, now) + 1 + attempt)


CODE_CONSTRAINT = "uq_tickets_ticket_code"

# MySQL and PostgreSQL report the constraint name; SQLite only names the column.
_COLLISION_MARKERS = (CODE_CONSTRAINT, "tickets.ticket_code")


def is_code_collision(exc: IntegrityError) -> bool:
    """Tell a ticket-code collision apart from any other integrity error.

    Decided from the driver's message. Under REPEATABLE READ a row committed
    by a concurrent writer is outside this transaction's snapshot, so the
    table cannot be consulted.
    """
    message = str(exc.orig if exc.orig is not None else exc)
    return any(marker in message for marker in _COLLISION_MARKERS)


def assign_code(db: Session, ticket: Ticket) -> str:
    """Give ``ticket`` a fresh code and flush its insert.

    Each attempt runs in a SAVEPOINT so a collision only undoes that insert,
    not the caller's transaction. Integrity errors unrelated to the code are
    re-raised untouched.
    """
    now = ticket.created_at or utcnow()
    ticket.created_at = now
    retries = settings.TICKET_CODE_MAX_RETRIES
    for attempt in range(retries):
        code = next_code(db, now, attempt)
        ticket.ticket_code = code
        try:
            with db.begin_nested():
                db.add(ticket)
                db.flush()
        except IntegrityError as exc:
            if not is_code_collision(exc):
                raise
            logger.warning(f"Ticket code {code} already taken, retrying ({attempt + 1}/{retries})")
            continue
        return code
    raise GenerationExhausted(f"Could not allocate a unique ticket code after {retries} attempts")
