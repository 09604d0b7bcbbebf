"""Field-by-field diffing of ticket state into append-only events.

Each mutable field has its own comparison function, so "changed" is decided
by explicit rules rather than generic equality on whatever the caller sent.
Values are stored as display strings: priority names, user full names and
category names instead of raw ids.
"""

import logging
from typing import Iterable, List, NamedTuple, Optional

from sqlalchemy.orm import Session

from ticketing.models.reference import Category, TicketPriority
from ticketing.models.ticket import Ticket, TicketStatus
from ticketing.models.ticket_event import TicketEvent
from ticketing.models.user import User
from ticketing.schemas.user import ActorContext

logger = logging.getLogger(__name__)

STATUS_CHANGED = "status_changed"
PRIORITY_CHANGED = "priority_changed"
ASSIGNEE_CHANGED = "assignee_changed"
CATEGORY_CHANGED = "category_changed"
SUBJECT_CHANGED = "subject_changed"
DESCRIPTION_CHANGED = "description_changed"
LOCATION_CHANGED = "location_changed"
REQUESTER_EMAIL_CHANGED = "requester_email_changed"
REQUESTER_NAME_CHANGED = "requester_name_changed"
REQUESTER_PHONE_CHANGED = "requester_phone_changed"

DESCRIPTION_PREVIEW = 100


class FieldChange(NamedTuple):
    change_type: str
    old_value: Optional[str]
    new_value: Optional[str]


def _status_value(status) -> Optional[str]:
    if status is None:
        return None
    return status.value if isinstance(status, TicketStatus) else str(status)


def _user_label(user: Optional[User]) -> Optional[str]:
    return user.full_name if user is not None else None


def _names(categories: Iterable[Category]) -> List[str]:
    return sorted(category.name for category in categories)


def status_change(old, new) -> Optional[FieldChange]:
    old_value, new_value = _status_value(old), _status_value(new)
    if old_value == new_value:
        return None
    return FieldChange(STATUS_CHANGED, old_value, new_value)


def priority_change(old: Optional[TicketPriority], new: Optional[TicketPriority]) -> Optional[FieldChange]:
    old_id = old.id if old is not None else None
    new_id = new.id if new is not None else None
    if old_id == new_id:
        return None
    return FieldChange(
        PRIORITY_CHANGED,
        old.name if old is not None else None,
        new.name if new is not None else None,
    )


def assignee_change(old: Optional[User], new: Optional[User]) -> Optional[FieldChange]:
    old_id = old.id if old is not None else None
    new_id = new.id if new is not None else None
    if old_id == new_id:
        return None
    return FieldChange(ASSIGNEE_CHANGED, _user_label(old), _user_label(new))


def category_change(old: Iterable[Category], new: Iterable[Category]) -> Optional[FieldChange]:
    """Diff two category sets.

    old_value holds the previous names; new_value is an
    ``added: A, B; removed: C`` composite, so the new set can be rebuilt
    from the pair.
    """
    old_by_id = {category.id: category for category in old}
    new_by_id = {category.id: category for category in new}
    added = _names(c for cid, c in new_by_id.items() if cid not in old_by_id)
    removed = _names(c for cid, c in old_by_id.items() if cid not in new_by_id)
    if not added and not removed:
        return None
    parts = []
    if added:
        parts.append("added: " + ", ".join(added))
    if removed:
        parts.append("removed: " + ", ".join(removed))
    previous = _names(old_by_id.values())
    return FieldChange(CATEGORY_CHANGED, ", ".join(previous) or None, "; ".join(parts))


def _text_change(change_type: str, old: Optional[str], new: Optional[str], limit: int = None) -> Optional[FieldChange]:
    if (old or None) == (new or None):
        return None
    if limit is not None:
        old = old[:limit] if old else old
        new = new[:limit] if new else new
    return FieldChange(change_type, old or None, new or None)


def subject_change(old, new):
    return _text_change(SUBJECT_CHANGED, old, new)


def description_change(old, new):
    return _text_change(DESCRIPTION_CHANGED, old, new, limit=DESCRIPTION_PREVIEW)


def location_change(old, new):
    return _text_change(LOCATION_CHANGED, old, new)


def requester_email_change(old, new):
    return _text_change(REQUESTER_EMAIL_CHANGED, old, new)


def requester_name_change(old, new):
    return _text_change(REQUESTER_NAME_CHANGED, old, new)


def requester_phone_change(old, new):
    return _text_change(REQUESTER_PHONE_CHANGED, old, new)


TEXT_FIELD_DIFFS = {
    "subject": subject_change,
    "description": description_change,
    "location": location_change,
    "requester_email": requester_email_change,
    "requester_name": requester_name_change,
    "requester_phone": requester_phone_change,
}


def record_events(
    db: Session, ticket: Ticket, changes: Iterable[Optional[FieldChange]], actor: ActorContext
) -> List[TicketEvent]:
    """Append one TicketEvent per change. ``None`` entries are skipped."""
    events = []
    for change in changes:
        if change is None:
            continue
        event = TicketEvent(
            ticket_id=ticket.id,
            user_id=actor.id,
            change_type=change.change_type,
            old_value=change.old_value,
            new_value=change.new_value,
            ip_address=actor.ip_address,
        )
        db.add(event)
        events.append(event)
    if events:
        logger.debug(
            f"Recorded {len(events)} event(s) on ticket {ticket.ticket_code}: "
            + ", ".join(e.change_type for e in events)
        )
    return events


def replay(events: Iterable[TicketEvent], change_type: str, initial: Optional[str]) -> Optional[str]:
    """Walk the old->new chain of one scalar field and return its final value.

    Raises ValueError when the chain is broken, i.e. an event's old_value does
    not match the value produced by the event before it.
    """
    value = initial
    for event in events:
        if event.change_type != change_type:
            continue
        if event.old_value != value:
            raise ValueError(
                f"Broken {change_type} chain at event {event.id}: expected {value!r}, got {event.old_value!r}"
            )
        value = event.new_value
    return value
