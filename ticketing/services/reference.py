"""Priorities and categories.

Neither is ever hard-deleted: tickets keep pointing at them, so "delete"
deactivates the row and new tickets can no longer pick it.
"""

import logging
from typing import List

from sqlalchemy.orm import Session

from ticketing.core.database import atomic
from ticketing.core.errors import DuplicateName, NotFound, ValidationError
from ticketing.models.reference import Category, TicketPriority
from ticketing.schemas.reference import CategoryCreate, CategoryUpdate, PriorityCreate, PriorityUpdate
from ticketing.schemas.user import ActorContext

logger = logging.getLogger(__name__)


def _clean_name(name: str) -> str:
    if name is None or not name.strip():
        raise ValidationError("name is required")
    return name.strip()


def _ensure_unique(db: Session, model, kind: str, name: str, current_id: str = None):
    query = db.query(model.id).filter(model.name == name)
    if current_id is not None:
        query = query.filter(model.id != current_id)
    if query.first() is not None:
        raise DuplicateName(kind, name)


def list_priorities(db: Session) -> List[TicketPriority]:
    return (
        db.query(TicketPriority)
        .filter(TicketPriority.is_active == True)  # noqa: E712
        .order_by(TicketPriority.sort_order, TicketPriority.name)
        .all()
    )


def get_priority(db: Session, priority_id: str) -> TicketPriority:
    priority = db.get(TicketPriority, priority_id)
    if priority is None:
        raise NotFound("Priority", priority_id)
    return priority


def create_priority(db: Session, priority_in: PriorityCreate, actor: ActorContext) -> TicketPriority:
    name = _clean_name(priority_in.name)
    with atomic(db):
        _ensure_unique(db, TicketPriority, "Priority", name)
        priority = TicketPriority(name=name, sort_order=priority_in.sort_order)
        db.add(priority)
    db.refresh(priority)
    logger.info(f"Created priority {name} by {actor.id}")
    return priority


def update_priority(db: Session, priority_id: str, priority_in: PriorityUpdate, actor: ActorContext) -> TicketPriority:
    fields = priority_in.model_fields_set
    with atomic(db):
        priority = get_priority(db, priority_id)
        if "name" in fields:
            name = _clean_name(priority_in.name)
            _ensure_unique(db, TicketPriority, "Priority", name, current_id=priority.id)
            priority.name = name
        if "sort_order" in fields:
            if priority_in.sort_order is None:
                raise ValidationError("sort_order cannot be null")
            priority.sort_order = priority_in.sort_order
    db.refresh(priority)
    logger.info(f"Updated priority {priority_id} by {actor.id}")
    return priority


def deactivate_priority(db: Session, priority_id: str, actor: ActorContext) -> TicketPriority:
    with atomic(db):
        priority = get_priority(db, priority_id)
        priority.is_active = False
    db.refresh(priority)
    logger.info(f"Deactivated priority {priority_id} by {actor.id}")
    return priority


def list_categories(db: Session) -> List[Category]:
    return db.query(Category).filter(Category.is_active == True).order_by(Category.name).all()  # noqa: E712


def get_category(db: Session, category_id: str) -> Category:
    category = db.get(Category, category_id)
    if category is None:
        raise NotFound("Category", category_id)
    return category


def create_category(db: Session, category_in: CategoryCreate, actor: ActorContext) -> Category:
    name = _clean_name(category_in.name)
    with atomic(db):
        _ensure_unique(db, Category, "Category", name)
        category = Category(name=name, description=category_in.description or None)
        db.add(category)
    db.refresh(category)
    logger.info(f"Created category {name} by {actor.id}")
    return category


def update_category(db: Session, category_id: str, category_in: CategoryUpdate, actor: ActorContext) -> Category:
    fields = category_in.model_fields_set
    with atomic(db):
        category = get_category(db, category_id)
        if "name" in fields:
            name = _clean_name(category_in.name)
            _ensure_unique(db, Category, "Category", name, current_id=category.id)
            category.name = name
        if "description" in fields:
            category.description = category_in.description or None
    db.refresh(category)
    logger.info(f"Updated category {category_id} by {actor.id}")
    return category


def deactivate_category(db: Session, category_id: str, actor: ActorContext) -> Category:
    with atomic(db):
        category = get_category(db, category_id)
        category.is_active = False
    db.refresh(category)
    logger.info(f"Deactivated category {category_id} by {actor.id}")
    return category
