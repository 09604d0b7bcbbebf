from sqlalchemy import Column, String, Text, Enum, ForeignKey, DateTime, UniqueConstraint
from sqlalchemy.orm import relationship
from ticketing.core.database import Base
from ticketing.models.base import new_id, utcnow
import enum

class TicketStatus(str, enum.Enum):
    NEW = "New"
    ASSIGNED = "Assigned"
    IN_PROGRESS = "In_Progress"
    ON_HOLD = "On_Hold"
    RESOLVED = "Resolved"
    CLOSED = "Closed"
    REOPENED = "Reopened"

class Ticket(Base):
    __tablename__ = "tickets"
    __table_args__ = (UniqueConstraint("ticket_code", name="uq_tickets_ticket_code"),)

    id = Column(String(36), primary_key=True, default=new_id)
    ticket_code = Column(String(32), nullable=False)
    subject = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    requester_email = Column(String(255), nullable=True)
    requester_name = Column(String(255), nullable=True)
    requester_phone = Column(String(50), nullable=False)
    location = Column(String(255), nullable=True)
    status = Column(
        Enum(TicketStatus, name="ticket_status", values_callable=lambda e: [m.value for m in e]),
        default=TicketStatus.NEW,
        nullable=False,
        index=True,
    )
    priority_id = Column(String(36), ForeignKey("ticket_priorities.id"), nullable=False, index=True)
    assignee_id = Column(String(36), ForeignKey("users.id"), nullable=True, index=True)
    created_by_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    updated_by_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
    resolved_at = Column(DateTime(timezone=True), nullable=True)
    closed_at = Column(DateTime(timezone=True), nullable=True)

    priority = relationship("TicketPriority")
    assignee = relationship("User", foreign_keys=[assignee_id])
    created_by = relationship("User", foreign_keys=[created_by_id])
    updated_by = relationship("User", foreign_keys=[updated_by_id])

    category_links = relationship("TicketCategory", back_populates="ticket", cascade="all, delete-orphan")
    categories = relationship(
        "Category", secondary="ticket_categories", order_by="Category.name", viewonly=True
    )
    comments = relationship(
        "Comment", back_populates="ticket", cascade="all, delete-orphan", order_by="Comment.created_at"
    )
    attachments = relationship("Attachment", back_populates="ticket", cascade="all, delete-orphan")
    visible_attachments = relationship(
        "Attachment",
        primaryjoin="and_(Ticket.id == Attachment.ticket_id, Attachment.is_deleted == False)",
        order_by="Attachment.uploaded_at",
        viewonly=True,
    )
    events = relationship(
        "TicketEvent",
        back_populates="ticket",
        cascade="all, delete-orphan",
        order_by="[TicketEvent.created_at, TicketEvent.id]",
    )

class TicketCategory(Base):
    __tablename__ = "ticket_categories"

    ticket_id = Column(String(36), ForeignKey("tickets.id", ondelete="CASCADE"), primary_key=True)
    category_id = Column(String(36), ForeignKey("categories.id"), primary_key=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    ticket = relationship("Ticket", back_populates="category_links")
    category = relationship("Category")
