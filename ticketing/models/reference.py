from sqlalchemy import Column, String, Text, Integer, DateTime, Boolean
from ticketing.core.database import Base
from ticketing.models.base import new_id, utcnow

class TicketPriority(Base):
    __tablename__ = "ticket_priorities"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(50), unique=True, nullable=False)
    sort_order = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

class Category(Base):
    __tablename__ = "categories"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(100), unique=True, nullable=False)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
