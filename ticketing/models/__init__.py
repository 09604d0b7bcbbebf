from ticketing.models.user import User
from ticketing.models.reference import TicketPriority, Category
from ticketing.models.ticket import Ticket, TicketCategory, TicketStatus
from ticketing.models.ticket_event import TicketEvent
from ticketing.models.comment import Comment
from ticketing.models.attachment import Attachment

__all__ = [
    "User",
    "TicketPriority",
    "Category",
    "Ticket",
    "TicketCategory",
    "TicketStatus",
    "TicketEvent",
    "Comment",
    "Attachment",
]
