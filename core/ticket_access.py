"""Ticket lookup by capability token.

The access token handed out at reservation time is the only credential a
holder has, there is no purchaser account. Internal ticket ids never leave the
admin surface.
"""

from typing import Optional

from sqlalchemy.orm import Session

from core.errors import TicketNotFound
from core.stripe_service import StripeService
from core.ticket_admin import override_status
from models.Ticket import Ticket, TicketStatus
from repository import ticket as ticketRepo


def get_ticket(db: Session, access_token: str) -> Ticket:
    """Raises TicketNotFound for a token that was never issued."""
    ticket = None
    if access_token:
        ticket = ticketRepo.get_ticket_by_access_token(
            db=db, access_token=access_token
        )
    if ticket is None:
        raise TicketNotFound()
    return ticket


async def update_status(
    db: Session,
    access_token: str,
    new_status: TicketStatus,
    actor: str,
    payment_gateway: Optional[StripeService] = None,
) -> Ticket:
    ticket = get_ticket(db=db, access_token=access_token)
    return await override_status(
        db=db,
        ticket=ticket,
        new_status=new_status,
        updated_by=actor,
        payment_gateway=payment_gateway,
    )
