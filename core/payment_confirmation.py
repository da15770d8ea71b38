"""Promotion and release of seat holds driven by the payment provider.

Provider callbacks are delivered at least once, so every transition here is a
conditional update guarded on the ticket still being PENDING. A callback that
finds the ticket already moved on is logged and ignored.
"""

import datetime
import uuid
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from core.errors import PaymentCallbackConflict, TicketNotFound
from core.helper import get_current_time_in_timezone
from core.log import logger
from core.stripe_service import PaymentOutcome
from models.Ticket import Ticket, TicketStatus
from repository import ticket as ticketRepo

PAYMENT_ACTOR = "payment"
SYSTEM_ACTOR = "system"


def _find_ticket(
    db: Session, session_reference: str, ticket_id: Optional[str] = None
) -> Ticket:
    ticket = ticketRepo.get_ticket_by_payment_session_id(
        db=db, payment_session_id=session_reference
    )
    if ticket is None and ticket_id:
        # the callback can race the session id being stored after checkout creation
        try:
            ticket = ticketRepo.get_ticket_by_id(db=db, ticket_id=uuid.UUID(ticket_id))
        except ValueError:
            ticket = None
        if ticket is not None and ticket.payment_session_id not in (
            None,
            session_reference,
        ):
            ticket = None
    if ticket is None:
        raise TicketNotFound(f"No ticket for checkout session {session_reference}")
    return ticket


def _log_conflict(ticket: Ticket, session_reference: str, outcome: str) -> None:
    conflict = PaymentCallbackConflict(
        f"Payment {outcome} for session {session_reference} ignored, ticket {ticket.id} is {ticket.status}"
    )
    logger.warning(conflict.message)


def on_payment_confirmed(
    db: Session,
    session_reference: str,
    ticket_id: Optional[str] = None,
    payment_reference: Optional[str] = None,
    amount_total: Optional[int] = None,
) -> Tuple[Ticket, bool]:
    """Promote the hold behind a paid checkout session to CONFIRMED

    Args:
        db (Session): Database session
        session_reference (str): Checkout session id
        ticket_id (Optional[str]): Ticket id from the session metadata
        payment_reference (Optional[str]): Provider payment id
        amount_total (Optional[int]): Amount actually charged

    Returns:
        Tuple[Ticket, bool]: The ticket and whether this call confirmed it

    Raises:
        TicketNotFound: If no ticket belongs to the session
    """
    ticket = _find_ticket(db=db, session_reference=session_reference, ticket_id=ticket_id)

    fields = {
        "payment_session_id": session_reference,
        "payment_status": PaymentOutcome.SUCCEEDED.value,
        "hold_expires_at": None,
    }
    if payment_reference is not None:
        fields["payment_reference"] = payment_reference
    if amount_total is not None:
        fields["amount_total"] = amount_total

    confirmed = ticketRepo.transition_status(
        db=db,
        ticket_id=ticket.id,
        from_statuses=[TicketStatus.PENDING],
        to_status=TicketStatus.CONFIRMED,
        updated_by=PAYMENT_ACTOR,
        **fields,
    )
    ticket = ticketRepo.get_ticket_by_id(db=db, ticket_id=ticket.id)

    if confirmed:
        logger.info(f"Ticket {ticket.id} confirmed by payment session {session_reference}")
        return ticket, True

    if ticket.status in (TicketStatus.CONFIRMED, TicketStatus.ATTENDED):
        logger.info(
            f"Duplicate payment confirmation for session {session_reference}, ticket {ticket.id} already {ticket.status}"
        )
    else:
        _log_conflict(ticket, session_reference, PaymentOutcome.SUCCEEDED)
        # no seats behind it, the charge stays on record for a refund
        ticket = ticketRepo.update_ticket(
            db=db,
            ticket=ticket,
            payment_reference=payment_reference,
            payment_status=PaymentOutcome.SUCCEEDED.value,
            amount_total=amount_total,
        )
    return ticket, False


def on_payment_failed_or_expired(
    db: Session,
    session_reference: str,
    outcome: PaymentOutcome = PaymentOutcome.FAILED,
    ticket_id: Optional[str] = None,
) -> Tuple[Ticket, bool]:
    """Release the hold behind a failed or expired checkout session

    Returns:
        Tuple[Ticket, bool]: The ticket and whether this call cancelled it

    Raises:
        TicketNotFound: If no ticket belongs to the session
    """
    ticket = _find_ticket(db=db, session_reference=session_reference, ticket_id=ticket_id)

    released = ticketRepo.transition_status(
        db=db,
        ticket_id=ticket.id,
        from_statuses=[TicketStatus.PENDING],
        to_status=TicketStatus.CANCELLED,
        updated_by=PAYMENT_ACTOR,
        payment_status=PaymentOutcome(outcome).value,
    )
    ticket = ticketRepo.get_ticket_by_id(db=db, ticket_id=ticket.id)

    if released:
        logger.info(
            f"Ticket {ticket.id} cancelled, payment {outcome} for session {session_reference}, {ticket.number_of_seats} seat(s) released"
        )
        return ticket, True

    if ticket.status == TicketStatus.CANCELLED:
        logger.info(
            f"Duplicate payment {outcome} for session {session_reference}, ticket {ticket.id} already cancelled"
        )
    else:
        _log_conflict(ticket, session_reference, outcome)
    return ticket, False


def expire_stale_holds(
    db: Session,
    now: Optional[datetime.datetime] = None,
    event_id: Optional[uuid.UUID] = None,
) -> List[Ticket]:
    """Cancel PENDING tickets whose hold outlived the checkout session

    Args:
        db (Session): Database session
        now (Optional[datetime.datetime]): Reference time, defaults to now
        event_id (Optional[uuid.UUID]): Limit the sweep to one event

    Returns:
        List[Ticket]: Tickets released by this sweep
    """
    now = now or get_current_time_in_timezone()
    released = []
    for ticket in ticketRepo.get_expired_holds(db=db, now=now, event_id=event_id):
        if ticketRepo.transition_status(
            db=db,
            ticket_id=ticket.id,
            from_statuses=[TicketStatus.PENDING],
            to_status=TicketStatus.CANCELLED,
            updated_by=SYSTEM_ACTOR,
            is_commit=False,
            payment_status=PaymentOutcome.EXPIRED.value,
        ):
            released.append(ticket)
    db.commit()

    for ticket in released:
        logger.info(
            f"Hold on ticket {ticket.id} expired, {ticket.number_of_seats} seat(s) released"
        )
    return released
