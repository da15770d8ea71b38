import uuid
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from sqlalchemy.orm import Session

from core.admission import admit
from core.errors import InvalidStatusTransition, PaymentProviderError, TicketNotFound
from core.helper import get_current_time_in_timezone
from core.log import logger
from core.payment_confirmation import expire_stale_holds
from core.security import generate_ticket_access_token
from core.stripe_service import StripeService
from models.Event import Event
from models.Ticket import Ticket, TicketStatus
from repository import ticket as ticketRepo
from settings import FRONTEND_BASE_URL, TICKET_HOLD_EXPIRE_MINUTES
from validators.ticket import (
    normalize_optional,
    validate_holder,
    validate_number_of_seats,
)

# Stripe accepts checkout session lifetimes between 30 minutes and 24 hours,
# counted from when it creates the session
MIN_HOLD_MINUTES = 31
MAX_HOLD_MINUTES = 24 * 60

HOLDER_ACTOR = "holder"


@dataclass
class ReservationResult:
    ticket: Ticket
    checkout_url: Optional[str] = None

    @property
    def requires_payment(self) -> bool:
        return self.checkout_url is not None


def hold_duration() -> timedelta:
    minutes = min(max(TICKET_HOLD_EXPIRE_MINUTES, MIN_HOLD_MINUTES), MAX_HOLD_MINUTES)
    return timedelta(minutes=minutes)


async def close_checkout(
    payment_gateway: Optional[StripeService], session_reference: Optional[str]
) -> None:
    """Expire the checkout session of a released hold so it can no longer be paid."""
    if payment_gateway is None or not session_reference:
        return
    try:
        await payment_gateway.expire_checkout_session(session_reference)
    except Exception as e:
        logger.error(f"Failed to expire checkout session {session_reference}: {e}")


def _release_hold(db: Session, ticket: Ticket, payment_status: str) -> None:
    ticketRepo.transition_status(
        db=db,
        ticket_id=ticket.id,
        from_statuses=[TicketStatus.PENDING],
        to_status=TicketStatus.CANCELLED,
        updated_by="system",
        payment_status=payment_status,
    )


async def reserve(
    db: Session,
    event_id: uuid.UUID,
    holder_name: str,
    holder_email: str,
    number_of_seats: int,
    holder_phone: Optional[str] = None,
    notes: Optional[str] = None,
    payment_gateway: Optional[StripeService] = None,
) -> ReservationResult:
    """Reserve seats for an event

    Free events get a CONFIRMED ticket straight away. Paid events get a
    PENDING ticket holding the seats and a checkout session to pay for them,
    the hold is promoted or released by the payment callback.

    Raises:
        ReservationValidationError, EventNotFound, RegistrationClosed,
        SoldOut, ConcurrencyConflict, PaymentProviderError
    """
    holder = validate_holder(name=holder_name, email=holder_email, phone=holder_phone)
    number_of_seats = validate_number_of_seats(number_of_seats)
    notes = normalize_optional(notes)

    expire_stale_holds(db=db, event_id=event_id)

    access_token = generate_ticket_access_token()
    hold_expires_at = get_current_time_in_timezone() + hold_duration()

    def write(event: Event) -> Ticket:
        if event.is_free:
            status = TicketStatus.CONFIRMED
        else:
            status = TicketStatus.PENDING
        return ticketRepo.create_ticket(
            db=db,
            event_id=event.id,
            access_token=access_token,
            holder_name=holder.name,
            holder_email=holder.email,
            holder_phone=holder.phone,
            number_of_seats=number_of_seats,
            status=status,
            notes=notes,
            hold_expires_at=None if event.is_free else hold_expires_at,
            is_commit=False,
        )

    ticket = admit(db=db, event_id=event_id, number_of_seats=number_of_seats, write=write)
    event = ticket.event
    logger.info(
        f"Ticket {ticket.id} created as {ticket.status} for event {event.id}, {number_of_seats} seat(s)"
    )

    if event.is_free:
        return ReservationResult(ticket=ticket)

    if payment_gateway is None:
        _release_hold(db=db, ticket=ticket, payment_status="checkout_failed")
        raise PaymentProviderError("Payment provider is not configured")

    amount_total = event.price * number_of_seats
    # Stripe counts the session lifetime from its creation
    hold_expires_at = get_current_time_in_timezone() + hold_duration()
    try:
        checkout = await payment_gateway.create_checkout_session(
            unit_amount=event.price,
            quantity=number_of_seats,
            currency=event.currency,
            product_name=event.title,
            description=f"{number_of_seats} seat(s) for {event.title}",
            success_url=f"{FRONTEND_BASE_URL}/ticket-summary/{ticket.access_token}?payment=success",
            cancel_url=f"{FRONTEND_BASE_URL}/ticket-acquire?eventId={event.id}&cancelled=true",
            metadata={"ticket_id": str(ticket.id), "event_id": str(event.id)},
            customer_email=ticket.holder_email,
            expires_at=hold_expires_at,
        )
    except Exception as e:
        logger.error(f"Error creating checkout session for ticket {ticket.id}: {e}")
        _release_hold(db=db, ticket=ticket, payment_status="checkout_failed")
        raise PaymentProviderError() from e

    ticket = ticketRepo.update_ticket(
        db=db,
        ticket=ticket,
        payment_session_id=checkout.session_reference,
        payment_status="open",
        amount_total=amount_total,
        hold_expires_at=hold_expires_at,
    )
    return ReservationResult(ticket=ticket, checkout_url=checkout.url)


async def cancel_by_holder(
    db: Session,
    access_token: str,
    payment_gateway: Optional[StripeService] = None,
) -> Ticket:
    """Cancel a ticket on behalf of its holder, releasing its seats

    Cancelling an already cancelled ticket is a no-op.

    Raises:
        TicketNotFound: Unknown access token
        InvalidStatusTransition: The ticket was already used
    """
    ticket = ticketRepo.get_ticket_by_access_token(db=db, access_token=access_token)
    if ticket is None:
        raise TicketNotFound()
    if ticket.status == TicketStatus.CANCELLED:
        return ticket
    if ticket.status == TicketStatus.ATTENDED:
        raise InvalidStatusTransition("An attended ticket cannot be cancelled")

    was_pending = ticket.status == TicketStatus.PENDING
    session_reference = ticket.payment_session_id
    cancelled = ticketRepo.transition_status(
        db=db,
        ticket_id=ticket.id,
        from_statuses=[TicketStatus.PENDING, TicketStatus.CONFIRMED],
        to_status=TicketStatus.CANCELLED,
        updated_by=HOLDER_ACTOR,
    )
    ticket = ticketRepo.get_ticket_by_id(db=db, ticket_id=ticket.id)
    if not cancelled:
        if ticket.status == TicketStatus.CANCELLED:
            return ticket
        raise InvalidStatusTransition(f"Ticket is {ticket.status} and cannot be cancelled")

    logger.info(
        f"Ticket {ticket.id} cancelled by holder, {ticket.number_of_seats} seat(s) released"
    )

    if was_pending:
        await close_checkout(payment_gateway, session_reference)

    return ticket
