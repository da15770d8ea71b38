import uuid
from dataclasses import dataclass
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from core.admission import admit
from core.errors import (
    EventNotFound,
    InvalidStatusTransition,
    TicketingError,
    TicketNotFound,
)
from core.helper import get_current_time_in_timezone
from core.log import logger
from core.reservation import close_checkout, hold_duration
from core.stripe_service import StripeService
from core.ticket_status import can_check_in, requires_admission
from models.Event import Event
from models.Ticket import Ticket, TicketStatus
from repository import event as eventRepo
from repository import ticket as ticketRepo


@dataclass(frozen=True)
class CheckInResult:
    ticket_id: uuid.UUID
    status: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _get_event_or_raise(db: Session, event_id: uuid.UUID) -> Event:
    event = eventRepo.get_event_by_id(db=db, event_id=event_id)
    if event is None:
        raise EventNotFound()
    return event


def _get_ticket_or_raise(db: Session, ticket_id: uuid.UUID) -> Ticket:
    ticket = ticketRepo.get_ticket_by_id(db=db, ticket_id=ticket_id)
    if ticket is None:
        raise TicketNotFound()
    return ticket


def list_tickets(
    db: Session,
    event_id: uuid.UUID,
    search: Optional[str] = None,
    status: Optional[TicketStatus] = None,
) -> List[Ticket]:
    _get_event_or_raise(db=db, event_id=event_id)
    search = search.strip() if search else None
    return ticketRepo.get_tickets_by_event_id(
        db=db, event_id=event_id, search=search, status=status
    )


def get_ticket_stats(db: Session, event_id: uuid.UUID) -> dict[str, int]:
    _get_event_or_raise(db=db, event_id=event_id)
    return ticketRepo.get_ticket_stats(db=db, event_id=event_id)


def check_in(db: Session, ticket_id: uuid.UUID, actor: str) -> Ticket:
    """Mark a ticket as ATTENDED

    Checking in an ATTENDED ticket again leaves it untouched.

    Raises:
        TicketNotFound: Unknown ticket
        InvalidStatusTransition: The ticket is cancelled
    """
    ticket = _get_ticket_or_raise(db=db, ticket_id=ticket_id)
    if ticket.status == TicketStatus.ATTENDED:
        return ticket
    if not can_check_in(ticket.status):
        raise InvalidStatusTransition("A cancelled ticket cannot be checked in")

    checked_in = ticketRepo.transition_status(
        db=db,
        ticket_id=ticket.id,
        from_statuses=[TicketStatus.PENDING, TicketStatus.CONFIRMED],
        to_status=TicketStatus.ATTENDED,
        updated_by=actor,
        hold_expires_at=None,
    )
    ticket = _get_ticket_or_raise(db=db, ticket_id=ticket_id)
    if checked_in:
        logger.info(f"Ticket {ticket.id} checked in by {actor}")
    elif ticket.status != TicketStatus.ATTENDED:
        raise InvalidStatusTransition("A cancelled ticket cannot be checked in")
    return ticket


def check_in_many(
    db: Session,
    ticket_ids: Iterable[uuid.UUID],
    actor: str,
    event_id: Optional[uuid.UUID] = None,
) -> List[CheckInResult]:
    """Check in each ticket independently, one failure does not stop the rest"""
    results = []
    for ticket_id in dict.fromkeys(ticket_ids):
        if event_id is not None:
            ticket = ticketRepo.get_ticket_by_id(db=db, ticket_id=ticket_id)
            if ticket is None or ticket.event_id != event_id:
                results.append(
                    CheckInResult(ticket_id=ticket_id, error=TicketNotFound.code)
                )
                continue
        try:
            ticket = check_in(db=db, ticket_id=ticket_id, actor=actor)
        except TicketingError as e:
            results.append(CheckInResult(ticket_id=ticket_id, error=e.code))
            continue
        results.append(CheckInResult(ticket_id=ticket_id, status=ticket.status))
    return results


def change_status(
    db: Session, ticket: Ticket, new_status: TicketStatus, updated_by: str
) -> Ticket:
    """Admin override of a ticket status

    Any of the four statuses can be set. Leaving CANCELLED takes the seats
    again, so it goes through admission and fails with SoldOut when the event
    filled up in the meantime.

    Raises:
        SoldOut, ConcurrencyConflict, InvalidStatusTransition
    """
    new_status = TicketStatus(new_status)
    current = TicketStatus(ticket.status)
    if new_status == current:
        return ticket

    fields = {"hold_expires_at": None}
    if new_status == TicketStatus.PENDING:
        fields["hold_expires_at"] = get_current_time_in_timezone() + hold_duration()

    if requires_admission(current, new_status):

        def write(event: Event) -> bool:
            if not ticketRepo.transition_status(
                db=db,
                ticket_id=ticket.id,
                from_statuses=[current],
                to_status=new_status,
                updated_by=updated_by,
                is_commit=False,
                **fields,
            ):
                raise InvalidStatusTransition("Ticket status changed concurrently")
            return True

        admit(
            db=db,
            event_id=ticket.event_id,
            number_of_seats=ticket.number_of_seats,
            write=write,
            enforce_registration=False,
        )
    elif not ticketRepo.transition_status(
        db=db,
        ticket_id=ticket.id,
        from_statuses=[current],
        to_status=new_status,
        updated_by=updated_by,
        **fields,
    ):
        raise InvalidStatusTransition("Ticket status changed concurrently")

    ticket = _get_ticket_or_raise(db=db, ticket_id=ticket.id)
    logger.info(f"Ticket {ticket.id} status {current} -> {new_status} by {updated_by}")
    return ticket


async def override_status(
    db: Session,
    ticket: Ticket,
    new_status: TicketStatus,
    updated_by: str,
    payment_gateway: Optional[StripeService] = None,
) -> Ticket:
    """change_status, then close the checkout session of a hold it cancelled"""
    previous = TicketStatus(ticket.status)
    session_reference = ticket.payment_session_id
    ticket = change_status(
        db=db, ticket=ticket, new_status=new_status, updated_by=updated_by
    )
    if previous == TicketStatus.PENDING and ticket.status == TicketStatus.CANCELLED:
        await close_checkout(payment_gateway, session_reference)
    return ticket


async def set_status(
    db: Session,
    ticket_id: uuid.UUID,
    new_status: TicketStatus,
    actor: str,
    payment_gateway: Optional[StripeService] = None,
) -> Ticket:
    ticket = _get_ticket_or_raise(db=db, ticket_id=ticket_id)
    return await override_status(
        db=db,
        ticket=ticket,
        new_status=new_status,
        updated_by=actor,
        payment_gateway=payment_gateway,
    )
