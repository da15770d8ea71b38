import datetime
import uuid
from typing import Any, Iterable, List, Optional

from sqlalchemy import case, func, or_, select, update
from sqlalchemy.orm import Session, joinedload

from core.helper import get_current_time_in_timezone
from models.Ticket import ACTIVE_STATUSES, Ticket, TicketStatus


def create_ticket(
    db: Session,
    event_id: uuid.UUID,
    access_token: str,
    holder_name: str,
    holder_email: str,
    number_of_seats: int,
    status: TicketStatus,
    holder_phone: Optional[str] = None,
    notes: Optional[str] = None,
    hold_expires_at: Optional[datetime.datetime] = None,
    is_commit: bool = True,
) -> Ticket:
    now = get_current_time_in_timezone()
    ticket = Ticket(
        event_id=event_id,
        access_token=access_token,
        holder_name=holder_name,
        holder_email=holder_email,
        holder_phone=holder_phone,
        number_of_seats=number_of_seats,
        status=status.value,
        notes=notes,
        hold_expires_at=hold_expires_at,
        status_updated_by="system",
        status_updated_at=now,
        created_at=now,
    )
    db.add(ticket)
    db.flush()
    if is_commit:
        db.commit()
        db.refresh(ticket)
    return ticket


def get_ticket_by_id(db: Session, ticket_id: uuid.UUID) -> Optional[Ticket]:
    stmt = (
        select(Ticket)
        .options(joinedload(Ticket.event))
        .where(Ticket.id == ticket_id)
        .execution_options(populate_existing=True)
    )
    return db.execute(stmt).scalar()


def get_ticket_by_access_token(db: Session, access_token: str) -> Optional[Ticket]:
    stmt = (
        select(Ticket)
        .options(joinedload(Ticket.event))
        .where(Ticket.access_token == access_token)
        .execution_options(populate_existing=True)
    )
    return db.execute(stmt).scalar()


def get_ticket_by_payment_session_id(
    db: Session, payment_session_id: str
) -> Optional[Ticket]:
    stmt = (
        select(Ticket)
        .options(joinedload(Ticket.event))
        .where(Ticket.payment_session_id == payment_session_id)
        .execution_options(populate_existing=True)
    )
    return db.execute(stmt).scalar()


def sum_reserved_seats(db: Session, event_id: uuid.UUID) -> int:
    stmt = select(func.coalesce(func.sum(Ticket.number_of_seats), 0)).where(
        Ticket.event_id == event_id,
        Ticket.status.in_([s.value for s in ACTIVE_STATUSES]),
    )
    return int(db.execute(stmt).scalar() or 0)


def get_tickets_by_event_id(
    db: Session,
    event_id: uuid.UUID,
    search: Optional[str] = None,
    status: Optional[TicketStatus] = None,
) -> List[Ticket]:
    stmt = select(Ticket).where(Ticket.event_id == event_id)
    if search:
        stmt = stmt.where(
            or_(
                Ticket.holder_name.icontains(search, autoescape=True),
                Ticket.holder_email.icontains(search, autoescape=True),
                Ticket.holder_phone.icontains(search, autoescape=True),
            )
        )
    if status is not None:
        stmt = stmt.where(Ticket.status == TicketStatus(status).value)
    stmt = stmt.order_by(Ticket.created_at.desc(), Ticket.id)
    return list(db.execute(stmt).scalars().all())


def get_ticket_stats(db: Session, event_id: uuid.UUID) -> dict[str, int]:
    def seats_when(*statuses: TicketStatus):
        return func.coalesce(
            func.sum(
                case(
                    (
                        Ticket.status.in_([s.value for s in statuses]),
                        Ticket.number_of_seats,
                    ),
                    else_=0,
                )
            ),
            0,
        )

    stmt = select(
        func.count(Ticket.id),
        func.coalesce(func.sum(Ticket.number_of_seats), 0),
        seats_when(TicketStatus.CONFIRMED, TicketStatus.ATTENDED),
        seats_when(TicketStatus.ATTENDED),
        seats_when(TicketStatus.PENDING),
    ).where(Ticket.event_id == event_id)
    total_tickets, total_seats, confirmed, attended, pending = db.execute(stmt).one()
    return {
        "total_tickets": int(total_tickets),
        "total_seats": int(total_seats),
        "confirmed_seats": int(confirmed),
        "attended_seats": int(attended),
        "pending_seats": int(pending),
    }


def transition_status(
    db: Session,
    ticket_id: uuid.UUID,
    from_statuses: Iterable[TicketStatus],
    to_status: TicketStatus,
    updated_by: str,
    is_commit: bool = True,
    **fields: Any,
) -> bool:
    """Move a ticket to ``to_status`` only if it is still in one of ``from_statuses``

    Args:
        db (Session): Database session
        ticket_id (uuid.UUID): Ticket ID
        from_statuses (Iterable[TicketStatus]): Statuses the ticket is expected in
        to_status (TicketStatus): Target status
        updated_by (str): Who made the change, stored on the ticket
        **fields: Extra ticket columns to set in the same statement

    Returns:
        bool: True if the row was updated
    """
    stmt = (
        update(Ticket)
        .where(
            Ticket.id == ticket_id,
            Ticket.status.in_([TicketStatus(s).value for s in from_statuses]),
        )
        .values(
            status=to_status.value,
            status_updated_by=updated_by,
            status_updated_at=get_current_time_in_timezone(),
            **fields,
        )
        .execution_options(synchronize_session=False)
    )
    result = db.execute(stmt)
    if is_commit:
        db.commit()
    return result.rowcount == 1


def update_ticket(
    db: Session,
    ticket: Ticket,
    payment_session_id: Optional[str] = None,
    payment_reference: Optional[str] = None,
    payment_status: Optional[str] = None,
    amount_total: Optional[int] = None,
    hold_expires_at: Optional[datetime.datetime] = None,
    is_commit: bool = True,
) -> Ticket:
    if payment_session_id is not None:
        ticket.payment_session_id = payment_session_id
    if payment_reference is not None:
        ticket.payment_reference = payment_reference
    if payment_status is not None:
        ticket.payment_status = payment_status
    if amount_total is not None:
        ticket.amount_total = amount_total
    if hold_expires_at is not None:
        ticket.hold_expires_at = hold_expires_at
    db.add(ticket)
    if is_commit:
        db.commit()
        db.refresh(ticket)
    return ticket


def get_expired_holds(
    db: Session,
    now: datetime.datetime,
    event_id: Optional[uuid.UUID] = None,
) -> List[Ticket]:
    stmt = select(Ticket).where(
        Ticket.status == TicketStatus.PENDING.value,
        Ticket.hold_expires_at.is_not(None),
        Ticket.hold_expires_at <= now,
    )
    if event_id is not None:
        stmt = stmt.where(Ticket.event_id == event_id)
    return list(db.execute(stmt).scalars().all())
