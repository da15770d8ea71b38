from typing import List, Optional
from pydantic import BaseModel, ConfigDict
from datetime import datetime

from models.Ticket import TicketStatus


class ReservationRequest(BaseModel):
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "event_id": "0b6f9f4e-3c1d-4a51-9a3e-4f1f3c9a2b10",
                "holder_name": "Dana Levi",
                "holder_email": "dana@example.com",
                "holder_phone": "+972 50-123-4567",
                "number_of_seats": 2,
                "notes": "wheelchair access",
            }
        }
    )

    event_id: str
    holder_name: str
    holder_email: str
    holder_phone: Optional[str] = None
    number_of_seats: int
    notes: Optional[str] = None


class TicketEvent(BaseModel):
    id: str
    title: str
    event_date: str
    event_time: Optional[str] = None
    location: Optional[str] = None
    price: Optional[int] = None
    currency: str


class TicketResponse(BaseModel):
    """What a holder sees through their access token, no internal ids"""

    access_token: str
    holder_name: str
    holder_email: str
    holder_phone: Optional[str] = None
    number_of_seats: int
    status: TicketStatus
    notes: Optional[str] = None
    payment_status: Optional[str] = None
    amount_total: Optional[int] = None
    hold_expires_at: Optional[datetime] = None
    created_at: datetime
    event: TicketEvent


class AdminTicketResponse(BaseModel):
    id: str
    event_id: str
    access_token: str
    holder_name: str
    holder_email: str
    holder_phone: Optional[str] = None
    number_of_seats: int
    status: TicketStatus
    notes: Optional[str] = None
    payment_session_id: Optional[str] = None
    payment_reference: Optional[str] = None
    payment_status: Optional[str] = None
    amount_total: Optional[int] = None
    hold_expires_at: Optional[datetime] = None
    status_updated_by: Optional[str] = None
    status_updated_at: Optional[datetime] = None
    created_at: datetime


class ReservationResponse(BaseModel):
    ticket: Optional[TicketResponse] = None
    checkout_url: Optional[str] = None


class TicketStatusUpdateRequest(BaseModel):
    status: TicketStatus


class TicketStats(BaseModel):
    total_tickets: int
    total_seats: int
    confirmed_seats: int
    attended_seats: int
    pending_seats: int


class TicketListResponse(BaseModel):
    results: List[AdminTicketResponse]
    stats: TicketStats


class BulkCheckinRequest(BaseModel):
    ticket_ids: List[str]


class CheckinResult(BaseModel):
    ticket_id: str
    status: Optional[TicketStatus] = None
    error: Optional[str] = None


class BulkCheckinResponse(BaseModel):
    results: List[CheckinResult]
    checked_in: int
    failed: int


class SeatsInfoResponse(BaseModel):
    event_id: str
    max_seats: Optional[int] = None
    reserved_seats: int
    available_seats: Optional[int] = None
    is_sold_out: bool
    registration_closed: bool


def event_model_to_ticket_event(event) -> TicketEvent:
    return TicketEvent(
        id=str(event.id),
        title=event.title,
        event_date=event.event_date.isoformat(),
        event_time=event.event_time,
        location=event.location,
        price=event.price,
        currency=event.currency,
    )


def ticket_model_to_response(ticket) -> TicketResponse:
    return TicketResponse(
        access_token=ticket.access_token,
        holder_name=ticket.holder_name,
        holder_email=ticket.holder_email,
        holder_phone=ticket.holder_phone,
        number_of_seats=ticket.number_of_seats,
        status=ticket.status,
        notes=ticket.notes,
        payment_status=ticket.payment_status,
        amount_total=ticket.amount_total,
        hold_expires_at=ticket.hold_expires_at,
        created_at=ticket.created_at,
        event=event_model_to_ticket_event(ticket.event),
    )


def ticket_model_to_admin_response(ticket) -> AdminTicketResponse:
    return AdminTicketResponse(
        id=str(ticket.id),
        event_id=str(ticket.event_id),
        access_token=ticket.access_token,
        holder_name=ticket.holder_name,
        holder_email=ticket.holder_email,
        holder_phone=ticket.holder_phone,
        number_of_seats=ticket.number_of_seats,
        status=ticket.status,
        notes=ticket.notes,
        payment_session_id=ticket.payment_session_id,
        payment_reference=ticket.payment_reference,
        payment_status=ticket.payment_status,
        amount_total=ticket.amount_total,
        hold_expires_at=ticket.hold_expires_at,
        status_updated_by=ticket.status_updated_by,
        status_updated_at=ticket.status_updated_at,
        created_at=ticket.created_at,
    )
