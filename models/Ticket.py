from enum import StrEnum
import uuid
from typing import Optional
from sqlalchemy import (
    UUID,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
)
from sqlalchemy.orm import mapped_column, Mapped, relationship
from models import Base


class TicketStatus(StrEnum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    ATTENDED = "ATTENDED"
    CANCELLED = "CANCELLED"


# statuses that occupy seats in the capacity ledger
ACTIVE_STATUSES = (
    TicketStatus.PENDING,
    TicketStatus.CONFIRMED,
    TicketStatus.ATTENDED,
)

# hard limit of seats on one ticket, settings can only lower it
MAX_SEATS = 4


class Ticket(Base):
    __tablename__ = "ticket"
    __table_args__ = (
        CheckConstraint(
            f"number_of_seats BETWEEN 1 AND {MAX_SEATS}",
            name="chk_ticket_number_of_seats",
        ),
    )

    id: Mapped[str] = mapped_column(
        "id", UUID(as_uuid=True), primary_key=True, index=True, default=uuid.uuid4
    )
    access_token: Mapped[str] = mapped_column(
        "access_token", String(64), nullable=False, unique=True, index=True
    )
    event_id: Mapped[str] = mapped_column(
        "event_id",
        UUID(as_uuid=True),
        ForeignKey("event.id"),
        nullable=False,
        index=True,
    )
    holder_name: Mapped[str] = mapped_column("holder_name", String, nullable=False)
    holder_email: Mapped[str] = mapped_column("holder_email", String, nullable=False)
    holder_phone: Mapped[Optional[str]] = mapped_column(
        "holder_phone", String, nullable=True
    )
    number_of_seats: Mapped[int] = mapped_column(
        "number_of_seats", Integer, nullable=False, default=1
    )
    status: Mapped[str] = mapped_column(
        "status", String, nullable=False, default=TicketStatus.PENDING, index=True
    )
    notes: Mapped[Optional[str]] = mapped_column("notes", String, nullable=True)

    payment_session_id: Mapped[Optional[str]] = mapped_column(
        "payment_session_id", String, nullable=True, unique=True, index=True
    )
    payment_reference: Mapped[Optional[str]] = mapped_column(
        "payment_reference", String, nullable=True
    )
    payment_status: Mapped[Optional[str]] = mapped_column(
        "payment_status", String, nullable=True
    )
    amount_total: Mapped[Optional[int]] = mapped_column(
        "amount_total", Integer, nullable=True
    )
    hold_expires_at = mapped_column(
        "hold_expires_at", DateTime(timezone=True), nullable=True, index=True
    )

    status_updated_by: Mapped[Optional[str]] = mapped_column(
        "status_updated_by", String, nullable=True
    )
    status_updated_at = mapped_column(
        "status_updated_at", DateTime(timezone=True), nullable=True
    )
    created_at = mapped_column("created_at", DateTime(timezone=True), nullable=False)

    # Many to One
    event = relationship("Event", back_populates="tickets")
