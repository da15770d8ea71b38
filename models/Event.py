import uuid
from typing import Optional
from sqlalchemy import UUID, Boolean, Date, DateTime, Integer, String
from sqlalchemy.orm import mapped_column, Mapped, relationship
from models import Base


class Event(Base):
    """Event as published by the CMS.

    The reservation engine only reads it. ``seats_version`` is the version
    stamp every seat admission bumps, it is not a seat counter.
    """

    __tablename__ = "event"

    id: Mapped[str] = mapped_column(
        "id", UUID(as_uuid=True), primary_key=True, index=True, default=uuid.uuid4
    )
    title: Mapped[str] = mapped_column("title", String, nullable=False)
    event_date = mapped_column("event_date", Date, nullable=False)
    event_time: Mapped[Optional[str]] = mapped_column(
        "event_time", String, nullable=True
    )
    location: Mapped[Optional[str]] = mapped_column("location", String, nullable=True)
    # minor currency units, None or 0 means free
    price: Mapped[Optional[int]] = mapped_column("price", Integer, nullable=True)
    currency: Mapped[str] = mapped_column(
        "currency", String(3), nullable=False, default="ILS"
    )
    # None means unlimited capacity
    max_seats: Mapped[Optional[int]] = mapped_column(
        "max_seats", Integer, nullable=True
    )
    registration_closed: Mapped[bool] = mapped_column(
        "registration_closed", Boolean, nullable=False, default=False
    )
    seats_version: Mapped[int] = mapped_column(
        "seats_version", Integer, nullable=False, default=0
    )
    created_at = mapped_column("created_at", DateTime(timezone=True), nullable=True)

    # One to Many
    tickets = relationship("Ticket", back_populates="event")

    @property
    def is_free(self) -> bool:
        return not self.price
