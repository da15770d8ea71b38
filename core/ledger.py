"""Seat accounting for events.

Seats are never stored as a counter: the reserved figure is always summed
from the tickets that occupy seats (PENDING, CONFIRMED and ATTENDED), so the
ledger cannot drift from the ticket store.
"""

import uuid
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from core.errors import EventNotFound, SoldOut
from models.Event import Event
from repository import event as eventRepo
from repository import ticket as ticketRepo


@dataclass(frozen=True)
class SeatsInfo:
    max_seats: Optional[int]
    reserved_seats: int
    # None for events without a seat limit
    available_seats: Optional[int]

    @property
    def is_unlimited(self) -> bool:
        return self.max_seats is None

    def can_admit(self, number_of_seats: int) -> bool:
        if self.available_seats is None:
            return True
        return number_of_seats <= self.available_seats


def seats_info_for_event(db: Session, event: Event) -> SeatsInfo:
    reserved = ticketRepo.sum_reserved_seats(db=db, event_id=event.id)
    if event.max_seats is None:
        return SeatsInfo(max_seats=None, reserved_seats=reserved, available_seats=None)
    return SeatsInfo(
        max_seats=event.max_seats,
        reserved_seats=reserved,
        available_seats=max(0, event.max_seats - reserved),
    )


def compute_seats_info(db: Session, event_id: uuid.UUID) -> SeatsInfo:
    """Current seat figures for an event

    Raises:
        EventNotFound: If the event does not exist
    """
    event = eventRepo.get_event_by_id(db=db, event_id=event_id)
    if event is None:
        raise EventNotFound()
    return seats_info_for_event(db=db, event=event)


def ensure_capacity(seats_info: SeatsInfo, number_of_seats: int) -> None:
    if not seats_info.can_admit(number_of_seats):
        raise SoldOut(
            requested=number_of_seats, available=seats_info.available_seats or 0
        )
