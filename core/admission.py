import uuid
from typing import Callable, Optional, TypeVar

from sqlalchemy.orm import Session

from core.errors import ConcurrencyConflict, EventNotFound, RegistrationClosed
from core.helper import get_current_time_in_timezone
from core.ledger import ensure_capacity, seats_info_for_event
from core.log import logger
from models.Event import Event
from repository import event as eventRepo
from settings import RESERVATION_MAX_RETRIES

T = TypeVar("T")


def ensure_registration_open(event: Event) -> None:
    if event.registration_closed:
        raise RegistrationClosed("Registration for this event is closed")
    if event.event_date < get_current_time_in_timezone().date():
        raise RegistrationClosed("Cannot reserve tickets for past events")


def admit(
    db: Session,
    event_id: uuid.UUID,
    number_of_seats: int,
    write: Callable[[Event], T],
    enforce_registration: bool = True,
    max_retries: Optional[int] = None,
) -> T:
    """Run ``write`` only if the event still has ``number_of_seats`` free, atomically

    The event version is read before the seats are summed, and the write is
    committed only if the version is unchanged when it is bumped. A concurrent
    admission that committed in between makes the bump miss, the attempt is
    rolled back and the capacity check runs again on fresh data.

    Args:
        db (Session): Database session
        event_id (uuid.UUID): Event the seats belong to
        number_of_seats (int): Seats the write is going to occupy
        write (Callable[[Event], T]): Performs the ticket insert or status change
            without committing
        enforce_registration (bool): Reject closed and past events
        max_retries (Optional[int]): Attempts before giving up

    Returns:
        T: Whatever ``write`` returned, after commit

    Raises:
        EventNotFound, RegistrationClosed, SoldOut, ConcurrencyConflict
    """
    attempts = max_retries or RESERVATION_MAX_RETRIES
    for attempt in range(1, attempts + 1):
        try:
            event = eventRepo.get_event_by_id(db=db, event_id=event_id, fresh=True)
            if event is None:
                raise EventNotFound()
            if enforce_registration:
                ensure_registration_open(event)
            version = event.seats_version
            seats_info = seats_info_for_event(db=db, event=event)
            ensure_capacity(seats_info, number_of_seats)

            result = write(event)
            if eventRepo.bump_seats_version(
                db=db, event_id=event_id, expected_version=version
            ):
                db.commit()
                return result
        except Exception:
            db.rollback()
            raise

        db.rollback()
        logger.warning(
            f"Seat version conflict on event {event_id}, attempt {attempt}/{attempts}"
        )

    logger.error(f"Giving up admission on event {event_id} after {attempts} attempts")
    raise ConcurrencyConflict()
