import datetime
import uuid
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from core.helper import get_current_time_in_timezone
from models.Event import Event


def get_event_by_id(
    db: Session, event_id: uuid.UUID, fresh: bool = False
) -> Optional[Event]:
    stmt = select(Event).where(Event.id == event_id)
    if fresh:
        # bypass the identity map, the version stamp must be read from the row
        stmt = stmt.execution_options(populate_existing=True)
    return db.execute(stmt).scalar()


def bump_seats_version(db: Session, event_id: uuid.UUID, expected_version: int) -> bool:
    """Advance the event seat version if nobody else did since it was read

    Args:
        db (Session): Database session
        event_id (uuid.UUID): Event ID
        expected_version (int): Version observed when capacity was checked

    Returns:
        bool: False when a concurrent admission already moved the version
    """
    stmt = (
        update(Event)
        .where(Event.id == event_id, Event.seats_version == expected_version)
        .values(seats_version=expected_version + 1)
        .execution_options(synchronize_session=False)
    )
    result = db.execute(stmt)
    return result.rowcount == 1


def create_event(
    db: Session,
    title: str,
    event_date: datetime.date,
    event_time: Optional[str] = None,
    location: Optional[str] = None,
    price: Optional[int] = None,
    currency: str = "ILS",
    max_seats: Optional[int] = None,
    registration_closed: bool = False,
    is_commit: bool = True,
) -> Event:
    event = Event(
        title=title,
        event_date=event_date,
        event_time=event_time,
        location=location,
        price=price,
        currency=currency,
        max_seats=max_seats,
        registration_closed=registration_closed,
        seats_version=0,
        created_at=get_current_time_in_timezone(),
    )
    db.add(event)
    db.flush()
    if is_commit:
        db.commit()
        db.refresh(event)
    return event
