import traceback
import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from core.admission import ensure_registration_open
from core.errors import EventNotFound, RegistrationClosed, TicketingError
from core.ledger import seats_info_for_event
from core.log import logger
from core.responses import (
    InternalServerError,
    Ok,
    common_response,
    handle_ticketing_error,
)
from models import get_db_sync
from repository import event as eventRepo
from schemas.common import InternalServerErrorResponse, NotFoundResponse
from schemas.ticket import SeatsInfoResponse

router = APIRouter(prefix="/events", tags=["Event"])


@router.get(
    "/{event_id}/seats",
    responses={
        "200": {"model": SeatsInfoResponse},
        "404": {"model": NotFoundResponse},
        "500": {"model": InternalServerErrorResponse},
    },
)
async def get_event_seats(event_id: uuid.UUID, db: Session = Depends(get_db_sync)):
    try:
        event = eventRepo.get_event_by_id(db=db, event_id=event_id)
        if event is None:
            raise EventNotFound()
        seats_info = seats_info_for_event(db=db, event=event)
        try:
            ensure_registration_open(event)
            registration_closed = False
        except RegistrationClosed:
            registration_closed = True

        return common_response(
            Ok(
                data=SeatsInfoResponse(
                    event_id=str(event.id),
                    max_seats=seats_info.max_seats,
                    reserved_seats=seats_info.reserved_seats,
                    available_seats=seats_info.available_seats,
                    is_sold_out=not seats_info.can_admit(1),
                    registration_closed=registration_closed,
                ).model_dump(mode="json")
            )
        )
    except TicketingError as e:
        return handle_ticketing_error(e)
    except Exception as e:
        traceback.print_exc()
        logger.error(f"Error in get_event_seats: {e}")
        return common_response(
            InternalServerError(error=f"Internal Server Error: {str(e)}")
        )
