import traceback
import uuid

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.orm import Session

from core.email import send_ticket_confirmation_email, ticket_confirmation_args
from core.errors import ReservationValidationError, TicketingError
from core.log import logger
from core.reservation import cancel_by_holder, reserve
from core.responses import (
    Created,
    InternalServerError,
    Ok,
    common_response,
    handle_ticketing_error,
)
from core.security import AdminPrincipal, require_admin
from core.stripe_service import StripeService
from core import ticket_access
from models import get_db_sync
from models.Ticket import TicketStatus
from schemas.common import (
    BadGatewayResponse,
    BadRequestResponse,
    ConflictResponse,
    ForbiddenResponse,
    InternalServerErrorResponse,
    NotFoundResponse,
    ServiceUnavailableResponse,
    UnauthorizedResponse,
)
from schemas.ticket import (
    ReservationRequest,
    ReservationResponse,
    TicketResponse,
    TicketStatusUpdateRequest,
    ticket_model_to_response,
)
from settings import (
    STRIPE_API_BASE_URL,
    STRIPE_SECRET_KEY,
    STRIPE_WEBHOOK_SECRET,
    STRIPE_WEBHOOK_TOLERANCE_SECONDS,
)

router = APIRouter(prefix="/tickets", tags=["Ticket"])


def get_stripe_service() -> StripeService:
    return StripeService(
        api_key=STRIPE_SECRET_KEY,
        base_url=STRIPE_API_BASE_URL,
        webhook_secret=STRIPE_WEBHOOK_SECRET,
        webhook_tolerance=STRIPE_WEBHOOK_TOLERANCE_SECONDS,
    )


@router.post(
    "/",
    responses={
        "201": {"model": ReservationResponse},
        "400": {"model": BadRequestResponse},
        "404": {"model": NotFoundResponse},
        "409": {"model": ConflictResponse},
        "502": {"model": BadGatewayResponse},
        "503": {"model": ServiceUnavailableResponse},
        "500": {"model": InternalServerErrorResponse},
    },
)
async def reserve_ticket(
    request: ReservationRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db_sync),
):
    try:
        try:
            event_id = uuid.UUID(request.event_id)
        except ValueError:
            raise ReservationValidationError("Invalid event id", field="event_id")

        result = await reserve(
            db=db,
            event_id=event_id,
            holder_name=request.holder_name,
            holder_email=request.holder_email,
            holder_phone=request.holder_phone,
            number_of_seats=request.number_of_seats,
            notes=request.notes,
            payment_gateway=get_stripe_service(),
        )

        if result.requires_payment:
            response = ReservationResponse(checkout_url=result.checkout_url)
        else:
            background_tasks.add_task(
                send_ticket_confirmation_email,
                **ticket_confirmation_args(result.ticket),
            )
            response = ReservationResponse(
                ticket=ticket_model_to_response(result.ticket)
            )
        return common_response(Created(data=response.model_dump(mode="json")))
    except TicketingError as e:
        logger.info(f"Reservation rejected: {e.code} {e.message}")
        return handle_ticketing_error(e)
    except Exception as e:
        traceback.print_exc()
        logger.error(f"Error in reserve_ticket: {e}")
        return common_response(
            InternalServerError(error=f"Internal Server Error: {str(e)}")
        )


@router.get(
    "/{access_token}",
    responses={
        "200": {"model": TicketResponse},
        "404": {"model": NotFoundResponse},
        "500": {"model": InternalServerErrorResponse},
    },
)
async def get_ticket(access_token: str, db: Session = Depends(get_db_sync)):
    try:
        ticket = ticket_access.get_ticket(db=db, access_token=access_token)
        return common_response(
            Ok(data=ticket_model_to_response(ticket).model_dump(mode="json"))
        )
    except TicketingError as e:
        return handle_ticketing_error(e)
    except Exception as e:
        traceback.print_exc()
        logger.error(f"Error in get_ticket: {e}")
        return common_response(
            InternalServerError(error=f"Internal Server Error: {str(e)}")
        )


@router.patch(
    "/{access_token}",
    responses={
        "200": {"model": TicketResponse},
        "401": {"model": UnauthorizedResponse},
        "403": {"model": ForbiddenResponse},
        "404": {"model": NotFoundResponse},
        "409": {"model": ConflictResponse},
        "503": {"model": ServiceUnavailableResponse},
        "500": {"model": InternalServerErrorResponse},
    },
)
async def update_ticket_status(
    access_token: str,
    request: TicketStatusUpdateRequest,
    db: Session = Depends(get_db_sync),
    admin: AdminPrincipal = Depends(require_admin),
):
    try:
        ticket = await ticket_access.update_status(
            db=db,
            access_token=access_token,
            new_status=TicketStatus(request.status),
            actor=admin.username,
            payment_gateway=get_stripe_service(),
        )
        return common_response(
            Ok(data=ticket_model_to_response(ticket).model_dump(mode="json"))
        )
    except TicketingError as e:
        return handle_ticketing_error(e)
    except Exception as e:
        traceback.print_exc()
        logger.error(f"Error in update_ticket_status: {e}")
        return common_response(
            InternalServerError(error=f"Internal Server Error: {str(e)}")
        )


@router.delete(
    "/{access_token}",
    responses={
        "200": {"model": TicketResponse},
        "404": {"model": NotFoundResponse},
        "409": {"model": ConflictResponse},
        "500": {"model": InternalServerErrorResponse},
    },
)
async def cancel_ticket(access_token: str, db: Session = Depends(get_db_sync)):
    try:
        ticket = await cancel_by_holder(
            db=db, access_token=access_token, payment_gateway=get_stripe_service()
        )
        return common_response(
            Ok(data=ticket_model_to_response(ticket).model_dump(mode="json"))
        )
    except TicketingError as e:
        return handle_ticketing_error(e)
    except Exception as e:
        traceback.print_exc()
        logger.error(f"Error in cancel_ticket: {e}")
        return common_response(
            InternalServerError(error=f"Internal Server Error: {str(e)}")
        )
