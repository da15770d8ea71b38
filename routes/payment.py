import json
import traceback
from fastapi import APIRouter, BackgroundTasks, Depends, Header, Request
from sqlalchemy.orm import Session

from models import get_db_sync
from core.email import send_ticket_confirmation_email, ticket_confirmation_args
from core.errors import TicketingError, TicketNotFound
from core.payment_confirmation import (
    on_payment_confirmed,
    on_payment_failed_or_expired,
)
from core.responses import (
    common_response,
    Ok,
    BadRequest,
    InternalServerError,
    handle_ticketing_error,
)
from core.stripe_service import PaymentOutcome, StripeService
from schemas.common import (
    BadRequestResponse,
    InternalServerErrorResponse,
    NotFoundResponse,
)
from settings import (
    STRIPE_API_BASE_URL,
    STRIPE_SECRET_KEY,
    STRIPE_WEBHOOK_SECRET,
    STRIPE_WEBHOOK_TOLERANCE_SECONDS,
)
from core.log import logger

router = APIRouter(prefix="/payment", tags=["Payment"])


@router.post(
    "/webhook",
    responses={
        "200": {"description": "Webhook processed successfully"},
        "400": {"model": BadRequestResponse},
        "404": {"model": NotFoundResponse},
        "500": {"model": InternalServerErrorResponse},
    },
)
async def payment_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db_sync),
    stripe_signature: str = Header(None, alias="Stripe-Signature"),
):
    try:
        if not stripe_signature:
            return common_response(
                BadRequest(message="Missing Stripe-Signature header")
            )

        payload = await request.body()
        stripe_service = StripeService(
            api_key=STRIPE_SECRET_KEY,
            base_url=STRIPE_API_BASE_URL,
            webhook_secret=STRIPE_WEBHOOK_SECRET,
            webhook_tolerance=STRIPE_WEBHOOK_TOLERANCE_SECONDS,
        )
        if not stripe_service.verify_webhook_signature(payload, stripe_signature):
            return common_response(BadRequest(message="Invalid signature"))

        try:
            event = json.loads(payload)
        except ValueError:
            return common_response(BadRequest(message="Invalid JSON payload"))
        if not isinstance(event, dict):
            return common_response(
                BadRequest(message="Webhook payload must be an object")
            )

        callback = stripe_service.parse_webhook_event(event)
        if callback is None:
            logger.debug(f"Ignoring webhook event {event.get('type')}")
            return common_response(Ok(data={"message": "Webhook ignored"}))

        if callback.outcome == PaymentOutcome.SUCCEEDED:
            ticket, confirmed = on_payment_confirmed(
                db=db,
                session_reference=callback.session_reference,
                ticket_id=callback.ticket_id,
                payment_reference=callback.payment_reference,
                amount_total=callback.amount_total,
            )
            if confirmed:
                background_tasks.add_task(
                    send_ticket_confirmation_email, **ticket_confirmation_args(ticket)
                )
        else:
            on_payment_failed_or_expired(
                db=db,
                session_reference=callback.session_reference,
                outcome=callback.outcome,
                ticket_id=callback.ticket_id,
            )

        return common_response(Ok(data={"message": "Webhook processed successfully"}))
    except TicketNotFound as e:
        logger.warning(f"Webhook for unknown ticket: {e.message}")
        return handle_ticketing_error(e)
    except TicketingError as e:
        return handle_ticketing_error(e)
    except Exception as e:
        traceback.print_exc()
        logger.error(f"Error in payment_webhook: {e}")
        return common_response(
            InternalServerError(error=f"Internal Server Error: {str(e)}")
        )
