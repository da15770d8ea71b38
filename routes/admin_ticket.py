import traceback
import uuid
from typing import Literal, Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from sqlalchemy.orm import Session

from core.errors import EventNotFound, TicketingError
from core.log import logger
from core.responses import (
    BadRequest,
    InternalServerError,
    Ok,
    common_response,
    handle_ticketing_error,
)
from core.security import AdminPrincipal, require_admin
from core import ticket_admin
from core.ticket_export import COMMA, TAB, export_filename, export_tickets
from models import get_db_sync
from models.Ticket import TicketStatus
from repository import event as eventRepo
from routes.ticket import get_stripe_service
from schemas.common import (
    BadRequestResponse,
    ConflictResponse,
    ForbiddenResponse,
    InternalServerErrorResponse,
    NotFoundResponse,
    ServiceUnavailableResponse,
    UnauthorizedResponse,
)
from schemas.ticket import (
    AdminTicketResponse,
    BulkCheckinRequest,
    BulkCheckinResponse,
    CheckinResult,
    TicketListResponse,
    TicketStats,
    TicketStatusUpdateRequest,
    ticket_model_to_admin_response,
)

router = APIRouter(prefix="/admin", tags=["Admin Ticket"])

EXPORT_FORMATS = {
    "tsv": (TAB, "text/tab-separated-values; charset=utf-8"),
    "csv": (COMMA, "text/csv; charset=utf-8"),
}


@router.get(
    "/events/{event_id}/tickets/",
    responses={
        "200": {"model": TicketListResponse},
        "401": {"model": UnauthorizedResponse},
        "403": {"model": ForbiddenResponse},
        "404": {"model": NotFoundResponse},
        "500": {"model": InternalServerErrorResponse},
    },
)
async def list_event_tickets(
    event_id: uuid.UUID,
    search: Optional[str] = None,
    status: Optional[TicketStatus] = None,
    db: Session = Depends(get_db_sync),
    admin: AdminPrincipal = Depends(require_admin),
):
    try:
        tickets = ticket_admin.list_tickets(
            db=db, event_id=event_id, search=search, status=status
        )
        stats = ticket_admin.get_ticket_stats(db=db, event_id=event_id)
        response = TicketListResponse(
            results=[ticket_model_to_admin_response(t) for t in tickets],
            stats=TicketStats(**stats),
        )
        return common_response(Ok(data=response.model_dump(mode="json")))
    except TicketingError as e:
        return handle_ticketing_error(e)
    except Exception as e:
        traceback.print_exc()
        logger.error(f"Error in list_event_tickets: {e}")
        return common_response(
            InternalServerError(error=f"Internal Server Error: {str(e)}")
        )


@router.get(
    "/events/{event_id}/tickets/export",
    responses={
        "200": {"content": {"text/tab-separated-values": {}, "text/csv": {}}},
        "400": {"model": BadRequestResponse},
        "401": {"model": UnauthorizedResponse},
        "403": {"model": ForbiddenResponse},
        "404": {"model": NotFoundResponse},
        "500": {"model": InternalServerErrorResponse},
    },
)
async def export_event_tickets(
    event_id: uuid.UUID,
    search: Optional[str] = None,
    status: Optional[TicketStatus] = None,
    locale: Optional[Literal["he", "en"]] = None,
    format: Literal["tsv", "csv"] = "tsv",
    db: Session = Depends(get_db_sync),
    admin: AdminPrincipal = Depends(require_admin),
):
    try:
        event = eventRepo.get_event_by_id(db=db, event_id=event_id)
        if event is None:
            raise EventNotFound()
        separator, media_type = EXPORT_FORMATS[format]
        content = export_tickets(
            db=db,
            event_id=event_id,
            search=search,
            status=status,
            locale=locale,
            separator=separator,
        )
        filename = export_filename(event_title=event.title, separator=separator)
        ascii_filename = filename.encode("ascii", "replace").decode().replace("?", "_")
        logger.info(f"Tickets of event {event_id} exported by {admin.username}")
        return Response(
            content=content,
            media_type=media_type,
            headers={
                "Content-Disposition": f"attachment; filename=\"{ascii_filename}\"; filename*=UTF-8''{quote(filename)}"
            },
        )
    except TicketingError as e:
        return handle_ticketing_error(e)
    except ValueError as e:
        return common_response(BadRequest(message=str(e)))
    except Exception as e:
        traceback.print_exc()
        logger.error(f"Error in export_event_tickets: {e}")
        return common_response(
            InternalServerError(error=f"Internal Server Error: {str(e)}")
        )


@router.post(
    "/tickets/{ticket_id}/checkin",
    responses={
        "200": {"model": AdminTicketResponse},
        "401": {"model": UnauthorizedResponse},
        "403": {"model": ForbiddenResponse},
        "404": {"model": NotFoundResponse},
        "409": {"model": ConflictResponse},
        "500": {"model": InternalServerErrorResponse},
    },
)
async def checkin_ticket(
    ticket_id: uuid.UUID,
    db: Session = Depends(get_db_sync),
    admin: AdminPrincipal = Depends(require_admin),
):
    try:
        ticket = ticket_admin.check_in(db=db, ticket_id=ticket_id, actor=admin.username)
        return common_response(
            Ok(data=ticket_model_to_admin_response(ticket).model_dump(mode="json"))
        )
    except TicketingError as e:
        return handle_ticketing_error(e)
    except Exception as e:
        traceback.print_exc()
        logger.error(f"Error in checkin_ticket: {e}")
        return common_response(
            InternalServerError(error=f"Internal Server Error: {str(e)}")
        )


@router.post(
    "/events/{event_id}/tickets/checkin",
    responses={
        "200": {"model": BulkCheckinResponse},
        "400": {"model": BadRequestResponse},
        "401": {"model": UnauthorizedResponse},
        "403": {"model": ForbiddenResponse},
        "404": {"model": NotFoundResponse},
        "500": {"model": InternalServerErrorResponse},
    },
)
async def bulk_checkin_tickets(
    event_id: uuid.UUID,
    request: BulkCheckinRequest,
    db: Session = Depends(get_db_sync),
    admin: AdminPrincipal = Depends(require_admin),
):
    try:
        if eventRepo.get_event_by_id(db=db, event_id=event_id) is None:
            raise EventNotFound()
        try:
            ticket_ids = [uuid.UUID(ticket_id) for ticket_id in request.ticket_ids]
        except ValueError:
            return common_response(BadRequest(message="Invalid ticket id"))

        results = ticket_admin.check_in_many(
            db=db, ticket_ids=ticket_ids, actor=admin.username, event_id=event_id
        )
        response = BulkCheckinResponse(
            results=[
                CheckinResult(
                    ticket_id=str(result.ticket_id),
                    status=result.status,
                    error=result.error,
                )
                for result in results
            ],
            checked_in=sum(1 for result in results if result.ok),
            failed=sum(1 for result in results if not result.ok),
        )
        return common_response(Ok(data=response.model_dump(mode="json")))
    except TicketingError as e:
        return handle_ticketing_error(e)
    except Exception as e:
        traceback.print_exc()
        logger.error(f"Error in bulk_checkin_tickets: {e}")
        return common_response(
            InternalServerError(error=f"Internal Server Error: {str(e)}")
        )


@router.put(
    "/tickets/{ticket_id}/status",
    responses={
        "200": {"model": AdminTicketResponse},
        "401": {"model": UnauthorizedResponse},
        "403": {"model": ForbiddenResponse},
        "404": {"model": NotFoundResponse},
        "409": {"model": ConflictResponse},
        "503": {"model": ServiceUnavailableResponse},
        "500": {"model": InternalServerErrorResponse},
    },
)
async def set_ticket_status(
    ticket_id: uuid.UUID,
    request: TicketStatusUpdateRequest,
    db: Session = Depends(get_db_sync),
    admin: AdminPrincipal = Depends(require_admin),
):
    try:
        ticket = await ticket_admin.set_status(
            db=db,
            ticket_id=ticket_id,
            new_status=TicketStatus(request.status),
            actor=admin.username,
            payment_gateway=get_stripe_service(),
        )
        return common_response(
            Ok(data=ticket_model_to_admin_response(ticket).model_dump(mode="json"))
        )
    except TicketingError as e:
        return handle_ticketing_error(e)
    except Exception as e:
        traceback.print_exc()
        logger.error(f"Error in set_ticket_status: {e}")
        return common_response(
            InternalServerError(error=f"Internal Server Error: {str(e)}")
        )
