"""Spreadsheet export of an event's tickets.

The output is UTF-8 prefixed with a byte order mark, which is what makes
spreadsheet tools pick the right encoding and render Hebrew text right to
left. Cells never contain the separator or a line break, so rows can be
joined without quoting.
"""

import datetime
import re
import uuid
from typing import Iterable, List, Optional
from pytz import timezone
from sqlalchemy.orm import Session

from core.helper import get_current_time_in_timezone
from core.ticket_admin import list_tickets
from models.Ticket import Ticket, TicketStatus
from settings import DEFAULT_LOCALE, TZ

BOM = "\ufeff"
TAB = "\t"
COMMA = ","
SEPARATORS = (TAB, COMMA)
EMPTY_CELL = "-"

HEADERS = {
    "he": [
        "שם",
        "אימייל",
        "טלפון",
        "מספר מקומות",
        "סטטוס",
        "מזהה כרטיס",
        "הערות",
        "תאריך הזמנה",
    ],
    "en": [
        "Name",
        "Email",
        "Phone",
        "Seats",
        "Status",
        "Ticket ID",
        "Notes",
        "Reserved On",
    ],
}

STATUS_LABELS = {
    "he": {
        TicketStatus.PENDING: "ממתין לתשלום",
        TicketStatus.CONFIRMED: "מאושר",
        TicketStatus.ATTENDED: "הגיע",
        TicketStatus.CANCELLED: "בוטל",
    },
    "en": {
        TicketStatus.PENDING: "Pending",
        TicketStatus.CONFIRMED: "Confirmed",
        TicketStatus.ATTENDED: "Attended",
        TicketStatus.CANCELLED: "Cancelled",
    },
}

DATE_FORMATS = {"he": "%d.%m.%Y", "en": "%Y-%m-%d"}

_LINE_BREAKS = re.compile(r"[\r\n]+")
_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-zA-Z0-9\u0590-\u05FF]")


def resolve_locale(locale: Optional[str]) -> str:
    if locale in HEADERS:
        return locale
    return DEFAULT_LOCALE if DEFAULT_LOCALE in HEADERS else "he"


def sanitize_cell(value: Optional[object], separator: str = TAB) -> str:
    if value is None:
        return EMPTY_CELL
    text = _LINE_BREAKS.sub(" ", str(value))
    text = text.replace(TAB, " ").replace(separator, " ").strip()
    return text or EMPTY_CELL


def format_date(value: Optional[datetime.datetime], locale: str) -> str:
    if value is None:
        return EMPTY_CELL
    if value.tzinfo is not None:
        value = value.astimezone(timezone(TZ))
    return value.strftime(DATE_FORMATS[locale])


def ticket_row(ticket: Ticket, locale: str) -> List[object]:
    return [
        ticket.holder_name,
        ticket.holder_email,
        ticket.holder_phone,
        ticket.number_of_seats,
        STATUS_LABELS[locale][TicketStatus(ticket.status)],
        ticket.id,
        ticket.notes,
        format_date(ticket.created_at, locale),
    ]


def render_tickets(
    tickets: Iterable[Ticket], locale: Optional[str] = None, separator: str = TAB
) -> bytes:
    if separator not in SEPARATORS:
        raise ValueError(f"Unsupported separator {separator!r}")
    locale = resolve_locale(locale)

    lines = [separator.join(sanitize_cell(h, separator) for h in HEADERS[locale])]
    for ticket in tickets:
        lines.append(
            separator.join(
                sanitize_cell(cell, separator) for cell in ticket_row(ticket, locale)
            )
        )
    return (BOM + "\n".join(lines) + "\n").encode("utf-8")


def export_tickets(
    db: Session,
    event_id: uuid.UUID,
    search: Optional[str] = None,
    status: Optional[TicketStatus] = None,
    locale: Optional[str] = None,
    separator: str = TAB,
) -> bytes:
    """Export the tickets matching the admin list filters

    Columns: name, email, phone, seats, status, id, notes, reservation date.

    Raises:
        EventNotFound: Unknown event
        ValueError: Separator other than tab or comma
    """
    tickets = list_tickets(db=db, event_id=event_id, search=search, status=status)
    return render_tickets(tickets, locale=locale, separator=separator)


def export_filename(
    event_title: str,
    separator: str = TAB,
    today: Optional[datetime.date] = None,
) -> str:
    today = today or get_current_time_in_timezone().date()
    title = _UNSAFE_FILENAME_CHARS.sub("_", event_title or "")
    extension = "xls" if separator == TAB else "csv"
    return f"tickets-{title}-{today.isoformat()}.{extension}"
