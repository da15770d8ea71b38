from pathlib import Path
from typing import Optional

from fastapi_mail import ConnectionConfig, FastMail, MessageSchema

from core.log import logger
from settings import (
    DEFAULT_LOCALE,
    FRONTEND_BASE_URL,
    MAIL_ENABLED,
    MAIL_USERNAME,
    MAIL_PASSWORD,
    MAIL_FROM,
    MAIL_PORT,
    MAIL_SERVER,
    MAIL_FROM_NAME,
    MAIL_TLS,
    MAIL_SSL,
    USE_CREDENTIALS,
)


conf_static = ConnectionConfig(
    MAIL_USERNAME=MAIL_USERNAME,
    MAIL_PASSWORD=MAIL_PASSWORD,
    MAIL_FROM=MAIL_FROM,
    MAIL_PORT=MAIL_PORT,
    MAIL_SERVER=MAIL_SERVER,
    MAIL_FROM_NAME=MAIL_FROM_NAME,
    MAIL_STARTTLS=MAIL_TLS,
    MAIL_SSL_TLS=MAIL_SSL,
    USE_CREDENTIALS=USE_CREDENTIALS,
    TEMPLATE_FOLDER=Path(__file__).parent / "mail_templates",
)

SUBJECTS = {
    "he": "אישור הזמנת כרטיס: {event_title}",
    "en": "Your ticket for {event_title}",
}


async def send_ticket_confirmation_email(
    recipient: str,
    holder_name: str,
    event_title: str,
    event_date: str,
    event_time: Optional[str],
    location: Optional[str],
    number_of_seats: int,
    access_token: str,
    locale: Optional[str] = None,
):
    """
    Send the holder the link to their confirmed ticket. \n
    Runs as a background task, failures are logged and never touch the ticket.
    """
    if not MAIL_ENABLED:
        logger.info(f"Mail disabled, skipping ticket confirmation to {recipient}")
        return

    locale = locale if locale in SUBJECTS else DEFAULT_LOCALE
    if locale not in SUBJECTS:
        locale = "he"
    try:
        fm = FastMail(conf_static)
        await fm.send_message(
            message=MessageSchema(
                subject=SUBJECTS[locale].format(event_title=event_title),
                recipients=[recipient],
                template_body={
                    "locale": locale,
                    "holder_name": holder_name,
                    "event_title": event_title,
                    "event_date": event_date,
                    "event_time": event_time,
                    "location": location,
                    "number_of_seats": number_of_seats,
                    "ticket_link": f"{FRONTEND_BASE_URL}/ticket-summary/{access_token}",
                },
                subtype="html",
            ),
            template_name="ticket_confirmation.html",
        )
        logger.info(f"Ticket confirmation sent to {recipient}")
    except Exception as e:
        logger.error(f"Failed to send ticket confirmation to {recipient}: {e}")


def ticket_confirmation_args(ticket, locale: Optional[str] = None) -> dict:
    """Plain values for send_ticket_confirmation_email.

    Background tasks run after the request session is closed, so the ORM
    objects must not cross into them.
    """
    event = ticket.event
    return {
        "recipient": ticket.holder_email,
        "holder_name": ticket.holder_name,
        "event_title": event.title,
        "event_date": event.event_date.isoformat(),
        "event_time": event.event_time,
        "location": event.location,
        "number_of_seats": ticket.number_of_seats,
        "access_token": ticket.access_token,
        "locale": locale,
    }
