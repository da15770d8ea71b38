import datetime
import typer
from typing import Optional

app = typer.Typer()


@app.command()
def create_admin_user(username: str, email: Optional[str] = None):
    from models import factory_session
    from repository.user import create_user, get_user_by_username
    from core.security import generate_hash_password

    password = typer.prompt("password", hide_input=True, confirmation_prompt=True)

    with factory_session() as db:
        if get_user_by_username(db=db, username=username) is not None:
            typer.echo(f"User {username} already exists")
            raise typer.Exit(code=1)
        create_user(
            db=db,
            username=username,
            email=email,
            password=generate_hash_password(password),
            is_active=True,
            is_admin=True,
            is_commit=True,
        )
    typer.echo(f"Admin {username} created")


@app.command()
def create_event(
    title: str,
    event_date: datetime.datetime = typer.Argument(..., formats=["%Y-%m-%d"]),
    event_time: Optional[str] = None,
    location: Optional[str] = None,
    price: int = typer.Option(0, help="Price per seat in minor currency units"),
    currency: Optional[str] = None,
    max_seats: Optional[int] = typer.Option(None, help="Leave empty for unlimited"),
):
    from models import factory_session
    from repository.event import create_event as create_event_row
    from settings import TICKET_CURRENCY

    with factory_session() as db:
        event = create_event_row(
            db=db,
            title=title,
            event_date=event_date.date(),
            event_time=event_time,
            location=location,
            price=price or None,
            currency=currency or TICKET_CURRENCY,
            max_seats=max_seats,
        )
        typer.echo(f"Event {event.id} created")


@app.command()
def expire_holds():
    """Release PENDING holds whose checkout window is over, run it from cron."""
    from models import factory_session
    from core.payment_confirmation import expire_stale_holds
    from core.reservation import close_checkout
    from routes.ticket import get_stripe_service
    import asyncio

    with factory_session() as db:
        released = expire_stale_holds(db=db)
        sessions = [t.payment_session_id for t in released if t.payment_session_id]

    async def expire_sessions():
        stripe_service = get_stripe_service()
        for session_reference in sessions:
            await close_checkout(stripe_service, session_reference)

    if sessions:
        asyncio.run(expire_sessions())
    typer.echo(f"{len(released)} hold(s) released")


@app.command()
def seats(event_id: str):
    import uuid
    from models import factory_session
    from core.errors import EventNotFound
    from core.ledger import compute_seats_info

    with factory_session() as db:
        try:
            info = compute_seats_info(db=db, event_id=uuid.UUID(event_id))
        except (ValueError, EventNotFound):
            typer.echo(f"Event {event_id} not found")
            raise typer.Exit(code=1)
    max_seats = "unlimited" if info.is_unlimited else info.max_seats
    available = "unlimited" if info.is_unlimited else info.available_seats
    typer.echo(f"max={max_seats} reserved={info.reserved_seats} available={available}")


if __name__ == "__main__":
    app()
