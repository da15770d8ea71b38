import math
import time
from datetime import timedelta
from unittest import IsolatedAsyncioTestCase
from unittest.mock import AsyncMock, MagicMock, patch

import httpx

from core import ticket_admin
from core.errors import InvalidStatusTransition, PaymentProviderError, TicketNotFound
from core.helper import get_current_time_in_timezone
from core.ledger import compute_seats_info
from core.payment_confirmation import (
    expire_stale_holds,
    on_payment_confirmed,
    on_payment_failed_or_expired,
)
from core.reservation import cancel_by_holder, hold_duration, reserve
from core.stripe_service import CheckoutSession, PaymentOutcome
from models import Base, db, engine
from models.Ticket import TicketStatus
from repository import event as eventRepo
from repository import ticket as ticketRepo


class TestPaymentConfirmation(IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        Base.metadata.drop_all(engine)
        Base.metadata.create_all(engine)
        self.db = db()

        self.event = eventRepo.create_event(
            db=self.db,
            title="Concert",
            event_date=get_current_time_in_timezone().date() + timedelta(days=14),
            event_time="20:30",
            price=5000,
            max_seats=10,
        )
        self.event_id = self.event.id

        self.gateway = MagicMock()
        self.gateway.create_checkout_session = AsyncMock(
            return_value=CheckoutSession(
                url="https://checkout.stripe.com/c/pay/cs_test_123",
                session_reference="cs_test_123",
            )
        )
        self.gateway.expire_checkout_session = AsyncMock(return_value={})

    def tearDown(self) -> None:
        self.db.close()
        Base.metadata.drop_all(engine)

    async def reserve_paid(self, number_of_seats=2):
        return await reserve(
            db=self.db,
            event_id=self.event_id,
            holder_name="Yael Mizrahi",
            holder_email="Yael@Example.com ",
            holder_phone="050-1234567",
            number_of_seats=number_of_seats,
            payment_gateway=self.gateway,
        )

    def reserved_seats(self) -> int:
        return compute_seats_info(db=self.db, event_id=self.event_id).reserved_seats

    async def test_paid_reservation_holds_seats_until_payment_fails(self):
        result = await self.reserve_paid(number_of_seats=2)

        self.assertEqual(result.checkout_url, "https://checkout.stripe.com/c/pay/cs_test_123")
        ticket = result.ticket
        self.assertEqual(ticket.status, TicketStatus.PENDING)
        self.assertEqual(ticket.holder_email, "yael@example.com")
        self.assertEqual(ticket.payment_session_id, "cs_test_123")
        self.assertEqual(ticket.amount_total, 10000)
        self.assertIsNotNone(ticket.hold_expires_at)
        self.assertEqual(self.reserved_seats(), 2)

        kwargs = self.gateway.create_checkout_session.call_args.kwargs
        self.assertEqual(kwargs["unit_amount"], 5000)
        self.assertEqual(kwargs["quantity"], 2)
        self.assertEqual(kwargs["metadata"]["ticket_id"], str(ticket.id))
        self.assertIn(ticket.access_token, kwargs["success_url"])
        self.assertIn(f"eventId={self.event_id}", kwargs["cancel_url"])

        ticket, released = on_payment_failed_or_expired(
            db=self.db, session_reference="cs_test_123", outcome=PaymentOutcome.FAILED
        )
        self.assertTrue(released)
        self.assertEqual(ticket.status, TicketStatus.CANCELLED)
        self.assertEqual(ticket.payment_status, "failed")
        self.assertEqual(self.reserved_seats(), 0)

        ticket, released = on_payment_failed_or_expired(
            db=self.db, session_reference="cs_test_123", outcome=PaymentOutcome.EXPIRED
        )
        self.assertFalse(released)
        self.assertEqual(ticket.status, TicketStatus.CANCELLED)

    async def test_confirmation_is_idempotent(self):
        result = await self.reserve_paid(number_of_seats=3)

        ticket, confirmed = on_payment_confirmed(
            db=self.db,
            session_reference="cs_test_123",
            payment_reference="pi_123",
            amount_total=15000,
        )
        self.assertTrue(confirmed)
        self.assertEqual(ticket.status, TicketStatus.CONFIRMED)
        self.assertEqual(ticket.payment_reference, "pi_123")
        self.assertIsNone(ticket.hold_expires_at)
        self.assertEqual(ticket.status_updated_by, "payment")

        ticket, confirmed = on_payment_confirmed(
            db=self.db, session_reference="cs_test_123"
        )
        self.assertFalse(confirmed)
        self.assertEqual(ticket.id, result.ticket.id)
        self.assertEqual(ticket.status, TicketStatus.CONFIRMED)
        self.assertEqual(self.reserved_seats(), 3)

    async def test_late_failure_does_not_cancel_confirmed_ticket(self):
        await self.reserve_paid()
        on_payment_confirmed(db=self.db, session_reference="cs_test_123")

        ticket, released = on_payment_failed_or_expired(
            db=self.db, session_reference="cs_test_123", outcome=PaymentOutcome.EXPIRED
        )
        self.assertFalse(released)
        self.assertEqual(ticket.status, TicketStatus.CONFIRMED)
        self.assertEqual(self.reserved_seats(), 2)

    async def test_late_confirmation_of_released_hold_is_ignored(self):
        await self.reserve_paid()
        on_payment_failed_or_expired(
            db=self.db, session_reference="cs_test_123", outcome=PaymentOutcome.EXPIRED
        )

        ticket, confirmed = on_payment_confirmed(
            db=self.db, session_reference="cs_test_123"
        )
        self.assertFalse(confirmed)
        self.assertEqual(ticket.status, TicketStatus.CANCELLED)
        self.assertEqual(self.reserved_seats(), 0)

    async def test_admin_cancel_of_hold_closes_checkout(self):
        result = await self.reserve_paid(number_of_seats=2)

        ticket = await ticket_admin.set_status(
            db=self.db,
            ticket_id=result.ticket.id,
            new_status=TicketStatus.CANCELLED,
            actor="gatekeeper",
            payment_gateway=self.gateway,
        )
        self.assertEqual(ticket.status, TicketStatus.CANCELLED)
        self.assertEqual(self.reserved_seats(), 0)
        self.gateway.expire_checkout_session.assert_awaited_once_with("cs_test_123")

        # paid before the session was closed
        ticket, confirmed = on_payment_confirmed(
            db=self.db,
            session_reference="cs_test_123",
            payment_reference="pi_late",
            amount_total=10000,
        )
        self.assertFalse(confirmed)
        self.assertEqual(ticket.status, TicketStatus.CANCELLED)
        self.assertEqual(ticket.payment_status, "succeeded")
        self.assertEqual(ticket.payment_reference, "pi_late")
        self.assertEqual(self.reserved_seats(), 0)

    async def test_admin_cancel_of_confirmed_ticket_leaves_checkout_alone(self):
        result = await self.reserve_paid()
        on_payment_confirmed(db=self.db, session_reference="cs_test_123")

        ticket = await ticket_admin.set_status(
            db=self.db,
            ticket_id=result.ticket.id,
            new_status=TicketStatus.CANCELLED,
            actor="gatekeeper",
            payment_gateway=self.gateway,
        )
        self.assertEqual(ticket.status, TicketStatus.CANCELLED)
        self.gateway.expire_checkout_session.assert_not_awaited()

    async def test_shortest_hold_outlives_stripe_minimum(self):
        with patch("core.reservation.TICKET_HOLD_EXPIRE_MINUTES", 10):
            result = await self.reserve_paid()

        expires_at = self.gateway.create_checkout_session.call_args.kwargs["expires_at"]
        self.assertGreaterEqual(math.ceil(expires_at.timestamp()) - time.time(), 30 * 60)
        self.assertEqual(result.ticket.status, TicketStatus.PENDING)

    async def test_confirmation_found_by_ticket_id(self):
        result = await self.reserve_paid()
        ticket = result.ticket
        ticket.payment_session_id = None
        self.db.commit()

        ticket, confirmed = on_payment_confirmed(
            db=self.db, session_reference="cs_test_late", ticket_id=str(result.ticket.id)
        )
        self.assertTrue(confirmed)
        self.assertEqual(ticket.payment_session_id, "cs_test_late")

    async def test_unknown_session(self):
        with self.assertRaises(TicketNotFound):
            on_payment_confirmed(db=self.db, session_reference="cs_unknown")
        with self.assertRaises(TicketNotFound):
            on_payment_failed_or_expired(
                db=self.db, session_reference="cs_unknown", ticket_id="not-a-uuid"
            )

    async def test_checkout_failure_releases_hold(self):
        self.gateway.create_checkout_session = AsyncMock(
            side_effect=httpx.ConnectError("connection refused")
        )

        with self.assertRaises(PaymentProviderError):
            await self.reserve_paid()

        tickets = ticketRepo.get_tickets_by_event_id(db=self.db, event_id=self.event_id)
        self.assertEqual(len(tickets), 1)
        self.assertEqual(tickets[0].status, TicketStatus.CANCELLED)
        self.assertEqual(tickets[0].payment_status, "checkout_failed")
        self.assertEqual(self.reserved_seats(), 0)

    async def test_expired_holds_are_swept(self):
        result = await self.reserve_paid()
        self.assertEqual(self.reserved_seats(), 2)

        later = get_current_time_in_timezone() + hold_duration() + timedelta(minutes=1)
        released = expire_stale_holds(db=self.db, now=later)

        self.assertEqual([t.id for t in released], [result.ticket.id])
        ticket = ticketRepo.get_ticket_by_id(db=self.db, ticket_id=result.ticket.id)
        self.assertEqual(ticket.status, TicketStatus.CANCELLED)
        self.assertEqual(ticket.payment_status, "expired")
        self.assertEqual(self.reserved_seats(), 0)

        self.assertEqual(expire_stale_holds(db=self.db, now=later), [])

    async def test_fresh_holds_survive_the_sweep(self):
        await self.reserve_paid()
        self.assertEqual(expire_stale_holds(db=self.db), [])
        self.assertEqual(self.reserved_seats(), 2)

    async def test_holder_cancels_pending_hold(self):
        result = await self.reserve_paid()

        ticket = await cancel_by_holder(
            db=self.db,
            access_token=result.ticket.access_token,
            payment_gateway=self.gateway,
        )
        self.assertEqual(ticket.status, TicketStatus.CANCELLED)
        self.assertEqual(ticket.status_updated_by, "holder")
        self.gateway.expire_checkout_session.assert_awaited_once_with("cs_test_123")
        self.assertEqual(self.reserved_seats(), 0)

        ticket = await cancel_by_holder(
            db=self.db,
            access_token=result.ticket.access_token,
            payment_gateway=self.gateway,
        )
        self.assertEqual(ticket.status, TicketStatus.CANCELLED)
        self.gateway.expire_checkout_session.assert_awaited_once()

    async def test_holder_cannot_cancel_attended_ticket(self):
        result = await self.reserve_paid()
        on_payment_confirmed(db=self.db, session_reference="cs_test_123")
        ticketRepo.transition_status(
            db=self.db,
            ticket_id=result.ticket.id,
            from_statuses=[TicketStatus.CONFIRMED],
            to_status=TicketStatus.ATTENDED,
            updated_by="admin",
        )

        with self.assertRaises(InvalidStatusTransition):
            await cancel_by_holder(db=self.db, access_token=result.ticket.access_token)
        with self.assertRaises(TicketNotFound):
            await cancel_by_holder(db=self.db, access_token="never-issued")
