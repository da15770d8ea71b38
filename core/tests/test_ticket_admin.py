import uuid
from datetime import timedelta
from unittest import IsolatedAsyncioTestCase

from core import ticket_access, ticket_admin
from core.errors import (
    EventNotFound,
    InvalidStatusTransition,
    SoldOut,
    TicketNotFound,
)
from core.helper import get_current_time_in_timezone
from core.ledger import compute_seats_info
from core.security import generate_ticket_access_token
from models import Base, db, engine
from models.Ticket import TicketStatus
from repository import event as eventRepo
from repository import ticket as ticketRepo


class TestTicketAdmin(IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        Base.metadata.drop_all(engine)
        Base.metadata.create_all(engine)
        self.db = db()

        self.event = eventRepo.create_event(
            db=self.db,
            title="Workshop",
            event_date=get_current_time_in_timezone().date() + timedelta(days=7),
            max_seats=5,
        )
        self.event_id = self.event.id

    def tearDown(self) -> None:
        self.db.close()
        Base.metadata.drop_all(engine)

    def add_ticket(
        self,
        number_of_seats=1,
        status=TicketStatus.CONFIRMED,
        holder_name="Avi Ben David",
        holder_email="avi@example.com",
        holder_phone=None,
    ):
        return ticketRepo.create_ticket(
            db=self.db,
            event_id=self.event_id,
            access_token=generate_ticket_access_token(),
            holder_name=holder_name,
            holder_email=holder_email,
            holder_phone=holder_phone,
            number_of_seats=number_of_seats,
            status=status,
        )

    def available_seats(self) -> int:
        return compute_seats_info(db=self.db, event_id=self.event_id).available_seats

    async def test_check_in_is_idempotent(self):
        ticket = self.add_ticket(number_of_seats=2)

        ticket = ticket_admin.check_in(db=self.db, ticket_id=ticket.id, actor="admin")
        self.assertEqual(ticket.status, TicketStatus.ATTENDED)
        self.assertEqual(ticket.status_updated_by, "admin")

        ticket = ticket_admin.check_in(db=self.db, ticket_id=ticket.id, actor="admin")
        self.assertEqual(ticket.status, TicketStatus.ATTENDED)
        self.assertEqual(self.available_seats(), 3)

    async def test_check_in_cancelled_ticket(self):
        ticket = self.add_ticket(status=TicketStatus.CANCELLED)
        with self.assertRaises(InvalidStatusTransition):
            ticket_admin.check_in(db=self.db, ticket_id=ticket.id, actor="admin")
        with self.assertRaises(TicketNotFound):
            ticket_admin.check_in(db=self.db, ticket_id=uuid.uuid4(), actor="admin")

    async def test_bulk_check_in(self):
        confirmed = self.add_ticket()
        pending = self.add_ticket(status=TicketStatus.PENDING)
        cancelled = self.add_ticket(status=TicketStatus.CANCELLED)
        other_event = eventRepo.create_event(
            db=self.db,
            title="Other",
            event_date=get_current_time_in_timezone().date() + timedelta(days=7),
        )
        foreign = ticketRepo.create_ticket(
            db=self.db,
            event_id=other_event.id,
            access_token=generate_ticket_access_token(),
            holder_name="Someone Else",
            holder_email="else@example.com",
            number_of_seats=1,
            status=TicketStatus.CONFIRMED,
        )

        results = ticket_admin.check_in_many(
            db=self.db,
            ticket_ids=[confirmed.id, pending.id, cancelled.id, foreign.id, confirmed.id],
            actor="admin",
            event_id=self.event_id,
        )

        by_id = {result.ticket_id: result for result in results}
        self.assertEqual(len(results), 4)
        self.assertEqual(by_id[confirmed.id].status, TicketStatus.ATTENDED)
        self.assertEqual(by_id[pending.id].status, TicketStatus.ATTENDED)
        self.assertEqual(by_id[cancelled.id].error, "invalid_status_transition")
        self.assertEqual(by_id[foreign.id].error, "ticket_not_found")
        foreign = ticketRepo.get_ticket_by_id(db=self.db, ticket_id=foreign.id)
        self.assertEqual(foreign.status, TicketStatus.CONFIRMED)

    async def test_cancelling_releases_exactly_its_seats(self):
        self.add_ticket(number_of_seats=2)
        ticket = self.add_ticket(number_of_seats=3)
        self.assertEqual(self.available_seats(), 0)

        ticket = await ticket_admin.set_status(
            db=self.db,
            ticket_id=ticket.id,
            new_status=TicketStatus.CANCELLED,
            actor="admin",
        )
        self.assertEqual(ticket.status, TicketStatus.CANCELLED)
        self.assertEqual(self.available_seats(), 3)

    async def test_uncancel_rechecks_capacity(self):
        cancelled = self.add_ticket(number_of_seats=3, status=TicketStatus.CANCELLED)
        self.add_ticket(number_of_seats=4)

        with self.assertRaises(SoldOut):
            await ticket_admin.set_status(
                db=self.db,
                ticket_id=cancelled.id,
                new_status=TicketStatus.CONFIRMED,
                actor="admin",
            )
        ticket = ticketRepo.get_ticket_by_id(db=self.db, ticket_id=cancelled.id)
        self.assertEqual(ticket.status, TicketStatus.CANCELLED)
        self.assertEqual(self.available_seats(), 1)

    async def test_uncancel_when_seats_are_free(self):
        cancelled = self.add_ticket(number_of_seats=3, status=TicketStatus.CANCELLED)

        ticket = await ticket_admin.set_status(
            db=self.db,
            ticket_id=cancelled.id,
            new_status=TicketStatus.ATTENDED,
            actor="admin",
        )
        self.assertEqual(ticket.status, TicketStatus.ATTENDED)
        self.assertEqual(self.available_seats(), 2)

        event = eventRepo.get_event_by_id(db=self.db, event_id=self.event_id, fresh=True)
        self.assertEqual(event.seats_version, 1)

    async def test_override_to_pending_and_back(self):
        ticket = self.add_ticket(status=TicketStatus.ATTENDED)

        ticket = await ticket_admin.set_status(
            db=self.db,
            ticket_id=ticket.id,
            new_status=TicketStatus.CONFIRMED,
            actor="admin",
        )
        self.assertEqual(ticket.status, TicketStatus.CONFIRMED)

        ticket = await ticket_admin.set_status(
            db=self.db,
            ticket_id=ticket.id,
            new_status=TicketStatus.PENDING,
            actor="admin",
        )
        self.assertEqual(ticket.status, TicketStatus.PENDING)
        self.assertIsNotNone(ticket.hold_expires_at)

    async def test_list_and_stats(self):
        self.add_ticket(
            number_of_seats=2,
            holder_name="Miriam Katz",
            holder_email="miriam@example.com",
            holder_phone="052-7654321",
        )
        self.add_ticket(number_of_seats=1, status=TicketStatus.ATTENDED)
        self.add_ticket(number_of_seats=1, status=TicketStatus.PENDING)
        self.add_ticket(number_of_seats=4, status=TicketStatus.CANCELLED)

        tickets = ticket_admin.list_tickets(db=self.db, event_id=self.event_id)
        self.assertEqual(len(tickets), 4)

        tickets = ticket_admin.list_tickets(
            db=self.db, event_id=self.event_id, search="KATZ"
        )
        self.assertEqual([t.holder_name for t in tickets], ["Miriam Katz"])

        tickets = ticket_admin.list_tickets(
            db=self.db, event_id=self.event_id, search="7654"
        )
        self.assertEqual(len(tickets), 1)

        tickets = ticket_admin.list_tickets(
            db=self.db, event_id=self.event_id, status=TicketStatus.CANCELLED
        )
        self.assertEqual([t.number_of_seats for t in tickets], [4])

        stats = ticket_admin.get_ticket_stats(db=self.db, event_id=self.event_id)
        self.assertEqual(
            stats,
            {
                "total_tickets": 4,
                "total_seats": 8,
                "confirmed_seats": 3,
                "attended_seats": 1,
                "pending_seats": 1,
            },
        )

        with self.assertRaises(EventNotFound):
            ticket_admin.list_tickets(db=self.db, event_id=uuid.uuid4())

    async def test_access_by_token_only(self):
        first = self.add_ticket()
        second = self.add_ticket()
        self.assertNotEqual(first.access_token, second.access_token)

        ticket = ticket_access.get_ticket(db=self.db, access_token=first.access_token)
        self.assertEqual(ticket.id, first.id)

        with self.assertRaises(TicketNotFound):
            ticket_access.get_ticket(db=self.db, access_token="never-issued")
        with self.assertRaises(TicketNotFound):
            ticket_access.get_ticket(db=self.db, access_token="")

        ticket = await ticket_access.update_status(
            db=self.db,
            access_token=second.access_token,
            new_status=TicketStatus.CANCELLED,
            actor="admin",
        )
        self.assertEqual(ticket.status, TicketStatus.CANCELLED)
        self.assertEqual(self.available_seats(), 4)

    async def test_tokens_are_unique_and_unguessable(self):
        tokens = {generate_ticket_access_token() for _ in range(1000)}
        self.assertEqual(len(tokens), 1000)
        self.assertTrue(all(len(token) >= 43 for token in tokens))
