"""create ticketing tables

Revision ID: 3c8e1f2a7b54
Revises:
Create Date: 2026-10-19 09:00:12.318204

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "3c8e1f2a7b54"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "user",
        sa.Column("id", sa.UUID(), primary_key=True, nullable=False),
        sa.Column("username", sa.String(), nullable=False, unique=True),
        sa.Column("password", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("full_name", sa.String(), nullable=True),
        sa.Column(
            "is_active", sa.Boolean(), nullable=False, server_default=sa.true()
        ),
        sa.Column(
            "is_admin", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_user_id", "user", ["id"])

    op.create_table(
        "token",
        sa.Column("id", sa.UUID(), primary_key=True, nullable=False),
        sa.Column(
            "user_id",
            sa.UUID(),
            sa.ForeignKey("user.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("token", sa.String(), nullable=False),
        sa.Column("expired_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("token", name="uq_token_token"),
    )
    op.create_index("ix_token_id", "token", ["id"])
    op.create_index("ix_token_user_id", "token", ["user_id"])

    op.create_table(
        "event",
        sa.Column("id", sa.UUID(), primary_key=True, nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("event_date", sa.Date(), nullable=False),
        sa.Column("event_time", sa.String(), nullable=True),
        sa.Column("location", sa.String(), nullable=True),
        sa.Column("price", sa.Integer(), nullable=True),
        sa.Column(
            "currency", sa.String(length=3), nullable=False, server_default="ILS"
        ),
        sa.Column("max_seats", sa.Integer(), nullable=True),
        sa.Column(
            "registration_closed",
            sa.Boolean(),
            nullable=False,
            server_default=sa.false(),
        ),
        sa.Column(
            "seats_version", sa.Integer(), nullable=False, server_default="0"
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_event_id", "event", ["id"])

    op.create_table(
        "ticket",
        sa.Column("id", sa.UUID(), primary_key=True, nullable=False),
        sa.Column("access_token", sa.String(length=64), nullable=False),
        sa.Column("event_id", sa.UUID(), sa.ForeignKey("event.id"), nullable=False),
        sa.Column("holder_name", sa.String(), nullable=False),
        sa.Column("holder_email", sa.String(), nullable=False),
        sa.Column("holder_phone", sa.String(), nullable=True),
        sa.Column("number_of_seats", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("notes", sa.String(), nullable=True),
        sa.Column("payment_session_id", sa.String(), nullable=True),
        sa.Column("payment_reference", sa.String(), nullable=True),
        sa.Column("payment_status", sa.String(), nullable=True),
        sa.Column("amount_total", sa.Integer(), nullable=True),
        sa.Column("hold_expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status_updated_by", sa.String(), nullable=True),
        sa.Column("status_updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "number_of_seats BETWEEN 1 AND 4", name="chk_ticket_number_of_seats"
        ),
    )
    op.create_index("ix_ticket_id", "ticket", ["id"])
    op.create_index("ix_ticket_access_token", "ticket", ["access_token"], unique=True)
    op.create_index("ix_ticket_event_id", "ticket", ["event_id"])
    op.create_index("ix_ticket_status", "ticket", ["status"])
    op.create_index(
        "ix_ticket_payment_session_id", "ticket", ["payment_session_id"], unique=True
    )
    op.create_index("ix_ticket_hold_expires_at", "ticket", ["hold_expires_at"])


def downgrade() -> None:
    op.drop_table("ticket")
    op.drop_table("event")
    op.drop_table("token")
    op.drop_table("user")
