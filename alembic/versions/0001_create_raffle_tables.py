"""create raffle tables

Revision ID: 0001_create_raffle_tables
Revises:
Create Date: 2026-10-18 00:00:00

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0001_create_raffle_tables"
down_revision = None
branch_labels = None
depends_on = None

ID_TYPE = sa.BigInteger().with_variant(sa.Integer(), "sqlite")
AMOUNT = sa.String(length=78)


def upgrade() -> None:
    op.create_table(
        "accounts",
        sa.Column("id", ID_TYPE, autoincrement=True, nullable=False),
        sa.Column("address", sa.String(length=255), nullable=False),
        sa.Column("balance", AMOUNT, nullable=False),
        sa.Column(
            "accepts_payments",
            sa.Boolean(),
            server_default=sa.text("true"),
            nullable=False,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_accounts")),
        sa.UniqueConstraint("address", name=op.f("uq_accounts_address")),
    )
    op.create_index(op.f("ix_accounts_id"), "accounts", ["id"], unique=False)

    op.create_table(
        "raffle_rounds",
        sa.Column("id", ID_TYPE, autoincrement=True, nullable=False),
        sa.Column("address", sa.String(length=255), nullable=False),
        sa.Column("network", sa.String(length=50), nullable=False),
        sa.Column("randomness_provider_address", sa.String(length=255), nullable=False),
        sa.Column("entrance_fee", AMOUNT, nullable=False),
        sa.Column("gas_lane", sa.String(length=66), nullable=False),
        sa.Column("subscription_id", sa.BigInteger(), nullable=False),
        sa.Column("callback_gas_limit", sa.Integer(), nullable=False),
        sa.Column("interval_seconds", sa.Integer(), nullable=False),
        sa.Column("state", sa.String(length=20), nullable=False),
        sa.Column("last_timestamp", sa.BigInteger(), nullable=False),
        sa.Column("recent_winner", sa.String(length=255), nullable=True),
        sa.Column("pending_request_id", sa.BigInteger(), nullable=True),
        sa.Column("balance", AMOUNT, nullable=False),
        sa.Column("round_number", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "state IN ('open','calculating')",
            name=op.f("ck_raffle_rounds_state_enum"),
        ),
        sa.CheckConstraint(
            "interval_seconds >= 0",
            name=op.f("ck_raffle_rounds_interval_non_negative"),
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_raffle_rounds")),
        sa.UniqueConstraint("address", name=op.f("uq_raffle_rounds_address")),
    )

    op.create_table(
        "raffle_entries",
        sa.Column("id", ID_TYPE, autoincrement=True, nullable=False),
        sa.Column("raffle_id", ID_TYPE, nullable=False),
        sa.Column("round_number", sa.Integer(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("player_address", sa.String(length=255), nullable=False),
        sa.Column("amount", AMOUNT, nullable=False),
        sa.Column("entered_at", sa.BigInteger(), nullable=False),
        sa.ForeignKeyConstraint(
            ["raffle_id"],
            ["raffle_rounds.id"],
            name=op.f("fk_raffle_entries_raffle_id_raffle_rounds"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_raffle_entries")),
        sa.UniqueConstraint(
            "raffle_id",
            "round_number",
            "position",
            name="uq_raffle_entry_position",
        ),
    )
    op.create_index(
        op.f("ix_raffle_entries_raffle_id"), "raffle_entries", ["raffle_id"], unique=False
    )
    op.create_index(
        "ix_raffle_entries_player", "raffle_entries", ["player_address"], unique=False
    )

    op.create_table(
        "raffle_event_logs",
        sa.Column("id", ID_TYPE, autoincrement=True, nullable=False),
        sa.Column("raffle_id", ID_TYPE, nullable=False),
        sa.Column("name", sa.String(length=64), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("round_number", sa.Integer(), nullable=False),
        sa.Column("emitted_at", sa.BigInteger(), nullable=False),
        sa.CheckConstraint(
            "name IN ('EnteredRound','ClosureRequested','WinnerSelected')",
            name=op.f("ck_raffle_event_logs_name_enum"),
        ),
        sa.ForeignKeyConstraint(
            ["raffle_id"],
            ["raffle_rounds.id"],
            name=op.f("fk_raffle_event_logs_raffle_id_raffle_rounds"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_raffle_event_logs")),
    )
    op.create_index(
        op.f("ix_raffle_event_logs_raffle_id"),
        "raffle_event_logs",
        ["raffle_id"],
        unique=False,
    )
    op.create_index(
        "ix_raffle_event_logs_raffle_name",
        "raffle_event_logs",
        ["raffle_id", "name"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_raffle_event_logs_raffle_name", table_name="raffle_event_logs")
    op.drop_index(op.f("ix_raffle_event_logs_raffle_id"), table_name="raffle_event_logs")
    op.drop_table("raffle_event_logs")
    op.drop_index("ix_raffle_entries_player", table_name="raffle_entries")
    op.drop_index(op.f("ix_raffle_entries_raffle_id"), table_name="raffle_entries")
    op.drop_table("raffle_entries")
    op.drop_table("raffle_rounds")
    op.drop_index(op.f("ix_accounts_id"), table_name="accounts")
    op.drop_table("accounts")
