"""initial lottery schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19 09:00:00
"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa

revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None

ID_TYPE = sa.BigInteger().with_variant(sa.Integer(), "sqlite")


def _timestamp(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), nullable=nullable)


def upgrade() -> None:
    op.create_table(
        "lottery_state",
        sa.Column("id", ID_TYPE, autoincrement=True, nullable=False),
        sa.Column("schema_version", sa.Integer(), nullable=False),
        sa.Column("running_state", sa.String(length=20), nullable=False),
        sa.Column("owner_id", sa.String(length=100), nullable=False),
        sa.Column("operator_id", sa.String(length=100), nullable=False),
        sa.Column("treasury_id", sa.String(length=100), nullable=False),
        sa.Column("injector_id", sa.String(length=100), nullable=False),
        sa.Column("current_lottery_id", sa.Integer(), nullable=False),
        sa.Column("current_ticket_id", sa.Integer(), nullable=False),
        sa.Column("pending_injection_next_lottery", sa.String(length=39), nullable=False),
        sa.Column("random_result", sa.Integer(), nullable=False),
        sa.Column("max_tickets_per_call", sa.Integer(), nullable=False),
        sa.Column("min_price_ticket", sa.String(length=39), nullable=False),
        sa.Column("max_price_ticket", sa.String(length=39), nullable=False),
        sa.Column("min_discount_divisor", sa.String(length=39), nullable=False),
        sa.Column("max_reserve_fee", sa.Integer(), nullable=False),
        sa.Column("max_operate_fee", sa.Integer(), nullable=False),
        sa.Column("min_length_lottery", sa.Integer(), nullable=False),
        sa.Column("max_length_lottery", sa.Integer(), nullable=False),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.CheckConstraint(
            "running_state IN ('running','paused')",
            name=op.f("ck_lottery_state_running_state_enum"),
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_lottery_state")),
    )

    op.create_table(
        "lotteries",
        sa.Column("id", sa.Integer(), autoincrement=False, nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("start_time", sa.Integer(), nullable=False),
        sa.Column("end_time", sa.Integer(), nullable=False),
        sa.Column("price_ticket", sa.String(length=39), nullable=False),
        sa.Column("discount_divisor", sa.String(length=39), nullable=False),
        sa.Column("rewards_breakdown", sa.JSON(), nullable=False),
        sa.Column("reserve_fee", sa.Integer(), nullable=False),
        sa.Column("operate_fee", sa.Integer(), nullable=False),
        sa.Column("first_ticket_id", sa.Integer(), nullable=False),
        sa.Column("first_ticket_id_next_lottery", sa.Integer(), nullable=False),
        sa.Column("amount_collected", sa.String(length=39), nullable=False),
        sa.Column("last_pot_size", sa.String(length=39), nullable=False),
        sa.Column("final_number", sa.Integer(), nullable=False),
        sa.Column("near_per_bracket", sa.JSON(), nullable=False),
        sa.Column("count_winners_per_bracket", sa.JSON(), nullable=False),
        sa.Column("operate_fee_amount", sa.String(length=39), nullable=False),
        sa.Column("reserve_fee_amount", sa.String(length=39), nullable=False),
        sa.Column("amount_to_share", sa.String(length=39), nullable=False),
        sa.Column("rollover_amount", sa.String(length=39), nullable=False),
        sa.Column("auto_injection", sa.Boolean(), nullable=True),
        _timestamp("created_at"),
        _timestamp("settled_at", nullable=True),
        sa.CheckConstraint(
            "status IN ('open','close','claimable')",
            name=op.f("ck_lotteries_status_enum"),
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_lotteries")),
    )
    op.create_index("ix_lotteries_status", "lotteries", ["status"], unique=False)

    op.create_table(
        "bracket_counts",
        sa.Column("lottery_id", sa.Integer(), nullable=False),
        sa.Column("bracket_key", sa.Integer(), autoincrement=False, nullable=False),
        sa.Column("count", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(
            ["lottery_id"],
            ["lotteries.id"],
            name=op.f("fk_bracket_counts_lottery_id_lotteries"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("lottery_id", "bracket_key", name=op.f("pk_bracket_counts")),
    )

    op.create_table(
        "tickets",
        sa.Column("id", sa.Integer(), autoincrement=False, nullable=False),
        sa.Column("lottery_id", sa.Integer(), nullable=False),
        sa.Column("number", sa.Integer(), nullable=False),
        sa.Column("owner", sa.String(length=100), nullable=False),
        sa.Column("buyer", sa.String(length=100), nullable=False),
        _timestamp("created_at"),
        _timestamp("claimed_at", nullable=True),
        sa.ForeignKeyConstraint(
            ["lottery_id"],
            ["lotteries.id"],
            name=op.f("fk_tickets_lottery_id_lotteries"),
            ondelete="RESTRICT",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_tickets")),
    )
    op.create_index("ix_tickets_lottery_buyer", "tickets", ["lottery_id", "buyer"], unique=False)

    op.create_table(
        "scheduled_transfers",
        sa.Column("id", ID_TYPE, autoincrement=True, nullable=False),
        sa.Column("recipient", sa.String(length=100), nullable=False),
        sa.Column("amount", sa.String(length=39), nullable=False),
        sa.Column("kind", sa.String(length=20), nullable=False),
        sa.Column("lottery_id", sa.Integer(), nullable=True),
        _timestamp("created_at"),
        _timestamp("executed_at", nullable=True),
        sa.CheckConstraint(
            "kind IN ('payout','operate_fee','treasury','refund')",
            name=op.f("ck_scheduled_transfers_kind_enum"),
        ),
        sa.ForeignKeyConstraint(
            ["lottery_id"],
            ["lotteries.id"],
            name=op.f("fk_scheduled_transfers_lottery_id_lotteries"),
            ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_scheduled_transfers")),
    )
    op.create_index(
        "ix_scheduled_transfers_recipient", "scheduled_transfers", ["recipient"], unique=False
    )
    op.create_index(
        "ix_scheduled_transfers_pending", "scheduled_transfers", ["executed_at"], unique=False
    )


def downgrade() -> None:
    op.drop_index("ix_scheduled_transfers_pending", table_name="scheduled_transfers")
    op.drop_index("ix_scheduled_transfers_recipient", table_name="scheduled_transfers")
    op.drop_table("scheduled_transfers")
    op.drop_index("ix_tickets_lottery_buyer", table_name="tickets")
    op.drop_table("tickets")
    op.drop_table("bracket_counts")
    op.drop_index("ix_lotteries_status", table_name="lotteries")
    op.drop_table("lotteries")
    op.drop_table("lottery_state")
