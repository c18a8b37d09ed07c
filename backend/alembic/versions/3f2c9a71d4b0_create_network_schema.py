"""create network schema

Revision ID: 3f2c9a71d4b0
Revises:
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "3f2c9a71d4b0"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps(updated: bool = True) -> list[sa.Column]:
    cols = [sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)]
    if updated:
        cols.append(
            sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)
        )
    return cols


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("username", sa.String(length=50), nullable=False),
        sa.Column("role", sa.String(length=20), nullable=False),
        sa.Column("phone_number", sa.String(length=20), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(updated=False),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)

    op.create_table(
        "agents",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("agent_code", sa.String(length=20), nullable=False),
        sa.Column("full_name", sa.Text(), nullable=False),
        sa.Column("national_id", sa.String(length=16), nullable=True),
        sa.Column("gender", sa.String(length=10), nullable=True),
        sa.Column("phone_number", sa.String(length=20), nullable=True),
        sa.Column("email", sa.String(length=100), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("kelurahan", sa.Text(), nullable=True),
        sa.Column("kecamatan", sa.Text(), nullable=True),
        sa.Column("city", sa.Text(), nullable=True),
        sa.Column("province", sa.Text(), nullable=False),
        sa.Column("bank_account_number", sa.String(length=50), nullable=True),
        sa.Column("bank_code", sa.String(length=20), nullable=True),
        sa.Column("bank_account_name", sa.Text(), nullable=True),
        sa.Column("sponsor_id", sa.Integer(), nullable=True),
        sa.Column("package_tier", sa.String(length=20), nullable=False),
        sa.Column("rank", sa.String(length=32), nullable=False),
        sa.Column("agent_type", sa.String(length=20), nullable=False),
        sa.Column("stock_count", sa.Integer(), nullable=False),
        sa.Column("total_commission", sa.Numeric(15, 2), server_default="0", nullable=False),
        sa.Column("payable_balance", sa.Numeric(15, 2), server_default="0", nullable=False),
        sa.Column("referral_link", sa.Text(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint("total_commission >= 0", name="ck_agents_total_commission_non_negative"),
        sa.CheckConstraint("payable_balance >= 0", name="ck_agents_payable_balance_non_negative"),
        sa.CheckConstraint("stock_count >= 0", name="ck_agents_stock_count_non_negative"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], name="fk_agents_user_id_users", ondelete="CASCADE"),
        sa.ForeignKeyConstraint(
            ["sponsor_id"], ["agents.id"], name="fk_agents_sponsor_id_agents", ondelete="SET NULL"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_agents"),
    )
    op.create_index("ix_agents_user_id", "agents", ["user_id"], unique=True)
    op.create_index("ix_agents_agent_code", "agents", ["agent_code"], unique=True)
    op.create_index("ix_agents_sponsor_id", "agents", ["sponsor_id"], unique=False)

    op.create_table(
        "network_edges",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("agent_id", sa.Integer(), nullable=False),
        sa.Column("ancestor_id", sa.Integer(), nullable=False),
        sa.Column("level", sa.Integer(), nullable=False),
        *_timestamps(updated=False),
        sa.CheckConstraint("level >= 1 AND level <= 15", name="ck_network_edges_level_range"),
        sa.ForeignKeyConstraint(
            ["agent_id"], ["agents.id"], name="fk_network_edges_agent_id_agents", ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(
            ["ancestor_id"], ["agents.id"], name="fk_network_edges_ancestor_id_agents", ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_network_edges"),
        sa.UniqueConstraint("agent_id", "ancestor_id", "level", name="uq_network_edges_agent_ancestor_level"),
        sa.UniqueConstraint("agent_id", "level", name="uq_network_edges_agent_level"),
    )
    op.create_index("ix_network_edges_agent_id", "network_edges", ["agent_id"], unique=False)
    op.create_index("ix_network_edges_ancestor_level", "network_edges", ["ancestor_id", "level"], unique=False)

    op.create_table(
        "transactions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("buyer_agent_id", sa.Integer(), nullable=True),
        sa.Column("kind", sa.String(length=20), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("amount", sa.Numeric(15, 2), nullable=False),
        sa.Column("box_count", sa.Integer(), nullable=False),
        sa.Column("package_tier", sa.String(length=20), nullable=True),
        sa.Column("payment_method", sa.String(length=40), nullable=True),
        sa.Column("payment_reference", sa.String(length=100), nullable=True),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("amount >= 0", name="ck_transactions_amount_non_negative"),
        sa.CheckConstraint("box_count >= 0", name="ck_transactions_box_count_non_negative"),
        sa.ForeignKeyConstraint(
            ["buyer_agent_id"], ["agents.id"], name="fk_transactions_buyer_agent_id_agents", ondelete="SET NULL"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_transactions"),
    )
    op.create_index("ix_transactions_status", "transactions", ["status"], unique=False)
    op.create_index("ix_transactions_buyer_created", "transactions", ["buyer_agent_id", "created_at"], unique=False)

    op.create_table(
        "commission_schedule",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("commission_kind", sa.String(length=20), nullable=False),
        sa.Column("package_tier", sa.String(length=20), nullable=True),
        sa.Column("level", sa.Integer(), nullable=False),
        sa.Column("nominal", sa.Numeric(15, 2), nullable=False),
        *_timestamps(),
        sa.CheckConstraint("level >= 1 AND level <= 15", name="ck_commission_schedule_level_range"),
        sa.CheckConstraint("nominal >= 0", name="ck_commission_schedule_nominal_non_negative"),
        sa.PrimaryKeyConstraint("id", name="pk_commission_schedule"),
        sa.UniqueConstraint(
            "commission_kind", "package_tier", "level", name="uq_commission_schedule_kind_tier_level"
        ),
    )

    op.create_table(
        "commission_entries",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("agent_id", sa.Integer(), nullable=False),
        sa.Column("transaction_id", sa.Integer(), nullable=False),
        sa.Column("commission_kind", sa.String(length=20), nullable=False),
        sa.Column("level", sa.Integer(), nullable=False),
        sa.Column("nominal", sa.Numeric(15, 2), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("nominal > 0", name="ck_commission_entries_nominal_positive"),
        sa.ForeignKeyConstraint(
            ["agent_id"], ["agents.id"], name="fk_commission_entries_agent_id_agents", ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(
            ["transaction_id"],
            ["transactions.id"],
            name="fk_commission_entries_transaction_id_transactions",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_commission_entries"),
        sa.UniqueConstraint("agent_id", "transaction_id", "level", name="uq_commission_entries_agent_tx_level"),
    )
    op.create_index("ix_commission_entries_transaction_id", "commission_entries", ["transaction_id"], unique=False)
    op.create_index("ix_commission_entries_agent_status", "commission_entries", ["agent_id", "status"], unique=False)

    op.create_table(
        "withdrawal_requests",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("agent_id", sa.Integer(), nullable=False),
        sa.Column("nominal", sa.Numeric(15, 2), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("transfer_reference", sa.String(length=100), nullable=True),
        sa.Column("transfer_fee", sa.Numeric(15, 2), nullable=True),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("submitted_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("dispatched_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("processed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("nominal > 0", name="ck_withdrawal_requests_nominal_positive"),
        sa.ForeignKeyConstraint(
            ["agent_id"], ["agents.id"], name="fk_withdrawal_requests_agent_id_agents", ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_withdrawal_requests"),
    )
    op.create_index("ix_withdrawal_requests_status", "withdrawal_requests", ["status"], unique=False)
    op.create_index(
        "ix_withdrawal_requests_agent_status", "withdrawal_requests", ["agent_id", "status"], unique=False
    )

    op.create_table(
        "rewards",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("required_rank", sa.String(length=32), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_rewards"),
    )
    op.create_index("ix_rewards_required_rank", "rewards", ["required_rank"], unique=False)

    op.create_table(
        "reward_claims",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("agent_id", sa.Integer(), nullable=False),
        sa.Column("reward_id", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("claimed_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(
            ["agent_id"], ["agents.id"], name="fk_reward_claims_agent_id_agents", ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(
            ["reward_id"], ["rewards.id"], name="fk_reward_claims_reward_id_rewards", ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_reward_claims"),
        sa.UniqueConstraint("agent_id", "reward_id", name="uq_reward_claims_agent_reward"),
    )
    op.create_index("ix_reward_claims_agent_id", "reward_claims", ["agent_id"], unique=False)


def downgrade() -> None:
    op.drop_table("reward_claims")
    op.drop_table("rewards")
    op.drop_table("withdrawal_requests")
    op.drop_table("commission_entries")
    op.drop_table("commission_schedule")
    op.drop_table("transactions")
    op.drop_table("network_edges")
    op.drop_table("agents")
    op.drop_table("users")
