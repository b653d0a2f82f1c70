"""create_wallet_tables

Revision ID: 5f2c8e1a9b30
Revises:
Create Date: 2026-10-12 09:30:00.000000
"""

import sqlalchemy as sa
from alembic import op
from libs.db.types import JSONType, UTCDateTime

# revision identifiers, used by Alembic.
revision = "5f2c8e1a9b30"
down_revision = None
branch_labels = None
depends_on = None


transaction_type_enum = sa.Enum(
    "earn", "spend", "refund", "freeze", "unfreeze", name="transaction_type_enum"
)
game_kind_enum = sa.Enum(
    "feed_pet", "match_three", "lucky_wheel", "quiz", name="game_kind_enum"
)
game_play_status_enum = sa.Enum("playing", "completed", name="game_play_status_enum")
reward_outcome_enum = sa.Enum(
    "credited", "no_reward", "daily_cap_exceeded", name="reward_outcome_enum"
)
task_type_enum = sa.Enum(
    "review_order",
    "photo_review",
    "share_product",
    "refer_friend",
    name="task_type_enum",
)
benefit_kind_enum = sa.Enum(
    "free_delivery", "order_discount", "coupon", name="benefit_kind_enum"
)


def upgrade() -> None:
    op.create_table(
        "wallets",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("balance", sa.Integer(), nullable=False),
        sa.Column("frozen_balance", sa.Integer(), nullable=False),
        sa.Column("total_earned", sa.Integer(), nullable=False),
        sa.Column("total_spent", sa.Integer(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("created_at", UTCDateTime(), nullable=False),
        sa.Column("updated_at", UTCDateTime(), nullable=False),
        sa.CheckConstraint("balance >= 0", name="ck_wallet_balance_non_negative"),
        sa.CheckConstraint(
            "frozen_balance >= 0", name="ck_wallet_frozen_balance_non_negative"
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_wallets_user_id", "wallets", ["user_id"], unique=True)

    op.create_table(
        "wallet_transactions",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("wallet_id", sa.Uuid(), nullable=False),
        sa.Column("sequence", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("transaction_type", transaction_type_enum, nullable=False),
        sa.Column("source", sa.String(), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("balance_before", sa.Integer(), nullable=False),
        sa.Column("balance_after", sa.Integer(), nullable=False),
        sa.Column("frozen_before", sa.Integer(), nullable=False),
        sa.Column("frozen_after", sa.Integer(), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("idempotency_key", sa.String(), nullable=True),
        sa.Column("txn_metadata", JSONType, nullable=True),
        sa.Column("created_at", UTCDateTime(), nullable=False),
        sa.CheckConstraint("amount > 0", name="ck_transaction_amount_positive"),
        sa.ForeignKeyConstraint(["wallet_id"], ["wallets.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("idempotency_key"),
        sa.UniqueConstraint(
            "wallet_id", "sequence", name="uq_transaction_wallet_sequence"
        ),
    )
    op.create_index(
        "ix_wallet_transactions_wallet_id", "wallet_transactions", ["wallet_id"]
    )
    op.create_index(
        "ix_wallet_transactions_user_created",
        "wallet_transactions",
        ["user_id", "created_at"],
    )

    op.create_table(
        "game_plays",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("game", game_kind_enum, nullable=False),
        sa.Column("status", game_play_status_enum, nullable=False),
        sa.Column("started_at", UTCDateTime(), nullable=False),
        sa.Column("completed_at", UTCDateTime(), nullable=True),
        sa.Column("score", sa.Integer(), nullable=False),
        sa.Column("reward", sa.Integer(), nullable=False),
        sa.Column("outcome", reward_outcome_enum, nullable=True),
        sa.Column("transaction_id", sa.Uuid(), nullable=True),
        sa.Column("play_metadata", JSONType, nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_game_plays_user_started", "game_plays", ["user_id", "started_at"]
    )
    op.create_index(
        "ix_game_plays_user_game_started",
        "game_plays",
        ["user_id", "game", "started_at"],
    )

    op.create_table(
        "daily_checkins",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("checkin_date", sa.Date(), nullable=False),
        sa.Column("consecutive_days", sa.Integer(), nullable=False),
        sa.Column("reward", sa.Integer(), nullable=False),
        sa.Column("transaction_id", sa.Uuid(), nullable=True),
        sa.Column("created_at", UTCDateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "checkin_date", name="uq_checkin_user_date"),
    )
    op.create_index("ix_daily_checkins_user_id", "daily_checkins", ["user_id"])

    op.create_table(
        "user_tasks",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("task_type", task_type_enum, nullable=False),
        sa.Column("reward", sa.Integer(), nullable=False),
        sa.Column("transaction_id", sa.Uuid(), nullable=True),
        sa.Column("completed_at", UTCDateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "task_type", name="uq_user_task"),
    )
    op.create_index("ix_user_tasks_user_id", "user_tasks", ["user_id"])

    op.create_table(
        "redemptions",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("request_id", sa.String(), nullable=False),
        sa.Column("benefit_kind", benefit_kind_enum, nullable=False),
        sa.Column("cost", sa.Integer(), nullable=False),
        sa.Column("reference_id", sa.String(), nullable=True),
        sa.Column("transaction_id", sa.Uuid(), nullable=False),
        sa.Column("created_at", UTCDateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "request_id", name="uq_redemption_request"),
    )
    op.create_index("ix_redemptions_user_id", "redemptions", ["user_id"])


def downgrade() -> None:
    op.drop_index("ix_redemptions_user_id", table_name="redemptions")
    op.drop_table("redemptions")
    op.drop_index("ix_user_tasks_user_id", table_name="user_tasks")
    op.drop_table("user_tasks")
    op.drop_index("ix_daily_checkins_user_id", table_name="daily_checkins")
    op.drop_table("daily_checkins")
    op.drop_index("ix_game_plays_user_game_started", table_name="game_plays")
    op.drop_index("ix_game_plays_user_started", table_name="game_plays")
    op.drop_table("game_plays")
    op.drop_index(
        "ix_wallet_transactions_user_created", table_name="wallet_transactions"
    )
    op.drop_index("ix_wallet_transactions_wallet_id", table_name="wallet_transactions")
    op.drop_table("wallet_transactions")
    op.drop_index("ix_wallets_user_id", table_name="wallets")
    op.drop_table("wallets")

    bind = op.get_bind()
    for enum in (
        benefit_kind_enum,
        task_type_enum,
        reward_outcome_enum,
        game_play_status_enum,
        game_kind_enum,
        transaction_type_enum,
    ):
        enum.drop(bind, checkfirst=True)
