"""Initial schema: accounts, categories, transactions, recurring streams, rules

Revision ID: 0001
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "accounts",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(length=100), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("external_account_id", sa.String(length=255), nullable=True),
        sa.Column("current_balance", sa.Integer(), nullable=True),
        sa.Column("available_balance", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_accounts_id", "accounts", ["id"], unique=False)
    op.create_index("ix_accounts_user_id", "accounts", ["user_id"], unique=False)
    op.create_index("ix_accounts_external_account_id", "accounts", ["external_account_id"], unique=False)

    op.create_table(
        "categories",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(length=100), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("type", sa.String(length=20), nullable=False, server_default="expense"),
        sa.Column("monthly_budget", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_categories_id", "categories", ["id"], unique=False)
    op.create_index("ix_categories_user_id", "categories", ["user_id"], unique=False)

    op.create_table(
        "transactions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(length=100), nullable=False),
        sa.Column("account_id", sa.Integer(), sa.ForeignKey("accounts.id"), nullable=False),
        sa.Column("category_id", sa.Integer(), sa.ForeignKey("categories.id"), nullable=True),
        sa.Column("posted_date", sa.String(length=10), nullable=False),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("payee", sa.Text(), nullable=False, server_default=""),
        sa.Column("provider_category", sa.String(length=100), nullable=True),
        sa.Column("category_source", sa.String(length=20), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_transactions_id", "transactions", ["id"], unique=False)
    op.create_index("ix_transactions_user_id", "transactions", ["user_id"], unique=False)
    op.create_index("ix_transactions_posted_date", "transactions", ["posted_date"], unique=False)

    op.create_table(
        "recurring_streams",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(length=100), nullable=False),
        sa.Column("stream_id", sa.String(length=255), nullable=False),
        sa.Column("name", sa.Text(), nullable=False, server_default=""),
        sa.Column("payee", sa.String(length=255), nullable=False, server_default="Unknown"),
        sa.Column("account_id", sa.Integer(), sa.ForeignKey("accounts.id"), nullable=False),
        sa.Column("category_id", sa.Integer(), sa.ForeignKey("categories.id"), nullable=True),
        sa.Column("frequency", sa.String(length=50), nullable=False, server_default="Unknown"),
        sa.Column("average_amount_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_amount_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_date", sa.String(length=10), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "stream_id", name="uq_recurring_user_stream"),
    )
    op.create_index("ix_recurring_streams_id", "recurring_streams", ["id"], unique=False)
    op.create_index("ix_recurring_streams_user_id", "recurring_streams", ["user_id"], unique=False)

    # Duplicate (match_type, match_value) rows are allowed; readers pick the effective one.
    op.create_table(
        "categorization_rules",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(length=100), nullable=False),
        sa.Column("match_type", sa.String(length=40), nullable=False),
        sa.Column("match_value", sa.String(length=500), nullable=False),
        sa.Column("category_id", sa.Integer(), sa.ForeignKey("categories.id"), nullable=False),
        sa.Column("priority", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_categorization_rules_id", "categorization_rules", ["id"], unique=False)
    op.create_index("ix_categorization_rules_user_id", "categorization_rules", ["user_id"], unique=False)


def downgrade() -> None:
    op.drop_table("categorization_rules")
    op.drop_table("recurring_streams")
    op.drop_table("transactions")
    op.drop_table("categories")
    op.drop_table("accounts")
