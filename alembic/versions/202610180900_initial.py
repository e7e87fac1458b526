"""initial ledger schema

Revision ID: 202610180900
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""

from alembic import op
import sqlalchemy as sa


revision = "202610180900"
down_revision = None
branch_labels = None
depends_on = None


CATEGORIES = (
    "market",
    "meals",
    "gifts",
    "salary",
    "utilities",
    "entertainment",
    "transportation",
    "healthcare",
    "subscriptions",
    "education",
    "travel",
    "groceries",
    "insurance",
    "savings",
    "investments",
    "taxes",
    "loans",
    "donations",
    "miscellaneous",
    "clothing",
    "personal_care",
    "home_maintenance",
    "communication",
    "fitness",
    "debit",
    "credit",
    "bank_slip",
)


def upgrade():
    op.create_table(
        "transactions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column(
            "category",
            sa.Enum(*CATEGORIES, name="transactioncategory"),
            nullable=False,
        ),
        sa.Column(
            "type", sa.Enum("income", "expense", name="transactiontype"), nullable=False
        ),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("occurrence_date", sa.Date(), nullable=False),
        sa.Column("budget_month", sa.Date(), nullable=False),
        sa.Column(
            "is_recurring_template",
            sa.Boolean(),
            nullable=False,
            server_default=sa.false(),
        ),
        sa.Column(
            "has_installments", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        sa.Column(
            "parent_transaction_id",
            sa.Integer(),
            sa.ForeignKey("transactions.id"),
        ),
        sa.Column("installment_number", sa.Integer()),
        sa.Column("total_installments", sa.Integer()),
        sa.Column("original_amount_cents", sa.Integer()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint(
            "parent_transaction_id", "budget_month", name="uq_txn_series_month"
        ),
        sa.CheckConstraint(
            "amount_cents >= 0", name="ck_transactions_amount_positive"
        ),
    )
    op.create_index(
        "ix_transactions_budget_month", "transactions", ["budget_month"]
    )
    op.create_index(
        "ix_transactions_occurrence_date", "transactions", ["occurrence_date"]
    )
    op.create_index(
        "ix_transactions_parent", "transactions", ["parent_transaction_id"]
    )

    op.create_table(
        "budgets",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("month_anchor", sa.Date(), nullable=False),
        sa.Column("limit_cents", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("month_anchor", name="uq_budget_month"),
        sa.CheckConstraint("limit_cents >= 0", name="ck_budget_limit_positive"),
    )


def downgrade():
    op.drop_table("budgets")
    op.drop_index("ix_transactions_parent", table_name="transactions")
    op.drop_index("ix_transactions_occurrence_date", table_name="transactions")
    op.drop_index("ix_transactions_budget_month", table_name="transactions")
    op.drop_table("transactions")
