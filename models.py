from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, validates

from database import Base
from periods import month_anchor


class TransactionType(str, Enum):
    income = "income"
    expense = "expense"


class TransactionCategory(str, Enum):
    market = "market"
    meals = "meals"
    gifts = "gifts"
    salary = "salary"
    utilities = "utilities"
    entertainment = "entertainment"
    transportation = "transportation"
    healthcare = "healthcare"
    subscriptions = "subscriptions"
    education = "education"
    travel = "travel"
    groceries = "groceries"
    insurance = "insurance"
    savings = "savings"
    investments = "investments"
    taxes = "taxes"
    loans = "loans"
    donations = "donations"
    miscellaneous = "miscellaneous"
    clothing = "clothing"
    personal_care = "personal_care"
    home_maintenance = "home_maintenance"
    communication = "communication"
    fitness = "fitness"
    debit = "debit"
    credit = "credit"
    bank_slip = "bank_slip"


class CleanupOption(str, Enum):
    all = "all"
    future_only = "futureOnly"


class SeriesKind(str, Enum):
    simple = "simple"
    recurring_template = "recurring_template"
    recurring_occurrence = "recurring_occurrence"
    installment_template = "installment_template"
    installment_occurrence = "installment_occurrence"


@dataclass(frozen=True)
class SeriesRole:
    """Where a transaction sits in its series.

    ``series_id`` is the id of the series head (the template) for every kind
    except ``simple``, where it is ``None``.
    """

    kind: SeriesKind
    series_id: Optional[int] = None

    @classmethod
    def simple(cls) -> "SeriesRole":
        return cls(SeriesKind.simple)

    @property
    def is_simple(self) -> bool:
        return self.kind == SeriesKind.simple

    @property
    def is_recurring(self) -> bool:
        return self.kind in (
            SeriesKind.recurring_template,
            SeriesKind.recurring_occurrence,
        )

    @property
    def is_installment(self) -> bool:
        return self.kind in (
            SeriesKind.installment_template,
            SeriesKind.installment_occurrence,
        )

    @property
    def is_template(self) -> bool:
        return self.kind in (
            SeriesKind.recurring_template,
            SeriesKind.installment_template,
        )


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )


class Transaction(Base, TimestampMixin):
    __tablename__ = "transactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    category: Mapped[TransactionCategory] = mapped_column(
        SAEnum(TransactionCategory), nullable=False
    )
    type: Mapped[TransactionType] = mapped_column(
        SAEnum(TransactionType), nullable=False
    )
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    occurrence_date: Mapped[date] = mapped_column(Date, nullable=False)
    budget_month: Mapped[date] = mapped_column(Date, nullable=False)
    is_recurring_template: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    has_installments: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    parent_transaction_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("transactions.id")
    )
    installment_number: Mapped[Optional[int]] = mapped_column(Integer)
    total_installments: Mapped[Optional[int]] = mapped_column(Integer)
    original_amount_cents: Mapped[Optional[int]] = mapped_column(Integer)

    __table_args__ = (
        UniqueConstraint(
            "parent_transaction_id",
            "budget_month",
            name="uq_txn_series_month",
        ),
        Index("ix_transactions_budget_month", "budget_month"),
        Index("ix_transactions_occurrence_date", "occurrence_date"),
        Index("ix_transactions_parent", "parent_transaction_id"),
        CheckConstraint("amount_cents >= 0", name="ck_transactions_amount_positive"),
    )

    @validates("occurrence_date")
    def _sync_budget_month(self, _key: str, value: date) -> date:
        self.budget_month = month_anchor(value)
        return value

    @property
    def is_visible(self) -> bool:
        return not (self.has_installments and self.amount_cents == 0)

    @property
    def role(self) -> SeriesRole:
        """Role derived from this record's own columns.

        Deletion resolves occurrences through their parent instead, see
        ``cascade.resolve_role``.
        """
        if self.is_recurring_template:
            return SeriesRole(SeriesKind.recurring_template, self.id)
        if self.has_installments:
            return SeriesRole(SeriesKind.installment_template, self.id)
        if self.parent_transaction_id is not None:
            if self.installment_number is not None:
                return SeriesRole(
                    SeriesKind.installment_occurrence, self.parent_transaction_id
                )
            return SeriesRole(
                SeriesKind.recurring_occurrence, self.parent_transaction_id
            )
        return SeriesRole.simple()

    def __repr__(self) -> str:
        return (
            f"Transaction(id={self.id!r}, title={self.title!r}, "
            f"date={self.occurrence_date!r}, amount_cents={self.amount_cents!r}, "
            f"parent={self.parent_transaction_id!r})"
        )


class Budget(Base, TimestampMixin):
    __tablename__ = "budgets"
    __table_args__ = (
        UniqueConstraint("month_anchor", name="uq_budget_month"),
        CheckConstraint("limit_cents >= 0", name="ck_budget_limit_positive"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    month_anchor: Mapped[date] = mapped_column(Date, nullable=False)
    limit_cents: Mapped[int] = mapped_column(Integer, nullable=False)
