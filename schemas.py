import datetime as dt
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from models import CleanupOption, TransactionCategory, TransactionType


# Inputs keep ``date``, ``category`` and ``type`` loose so the services can
# validate them in a fixed order and raise the matching error kind.


class TransactionIn(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    amount_cents: int = Field(..., ge=0)
    date: Union[dt.date, str]
    category: str
    type: str


class InstallmentTransactionIn(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    total_amount_cents: int = Field(..., gt=0)
    date: Union[dt.date, str]
    category: str
    type: str
    installment_count: int


class DeleteSeriesIn(BaseModel):
    cleanup_option: CleanupOption
    selected_date: Optional[dt.date] = None


class BudgetIn(BaseModel):
    limit_cents: int = Field(..., ge=0)


class TransactionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    category: TransactionCategory
    type: TransactionType
    amount_cents: int
    occurrence_date: dt.date
    budget_month: dt.date
    is_recurring_template: bool
    has_installments: bool
    parent_transaction_id: Optional[int] = None
    installment_number: Optional[int] = None
    total_installments: Optional[int] = None
    original_amount_cents: Optional[int] = None


class MonthProjectionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    anchor: dt.date
    income_cents: int
    expense_cents: int
    net_cents: int
    previous_balance_cents: int
    available_balance_cents: int
    current_balance_cents: int
    budget_limit_cents: Optional[int] = None
    budget_remaining_cents: Optional[int] = None


class DailyProjectionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    month: dt.date
    opening_balance_cents: int
    daily_balances: dict[dt.date, int]
    first_negative_day: Optional[dt.date] = None
    alert_day: Optional[dt.date] = None


class BudgetOut(BaseModel):
    month: str
    limit_cents: int


class DeletedOut(BaseModel):
    deleted_ids: list[int]
