"""Balance projection over a snapshot of transactions.

Everything here is a pure function of the transactions handed in and the
reference ``today``; nothing reads the store or the clock.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Iterable, Mapping, Optional

from models import Transaction
from money import net_cents, signed_cents, totals
from periods import add_months, days_until, month_anchor, month_period


@dataclass(frozen=True)
class MonthProjection:
    anchor: date
    income_cents: int
    expense_cents: int
    net_cents: int
    previous_balance_cents: int
    available_balance_cents: int
    current_balance_cents: int
    budget_limit_cents: Optional[int] = None

    @property
    def budget_remaining_cents(self) -> Optional[int]:
        if self.budget_limit_cents is None:
            return None
        return self.budget_limit_cents - self.expense_cents


@dataclass(frozen=True)
class DailyProjection:
    month: date
    opening_balance_cents: int
    daily_balances: dict[date, int] = field(default_factory=dict)
    first_negative_day: Optional[date] = None
    alert_day: Optional[date] = None

    @property
    def has_alert(self) -> bool:
        return self.alert_day is not None


def _by_month(transactions: Iterable[Transaction]) -> dict[date, list[Transaction]]:
    grouped: dict[date, list[Transaction]] = defaultdict(list)
    for txn in transactions:
        if txn.is_visible:
            grouped[txn.budget_month].append(txn)
    return grouped


def project_months(
    transactions: Iterable[Transaction],
    anchors: Iterable[date],
    today: date,
    budgets: Optional[Mapping[date, int]] = None,
) -> list[MonthProjection]:
    """Per-month totals with the available balance carried forward.

    Months are walked in ascending order starting from a zero balance:
    ``available = previous available + net``. ``current`` only counts this
    month's transactions dated on or before ``today``.
    """
    grouped = _by_month(transactions)
    budgets = budgets or {}
    ordered = sorted({month_anchor(a) for a in anchors})

    projections: list[MonthProjection] = []
    previous_available = 0
    for anchor in ordered:
        month_txns = grouped.get(anchor, [])
        income, expenses = totals(month_txns)
        net = income - expenses
        up_to_today = net_cents(t for t in month_txns if t.occurrence_date <= today)
        available = previous_available + net
        projections.append(
            MonthProjection(
                anchor=anchor,
                income_cents=income,
                expense_cents=expenses,
                net_cents=net,
                previous_balance_cents=previous_available,
                available_balance_cents=available,
                current_balance_cents=previous_available + up_to_today,
                budget_limit_cents=budgets.get(anchor),
            )
        )
        previous_available = available
    return projections


def daily_balances(
    transactions: Iterable[Transaction], month: date
) -> tuple[int, dict[date, int]]:
    """Opening balance and end-of-day balance for every day of ``month``.

    The opening balance is the previous month's net floored at zero; a
    negative previous month is not carried in.
    """
    month = month_anchor(month)
    grouped = _by_month(transactions)
    opening = max(0, net_cents(grouped.get(add_months(month, -1), [])))

    deltas: dict[date, int] = defaultdict(int)
    for txn in grouped.get(month, []):
        deltas[txn.occurrence_date] += signed_cents(txn.type, txn.amount_cents)

    period = month_period(month)
    balances: dict[date, int] = {}
    running = opening
    day = period.start
    while day <= period.end:
        running += deltas.get(day, 0)
        balances[day] = running
        day += timedelta(days=1)
    return opening, balances


def first_negative_day(balances: Mapping[date, int], today: date) -> Optional[date]:
    for day in sorted(balances):
        if day < today:
            continue
        if balances[day] < 0:
            return day
    return None


def actionable_alert_day(
    day: Optional[date], today: date, horizon_days: int = 30
) -> Optional[date]:
    """``day`` if it is between 1 and ``horizon_days`` days ahead, else None."""
    if day is None:
        return None
    if 1 <= days_until(day, today) <= horizon_days:
        return day
    return None


def project_daily_balance(
    transactions: Iterable[Transaction],
    month: date,
    today: date,
    alert_horizon_days: int = 30,
) -> DailyProjection:
    month = month_anchor(month)
    opening, balances = daily_balances(transactions, month)
    negative = first_negative_day(balances, today)
    return DailyProjection(
        month=month,
        opening_balance_cents=opening,
        daily_balances=balances,
        first_negative_day=negative,
        alert_day=actionable_alert_day(negative, today, alert_horizon_days),
    )
