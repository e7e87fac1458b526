from datetime import date

from models import Transaction, TransactionCategory, TransactionType
from projection import (
    actionable_alert_day,
    daily_balances,
    first_negative_day,
    project_daily_balance,
    project_months,
)


def _income(day: date, cents: int) -> Transaction:
    return Transaction(
        title="Salary",
        category=TransactionCategory.salary,
        type=TransactionType.income,
        amount_cents=cents,
        occurrence_date=day,
    )


def _expense(day: date, cents: int) -> Transaction:
    return Transaction(
        title="Bill",
        category=TransactionCategory.utilities,
        type=TransactionType.expense,
        amount_cents=cents,
        occurrence_date=day,
    )


JAN = date(2025, 1, 1)
FEB = date(2025, 2, 1)
MAR = date(2025, 3, 1)


def test_available_balance_carries_forward():
    txns = [
        _income(date(2025, 1, 5), 100_000),
        _expense(date(2025, 1, 9), 30_000),
        _expense(date(2025, 2, 20), 50_000),
        _income(date(2025, 3, 1), 10_000),
    ]

    months = project_months(txns, [MAR, JAN, FEB], today=date(2025, 2, 10))

    assert [m.anchor for m in months] == [JAN, FEB, MAR]
    jan, feb, mar = months
    assert (jan.income_cents, jan.expense_cents, jan.net_cents) == (100_000, 30_000, 70_000)
    assert jan.previous_balance_cents == 0
    assert jan.available_balance_cents == 70_000
    assert feb.previous_balance_cents == 70_000
    assert feb.available_balance_cents == 20_000
    # the Feb 20 expense has not happened yet on Feb 10
    assert feb.current_balance_cents == 70_000
    assert mar.previous_balance_cents == 20_000
    assert mar.available_balance_cents == 30_000


def test_hidden_installment_templates_are_ignored():
    template = _expense(date(2025, 1, 10), 0)
    template.has_installments = True
    template.original_amount_cents = 90_000
    installment = _expense(date(2025, 1, 10), 30_000)

    (jan,) = project_months([template, installment], [JAN], today=date(2025, 1, 1))
    assert jan.expense_cents == 30_000


def test_budget_limit_and_remaining():
    txns = [_expense(date(2025, 2, 3), 45_000)]
    feb, mar = project_months(
        txns, [FEB, MAR], today=date(2025, 2, 10), budgets={FEB: 60_000}
    )
    assert feb.budget_limit_cents == 60_000
    assert feb.budget_remaining_cents == 15_000
    assert mar.budget_limit_cents is None
    assert mar.budget_remaining_cents is None


def test_daily_balance_finds_negative_day():
    txns = [
        _income(date(2025, 1, 5), 50_000),
        _expense(date(2025, 2, 15), 80_000),
        _income(date(2025, 2, 20), 10_000),
    ]

    projection = project_daily_balance(txns, FEB, today=date(2025, 2, 1))

    assert projection.opening_balance_cents == 50_000
    assert len(projection.daily_balances) == 28
    assert projection.daily_balances[date(2025, 2, 14)] == 50_000
    assert projection.daily_balances[date(2025, 2, 15)] == -30_000
    assert projection.daily_balances[date(2025, 2, 28)] == -20_000
    assert projection.first_negative_day == date(2025, 2, 15)
    assert projection.alert_day == date(2025, 2, 15)
    assert projection.has_alert


def test_negative_previous_month_is_floored():
    txns = [_expense(date(2025, 1, 5), 50_000), _income(date(2025, 2, 2), 1_000)]

    opening, balances = daily_balances(txns, FEB)

    assert opening == 0
    assert balances[date(2025, 2, 1)] == 0
    assert balances[date(2025, 2, 2)] == 1_000


def test_alert_beyond_horizon_is_not_actionable():
    txns = [_expense(date(2025, 3, 1), 1_000)]

    projection = project_daily_balance(txns, MAR, today=date(2025, 1, 25))

    assert projection.first_negative_day == date(2025, 3, 1)
    assert projection.alert_day is None
    assert not projection.has_alert


def test_negative_today_is_not_actionable():
    today = date(2025, 2, 10)
    txns = [_expense(today, 1_000)]

    projection = project_daily_balance(txns, FEB, today=today)

    assert projection.first_negative_day == today
    assert projection.alert_day is None


def test_scan_ignores_days_before_today():
    balances = {
        date(2025, 2, 3): -500,
        date(2025, 2, 4): -500,
        date(2025, 2, 5): 1_000,
        date(2025, 2, 6): 1_000,
    }
    assert first_negative_day(balances, date(2025, 2, 5)) is None
    assert first_negative_day(balances, date(2025, 2, 4)) == date(2025, 2, 4)


def test_actionable_alert_window_bounds():
    today = date(2025, 1, 1)
    assert actionable_alert_day(date(2025, 1, 2), today) == date(2025, 1, 2)
    assert actionable_alert_day(date(2025, 1, 31), today) == date(2025, 1, 31)
    assert actionable_alert_day(date(2025, 2, 1), today) is None
    assert actionable_alert_day(None, today) is None
