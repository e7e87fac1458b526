from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Iterable, Optional, Union

from sqlalchemy.orm import Session

from cascade import SeriesDeletionEngine, resolve_role
from config import Settings, get_settings
from errors import (
    InvalidCategory,
    InvalidDateFormat,
    InvalidInstallmentCount,
    InvalidType,
    TransactionNotFound,
)
from models import (
    CleanupOption,
    SeriesRole,
    Transaction,
    TransactionCategory,
    TransactionType,
)
from notifier import (
    ReminderNotifier,
    best_effort,
    occurrence_reminder,
    reminder_fire_at,
)
from periods import (
    days_until,
    local_now,
    local_today,
    month_anchor,
    month_window,
    parse_date,
)
from projection import (
    DailyProjection,
    MonthProjection,
    project_daily_balance,
    project_months,
)
from recurrence import OccurrenceGenerator
from schemas import InstallmentTransactionIn, TransactionIn
from store import BudgetStore, SqlBudgetStore, SqlTransactionStore, TransactionStore


logger = logging.getLogger(__name__)


class LedgerService:
    """Entry points of the engine.

    Holds no state between calls; every operation reads a fresh snapshot
    from the injected store. Callers must serialise calls that touch the
    same series.
    """

    def __init__(
        self,
        store: TransactionStore,
        notifier: Optional[ReminderNotifier] = None,
        budget_store: Optional[BudgetStore] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self.store = store
        self.budget_store = budget_store
        self.settings = settings or get_settings()
        self.notifier = best_effort(notifier)
        self.generator = OccurrenceGenerator(store, self.notifier, self.settings)
        self.deletions = SeriesDeletionEngine(store, self.notifier)

    @classmethod
    def for_session(
        cls, session: Session, notifier: Optional[ReminderNotifier] = None
    ) -> "LedgerService":
        return cls(
            SqlTransactionStore(session),
            notifier=notifier,
            budget_store=SqlBudgetStore(session),
        )

    def _validate(
        self,
        raw_date: Union[date, str],
        category: str,
        txn_type: str,
    ) -> tuple[date, TransactionCategory, TransactionType]:
        try:
            day = parse_date(raw_date, self.settings.date_format)
        except ValueError as exc:
            raise InvalidDateFormat(str(exc)) from exc
        try:
            parsed_category = TransactionCategory(category)
        except ValueError as exc:
            raise InvalidCategory(f"Unknown category: {category!r}") from exc
        try:
            parsed_type = TransactionType(txn_type)
        except ValueError as exc:
            raise InvalidType(f"Unknown transaction type: {txn_type!r}") from exc
        return day, parsed_category, parsed_type

    def create_simple_transaction(
        self, data: TransactionIn, now: Optional[datetime] = None
    ) -> Transaction:
        day, category, txn_type = self._validate(data.date, data.category, data.type)
        txn = Transaction(
            title=data.title,
            category=category,
            type=txn_type,
            amount_cents=data.amount_cents,
            occurrence_date=day,
        )
        self.store.insert(txn)
        reminder = occurrence_reminder(txn, now or local_now(), self.settings)
        if reminder is not None:
            self.notifier.request_reminder(txn.id, *reminder)
        logger.info(f"transaction_created: id={txn.id} date={day}")
        return txn

    def create_recurring_transaction(
        self,
        data: TransactionIn,
        today: Optional[date] = None,
        now: Optional[datetime] = None,
    ) -> Transaction:
        """Create a recurring template and its occurrences; returns the template."""
        day, category, txn_type = self._validate(data.date, data.category, data.type)
        template = Transaction(
            title=data.title,
            category=category,
            type=txn_type,
            amount_cents=data.amount_cents,
            occurrence_date=day,
        )
        occurrences = self.generator.create_recurring_series(
            template, today or local_today(), now=now
        )
        logger.info(
            f"recurring_created: template_id={template.id} "
            f"occurrences={len(occurrences)}"
        )
        return template

    def create_installment_transaction(
        self, data: InstallmentTransactionIn, now: Optional[datetime] = None
    ) -> Transaction:
        """Create an installment series; returns the hidden template."""
        if data.installment_count <= 1:
            raise InvalidInstallmentCount("Installment count must be greater than 1")
        day, category, txn_type = self._validate(data.date, data.category, data.type)
        template, _installments = self.generator.create_installment_series(
            data.title,
            data.total_amount_cents,
            day,
            category,
            txn_type,
            data.installment_count,
            now=now,
        )
        return template

    def get(self, transaction_id: int) -> Transaction:
        txn = self.store.get(transaction_id)
        if txn is None:
            raise TransactionNotFound(f"Transaction {transaction_id} not found")
        return txn

    def classify(self, transaction_id: int) -> SeriesRole:
        return resolve_role(self.get(transaction_id), self.store)

    def list_transactions(self, month: Optional[date] = None) -> list[Transaction]:
        txns = self.store.fetch_visible()
        if month is None:
            return txns
        anchor = month_anchor(month)
        return [t for t in txns if t.budget_month == anchor]

    def delete_simple(self, transaction_id: int) -> list[int]:
        return self.deletions.delete_simple(transaction_id)

    def delete_series(
        self,
        transaction_id: int,
        cleanup_option: CleanupOption,
        selected_date: Optional[date] = None,
    ) -> list[int]:
        return self.deletions.delete_series(
            transaction_id, cleanup_option, selected_date
        )

    def _budgets(self) -> dict[date, int]:
        if self.budget_store is None:
            return {}
        return dict(self.budget_store.fetch_all())

    def project_months(
        self, anchors: Iterable[date], today: Optional[date] = None
    ) -> list[MonthProjection]:
        return project_months(
            self.store.fetch_visible(),
            anchors,
            today or local_today(),
            budgets=self._budgets(),
        )

    def month_list(self, today: Optional[date] = None) -> list[MonthProjection]:
        today = today or local_today()
        anchors = month_window(today, self.settings.window_offsets)
        return self.project_months(anchors, today)

    def project_daily_balance(
        self, month: date, today: Optional[date] = None
    ) -> DailyProjection:
        return project_daily_balance(
            self.store.fetch_visible(),
            month,
            today or local_today(),
            alert_horizon_days=self.settings.alert_horizon_days,
        )

    def roll_window(
        self, today: Optional[date] = None, now: Optional[datetime] = None
    ) -> tuple[int, int]:
        """Extend every recurring series to the window around ``today`` and
        drop future occurrences that fell out of it."""
        today = today or local_today()
        offsets = self.settings.window_offsets
        created = self.generator.generate_all(offsets, today, now=now)
        trimmed = self.generator.trim_outside_window(
            offsets, today, CleanupOption.future_only
        )
        return created, len(trimmed)


class BudgetService:
    def __init__(self, budget_store: BudgetStore) -> None:
        self.budget_store = budget_store

    def list(self) -> list[tuple[date, int]]:
        return self.budget_store.fetch_all()

    def get(self, month: date) -> Optional[int]:
        return dict(self.budget_store.fetch_all()).get(month_anchor(month))

    def upsert(self, month: date, limit_cents: int) -> None:
        if limit_cents < 0:
            raise ValueError("Budget limit cannot be negative")
        self.budget_store.upsert(month_anchor(month), limit_cents)

    def delete(self, month: date) -> None:
        self.budget_store.delete(month_anchor(month))


class BalanceMonitorService:
    """Projects the current month and keeps one negative-balance alert."""

    def __init__(self, ledger: LedgerService) -> None:
        self.ledger = ledger
        self.notifier = ledger.notifier

    def monitor(self, today: Optional[date] = None) -> DailyProjection:
        today = today or local_today()
        projection = self.ledger.project_daily_balance(month_anchor(today), today)
        self.notifier.cancel_balance_alerts()
        day = projection.alert_day
        if day is None:
            logger.info(f"balance_monitor: month={projection.month} alert=none")
            return projection
        payload = {
            "balance_cents": projection.daily_balances[day],
            "days_until": days_until(day, today),
        }
        self.notifier.request_balance_alert(
            day, reminder_fire_at(day, self.ledger.settings), payload
        )
        logger.info(
            f"balance_monitor: month={projection.month} alert={day} "
            f"days_until={payload['days_until']}"
        )
        return projection
