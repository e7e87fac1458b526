import logging
from datetime import date
from typing import Optional

from errors import NotARecurringTransaction, TransactionNotFound
from models import CleanupOption, SeriesKind, SeriesRole, Transaction
from notifier import ReminderNotifier, best_effort
from store import TransactionStore


logger = logging.getLogger(__name__)


def resolve_role(target: Transaction, store: TransactionStore) -> SeriesRole:
    """Classify ``target`` by following its parent link one hop.

    Any member of a series can be the starting point of a deletion, so the
    parent's flags decide the series kind. A record whose parent has vanished
    falls back to its own columns.
    """
    parent_id = target.parent_transaction_id
    if parent_id is None:
        return target.role
    parent = target if parent_id == target.id else store.get(parent_id)
    if parent is None:
        logger.warning(
            f"orphan_occurrence: id={target.id} missing_parent_id={parent_id}"
        )
        return target.role
    if parent.is_recurring_template:
        if parent.id == target.id:
            return SeriesRole(SeriesKind.recurring_template, parent.id)
        return SeriesRole(SeriesKind.recurring_occurrence, parent.id)
    if parent.has_installments:
        return SeriesRole(SeriesKind.installment_occurrence, parent.id)
    return target.role


class SeriesDeletionEngine:
    def __init__(
        self, store: TransactionStore, notifier: Optional[ReminderNotifier] = None
    ) -> None:
        self.store = store
        self.notifier = best_effort(notifier)

    def _load(self, transaction_id: int) -> Transaction:
        txn = self.store.get(transaction_id)
        if txn is None:
            raise TransactionNotFound(f"Transaction {transaction_id} not found")
        return txn

    def delete_simple(self, transaction_id: int) -> list[int]:
        target = self._load(transaction_id)
        role = resolve_role(target, self.store)
        if not role.is_simple:
            raise NotARecurringTransaction(
                f"Transaction {transaction_id} belongs to a series; "
                "delete it with a cleanup option"
            )
        return self._remove([transaction_id], role, series_removed=False)

    def delete_series(
        self,
        transaction_id: int,
        cleanup_option: CleanupOption,
        selected_date: Optional[date] = None,
    ) -> list[int]:
        """Delete ``transaction_id`` together with the part of its series
        chosen by ``cleanup_option``. Returns the deleted ids.

        ``selected_date`` defaults to the target's own date and is the
        ``futureOnly`` cut-off; installments must also be numbered at or
        after the target.
        """
        target = self._load(transaction_id)
        role = resolve_role(target, self.store)
        if role.is_simple:
            return self._remove([transaction_id], role, series_removed=False)

        series_id = role.series_id
        members = self.store.fetch_by_parent(series_id)
        template = next((m for m in members if m.id == series_id), None)
        if template is None:
            template = self.store.get(series_id)
        occurrences = [m for m in members if m.id != series_id]

        if cleanup_option == CleanupOption.all:
            doomed = [o.id for o in occurrences]
            if template is not None:
                doomed.append(template.id)
            return self._remove(doomed, role, series_removed=True)

        cutoff = selected_date or target.occurrence_date
        if role.is_recurring:
            doomed = [o.id for o in occurrences if o.occurrence_date >= cutoff]
            earlier_kept = any(o.occurrence_date < cutoff for o in occurrences)
            drop_template = (
                template is not None
                and template.occurrence_date >= cutoff
                and not earlier_kept
            )
        else:
            # The hidden installment template always survives futureOnly
            number = target.installment_number or 1
            doomed = [
                o.id
                for o in occurrences
                if (o.installment_number or 0) >= number
                and o.occurrence_date >= cutoff
            ]
            drop_template = False

        if drop_template:
            doomed.append(template.id)
        return self._remove(doomed, role, series_removed=drop_template)

    def _remove(
        self, doomed: list[int], role: SeriesRole, *, series_removed: bool
    ) -> list[int]:
        self.store.delete_many(doomed)
        for transaction_id in doomed:
            self.notifier.cancel_reminder(transaction_id)
        if series_removed and role.series_id is not None:
            self.notifier.cancel_reminders_for_series(role.series_id)
        logger.info(
            f"transactions_deleted: kind={role.kind.value} "
            f"series_id={role.series_id} count={len(doomed)}"
        )
        return doomed
