import logging
from datetime import date, datetime
from typing import Iterable, Optional

from config import Settings, get_settings
from errors import InvalidInstallmentCount, NotARecurringTemplate
from models import (
    CleanupOption,
    Transaction,
    TransactionCategory,
    TransactionType,
)
from money import split_installments
from notifier import ReminderNotifier, best_effort, occurrence_reminder
from periods import (
    add_months,
    clamped_date,
    local_now,
    month_anchor,
    month_window,
    months_between,
)
from store import TransactionStore


logger = logging.getLogger(__name__)


def creation_window(
    start_date: date, today: date, settings: Optional[Settings] = None
) -> range:
    """Month offsets around ``today`` used when a recurring series is created.

    The configured window is widened on either side so that the month of
    ``start_date`` is always inside it.
    """
    settings = settings or get_settings()
    back = max(settings.window_months_back, months_between(start_date, today))
    forward = max(settings.window_months_forward, months_between(today, start_date))
    return range(-back, forward + 1)


class OccurrenceGenerator:
    """Eagerly materialises recurring and installment series in the store."""

    def __init__(
        self,
        store: TransactionStore,
        notifier: Optional[ReminderNotifier] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self.store = store
        self.notifier = best_effort(notifier)
        self.settings = settings or get_settings()

    def _remind(self, txn: Transaction, now: datetime) -> None:
        reminder = occurrence_reminder(txn, now, self.settings)
        if reminder is None:
            return
        fire_at, payload = reminder
        self.notifier.request_reminder(txn.id, fire_at, payload)

    def create_recurring_series(
        self,
        template: Transaction,
        today: date,
        now: Optional[datetime] = None,
    ) -> list[Transaction]:
        """Insert ``template`` as a series head and fill its creation window.

        Returns the generated occurrences (the template is not among them).
        """
        now = now or local_now()
        template.is_recurring_template = True
        template.parent_transaction_id = None
        template_id = self.store.insert(template)
        self.store.update_parent_link(template_id, template_id)
        self._remind(template, now)
        window = creation_window(template.occurrence_date, today, self.settings)
        return self.extend_series(template, window, today, now=now)

    def extend_series(
        self,
        template: Transaction,
        month_offsets: Iterable[int],
        reference_date: date,
        now: Optional[datetime] = None,
    ) -> list[Transaction]:
        """Create the occurrences missing from ``month_offsets``.

        The wanted months are the window months at or after the template's
        own month; months the series already covers (the template's month
        included) are left alone, so re-running with the same or a wider
        window never duplicates anything.
        """
        if not template.is_recurring_template:
            raise NotARecurringTemplate(
                f"Transaction {template.id} is not a recurring template"
            )
        now = now or local_now()
        start = template.budget_month
        wanted = {
            anchor
            for anchor in month_window(reference_date, month_offsets)
            if anchor >= start
        }
        existing = {t.budget_month for t in self.store.fetch_by_parent(template.id)}
        existing.add(start)
        missing = sorted(wanted - existing)

        day = template.occurrence_date.day
        created: list[Transaction] = []
        for anchor in missing:
            occurrence = Transaction(
                title=template.title,
                category=template.category,
                type=template.type,
                amount_cents=template.amount_cents,
                occurrence_date=clamped_date(day, anchor.month, anchor.year),
                parent_transaction_id=template.id,
            )
            self.store.insert(occurrence)
            created.append(occurrence)
            self._remind(occurrence, now)

        if created:
            logger.info(
                f"series_extended: template_id={template.id} created={len(created)} "
                f"first={created[0].occurrence_date} last={created[-1].occurrence_date}"
            )
        return created

    def generate_all(
        self,
        month_offsets: Iterable[int],
        reference_date: date,
        now: Optional[datetime] = None,
    ) -> int:
        offsets = list(month_offsets)
        count = 0
        for template in self.store.fetch_recurring_templates():
            count += len(self.extend_series(template, offsets, reference_date, now))
        return count

    def trim_outside_window(
        self,
        month_offsets: Iterable[int],
        reference_date: date,
        cleanup_option: CleanupOption,
    ) -> list[int]:
        """Delete recurring occurrences the sliding window no longer covers.

        ``all`` removes every occurrence outside the window; ``futureOnly``
        keeps past out-of-window months and only drops later ones. Occurrences
        in or before their template's month are always removed. Templates are
        never touched.
        """
        valid = set(month_window(reference_date, month_offsets))
        current = month_anchor(reference_date)
        doomed: list[int] = []
        for template in self.store.fetch_recurring_templates():
            for occurrence in self.store.fetch_by_parent(template.id):
                if occurrence.id == template.id:
                    continue
                anchor = occurrence.budget_month
                before_start = anchor <= template.budget_month
                outside = anchor not in valid
                if cleanup_option == CleanupOption.all:
                    remove = outside or before_start
                else:
                    remove = (outside and anchor > current) or before_start
                if remove:
                    doomed.append(occurrence.id)

        self.store.delete_many(doomed)
        for occurrence_id in doomed:
            self.notifier.cancel_reminder(occurrence_id)
        if doomed:
            logger.info(
                f"series_trimmed: option={cleanup_option.value} removed={len(doomed)}"
            )
        return doomed

    def create_installment_series(
        self,
        title: str,
        total_cents: int,
        start_date: date,
        category: TransactionCategory,
        txn_type: TransactionType,
        count: int,
        now: Optional[datetime] = None,
    ) -> tuple[Transaction, list[Transaction]]:
        """Insert a hidden installment template and its ``count`` installments."""
        if count <= 1:
            raise InvalidInstallmentCount("Installment count must be greater than 1")
        if total_cents < count:
            raise InvalidInstallmentCount(
                "Installment count cannot exceed the total amount in cents"
            )
        now = now or local_now()
        template = Transaction(
            title=title,
            category=category,
            type=txn_type,
            amount_cents=0,
            occurrence_date=start_date,
            has_installments=True,
            original_amount_cents=total_cents,
            total_installments=count,
        )
        self.store.insert(template)

        start = month_anchor(start_date)
        installments: list[Transaction] = []
        for number, amount in enumerate(split_installments(total_cents, count), 1):
            anchor = add_months(start, number - 1)
            installment = Transaction(
                title=title,
                category=category,
                type=txn_type,
                amount_cents=amount,
                occurrence_date=clamped_date(start_date.day, anchor.month, anchor.year),
                parent_transaction_id=template.id,
                installment_number=number,
                total_installments=count,
                original_amount_cents=total_cents,
            )
            self.store.insert(installment)
            installments.append(installment)
            self._remind(installment, now)

        logger.info(
            f"installments_created: template_id={template.id} count={count} "
            f"total_cents={total_cents}"
        )
        return template, installments
