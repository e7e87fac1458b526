"""Outbound reminder port.

The engine asks the host to schedule or cancel reminders; delivery and
permission handling belong to the host. Calls go through
``BestEffortNotifier`` so a failing or slow notifier never changes the
outcome of a store mutation.
"""

from __future__ import annotations

import logging
from concurrent.futures import Executor, Future
from datetime import date, datetime, time, timedelta
from typing import Any, Callable, Optional, Protocol
from zoneinfo import ZoneInfo

from config import Settings, get_settings
from models import Transaction


logger = logging.getLogger(__name__)


class ReminderNotifier(Protocol):
    def request_reminder(
        self, occurrence_id: int, fire_at: datetime, payload: dict[str, Any]
    ) -> None: ...

    def cancel_reminder(self, occurrence_id: int) -> None: ...

    def cancel_reminders_for_series(self, parent_id: int) -> None: ...

    def request_balance_alert(
        self, alert_day: date, fire_at: datetime, payload: dict[str, Any]
    ) -> None: ...

    def cancel_balance_alerts(self) -> None: ...


class LoggingNotifier:
    """Default notifier for hosts without a delivery channel."""

    def request_reminder(
        self, occurrence_id: int, fire_at: datetime, payload: dict[str, Any]
    ) -> None:
        logger.info(
            f"reminder_requested: occurrence_id={occurrence_id} "
            f"fire_at={fire_at.isoformat()} title={payload.get('title')!r}"
        )

    def cancel_reminder(self, occurrence_id: int) -> None:
        logger.info(f"reminder_cancelled: occurrence_id={occurrence_id}")

    def cancel_reminders_for_series(self, parent_id: int) -> None:
        logger.info(f"series_reminders_cancelled: parent_id={parent_id}")

    def request_balance_alert(
        self, alert_day: date, fire_at: datetime, payload: dict[str, Any]
    ) -> None:
        logger.info(
            f"balance_alert_requested: day={alert_day.isoformat()} "
            f"fire_at={fire_at.isoformat()} "
            f"balance_cents={payload.get('balance_cents')}"
        )

    def cancel_balance_alerts(self) -> None:
        logger.info("balance_alerts_cancelled")


class BestEffortNotifier:
    """Wraps a notifier so that its failures are logged and dropped.

    With an ``executor`` the calls are submitted and never awaited; without
    one they run inline.
    """

    def __init__(
        self, inner: ReminderNotifier, executor: Optional[Executor] = None
    ) -> None:
        self.inner = inner
        self.executor = executor

    def _dispatch(self, name: str, *args: Any) -> None:
        method: Callable[..., None] = getattr(self.inner, name)
        if self.executor is not None:
            try:
                future = self.executor.submit(method, *args)
            except Exception as exc:  # executor shut down or saturated
                logger.warning(f"notifier_failed: call={name} error={exc!r}")
                return
            future.add_done_callback(lambda f: _log_failure(name, f))
            return
        try:
            method(*args)
        except Exception as exc:
            logger.warning(f"notifier_failed: call={name} error={exc!r}")

    def request_reminder(
        self, occurrence_id: int, fire_at: datetime, payload: dict[str, Any]
    ) -> None:
        self._dispatch("request_reminder", occurrence_id, fire_at, payload)

    def cancel_reminder(self, occurrence_id: int) -> None:
        self._dispatch("cancel_reminder", occurrence_id)

    def cancel_reminders_for_series(self, parent_id: int) -> None:
        self._dispatch("cancel_reminders_for_series", parent_id)

    def request_balance_alert(
        self, alert_day: date, fire_at: datetime, payload: dict[str, Any]
    ) -> None:
        self._dispatch("request_balance_alert", alert_day, fire_at, payload)

    def cancel_balance_alerts(self) -> None:
        self._dispatch("cancel_balance_alerts")


def _log_failure(name: str, future: Future) -> None:
    exc = future.exception()
    if exc is not None:
        logger.warning(f"notifier_failed: call={name} error={exc!r}")


def best_effort(notifier: Optional[ReminderNotifier]) -> BestEffortNotifier:
    if isinstance(notifier, BestEffortNotifier):
        return notifier
    return BestEffortNotifier(notifier or LoggingNotifier())


def reminder_fire_at(day: date, settings: Optional[Settings] = None) -> datetime:
    settings = settings or get_settings()
    tz = ZoneInfo(settings.timezone)
    return datetime.combine(day, time(settings.reminder_hour, 0), tzinfo=tz)


def occurrence_reminder(
    txn: Transaction, now: datetime, settings: Optional[Settings] = None
) -> Optional[tuple[datetime, dict[str, Any]]]:
    """Fire time and payload for ``txn``'s reminder, or ``None`` to skip it.

    Hidden installment templates, past fire times and occurrences beyond the
    reminder horizon are skipped.
    """
    settings = settings or get_settings()
    if not txn.is_visible:
        return None
    fire_at = reminder_fire_at(txn.occurrence_date, settings)
    if fire_at <= now:
        return None
    if fire_at - now > timedelta(days=settings.reminder_horizon_days):
        return None
    payload = {
        "title": txn.title,
        "amount_cents": txn.amount_cents,
        "type": txn.type.value,
        "kind": txn.role.kind.value,
    }
    return fire_at, payload
