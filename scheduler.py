import logging
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from config import get_settings
from database import session_scope
from notifier import ReminderNotifier
from services import BalanceMonitorService, LedgerService


logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class SchedulerManager:
    """Keeps recurring series aligned with the sliding month window."""

    def __init__(self, notifier: Optional[ReminderNotifier] = None) -> None:
        settings = get_settings()
        self.notifier = notifier
        self.scheduler = BackgroundScheduler(timezone=settings.timezone)

    def _run_job(self, source: str = "manual") -> None:
        logger.info(f"scheduler_run: source={source}")
        with session_scope() as session:
            ledger = LedgerService.for_session(session, notifier=self.notifier)
            created, trimmed = ledger.roll_window()
            BalanceMonitorService(ledger).monitor()
            logger.info(
                f"scheduler_run: source={source} occurrences_created={created} "
                f"occurrences_trimmed={trimmed}"
            )

    def start(self) -> None:
        self._run_job("startup")

        trigger = CronTrigger(hour=3, minute=15)
        self.scheduler.add_job(
            self._run_job,
            trigger,
            args=["daily_03:15"],
            id="window_daily",
            replace_existing=True,
            misfire_grace_time=3600,
        )

        trigger = IntervalTrigger(hours=6)
        self.scheduler.add_job(
            self._run_job,
            trigger,
            args=["interval_safety_net"],
            id="window_safety_net",
            replace_existing=True,
            misfire_grace_time=300,
        )

        self.scheduler.start()
        logger.info("Scheduler started with daily 03:15 run and 6-hourly safety net")

    def stop(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped")
