from datetime import date, datetime
from zoneinfo import ZoneInfo

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from config import Settings
from database import Base
from store import SqlBudgetStore, SqlTransactionStore


BERLIN = ZoneInfo("Europe/Berlin")
TODAY = date(2025, 1, 15)
NOW = datetime(2025, 1, 15, 9, 0, tzinfo=BERLIN)


class RecordingNotifier:
    def __init__(self) -> None:
        self.requested = []
        self.cancelled = []
        self.series_cancelled = []
        self.alerts = []
        self.alerts_cancelled = 0

    def request_reminder(self, occurrence_id, fire_at, payload):
        self.requested.append((occurrence_id, fire_at, payload))

    def cancel_reminder(self, occurrence_id):
        self.cancelled.append(occurrence_id)

    def cancel_reminders_for_series(self, parent_id):
        self.series_cancelled.append(parent_id)

    def request_balance_alert(self, alert_day, fire_at, payload):
        self.alerts.append((alert_day, fire_at, payload))

    def cancel_balance_alerts(self):
        self.alerts_cancelled += 1

    @property
    def requested_ids(self):
        return [occurrence_id for occurrence_id, _, _ in self.requested]


class FailingNotifier:
    def __getattr__(self, name):
        def fail(*_args, **_kwargs):
            raise RuntimeError(f"notifier down: {name}")

        return fail


def make_session():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:", connect_args={"check_same_thread": False}
    )
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    return SessionLocal()


@pytest.fixture
def session():
    db = make_session()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def store(session):
    return SqlTransactionStore(session)


@pytest.fixture
def budget_store(session):
    return SqlBudgetStore(session)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def failing_notifier():
    return FailingNotifier()


@pytest.fixture
def settings():
    return Settings(
        database_url="sqlite+pysqlite:///:memory:",
        timezone="Europe/Berlin",
        date_format="%d/%m/%Y",
        window_months_back=12,
        window_months_forward=24,
        reminder_hour=8,
        reminder_horizon_days=365,
        alert_horizon_days=30,
    )
