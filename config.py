import os
from functools import lru_cache
from pathlib import Path


class Settings:
    def __init__(
        self,
        database_url: str,
        timezone: str,
        date_format: str,
        window_months_back: int,
        window_months_forward: int,
        reminder_hour: int,
        reminder_horizon_days: int,
        alert_horizon_days: int,
    ) -> None:
        self.database_url = database_url
        self.timezone = timezone
        self.date_format = date_format
        self.window_months_back = window_months_back
        self.window_months_forward = window_months_forward
        self.reminder_hour = reminder_hour
        self.reminder_horizon_days = reminder_horizon_days
        self.alert_horizon_days = alert_horizon_days

    @property
    def window_offsets(self) -> range:
        return range(-self.window_months_back, self.window_months_forward + 1)


def _ensure_data_dir() -> Path:
    root = Path(os.getenv("LEDGER_DATA_DIR", "./data")).resolve()
    root.mkdir(parents=True, exist_ok=True)
    return root


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    data_dir = _ensure_data_dir()
    default_db = data_dir / "ledger.db"
    database_url = os.getenv("LEDGER_DATABASE_URL", f"sqlite:///{default_db}")
    timezone = os.getenv("LEDGER_TIMEZONE", "Europe/Berlin")
    date_format = os.getenv("LEDGER_DATE_FORMAT", "%d/%m/%Y")
    window_months_back = int(os.getenv("LEDGER_WINDOW_MONTHS_BACK", "12"))
    window_months_forward = int(os.getenv("LEDGER_WINDOW_MONTHS_FORWARD", "24"))
    reminder_hour = int(os.getenv("LEDGER_REMINDER_HOUR", "8"))
    reminder_horizon_days = int(os.getenv("LEDGER_REMINDER_HORIZON_DAYS", "365"))
    alert_horizon_days = int(os.getenv("LEDGER_ALERT_HORIZON_DAYS", "30"))
    return Settings(
        database_url=database_url,
        timezone=timezone,
        date_format=date_format,
        window_months_back=window_months_back,
        window_months_forward=window_months_forward,
        reminder_hour=reminder_hour,
        reminder_horizon_days=reminder_horizon_days,
        alert_horizon_days=alert_horizon_days,
    )
