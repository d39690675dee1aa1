from datetime import datetime, timedelta
import pytz

UTC = pytz.utc

def now_utc() -> datetime:
    """Get current datetime in UTC."""
    return datetime.now(UTC)

def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes read back from stores that drop the offset."""
    if value is None:
        return None
    if value.tzinfo is None:
        return UTC.localize(value)
    return value.astimezone(UTC)

def due_date_from(borrowed_at: datetime, days: int) -> datetime:
    return borrowed_at + timedelta(days=days)
