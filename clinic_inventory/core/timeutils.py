"""UTC timestamp helpers shared by entities and storage."""

from datetime import UTC, date, datetime, time, timedelta


def utcnow() -> datetime:
    return datetime.now(UTC)


def to_db_timestamp(value: datetime) -> str:
    """
    Serialize a datetime for storage.

    All stored timestamps are UTC with microsecond precision so that plain
    string comparison in SQL orders them chronologically.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat(timespec="microseconds")


def from_db_timestamp(raw: str | None) -> datetime | None:
    if not raw:
        return None
    try:
        parsed = datetime.fromisoformat(raw)
    except (ValueError, TypeError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def start_of_day(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=UTC)


def end_of_day_exclusive(day: date) -> datetime:
    return start_of_day(day) + timedelta(days=1)
