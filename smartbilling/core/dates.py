import calendar
from datetime import date, datetime, time, timedelta, timezone


def normalize_date(value):
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        value_text = value.strip()
        if not value_text:
            return None
        try:
            return date.fromisoformat(value_text[:10])
        except ValueError:
            return None
    return None


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def day_start(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """Half-open ``[start, end)`` UTC range covering one calendar day."""
    start = day_start(day)
    return start, start + timedelta(days=1)


def date_window(start_date, end_date):
    """Inclusive calendar-day filter as a half-open ``[start, end)`` UTC range."""
    start = normalize_date(start_date)
    end = normalize_date(end_date)
    return (
        day_start(start) if start is not None else None,
        day_bounds(end)[1] if end is not None else None,
    )


def add_months(value: date, months: int) -> date:
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


__all__ = ["add_months", "date_window", "day_bounds", "day_start", "normalize_date", "utc_today"]
