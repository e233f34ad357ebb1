"""
Calendar coverage index.

Pure functions over ISO ``YYYY-MM-DD`` strings: which broadcast dates have
stored questions, which are missing, and what clicking a day should do.
Dates after "today" are never reported missing and never actionable.
"""
import calendar
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Collection, Iterator, List, Optional

from schemas import CalendarDay, CalendarStats, MonthCalendar

MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)


class DayAction(str, Enum):
    NOOP = "noop"    # future date
    LOAD = "load"    # filled: show stored games for the date
    FETCH = "fetch"  # missing: start the archive fetch flow


def today_iso() -> str:
    """Current UTC calendar date."""
    return datetime.now(timezone.utc).date().isoformat()


def parse_iso_date(value: str) -> date:
    return date.fromisoformat(value)


def format_date_string(value: str) -> str:
    """
    ``"2025-11-05"`` -> ``"November 5, 2025"``.

    Splits the string instead of building a datetime so the rendered day
    never depends on the local timezone.
    """
    year, month, day = value.split("T", 1)[0].split("-")
    return f"{MONTH_NAMES[int(month) - 1]} {int(day)}, {int(year)}"


def iter_date_range(start: str, end: str) -> Iterator[str]:
    """Inclusive range of ISO dates; empty when start > end."""
    current = parse_iso_date(start)
    last = parse_iso_date(end)
    while current <= last:
        yield current.isoformat()
        current += timedelta(days=1)


def is_future_date(value: str, today: Optional[str] = None) -> bool:
    return value > (today or today_iso())


def classify_day(value: str, filled_dates: Collection[str], today: Optional[str] = None) -> str:
    if is_future_date(value, today):
        return "future"
    return "has-data" if value in filled_dates else "missing"


def classify_click(value: str, filled_dates: Collection[str], today: Optional[str] = None) -> DayAction:
    status = classify_day(value, filled_dates, today)
    if status == "future":
        return DayAction.NOOP
    if status == "has-data":
        return DayAction.LOAD
    return DayAction.FETCH


def _coverage(filled: int, missing: int) -> float:
    total = filled + missing
    return filled / total if total else 0.0


def build_month_calendar(
    year: int,
    month: int,
    filled_dates: Collection[str],
    today: Optional[str] = None,
) -> MonthCalendar:
    today = today or today_iso()
    filled = set(filled_dates)
    _, days_in_month = calendar.monthrange(year, month)

    days: List[CalendarDay] = []
    total_filled = total_missing = 0
    for day in range(1, days_in_month + 1):
        iso = date(year, month, day).isoformat()
        status = classify_day(iso, filled, today)
        if status == "has-data":
            total_filled += 1
        elif status == "missing":
            total_missing += 1
        days.append(CalendarDay(date=iso, status=status))

    return MonthCalendar(
        year=year,
        month=month,
        days=days,
        total_filled=total_filled,
        total_missing=total_missing,
        coverage=_coverage(total_filled, total_missing),
    )


def build_calendar_stats(
    filled_dates: Collection[str],
    today: Optional[str] = None,
    start: Optional[str] = None,
) -> CalendarStats:
    """
    Coverage over the whole archive.

    The range runs from ``start`` (default: earliest filled date, or two
    years back when nothing is stored) through today.
    """
    today = today or today_iso()
    filled = {d for d in filled_dates if not is_future_date(d, today)}

    if start is None:
        if filled:
            start = min(filled)
        else:
            start = (parse_iso_date(today) - timedelta(days=730)).isoformat()

    all_dates = list(iter_date_range(start, today))
    filled_in_range = [d for d in all_dates if d in filled]
    missing = [d for d in all_dates if d not in filled]

    return CalendarStats(
        filled_dates=filled_in_range,
        missing_dates=missing,
        total_filled=len(filled_in_range),
        total_missing=len(missing),
        coverage=_coverage(len(filled_in_range), len(missing)),
    )


def shift_month(year: int, month: int, delta: int) -> tuple:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1
