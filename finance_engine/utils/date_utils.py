"""Date manipulation utilities"""

import calendar
from datetime import date, timedelta
from typing import Tuple


def add_months(from_date: date, months: int) -> date:
    """Shift a date by whole calendar months, clamping the day to the target month's end"""
    month_index = from_date.month - 1 + months
    year = from_date.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(from_date.day, last_day))


def get_custom_month_range(reference: date, start_day: int = 6) -> Tuple[date, date, str]:
    """
    Resolve the custom month cycle containing `reference`.

    A cycle runs from `start_day` of one month to the day before `start_day`
    of the next (default: 6th to 5th).

    Returns: (start, end, label) e.g. (2024-02-06, 2024-03-05, "Feb 6 - Mar 5")
    """
    if reference.day >= start_day:
        anchor = date(reference.year, reference.month, 1)
    else:
        anchor = add_months(date(reference.year, reference.month, 1), -1)

    start = day_in_month(anchor.year, anchor.month, start_day)
    next_anchor = add_months(anchor, 1)
    end = day_in_month(next_anchor.year, next_anchor.month, start_day) - timedelta(days=1)

    label = f"{start.strftime('%b')} {start.day} - {end.strftime('%b')} {end.day}"
    return start, end, label


def days_left_in_cycle(today: date, start_day: int = 6) -> int:
    """Days remaining in the current custom month cycle, counting today"""
    _, end, _ = get_custom_month_range(today, start_day)
    return (end - today).days + 1


def day_in_month(year: int, month: int, day: int) -> date:
    """Build a date, clamping the day to the length of the month"""
    return date(year, month, min(day, calendar.monthrange(year, month)[1]))
