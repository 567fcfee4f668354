"""Business-day date arithmetic under a configurable weekly workday set.

Weekday indices follow the 0=Sunday .. 6=Saturday convention used by the
workday setting, which differs from ``date.weekday()`` (0=Monday).
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime, timedelta

DEFAULT_WORKDAYS: tuple[int, ...] = (1, 2, 3, 4, 5)

DAY_NAMES = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")

ONE_DAY = timedelta(days=1)


def normalize(value: date | datetime | str) -> date:
    """Reduce a date-like value to a whole calendar day.

    Time of day carries no meaning for scheduling, so datetimes are cut to
    their date and ISO strings are parsed.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return datetime.fromisoformat(value.strip()).date()
    raise TypeError(f"Cannot interpret {value!r} as a date")


def weekday_index(d: date) -> int:
    """Weekday of *d* with 0=Sunday."""
    return (d.weekday() + 1) % 7


def is_workday(d: date, workdays: Iterable[int]) -> bool:
    return weekday_index(d) in set(workdays)


def next_workday(d: date | datetime, workdays: Iterable[int]) -> date:
    """First workday on or after *d*. An empty workday set leaves *d* as is."""
    current = normalize(d)
    days = set(workdays)
    if not days:
        return current
    while weekday_index(current) not in days:
        current += ONE_DAY
    return current


def business_days_between(
    start: date | datetime,
    end: date | datetime,
    workdays: Iterable[int],
) -> int:
    """Count workdays in ``[start, end]`` inclusive.

    Returns 0 when *start* is after *end*. Any other range counts as at
    least one business day, even when it only covers non-workdays: a task
    always occupies one day on the chart.
    """
    current = normalize(start)
    final = normalize(end)
    if current > final:
        return 0

    days = set(workdays)
    count = 0
    while current <= final:
        if weekday_index(current) in days:
            count += 1
        current += ONE_DAY
    return max(count, 1)


def end_date_from_duration(
    start: date | datetime,
    duration: int,
    workdays: Iterable[int],
) -> date:
    """Date of the *duration*-th workday counted from *start*.

    Counting begins at the first workday on or after *start*. The start
    itself is never moved here; snapping a start onto a workday is up to
    the caller.
    """
    first = normalize(start)
    days = set(workdays)
    if duration <= 0 or not days:
        return first

    current = next_workday(first, days)
    counted = 1
    while counted < duration:
        current += ONE_DAY
        if weekday_index(current) in days:
            counted += 1
    return current


def parse_workdays(text: str) -> tuple[int, ...]:
    """Parse ``"1,2,3"`` or ``"mon,tue,wed"`` into a sorted weekday tuple."""
    names = {name.lower(): idx for idx, name in enumerate(DAY_NAMES)}
    result: set[int] = set()
    for raw in text.replace(" ", ",").split(","):
        token = raw.strip().lower()
        if not token:
            continue
        if token.isdigit():
            idx = int(token)
            if not 0 <= idx <= 6:
                raise ValueError(f"Weekday index out of range: {token}")
            result.add(idx)
        elif token[:3] in names:
            result.add(names[token[:3]])
        else:
            raise ValueError(f"Unknown weekday '{raw.strip()}'")
    return tuple(sorted(result))


def format_workdays(workdays: Iterable[int]) -> str:
    return ", ".join(DAY_NAMES[d] for d in sorted(set(workdays)))
