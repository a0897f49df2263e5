"""Calendar arithmetic for recurring weekly slots.

Days of the week follow the Sunday=0 convention used throughout the
scheduling API, which differs from ``date.weekday()`` (Monday=0).
"""

from collections.abc import Iterable, Iterator
from datetime import date, timedelta

DAY_NAMES = ('Sunday', 'Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday')
WEEK_LABELS = ('This Week', 'Next Week', 'Week After', '4th Week')
DAYS_PER_WEEK = 7

TIME_SLOT_DISPLAY = {
    '8-12': '8:00 AM - 12:00 PM',
    '12-4': '12:00 PM - 4:00 PM',
    '4-8': '4:00 PM - 8:00 PM',
    '20-00': '8:00 PM - 12:00 AM',
}


def to_day_of_week(value: date) -> int:
    return value.isoweekday() % DAYS_PER_WEEK


def validate_day_of_week(day_of_week: int) -> int:
    if isinstance(day_of_week, bool) or not isinstance(day_of_week, int) or not 0 <= day_of_week <= 6:
        raise ValueError(f'Invalid day of week {day_of_week!r} (expected 0-6, Sunday=0).')
    return day_of_week


def day_name(day_of_week: int) -> str:
    return DAY_NAMES[validate_day_of_week(day_of_week)]


def time_slot_display(label: str) -> str:
    return TIME_SLOT_DISPLAY.get(label, label)


class WeekdayDates:
    """Every date in ``[start, end)`` that falls on ``day_of_week``.

    Iterating computes the dates on demand, and each new iteration starts
    over from the beginning of the window.
    """

    def __init__(self, day_of_week: int, start: date, end: date):
        self.day_of_week = validate_day_of_week(day_of_week)
        self.start = start
        self.end = end

    def _offset(self) -> int:
        return (self.day_of_week - to_day_of_week(self.start)) % DAYS_PER_WEEK

    def first(self) -> date:
        return self.start + timedelta(days=self._offset())

    def __iter__(self) -> Iterator[date]:
        # Never step past the window end, which may be date.max.
        if (self.end - self.start).days <= self._offset():
            return
        current = self.first()
        step = timedelta(days=DAYS_PER_WEEK)
        while True:
            yield current
            if (self.end - current).days <= DAYS_PER_WEEK:
                return
            current += step

    def __len__(self) -> int:
        remaining = (self.end - self.start).days - self._offset()
        if remaining <= 0:
            return 0
        return (remaining - 1) // DAYS_PER_WEEK + 1

    def __contains__(self, value: object) -> bool:
        return (
            isinstance(value, date)
            and self.start <= value < self.end
            and to_day_of_week(value) == self.day_of_week
        )

    def __repr__(self) -> str:
        return f'WeekdayDates(day_of_week={self.day_of_week}, start={self.start}, end={self.end})'


def materialize_dates(day_of_week: int, start: date, end: date) -> WeekdayDates:
    return WeekdayDates(day_of_week, start, end)


def booking_horizon(today: date, days: int) -> tuple[date, date]:
    return today, today + timedelta(days=days)


def week_index(window_start: date, value: date) -> int:
    return (value - window_start).days // DAYS_PER_WEEK


def week_label(index: int) -> str:
    if 0 <= index < len(WEEK_LABELS):
        return WEEK_LABELS[index]
    return f'Week {index + 1}'


def partition_into_weeks(window_start: date, dates: Iterable[date], weeks: int = 4) -> list[list[date]]:
    """Split dates into consecutive 7-day buckets counted from ``window_start``.

    Dates before the window or beyond the last bucket are left out.
    """
    buckets: list[list[date]] = [[] for _ in range(weeks)]
    for value in sorted(dates):
        index = week_index(window_start, value)
        if 0 <= index < weeks:
            buckets[index].append(value)
    return buckets
