"""Date, time and rotation utilities.

Time-of-day model:
  - Times are "HH:MM" strings on a 24-hour clock, parsed to milliseconds
    since midnight (0 <= ms < 86_400_000).
  - A shift whose end time is at or before its start time ends on the
    following calendar day (19:00-05:00, or 07:00-07:00 for a 24h shift).

Rotation model:
  - A pattern of daysOn/daysOff repeats every (daysOn + daysOff) days,
    anchored at the binding's rotationStartDate.
  - position = (date - rotationStartDate).days mod cycle
  - The date is a working day when position < daysOn.

Examples:
  4-on/3-off anchored 2024-01-01, window 01-01..01-07 → 01-01..01-04
  same rotation, window 01-03..01-09                 → 01-03, 01-04
  "19:00" → 68_400_000 ms → "19:00"
"""

import re
from collections import defaultdict
from datetime import date, datetime, time, timedelta
from typing import Dict, Iterable, List, Tuple, Union

from roster.models import TimeFormatError

MS_PER_MINUTE = 60 * 1000
MS_PER_HOUR = 60 * MS_PER_MINUTE
MS_PER_DAY = 24 * MS_PER_HOUR

TIME_PATTERN = re.compile(r'^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$')

DateLike = Union[date, datetime, str]


def parse_time_to_ms(time_str: str) -> int:
    """
    Parse an "HH:MM" string into milliseconds since midnight.

    Args:
        time_str: 24-hour time, hour may be unpadded ("7:30")

    Returns:
        Milliseconds since midnight

    Raises:
        TimeFormatError: when the string is not a valid HH:MM time

    Examples:
        "00:00" → 0
        "09:30" → 34_200_000
        "24:00" → TimeFormatError
    """
    if not isinstance(time_str, str) or not TIME_PATTERN.match(time_str):
        raise TimeFormatError(f"Invalid time format: {time_str!r}. Expected HH:MM")
    hours, minutes = time_str.split(':')
    return int(hours) * MS_PER_HOUR + int(minutes) * MS_PER_MINUTE


def format_ms_to_time(ms: int) -> str:
    """
    Format milliseconds since midnight as a zero-padded "HH:MM" string.

    Raises:
        TimeFormatError: when ms is outside [0, 86_400_000)

    Examples:
        0 → "00:00"
        68_400_000 → "19:00"
    """
    if not isinstance(ms, (int, float)) or ms < 0 or ms >= MS_PER_DAY:
        raise TimeFormatError(f"Invalid milliseconds value: {ms}")
    ms = int(ms)
    hours = ms // MS_PER_HOUR
    minutes = (ms % MS_PER_HOUR) // MS_PER_MINUTE
    return f"{hours:02d}:{minutes:02d}"


def do_time_ranges_overlap(start1: str, end1: str, start2: str, end2: str) -> bool:
    """
    Check whether two same-day time ranges overlap.

    Ranges are compared as plain time-of-day intervals with no midnight
    wraparound. Touching ranges count as overlapping.

    Examples:
        09:00-17:00 vs 12:00-20:00 → True
        09:00-17:00 vs 17:00-20:00 → True
        09:00-17:00 vs 17:01-20:00 → False
    """
    s1 = parse_time_to_ms(start1)
    e1 = parse_time_to_ms(end1)
    s2 = parse_time_to_ms(start2)
    e2 = parse_time_to_ms(end2)
    return s1 <= e2 and e1 >= s2


def _time_intervals(start: str, end: str) -> List[Tuple[int, int]]:
    # Split a wrapping time-of-day range into its same-day pieces.
    s = parse_time_to_ms(start)
    e = parse_time_to_ms(end)
    if e > s:
        return [(s, e)]
    return [(s, MS_PER_DAY), (0, e)]


def do_windows_overlap(start1: str, end1: str, start2: str, end2: str, inclusive: bool = True) -> bool:
    """
    Time-of-day overlap that understands midnight wraparound.

    A range whose end is at or before its start is treated as running
    through midnight. Touching ranges overlap, as in do_time_ranges_overlap,
    unless inclusive is False.

    Examples:
        19:00-05:00 vs 00:00-06:00 → True
        19:00-05:00 vs 06:00-18:00 → False
        07:00-19:00 vs 19:00-07:00 → True (False with inclusive=False)
    """
    for s1, e1 in _time_intervals(start1, end1):
        for s2, e2 in _time_intervals(start2, end2):
            if inclusive and s1 <= e2 and e1 >= s2:
                return True
            if not inclusive and s1 < e2 and e1 > s2:
                return True
    return False


def to_date(value: DateLike) -> date:
    """Coerce a date, datetime or ISO 'YYYY-MM-DD' string to a date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def combine_date_time(day: DateLike, time_str: str) -> datetime:
    """Instant at time_str on the given calendar day."""
    ms = parse_time_to_ms(time_str)
    return datetime.combine(to_date(day), time.min) + timedelta(milliseconds=ms)


def shift_window(day: DateLike, start_time: str, end_time: str) -> Tuple[datetime, datetime]:
    """
    True start/end instants of a shift starting on `day`.

    The end rolls to the next day when end_time <= start_time.

    Examples:
        2024-01-01, 19:00-05:00 → (01-01 19:00, 01-02 05:00)
        2024-01-01, 07:00-07:00 → (01-01 07:00, 01-02 07:00)
    """
    start_dt = combine_date_time(day, start_time)
    end_dt = combine_date_time(day, end_time)
    if end_dt <= start_dt:
        end_dt += timedelta(days=1)
    return start_dt, end_dt


def get_dates_between(start: DateLike, end: DateLike) -> List[date]:
    """Inclusive list of dates from start to end (empty when end < start)."""
    current = to_date(start)
    last = to_date(end)
    dates = []
    while current <= last:
        dates.append(current)
        current += timedelta(days=1)
    return dates


def is_date_in_range(day: DateLike, start: DateLike, end: DateLike) -> bool:
    return to_date(start) <= to_date(day) <= to_date(end)


def calculate_working_days(
    start: DateLike,
    end: DateLike,
    rotation_start: DateLike,
    days_on: int,
    days_off: int
) -> List[date]:
    """
    Working days of a rotation inside the inclusive window [start, end].

    Args:
        start: First date of the window
        end: Last date of the window
        rotation_start: Anchor date of the on/off cycle
        days_on: Working days per cycle
        days_off: Rest days per cycle

    Returns:
        Ascending list of working dates

    Examples:
        01-01..01-07, anchor 01-01, 4/3 → [01-01, 01-02, 01-03, 01-04]
        01-03..01-09, anchor 01-01, 4/3 → [01-03, 01-04]
    """
    cycle = days_on + days_off
    if cycle <= 0:
        return []

    anchor = to_date(rotation_start)
    working = []
    for day in get_dates_between(start, end):
        # Python modulo keeps the phase non-negative before the anchor.
        position = (day - anchor).days % cycle
        if position < days_on:
            working.append(day)
    return working


def get_consecutive_working_days(dates: Iterable[DateLike]) -> int:
    """
    Length of the longest run of consecutive calendar dates.

    Duplicates collapse; an empty input yields 0.

    Examples:
        [01-01, 01-02, 01-03, 01-05] → 3
        [] → 0
    """
    unique = sorted({to_date(d) for d in dates})
    if not unique:
        return 0

    longest = 1
    current = 1
    for previous, day in zip(unique, unique[1:]):
        if (day - previous).days == 1:
            current += 1
            longest = max(longest, current)
        else:
            current = 1
    return longest


def get_week_start(day: DateLike) -> date:
    """Sunday starting the week that contains `day`."""
    d = to_date(day)
    # weekday(): Monday=0 .. Sunday=6
    return d - timedelta(days=(d.weekday() + 1) % 7)


def group_dates_by_week(dates: Iterable[DateLike]) -> Dict[str, List[date]]:
    """
    Group dates by the Sunday that starts their week.

    Returns:
        Mapping of ISO Sunday date → dates in input order

    Examples:
        [2024-01-06 (Sat), 2024-01-07 (Sun)] → {"2023-12-31": [01-06], "2024-01-07": [01-07]}
    """
    groups: Dict[str, List[date]] = defaultdict(list)
    for d in dates:
        day = to_date(d)
        groups[get_week_start(day).isoformat()].append(day)
    return dict(groups)


def get_hours_between(start: datetime, end: datetime) -> float:
    """Signed hours from start to end."""
    return (end - start).total_seconds() / 3600.0


def get_next_date_with_time(day: DateLike, time_str: str) -> datetime:
    """Instant at time_str on the calendar day after `day`."""
    return combine_date_time(to_date(day) + timedelta(days=1), time_str)


def is_weekend(day: DateLike) -> bool:
    return to_date(day).weekday() >= 5


def get_week_number(day: DateLike) -> int:
    """ISO week number."""
    return to_date(day).isocalendar()[1]
