"""
Time intervals (epochs) used to fibrate cred over time.

An interval is half-open: ``[start_time_ms, end_time_ms)``. An interval sequence is
strictly ascending and non-overlapping; gaps are allowed but a timestamp inside a gap
does not belong to any interval.

Examples:
    >>> from credgrain.core.interval import Interval, interval_sequence, find_interval_index
    >>> seq = interval_sequence([Interval(0, 2), Interval(2, 4)])
    >>> find_interval_index(seq, 3)
    1
    >>> find_interval_index(seq, 4) is None
    True
"""

from __future__ import annotations

import bisect
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

from .constants import WEEK_MS
from .errors import ConfigError

__all__ = [
    "Interval",
    "IntervalSequence",
    "interval_sequence",
    "find_interval_index",
    "week_intervals",
]


@dataclass(frozen=True, order=True, slots=True)
class Interval:
    """
    Half-open time interval in epoch milliseconds.

    Attributes:
        start_time_ms (int): Inclusive start.
        end_time_ms (int): Exclusive end; must be greater than the start.

    Raises:
        ConfigError: If end_time_ms <= start_time_ms.
    """

    start_time_ms: int
    end_time_ms: int

    def __post_init__(self) -> None:
        if self.end_time_ms <= self.start_time_ms:
            raise ConfigError(
                f"interval end must be after start, got [{self.start_time_ms}, {self.end_time_ms})"
            )

    def contains(self, timestamp_ms: int) -> bool:
        return self.start_time_ms <= timestamp_ms < self.end_time_ms


IntervalSequence = tuple[Interval, ...]


def _coerce(item: Interval | Mapping[str, Any]) -> Interval:
    if isinstance(item, Interval):
        return item
    if isinstance(item, Mapping):
        start = item.get("start_time_ms", item.get("startTimeMs"))
        end = item.get("end_time_ms", item.get("endTimeMs"))
        if start is None or end is None:
            raise ConfigError(f"interval mapping needs start/end times, got {dict(item)!r}")
        return Interval(int(start), int(end))
    raise ConfigError(f"cannot interpret {item!r} as an interval")


def interval_sequence(items: Iterable[Interval | Mapping[str, Any]]) -> IntervalSequence:
    """
    Validate and freeze an interval sequence.

    Args:
        items: Intervals, or mappings with ``start_time_ms``/``end_time_ms`` (camelCase
            ``startTimeMs``/``endTimeMs`` is accepted too).

    Returns:
        IntervalSequence: Immutable tuple of intervals.

    Raises:
        ConfigError: If the intervals are not strictly ascending and non-overlapping.
    """
    seq = tuple(_coerce(i) for i in items)
    for prev, cur in zip(seq, seq[1:]):
        if cur.start_time_ms < prev.end_time_ms:
            raise ConfigError(
                "intervals must be strictly ascending and non-overlapping: "
                f"[{prev.start_time_ms}, {prev.end_time_ms}) then "
                f"[{cur.start_time_ms}, {cur.end_time_ms})"
            )
    return seq


def find_interval_index(
    intervals: Sequence[Interval],
    timestamp_ms: int,
    *,
    starts: Sequence[int] | None = None,
) -> int | None:
    """
    Return the index of the interval containing ``timestamp_ms``, or None.

    Callers looking up many timestamps pass ``starts`` (the intervals' start times, in
    order) so it is not rebuilt per call.
    """
    if starts is None:
        starts = [i.start_time_ms for i in intervals]
    pos = bisect.bisect_right(starts, timestamp_ms) - 1
    if pos < 0 or not intervals[pos].contains(timestamp_ms):
        return None
    return pos


def _week_start_ms(timestamp_ms: int) -> int:
    # Weeks start on Sunday 00:00 UTC.
    dt = datetime.fromtimestamp(timestamp_ms / 1000, tz=UTC)
    day_start = dt.replace(hour=0, minute=0, second=0, microsecond=0)
    days_since_sunday = (day_start.weekday() + 1) % 7
    sunday = day_start - timedelta(days=days_since_sunday)
    return int(sunday.timestamp() * 1000)


def week_intervals(start_ms: int, end_ms: int) -> IntervalSequence:
    """
    Build contiguous UTC-week intervals covering ``[start_ms, end_ms]``.

    Args:
        start_ms (int): Earliest timestamp that must be covered.
        end_ms (int): Latest timestamp that must be covered (inclusive).

    Returns:
        IntervalSequence: Week-aligned intervals; the first starts on the Sunday at or
        before ``start_ms`` and the last contains ``end_ms``.

    Raises:
        ConfigError: If end_ms < start_ms.

    Examples:
        >>> seq = week_intervals(0, 0)  # 1970-01-01 was a Thursday
        >>> seq[0].start_time_ms == -4 * 24 * 3600 * 1000
        True
    """
    if end_ms < start_ms:
        raise ConfigError(f"end_ms ({end_ms}) must not precede start_ms ({start_ms})")
    out: list[Interval] = []
    cursor = _week_start_ms(start_ms)
    while cursor <= end_ms:
        out.append(Interval(cursor, cursor + WEEK_MS))
        cursor += WEEK_MS
    return tuple(out)
