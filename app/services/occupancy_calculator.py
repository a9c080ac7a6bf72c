"""
Kennel Occupancy Calculator

Derives per-kennel, per-day occupied/available counts, utilization percentages
and heatmap buckets from booking segments. Nothing here touches the database:
callers hand in kennels and segments (ORM instances or anything with the same
attributes) and get plain dicts back.

Segments are indexed per kennel in start-date order, so a range query only
visits segments that can actually overlap the range instead of rescanning
every booking on each refresh.
"""
from bisect import bisect_left, bisect_right
from collections import defaultdict
from datetime import date, timedelta
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from app import config
from app.services.errors import ValidationError

INCLUSIVE = "inclusive"
SAME_DAY_TURNOVER = "same_day_turnover"

# Heatmap buckets, half-open so every percentage maps to exactly one bucket
BUCKET_EMPTY = "empty"
BUCKET_LOW = "low"
BUCKET_MEDIUM = "medium"
BUCKET_HIGH = "high"
BUCKET_FULL = "full"


class DayPolicy:
    """
    Decides which calendar days a segment occupies.

    ``inclusive``: every day from start through end, checkout day included.
    ``same_day_turnover``: start up to (not including) end, so a pet leaving
    on day D and another arriving on day D can share a single-capacity
    kennel. A single-day stay (start == end) still occupies its day.
    """

    def __init__(self, name: str = INCLUSIVE):
        if name not in (INCLUSIVE, SAME_DAY_TURNOVER):
            raise ValueError(
                f"Invalid turnover policy: {name}. Must be one of: {INCLUSIVE}, {SAME_DAY_TURNOVER}"
            )
        self.name = name

    def covered_days(self, start: date, end: date) -> Tuple[date, date]:
        """Return the first and last occupied day (inclusive) for a stay."""
        if self.name == SAME_DAY_TURNOVER and end > start:
            return start, end - timedelta(days=1)
        return start, end

    def covers(self, start: date, end: date, day: date) -> bool:
        first, last = self.covered_days(start, end)
        return first <= day <= last

    def overlaps(self, a_start: date, a_end: date, b_start: date, b_end: date) -> bool:
        a_first, a_last = self.covered_days(a_start, a_end)
        b_first, b_last = self.covered_days(b_start, b_end)
        return a_first <= b_last and b_first <= a_last

    def __repr__(self):
        return f"<DayPolicy({self.name})>"


def get_day_policy(name: Optional[str] = None) -> DayPolicy:
    return DayPolicy(name or config.TURNOVER_POLICY)


def validate_range(start: date, end: date) -> None:
    if start is None or end is None:
        raise ValidationError("Both start and end dates are required")
    if start > end:
        raise ValidationError(f"Invalid date range: start {start} is after end {end}")


def daterange(start: date, end: date) -> Iterator[date]:
    """Yield every day from start through end inclusive."""
    for offset in range((end - start).days + 1):
        yield start + timedelta(days=offset)


def utilization_percent(occupied: int, capacity: int) -> int:
    """
    Occupancy as a whole percentage of capacity, rounded half up.

    Not capped at 100: an over-capacity kennel is an anomaly worth seeing.
    """
    if capacity <= 0:
        return 0
    return (occupied * 200 + capacity) // (2 * capacity)


def utilization_bucket(percent: float) -> str:
    """Map a utilization percentage to its heatmap bucket."""
    if percent <= 0:
        return BUCKET_EMPTY
    elif percent < 50:
        return BUCKET_LOW
    elif percent < 80:
        return BUCKET_MEDIUM
    elif percent < 100:
        return BUCKET_HIGH
    else:
        return BUCKET_FULL


def kennel_status(kennel: Any, occupied: int, has_future: bool = False) -> str:
    """
    Display status for a kennel card.

    Returns one of: inactive, full, partial, reserved, available.
    """
    if not kennel.is_active:
        return "inactive"
    if occupied >= kennel.capacity:
        return "full"
    if occupied > 0:
        return "partial"
    if has_future:
        return "reserved"
    return "available"


def serialize_segment(segment: Any) -> Dict[str, Any]:
    booking = getattr(segment, "booking", None)
    return {
        "id": segment.id,
        "booking_id": segment.booking_id,
        "kennel_id": segment.kennel_id,
        "start_date": segment.start_date,
        "end_date": segment.end_date,
        "pet_name": booking.pet_name if booking is not None else None,
        "owner_name": booking.owner_name if booking is not None else None,
        "booking_status": booking.status if booking is not None else None,
    }


class SegmentIndex:
    """
    Per-kennel index of segments sorted by first occupied day.

    Alongside the sorted start days the index remembers the longest stay on
    each kennel; any segment overlapping [start, end] must begin no earlier
    than ``start - longest_stay``, which bounds the bisect window.
    """

    def __init__(self, segments: Iterable[Any] = (), policy: Optional[DayPolicy] = None):
        self.policy = policy or get_day_policy()
        self._entries: Dict[str, List[Tuple[date, date, str, Any]]] = defaultdict(list)
        self._starts: Dict[str, List[date]] = {}
        self._max_span: Dict[str, int] = defaultdict(int)
        self._size = 0

        for segment in segments:
            first, last = self.policy.covered_days(segment.start_date, segment.end_date)
            self._entries[segment.kennel_id].append((first, last, segment.id, segment))
            span = (last - first).days
            if span > self._max_span[segment.kennel_id]:
                self._max_span[segment.kennel_id] = span
            self._size += 1

        for kennel_id, entries in self._entries.items():
            entries.sort(key=lambda entry: (entry[0], entry[2]))
            self._starts[kennel_id] = [entry[0] for entry in entries]

    def __len__(self) -> int:
        return self._size

    def overlapping(
        self,
        kennel_id: str,
        start: date,
        end: date,
        exclude_segment_id: Optional[str] = None,
        active_only: bool = True,
    ) -> List[Any]:
        """Segments on a kennel whose occupied days intersect [start, end]."""
        entries = self._entries.get(kennel_id)
        if not entries:
            return []

        starts = self._starts[kennel_id]
        lower = bisect_left(starts, start - timedelta(days=self._max_span[kennel_id]))
        upper = bisect_right(starts, end)

        found = []
        for first, last, segment_id, segment in entries[lower:upper]:
            if last < start:
                continue
            if exclude_segment_id is not None and segment_id == exclude_segment_id:
                continue
            if active_only and not segment.is_active:
                continue
            found.append(segment)
        return found

    def has_segments_from(self, kennel_id: str, day: date) -> bool:
        """True if any active segment on the kennel starts on or after ``day``."""
        entries = self._entries.get(kennel_id)
        if not entries:
            return False
        position = bisect_left(self._starts[kennel_id], day)
        return any(entry[3].is_active for entry in entries[position:])

    def daily_counts(
        self,
        kennel_id: str,
        start: date,
        end: date,
        exclude_segment_id: Optional[str] = None,
    ) -> List[int]:
        """Active segment count for each day in [start, end]."""
        return count_by_day(
            self.overlapping(kennel_id, start, end, exclude_segment_id=exclude_segment_id),
            start,
            end,
            self.policy,
        )


def count_by_day(segments: Sequence[Any], start: date, end: date, policy: DayPolicy) -> List[int]:
    """
    Count segments covering each day of [start, end].

    Uses a difference array: O(days + segments).
    """
    days = (end - start).days + 1
    diff = [0] * (days + 1)
    for segment in segments:
        first, last = policy.covered_days(segment.start_date, segment.end_date)
        first = max(first, start)
        last = min(last, end)
        if first > last:
            continue
        diff[(first - start).days] += 1
        diff[(last - start).days + 1] -= 1

    counts = []
    running = 0
    for offset in range(days):
        running += diff[offset]
        counts.append(running)
    return counts


def occupancy(
    kennels: Sequence[Any],
    segments: Iterable[Any],
    range_start: date,
    range_end: date,
    policy: Optional[DayPolicy] = None,
) -> List[Dict[str, Any]]:
    """
    Per-kennel, per-day occupancy snapshots for [range_start, range_end].

    Args:
        kennels: Kennel records (capacity, id)
        segments: Segments of any kennel; inactive ones are ignored
        range_start: First day of the window
        range_end: Last day of the window (inclusive)
        policy: Day-coverage policy, defaults to the configured one

    Returns:
        List of dicts ordered by kennel (input order) then date, each with
        kennel_id, date, capacity, occupied, available, utilization_percent
        and bucket.

    Raises:
        ValidationError: If range_start is after range_end
    """
    validate_range(range_start, range_end)
    index = segments if isinstance(segments, SegmentIndex) else SegmentIndex(segments, policy)

    snapshots = []
    for kennel in kennels:
        counts = index.daily_counts(kennel.id, range_start, range_end)
        for day, occupied in zip(daterange(range_start, range_end), counts):
            snapshots.append(_snapshot(kennel, day, occupied))
    return snapshots


def _snapshot(kennel: Any, day: date, occupied: int) -> Dict[str, Any]:
    percent = utilization_percent(occupied, kennel.capacity)
    return {
        "kennel_id": kennel.id,
        "date": day,
        "capacity": kennel.capacity,
        "occupied": occupied,
        "available": max(kennel.capacity - occupied, 0),
        "utilization_percent": percent,
        "bucket": utilization_bucket(percent),
    }


def kennel_range_occupancy(
    kennel: Any,
    index: SegmentIndex,
    range_start: date,
    range_end: date,
) -> Dict[str, Any]:
    """
    Summarise one kennel over a window.

    ``occupied`` is the peak daily count in the window, so a one-day window
    gives the exact figure for that day.
    """
    validate_range(range_start, range_end)
    active_segments = index.overlapping(kennel.id, range_start, range_end)
    counts = count_by_day(active_segments, range_start, range_end, index.policy)
    days = [
        _snapshot(kennel, day, occupied)
        for day, occupied in zip(daterange(range_start, range_end), counts)
    ]
    peak = max(counts) if counts else 0
    percent = utilization_percent(peak, kennel.capacity)
    return {
        "kennel_id": kennel.id,
        "name": kennel.name,
        "capacity": kennel.capacity,
        "is_active": kennel.is_active,
        "occupied": peak,
        "available": max(kennel.capacity - peak, 0),
        "utilization_percent": percent,
        "bucket": utilization_bucket(percent),
        "days": days,
        "active_segments": [serialize_segment(segment) for segment in active_segments],
    }


def occupied_on(kennels: Sequence[Any], index: SegmentIndex, day: date) -> Dict[str, int]:
    """Occupied count per kennel id for a single day."""
    return {kennel.id: index.daily_counts(kennel.id, day, day)[0] for kennel in kennels}
