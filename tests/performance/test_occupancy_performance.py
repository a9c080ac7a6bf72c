"""Performance tests for occupancy queries"""
import pytest
import random
import time
from datetime import date, timedelta

from app.models import Booking, Kennel, Segment
from app.models.booking import CONFIRMED
from app.services import aggregation_view
from app.services.occupancy_calculator import INCLUSIVE, DayPolicy, SegmentIndex, occupancy

pytestmark = pytest.mark.performance

SEASON_START = date(2024, 1, 1)


def build_facility(kennel_count=200, stays_per_kennel=150, seed=42):
    """A year of back-to-back stays across a large facility"""
    rng = random.Random(seed)
    kennels = [
        Kennel(id=f"k{i}", name=f"Kennel {i}", capacity=rng.choice([1, 1, 2, 4]), building=f"B{i % 5}")
        for i in range(kennel_count)
    ]
    segments = []
    for kennel in kennels:
        cursor = SEASON_START
        for _ in range(stays_per_kennel):
            length = rng.randint(0, 3)
            booking = Booking(status=CONFIRMED)
            segments.append(Segment(
                kennel_id=kennel.id,
                start_date=cursor,
                end_date=cursor + timedelta(days=length),
                booking=booking,
            ))
            cursor += timedelta(days=length + 1)
    return kennels, segments


def test_week_view_over_large_history():
    """One-week board over 30k segments renders in well under a second"""
    kennels, segments = build_facility()
    index = SegmentIndex(segments, DayPolicy(INCLUSIVE))

    start = time.time()
    snapshots = occupancy(kennels, index, date(2024, 6, 1), date(2024, 6, 7))
    duration_ms = (time.time() - start) * 1000

    assert len(snapshots) == len(kennels) * 7
    assert all(s["occupied"] <= 1 for s in snapshots)
    assert duration_ms < 1000, f"Week view took {duration_ms:.0f}ms (expected <1000ms)"


def test_heatmap_uses_index_window():
    """Indexed heatmap matches a brute-force count"""
    kennels, segments = build_facility(kennel_count=20, stays_per_kennel=100)
    index = SegmentIndex(segments, DayPolicy(INCLUSIVE))
    first, last = date(2024, 3, 1), date(2024, 3, 14)

    rows = aggregation_view.heatmap(kennels, index, first, last)

    for row in rows:
        for offset, cell in enumerate(row["cells"]):
            today = first + timedelta(days=offset)
            expected = sum(
                1 for s in segments
                if s.kennel_id == row["kennel_id"] and s.start_date <= today <= s.end_date
            )
            assert cell["occupied"] == expected
