"""
Kennel Aggregation View

Roll-ups of kennel occupancy for the facility board: location groups
(building + floor), kennel-type breakdown, facility totals, and the
kennel-by-day utilization heatmap. All functions are pure and return groups
in a deterministic order so identical input renders identically.
"""
from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from app.services.errors import ValidationError
from app.services.occupancy_calculator import (
    SegmentIndex,
    daterange,
    utilization_bucket,
    utilization_percent,
    validate_range,
)

STATUS_FILTERS = ("ALL", "ACTIVE", "INACTIVE")


def _rollup(kennels: Sequence[Any], occupied_by_kennel: Mapping[str, int]) -> Dict[str, Any]:
    capacity = sum(kennel.capacity for kennel in kennels)
    occupied = sum(occupied_by_kennel.get(kennel.id, 0) for kennel in kennels)
    percent = utilization_percent(occupied, capacity)
    return {
        "total": len(kennels),
        "capacity": capacity,
        "occupied": occupied,
        "available": max(capacity - occupied, 0),
        "utilization_percent": percent,
        "bucket": utilization_bucket(percent),
    }


def _by_name(kennel: Any):
    return ((kennel.name or "").lower(), kennel.id)


def group_by_location(
    kennels: Iterable[Any],
    occupied_by_kennel: Optional[Mapping[str, int]] = None,
) -> List[Dict[str, Any]]:
    """
    Group kennels by (building, floor) and total each group.

    Args:
        kennels: Kennel records; missing building/floor fall back to
            "General" / "Main Floor"
        occupied_by_kennel: Occupied count per kennel id at the queried date

    Returns:
        Groups sorted by building then floor, each with building, floor, key,
        total, capacity, occupied, available, utilization_percent, bucket and
        the member kennel ids sorted by name
    """
    occupied_by_kennel = occupied_by_kennel or {}
    groups: Dict[tuple, List[Any]] = {}
    for kennel in kennels:
        groups.setdefault((kennel.location_building, kennel.location_floor), []).append(kennel)

    result = []
    for (building, floor), members in sorted(groups.items(), key=lambda item: item[0]):
        members.sort(key=_by_name)
        entry = {"building": building, "floor": floor, "key": f"{building} - {floor}"}
        entry.update(_rollup(members, occupied_by_kennel))
        entry["kennel_ids"] = [kennel.id for kennel in members]
        result.append(entry)
    return result


def type_breakdown(
    kennels: Iterable[Any],
    occupied_by_kennel: Optional[Mapping[str, int]] = None,
) -> List[Dict[str, Any]]:
    """Capacity and occupancy per kennel type, sorted by type."""
    occupied_by_kennel = occupied_by_kennel or {}
    groups: Dict[str, List[Any]] = {}
    for kennel in kennels:
        groups.setdefault(kennel.kennel_type or "KENNEL", []).append(kennel)

    result = []
    for kennel_type in sorted(groups):
        entry = {"kennel_type": kennel_type}
        entry.update(_rollup(groups[kennel_type], occupied_by_kennel))
        result.append(entry)
    return result


def facility_summary(
    kennels: Sequence[Any],
    occupied_by_kennel: Optional[Mapping[str, int]] = None,
) -> Dict[str, Any]:
    """Facility-wide totals across every kennel passed in."""
    occupied_by_kennel = occupied_by_kennel or {}
    rollup = _rollup(kennels, occupied_by_kennel)
    return {
        "total_capacity": rollup["capacity"],
        "total_occupied": rollup["occupied"],
        "total_available": rollup["available"],
        "overall_utilization_percent": rollup["utilization_percent"],
        "bucket": rollup["bucket"],
        "total_kennels": len(kennels),
        "active_kennels": sum(1 for kennel in kennels if kennel.is_active),
        "buildings": len({kennel.location_building for kennel in kennels}),
    }


def heatmap(
    kennels: Iterable[Any],
    segments: Any,
    range_start: date,
    range_end: date,
) -> List[Dict[str, Any]]:
    """
    Kennel-by-day utilization grid.

    Rows are ordered by building, floor, then kennel name; each row carries
    one cell per day with occupied, utilization_percent and bucket.
    """
    validate_range(range_start, range_end)
    index = segments if isinstance(segments, SegmentIndex) else SegmentIndex(segments)
    days = list(daterange(range_start, range_end))

    ordered = sorted(
        kennels,
        key=lambda kennel: (kennel.location_building, kennel.location_floor) + _by_name(kennel),
    )
    rows = []
    for kennel in ordered:
        counts = index.daily_counts(kennel.id, range_start, range_end)
        cells = []
        for day, occupied in zip(days, counts):
            percent = utilization_percent(occupied, kennel.capacity)
            cells.append({
                "date": day,
                "occupied": occupied,
                "utilization_percent": percent,
                "bucket": utilization_bucket(percent),
            })
        rows.append({
            "kennel_id": kennel.id,
            "name": kennel.name,
            "building": kennel.location_building,
            "floor": kennel.location_floor,
            "capacity": kennel.capacity,
            "is_active": kennel.is_active,
            "cells": cells,
        })
    return rows


def filter_kennels(
    kennels: Iterable[Any],
    search: Optional[str] = None,
    status: str = "ALL",
    kennel_type: Optional[str] = None,
) -> List[Any]:
    """
    Board filters: case-insensitive search on name or building, active
    status, and kennel type ("ALL" or None disables a filter).
    """
    status = (status or "ALL").upper()
    if status not in STATUS_FILTERS:
        raise ValidationError(f"Invalid status filter: {status}. Must be one of: {STATUS_FILTERS}")
    term = (search or "").strip().lower()
    wanted_type = (kennel_type or "ALL").upper()

    matched = []
    for kennel in kennels:
        if term and term not in (kennel.name or "").lower() and term not in (kennel.building or "").lower():
            continue
        if status == "ACTIVE" and not kennel.is_active:
            continue
        if status == "INACTIVE" and kennel.is_active:
            continue
        if wanted_type != "ALL" and (kennel.kennel_type or "KENNEL").upper() != wanted_type:
            continue
        matched.append(kennel)
    return matched
