"""
Pydantic request/response models shared by the kennel board routes.

JSON keys are camelCase on the wire; services keep working with snake_case
dicts, which validate into these models by field name.
"""
import datetime as dt
from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Envelope(CamelModel, Generic[T]):
    """Standard response wrapper"""
    data: T
    metadata: Dict[str, Any] = Field(default_factory=dict)


def envelope(data: Any, **metadata: Any) -> Dict[str, Any]:
    metadata.setdefault("timestamp", dt.datetime.now(dt.timezone.utc).isoformat())
    return {"data": data, "metadata": metadata}


class ErrorPayload(BaseModel):
    """Error body returned for every rejected command"""
    errorKind: str
    message: str


# Response models


class SegmentOut(CamelModel):
    id: str
    booking_id: str
    kennel_id: str
    start_date: dt.date
    end_date: dt.date
    pet_name: Optional[str] = None
    owner_name: Optional[str] = None
    booking_status: Optional[str] = None


class KennelOut(CamelModel):
    id: str
    name: str
    capacity: int = Field(..., ge=1)
    building: str
    floor: str
    kennel_type: str
    size: Optional[str] = None
    special_handling: bool
    amenities: List[str]
    notes: Optional[str] = None
    is_active: bool
    archived: bool


class KennelCardOut(KennelOut):
    occupied: int = Field(..., ge=0)
    available: int = Field(..., ge=0)
    utilization_percent: int = Field(..., ge=0)
    status: str = Field(..., pattern="^(inactive|full|partial|reserved|available)$")


class KennelDeleteOut(CamelModel):
    kennel_id: str
    outcome: str
    segments_moved: int


class BookingOut(CamelModel):
    id: str
    status: str
    pet_name: Optional[str] = None
    owner_name: Optional[str] = None
    segments: List[SegmentOut]


class DaySnapshotOut(CamelModel):
    kennel_id: str
    date: dt.date
    capacity: int
    occupied: int
    available: int
    utilization_percent: int
    bucket: str


class KennelOccupancyOut(CamelModel):
    kennel_id: str
    name: str
    capacity: int
    is_active: bool
    occupied: int
    available: int
    utilization_percent: int
    bucket: str
    days: List[DaySnapshotOut]
    active_segments: List[SegmentOut]


class OccupancySummaryOut(CamelModel):
    total_capacity: int
    total_occupied: int
    total_available: int
    overall_utilization_percent: int
    bucket: str


class DateRangeOut(CamelModel):
    start: dt.date
    end: dt.date


class OccupancyOut(CamelModel):
    range: DateRangeOut
    kennels: List[KennelOccupancyOut]
    summary: OccupancySummaryOut


class LocationGroupOut(CamelModel):
    building: str
    floor: str
    key: str
    total: int
    capacity: int
    occupied: int
    available: int
    utilization_percent: int
    bucket: str
    kennel_ids: List[str]


class FacilitySummaryOut(OccupancySummaryOut):
    total_kennels: int
    active_kennels: int
    buildings: int


class LocationsOut(CamelModel):
    date: dt.date
    groups: List[LocationGroupOut]
    summary: FacilitySummaryOut


class TypeGroupOut(CamelModel):
    kennel_type: str
    total: int
    capacity: int
    occupied: int
    available: int
    utilization_percent: int
    bucket: str


class TypesOut(CamelModel):
    date: dt.date
    types: List[TypeGroupOut]


class HeatmapCellOut(CamelModel):
    date: dt.date
    occupied: int
    utilization_percent: int
    bucket: str


class HeatmapRowOut(CamelModel):
    kennel_id: str
    name: str
    building: str
    floor: str
    capacity: int
    is_active: bool
    cells: List[HeatmapCellOut]


class HeatmapOut(CamelModel):
    range: DateRangeOut
    rows: List[HeatmapRowOut]


# Request models


class KennelCreateRequest(CamelModel):
    id: Optional[str] = Field(None, max_length=36)
    name: str = Field(..., min_length=1, max_length=120)
    capacity: int = Field(1, ge=1)
    building: Optional[str] = None
    floor: Optional[str] = None
    kennel_type: str = "KENNEL"
    size: Optional[str] = None
    special_handling: bool = False
    amenities: List[str] = Field(default_factory=list)
    notes: Optional[str] = None
    is_active: bool = True


class KennelUpdateRequest(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    capacity: Optional[int] = Field(None, ge=1)
    building: Optional[str] = None
    floor: Optional[str] = None
    kennel_type: Optional[str] = None
    size: Optional[str] = None
    special_handling: Optional[bool] = None
    amenities: Optional[List[str]] = None
    notes: Optional[str] = None


class KennelActiveRequest(CamelModel):
    is_active: bool


class BookingCreateRequest(CamelModel):
    id: Optional[str] = Field(None, max_length=36)
    status: str = "PENDING"
    pet_name: Optional[str] = None
    owner_name: Optional[str] = None


class BookingStatusRequest(CamelModel):
    status: str


class SegmentPlacementRequest(CamelModel):
    """Target kennel and dates for assign or move"""
    kennel_id: str
    start_date: dt.date
    end_date: dt.date
    operation_id: Optional[str] = Field(None, max_length=100)
