"""
Booking and Segment API Endpoints

GET    /api/v1/bookings                 - Bookings with nested segments
GET    /api/v1/bookings/{id}            - Single booking
POST   /api/v1/bookings                 - Register a booking
PUT    /api/v1/bookings/{id}/status     - Lifecycle change (cancel frees kennels)
POST   /api/v1/bookings/{id}/segments   - Assign the booking to a kennel
PUT    /api/v1/segments/{id}            - Move a segment (kennel and/or dates)
DELETE /api/v1/segments/{id}            - Unassign a segment
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query

from app.api.schemas import (
    BookingCreateRequest,
    BookingOut,
    BookingStatusRequest,
    Envelope,
    ErrorPayload,
    SegmentOut,
    SegmentPlacementRequest,
    envelope,
)
from app.services.assignment_service import AssignmentService, get_assignment_service
from app.services.booking_store import BookingSegmentStore, get_booking_store
from app.services.reassignment_service import ReassignmentService, get_reassignment_service

router = APIRouter(prefix="/api/v1/bookings", tags=["bookings"])
segments_router = APIRouter(prefix="/api/v1/segments", tags=["segments"])

ERROR_RESPONSES = {
    404: {"model": ErrorPayload},
    409: {"model": ErrorPayload},
    422: {"model": ErrorPayload},
}


@router.get("", response_model=Envelope[List[BookingOut]])
async def list_bookings(
    status: Optional[str] = Query(None, description="Only bookings in this status"),
    store: BookingSegmentStore = Depends(get_booking_store),
):
    bookings = await store.list_bookings(status=status)
    return envelope(bookings, count=len(bookings))


@router.get("/{booking_id}", response_model=Envelope[BookingOut], responses=ERROR_RESPONSES)
async def get_booking(
    booking_id: str = Path(..., description="Booking id"),
    store: BookingSegmentStore = Depends(get_booking_store),
):
    return envelope(await store.get_booking(booking_id))


@router.post("", response_model=Envelope[BookingOut], status_code=201, responses=ERROR_RESPONSES)
async def create_booking(
    request: BookingCreateRequest,
    store: BookingSegmentStore = Depends(get_booking_store),
):
    booking = await store.create_booking(
        status=request.status,
        pet_name=request.pet_name,
        owner_name=request.owner_name,
        booking_id=request.id,
    )
    return envelope(booking)


@router.put("/{booking_id}/status", response_model=Envelope[BookingOut], responses=ERROR_RESPONSES)
async def set_booking_status(
    request: BookingStatusRequest,
    booking_id: str = Path(..., description="Booking id"),
    store: BookingSegmentStore = Depends(get_booking_store),
):
    return envelope(await store.set_status(booking_id, request.status))


@router.post(
    "/{booking_id}/segments",
    response_model=Envelope[SegmentOut],
    status_code=201,
    responses=ERROR_RESPONSES,
)
async def assign_kennel(
    request: SegmentPlacementRequest,
    booking_id: str = Path(..., description="Booking id"),
    service: AssignmentService = Depends(get_assignment_service),
):
    """
    Assign a booking to a kennel for a date range.

    Not safe to blindly retry unless ``operationId`` is supplied; a retry
    with the same id returns the segment created the first time.
    """
    segment = await service.assign(
        booking_id,
        request.kennel_id,
        request.start_date,
        request.end_date,
        operation_id=request.operation_id,
    )
    return envelope(segment)


@segments_router.put("/{segment_id}", response_model=Envelope[SegmentOut], responses=ERROR_RESPONSES)
async def reassign_kennel(
    request: SegmentPlacementRequest,
    segment_id: str = Path(..., description="Segment id"),
    service: ReassignmentService = Depends(get_reassignment_service),
):
    """Move a segment; re-sending the current placement is a no-op."""
    segment = await service.move(
        segment_id,
        request.kennel_id,
        request.start_date,
        request.end_date,
        operation_id=request.operation_id,
    )
    return envelope(segment)


@segments_router.delete("/{segment_id}", response_model=Envelope[SegmentOut], responses=ERROR_RESPONSES)
async def unassign_segment(
    segment_id: str = Path(..., description="Segment id"),
    service: AssignmentService = Depends(get_assignment_service),
):
    return envelope(await service.unassign(segment_id))
