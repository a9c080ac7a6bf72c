"""
Kennel Catalog API Endpoints

GET    /api/v1/kennels              - Kennel board for a day (occupancy + status)
GET    /api/v1/kennels/{id}         - Single kennel record
POST   /api/v1/kennels              - Create a kennel
PATCH  /api/v1/kennels/{id}         - Edit kennel attributes
PUT    /api/v1/kennels/{id}/active  - Maintenance toggle
DELETE /api/v1/kennels/{id}         - Delete or archive a kennel
"""
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query

from app.api.schemas import (
    Envelope,
    ErrorPayload,
    KennelActiveRequest,
    KennelCardOut,
    KennelCreateRequest,
    KennelDeleteOut,
    KennelOut,
    KennelUpdateRequest,
    envelope,
)
from app.services.occupancy_service import OccupancyService, get_occupancy_service
from app.services.resource_catalog import ResourceCatalog, get_resource_catalog

router = APIRouter(prefix="/api/v1/kennels", tags=["kennels"])

ERROR_RESPONSES = {
    404: {"model": ErrorPayload},
    409: {"model": ErrorPayload},
    422: {"model": ErrorPayload},
}


@router.get("", response_model=Envelope[List[KennelCardOut]])
async def list_kennels(
    day: Optional[date] = Query(None, alias="date", description="Day to report occupancy for (default today)"),
    search: Optional[str] = Query(None, description="Match on kennel name or building"),
    status: str = Query("ALL", description="ALL, ACTIVE or INACTIVE"),
    kennel_type: Optional[str] = Query(None, alias="type", description="Kennel type filter"),
    service: OccupancyService = Depends(get_occupancy_service),
):
    """
    List kennels with their occupancy for one day.

    Archived kennels are never included.
    """
    day = day or date.today()
    board = await service.kennel_board(day, search=search, status=status, kennel_type=kennel_type)
    return envelope(board, date=day.isoformat(), count=len(board))


@router.get("/{kennel_id}", response_model=Envelope[KennelOut], responses=ERROR_RESPONSES)
async def get_kennel(
    kennel_id: str = Path(..., description="Kennel id"),
    catalog: ResourceCatalog = Depends(get_resource_catalog),
):
    return envelope(await catalog.get_kennel(kennel_id))


@router.post("", response_model=Envelope[KennelOut], status_code=201, responses=ERROR_RESPONSES)
async def create_kennel(
    request: KennelCreateRequest,
    catalog: ResourceCatalog = Depends(get_resource_catalog),
):
    kennel = await catalog.create_kennel(
        name=request.name,
        capacity=request.capacity,
        building=request.building,
        floor=request.floor,
        kennel_type=request.kennel_type,
        size=request.size,
        special_handling=request.special_handling,
        amenities=request.amenities,
        notes=request.notes,
        is_active=request.is_active,
        kennel_id=request.id,
    )
    return envelope(kennel)


@router.patch("/{kennel_id}", response_model=Envelope[KennelOut], responses=ERROR_RESPONSES)
async def update_kennel(
    request: KennelUpdateRequest,
    kennel_id: str = Path(..., description="Kennel id"),
    catalog: ResourceCatalog = Depends(get_resource_catalog),
):
    """Edit attributes; only fields present in the body change."""
    changes = request.model_dump(exclude_unset=True)
    return envelope(await catalog.update_kennel(kennel_id, **changes))


@router.put("/{kennel_id}/active", response_model=Envelope[KennelOut], responses=ERROR_RESPONSES)
async def set_kennel_active(
    request: KennelActiveRequest,
    kennel_id: str = Path(..., description="Kennel id"),
    catalog: ResourceCatalog = Depends(get_resource_catalog),
):
    """
    Maintenance toggle.

    Existing stays are untouched; an inactive kennel only refuses new
    assignments and moves.
    """
    return envelope(await catalog.set_active(kennel_id, request.is_active))


@router.delete("/{kennel_id}", response_model=Envelope[KennelDeleteOut], responses=ERROR_RESPONSES)
async def delete_kennel(
    kennel_id: str = Path(..., description="Kennel id"),
    cascade: Optional[str] = Query(None, description="keep_history or reassign"),
    target_kennel_id: Optional[str] = Query(None, description="Destination kennel for the reassign cascade"),
    catalog: ResourceCatalog = Depends(get_resource_catalog),
):
    """
    Delete a kennel.

    Rejected with GuardError while current or future stays reference it,
    unless ``cascade=reassign`` names a target kennel. Kennels with past
    stays are archived rather than deleted.
    """
    outcome = await catalog.delete_kennel(kennel_id, cascade=cascade, target_kennel_id=target_kennel_id)
    return envelope(outcome)
