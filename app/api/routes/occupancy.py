"""
Occupancy API Endpoints

Read-only views of kennel utilization for the board, the location panels
and the heatmap.
"""
import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.api.schemas import (
    Envelope,
    ErrorPayload,
    HeatmapOut,
    LocationsOut,
    OccupancyOut,
    TypesOut,
    envelope,
)
from app.services.occupancy_service import OccupancyService, get_occupancy_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/occupancy", tags=["occupancy"])


@router.get("", response_model=Envelope[OccupancyOut], responses={422: {"model": ErrorPayload}})
async def get_occupancy(
    start: Optional[date] = Query(None, description="First day of the window (default today)"),
    end: Optional[date] = Query(None, description="Last day of the window (default: start)"),
    service: OccupancyService = Depends(get_occupancy_service),
):
    """
    Occupancy per kennel over a date window.

    Each kennel reports its busiest day as ``occupied`` and the day-by-day
    figures under ``days``. Kennels in maintenance are listed with their
    existing stays but flagged ``isActive: false``.
    """
    result = await service.occupancy(start or date.today(), end)
    return envelope(result, policy=service.policy.name)


@router.get("/locations", response_model=Envelope[LocationsOut])
async def get_locations(
    day: Optional[date] = Query(None, alias="date", description="Day to report (default today)"),
    service: OccupancyService = Depends(get_occupancy_service),
):
    """Kennels grouped by building and floor, with facility totals."""
    return envelope(await service.locations(day or date.today()))


@router.get("/types", response_model=Envelope[TypesOut])
async def get_types(
    day: Optional[date] = Query(None, alias="date", description="Day to report (default today)"),
    service: OccupancyService = Depends(get_occupancy_service),
):
    return envelope(await service.types(day or date.today()))


@router.get("/heatmap", response_model=Envelope[HeatmapOut], responses={422: {"model": ErrorPayload}})
async def get_heatmap(
    start: date = Query(..., description="First day of the grid"),
    end: date = Query(..., description="Last day of the grid"),
    service: OccupancyService = Depends(get_occupancy_service),
):
    result = await service.heatmap(start, end)
    logger.debug(f"Heatmap {start}..{end}: {len(result['rows'])} rows")
    return envelope(result)
