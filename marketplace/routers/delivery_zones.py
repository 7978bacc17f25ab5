# marketplace/routers/delivery_zones.py
from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from marketplace.database import get_session
from marketplace.repositories.stats_repo import StatsRepository
from marketplace.repositories.zone_repo import ZoneRepository
from marketplace.schemas.common import ApiResponse
from marketplace.schemas.zone import (
    ZoneRead,
    ZoneSearchResult,
    ZoneStatistics,
    ZoneSummary,
    ZoneValidateRequest,
    ZoneValidation,
)
from marketplace.services.zone_service import ZoneService

router = APIRouter(prefix="/delivery-zones", tags=["Delivery Zones"])

zone_repo = ZoneRepository()
stats_repo = StatsRepository()
service = ZoneService(zone_repo, stats_repo)


@router.get("", response_model=ApiResponse[list[ZoneSummary]])
def list_active_zones(session: Session = Depends(get_session)):
    """
    Active delivery zones without geometry, for zone pickers.

    Public.
    """
    return ApiResponse(data=service.list_active_zones(session))


@router.get("/coordinates", response_model=ApiResponse[ZoneRead | None])
def find_zone_by_coordinates(
    lat: float = Query(...),
    lng: float = Query(...),
    session: Session = Depends(get_session),
):
    """
    Zone serving the given point.

    `data` is null (with a message) when no active zone covers it.
    """
    zone = service.find_zone_by_coordinate(session, lng, lat)
    if zone is None:
        return ApiResponse(data=None, message="No delivery zone covers this location")
    return ApiResponse(data=zone)


@router.get("/search", response_model=ApiResponse[list[ZoneSearchResult]])
def search_neighborhoods(
    q: str = Query(..., max_length=100),
    session: Session = Depends(get_session),
):
    """
    Search zones by name or landmark, best matches first.
    """
    return ApiResponse(data=service.search_neighborhoods(session, q))


@router.post("/validate", response_model=ApiResponse[ZoneValidation])
def validate_zone(
    payload: ZoneValidateRequest,
    session: Session = Depends(get_session),
):
    """
    Confirm a zone accepts orders and return its fee, ETA and minimum.
    """
    return ApiResponse(data=service.validate_order_for_zone(session, payload.zone_id))


@router.get("/statistics", response_model=ApiResponse[ZoneStatistics])
def zone_statistics(session: Session = Depends(get_session)):
    return ApiResponse(data=service.get_zone_statistics(session))
