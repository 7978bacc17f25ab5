# marketplace/routers/admin_zones.py
import uuid

from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from marketplace.core.auth import require_admin
from marketplace.database import get_session
from marketplace.repositories.stats_repo import StatsRepository
from marketplace.repositories.zone_repo import ZoneRepository
from marketplace.schemas.common import ApiResponse
from marketplace.schemas.zone import (
    Landmark,
    LandmarkUpdate,
    ZoneCreate,
    ZoneDetailStats,
    ZoneRead,
    ZoneUpdate,
)
from marketplace.services.zone_service import ZoneService

router = APIRouter(
    prefix="/admin/zones",
    tags=["Admin Zones"],
    dependencies=[Depends(require_admin)],
)

zone_repo = ZoneRepository()
stats_repo = StatsRepository()
service = ZoneService(zone_repo, stats_repo)


# -------- Zones --------


@router.get("", response_model=ApiResponse[list[ZoneRead]])
def list_zones(session: Session = Depends(get_session)):
    """
    All zones (active and inactive) with geometry.
    """
    return ApiResponse(data=service.list_zones(session))


@router.post(
    "",
    response_model=ApiResponse[ZoneRead],
    status_code=status.HTTP_201_CREATED,
)
def create_zone(
    payload: ZoneCreate,
    session: Session = Depends(get_session),
):
    """
    Create a delivery zone.

    Geometry must be a valid Polygon or MultiPolygon; code and name must
    be unique (case-insensitive).
    """
    zone = service.create_zone(session, payload)
    return ApiResponse(data=zone, message="Delivery zone created")


@router.get("/{zone_id}", response_model=ApiResponse[ZoneRead])
def get_zone(
    zone_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    return ApiResponse(data=service.get_zone(session, zone_id))


@router.patch("/{zone_id}", response_model=ApiResponse[ZoneRead])
def update_zone(
    zone_id: uuid.UUID,
    payload: ZoneUpdate,
    session: Session = Depends(get_session),
):
    """
    Partial update; bumps the zone version.
    """
    zone = service.update_zone(session, zone_id, payload)
    return ApiResponse(data=zone, message="Delivery zone updated")


@router.delete("/{zone_id}", response_model=ApiResponse[None])
def delete_zone(
    zone_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    """
    Delete a zone. Refused while orders reference it; deactivate instead.
    """
    service.delete_zone(session, zone_id)
    return ApiResponse(message="Delivery zone deleted")


@router.get("/{zone_id}/statistics", response_model=ApiResponse[ZoneDetailStats])
def zone_stats(
    zone_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    return ApiResponse(data=service.get_zone_stats(session, zone_id))


# -------- Landmarks --------


@router.post(
    "/{zone_id}/landmarks",
    response_model=ApiResponse[Landmark],
    status_code=status.HTTP_201_CREATED,
)
def add_landmark(
    zone_id: uuid.UUID,
    payload: Landmark,
    session: Session = Depends(get_session),
):
    landmark = service.add_landmark(session, zone_id, payload)
    return ApiResponse(data=landmark, message="Landmark added")


@router.patch("/{zone_id}/landmarks/{index}", response_model=ApiResponse[Landmark])
def update_landmark(
    zone_id: uuid.UUID,
    index: int,
    payload: LandmarkUpdate,
    session: Session = Depends(get_session),
):
    landmark = service.update_landmark(session, zone_id, index, payload)
    return ApiResponse(data=landmark, message="Landmark updated")


@router.delete("/{zone_id}/landmarks/{index}", response_model=ApiResponse[None])
def delete_landmark(
    zone_id: uuid.UUID,
    index: int,
    session: Session = Depends(get_session),
):
    service.delete_landmark(session, zone_id, index)
    return ApiResponse(message="Landmark deleted")
