# marketplace/services/zone_service.py
import logging
import uuid
from datetime import datetime, timezone

from sqlmodel import Session

from marketplace.core.errors import InvalidCoordinate, InvalidInput, NotFound
from marketplace.core.geometry import (
    GeometryError,
    geometry_centroid,
    is_valid_coordinate,
    normalize_geometry,
    point_in_geometry,
)
from marketplace.models.delivery_zone import DeliveryZone, ZoneStatus
from marketplace.repositories.stats_repo import StatsRepository
from marketplace.repositories.zone_repo import ZoneRepository
from marketplace.schemas.zone import (
    GeoPoint,
    Landmark,
    LandmarkUpdate,
    ZoneCreate,
    ZoneDetailStats,
    ZoneOrderStats,
    ZoneRead,
    ZoneSearchResult,
    ZoneStatistics,
    ZoneSummary,
    ZoneUpdate,
    ZoneValidation,
)

logger = logging.getLogger(__name__)

# Search relevance buckets, best first
RANK_NAME_PREFIX = 0
RANK_LANDMARK_PREFIX = 1
RANK_SUBSTRING = 2

# Explicit nulls in a partial update are ignored for these columns
NON_NULLABLE_FIELDS = frozenset(
    {"name", "code", "geometry", "delivery_fee", "color", "priority", "status", "landmarks"}
)


class ZoneService:
    """
    Delivery-zone resolution and administration.

    Responsibilities:
      - coordinate -> zone lookup (point in polygon, priority tie-break)
      - neighborhood search over zone names and landmarks
      - zone validation for order placement (fee / ETA / minimum)
      - zone reporting
      - admin CRUD, including landmarks and geometry validation
    """

    def __init__(self, repo: ZoneRepository, stats_repo: StatsRepository):
        self.repo = repo
        self.stats_repo = stats_repo

    # -------- Lookups --------

    def list_active_zones(self, session: Session) -> list[ZoneSummary]:
        return [self._build_zone_summary(z) for z in self.repo.list_active(session)]

    def resolve_zone(
        self,
        session: Session,
        longitude: float,
        latitude: float,
    ) -> DeliveryZone | None:
        """
        Active zone containing the point, or None when delivery is not
        available there.

        Zones come back ordered by priority desc then newest first, so the
        first containing zone is the winner among overlapping ones.

        Raises:
            InvalidCoordinate: non-finite or out-of-range values.
        """
        if not is_valid_coordinate(longitude, latitude):
            raise InvalidCoordinate(
                "Valid longitude in [-180, 180] and latitude in [-90, 90] are required"
            )

        for zone in self.repo.list_active(session):
            try:
                if point_in_geometry(longitude, latitude, zone.geometry):
                    return zone
            except GeometryError:
                logger.warning("Skipping zone %s with unreadable geometry", zone.id)
        return None

    def find_zone_by_coordinate(
        self,
        session: Session,
        longitude: float,
        latitude: float,
    ) -> ZoneRead | None:
        zone = self.resolve_zone(session, longitude, latitude)
        if zone is None:
            return None
        return self._build_zone_read(zone)

    def search_neighborhoods(self, session: Session, query: str) -> list[ZoneSearchResult]:
        """
        Case-insensitive substring search over zone names and landmark
        names, across active and inactive zones.

        Ordering:
          1. zone name starts with the query
          2. a landmark name starts with the query
          3. plain substring match
        then priority desc, then newest first.
        """
        needle = (query or "").strip().lower()
        if not needle:
            raise InvalidInput("Search query parameter (q) is required")

        ranked: list[tuple[int, ZoneSearchResult]] = []
        for zone in self.repo.list_all(session):
            name = zone.name.lower()
            matched = [
                lm["name"]
                for lm in zone.landmarks or []
                if needle in str(lm.get("name", "")).lower()
            ]

            if name.startswith(needle):
                rank = RANK_NAME_PREFIX
            elif any(m.lower().startswith(needle) for m in matched):
                rank = RANK_LANDMARK_PREFIX
            elif needle in name or matched:
                rank = RANK_SUBSTRING
            else:
                continue

            summary = self._build_zone_summary(zone)
            ranked.append(
                (
                    rank,
                    ZoneSearchResult(
                        **summary.model_dump(),
                        status=zone.status,
                        matched_neighborhoods=matched,
                    ),
                )
            )

        # sort is stable: repository order (priority, recency) is kept per rank
        ranked.sort(key=lambda pair: pair[0])
        return [result for _, result in ranked]

    def validate_order_for_zone(self, session: Session, zone_id: uuid.UUID) -> ZoneValidation:
        """
        Check a zone can take orders and return what the order should be
        charged.

        Raises:
            NotFound: zone missing or INACTIVE.
        """
        zone = self.repo.get_by_id(session, zone_id)
        if not zone:
            raise NotFound("Delivery zone not found")
        if zone.status != ZoneStatus.ACTIVE:
            raise NotFound("This delivery zone is not currently available")

        return ZoneValidation(
            valid=True,
            zone_id=zone.id,
            delivery_fee=zone.delivery_fee,
            estimated_delivery_minutes=zone.estimated_delivery_minutes,
            min_order_amount=zone.min_order_amount,
        )

    def zone_contains(
        self,
        session: Session,
        zone_id: uuid.UUID,
        longitude: float,
        latitude: float,
    ) -> bool:
        if not is_valid_coordinate(longitude, latitude):
            raise InvalidCoordinate(
                "Valid longitude in [-180, 180] and latitude in [-90, 90] are required"
            )
        zone = self._get_or_404(session, zone_id)
        try:
            return point_in_geometry(longitude, latitude, zone.geometry)
        except GeometryError:
            logger.warning("Zone %s has unreadable geometry", zone.id)
            return False

    def get_zone_statistics(self, session: Session) -> ZoneStatistics:
        zones = {z.id: z for z in self.repo.list_all(session)}

        zones_by_status = {s.value: 0 for s in ZoneStatus}
        for zone_status, count in self.stats_repo.count_zones_by_status(session):
            key = zone_status.value if isinstance(zone_status, ZoneStatus) else str(zone_status)
            zones_by_status[key] = int(count or 0)

        orders_per_zone: list[ZoneOrderStats] = []
        for zone_id, order_count, revenue in self.stats_repo.orders_per_zone(session):
            zone = zones.get(zone_id)
            if zone is None:
                continue
            orders_per_zone.append(
                ZoneOrderStats(
                    zone_id=zone.id,
                    name=zone.name,
                    code=zone.code,
                    status=zone.status,
                    order_count=int(order_count or 0),
                    completed_revenue=float(revenue or 0.0),
                )
            )
        orders_per_zone.sort(key=lambda s: (-s.order_count, s.name))

        return ZoneStatistics(
            total_zones=len(zones),
            zones_by_status=zones_by_status,
            orders_per_zone=orders_per_zone,
        )

    # -------- Admin operations --------

    def list_zones(self, session: Session) -> list[ZoneRead]:
        return [self._build_zone_read(z) for z in self.repo.list_all(session)]

    def get_zone(self, session: Session, zone_id: uuid.UUID) -> ZoneRead:
        return self._build_zone_read(self._get_or_404(session, zone_id))

    def create_zone(self, session: Session, payload: ZoneCreate) -> ZoneRead:
        """
        Create a zone.

        Rules:
          - code and (case-insensitive) name must be unique
          - geometry must be a valid Polygon / MultiPolygon
        """
        geometry = self._validated_geometry(payload.geometry)

        duplicate = self.repo.find_duplicate(session, payload.code, payload.name)
        if duplicate:
            raise InvalidInput(
                f'A zone with code "{payload.code}" or name "{payload.name}" already exists'
            )

        zone = DeliveryZone(
            name=payload.name,
            code=payload.code,
            description=payload.description,
            geometry=geometry,
            delivery_fee=payload.delivery_fee,
            estimated_delivery_minutes=payload.estimated_delivery_minutes,
            min_order_amount=payload.min_order_amount,
            color=payload.color,
            priority=payload.priority,
            status=payload.status,
            landmarks=[lm.model_dump() for lm in payload.landmarks],
        )
        self._warn_landmarks_outside(zone)
        zone = self.repo.create(session, zone)
        logger.info("Created delivery zone %s (%s)", zone.code, zone.id)
        return self._build_zone_read(zone)

    def update_zone(
        self,
        session: Session,
        zone_id: uuid.UUID,
        payload: ZoneUpdate,
    ) -> ZoneRead:
        zone = self._get_or_404(session, zone_id)
        data = payload.model_dump(exclude_unset=True)

        if data.get("code") or data.get("name"):
            duplicate = self.repo.find_duplicate(
                session, data.get("code"), data.get("name"), exclude_id=zone.id
            )
            if duplicate:
                raise InvalidInput(
                    f'A zone with code "{data.get("code")}" or name "{data.get("name")}" already exists'
                )

        if data.get("geometry") is not None:
            data["geometry"] = self._validated_geometry(data["geometry"])

        for field, value in data.items():
            if value is None and field in NON_NULLABLE_FIELDS:
                continue
            setattr(zone, field, value)

        self._touch(zone)
        self._warn_landmarks_outside(zone)
        zone = self.repo.update(session, zone)
        return self._build_zone_read(zone)

    def delete_zone(self, session: Session, zone_id: uuid.UUID) -> None:
        """
        Delete a zone that no order references.
        Zones with orders must be set INACTIVE instead.
        """
        zone = self._get_or_404(session, zone_id)
        if self.repo.count_orders(session, zone.id) > 0:
            raise InvalidInput(
                "Cannot delete zone with existing orders. Set status to INACTIVE instead."
            )
        self.repo.delete(session, zone)
        logger.info("Deleted delivery zone %s", zone_id)

    def add_landmark(
        self,
        session: Session,
        zone_id: uuid.UUID,
        landmark: Landmark,
    ) -> Landmark:
        zone = self._get_or_404(session, zone_id)
        zone.landmarks = [*(zone.landmarks or []), landmark.model_dump()]
        self._touch(zone)
        self._warn_landmarks_outside(zone)
        self.repo.update(session, zone)
        return landmark

    def update_landmark(
        self,
        session: Session,
        zone_id: uuid.UUID,
        index: int,
        payload: LandmarkUpdate,
    ) -> Landmark:
        zone = self._get_or_404(session, zone_id)
        landmarks = list(zone.landmarks or [])
        if not 0 <= index < len(landmarks):
            raise NotFound("Landmark not found")

        current = Landmark(**landmarks[index])
        updates = payload.model_dump(exclude_unset=True, exclude_none=True)
        updated = Landmark(**{**current.model_dump(), **updates})

        landmarks[index] = updated.model_dump()
        zone.landmarks = landmarks
        self._touch(zone)
        self._warn_landmarks_outside(zone)
        self.repo.update(session, zone)
        return updated

    def delete_landmark(self, session: Session, zone_id: uuid.UUID, index: int) -> None:
        zone = self._get_or_404(session, zone_id)
        landmarks = list(zone.landmarks or [])
        if not 0 <= index < len(landmarks):
            raise NotFound("Landmark not found")

        del landmarks[index]
        zone.landmarks = landmarks
        self._touch(zone)
        self.repo.update(session, zone)

    def get_zone_stats(self, session: Session, zone_id: uuid.UUID) -> ZoneDetailStats:
        zone = self._get_or_404(session, zone_id)
        return ZoneDetailStats(
            zone=self._build_zone_read(zone),
            orders_count=self.repo.count_orders(session, zone.id),
            total_revenue=self.stats_repo.completed_revenue_for_zone(session, zone.id),
        )

    # -------- Helpers --------

    def _get_or_404(self, session: Session, zone_id: uuid.UUID) -> DeliveryZone:
        zone = self.repo.get_by_id(session, zone_id)
        if not zone:
            raise NotFound("Delivery zone not found")
        return zone

    @staticmethod
    def _validated_geometry(geometry: dict) -> dict:
        try:
            return normalize_geometry(geometry)
        except GeometryError as exc:
            raise InvalidInput(f"Invalid zone geometry: {exc}")

    @staticmethod
    def _touch(zone: DeliveryZone) -> None:
        zone.version = (zone.version or 0) + 1
        zone.updated_at = datetime.now(timezone.utc)

    @staticmethod
    def _warn_landmarks_outside(zone: DeliveryZone) -> None:
        """
        Landmarks outside their zone are kept, but flagged for admin review.
        """
        for lm in zone.landmarks or []:
            coords = lm.get("coordinates") or {}
            if not point_in_geometry(coords.get("lng"), coords.get("lat"), zone.geometry):
                logger.warning(
                    'Landmark "%s" lies outside zone %s', lm.get("name"), zone.code
                )

    @staticmethod
    def _build_zone_summary(zone: DeliveryZone) -> ZoneSummary:
        return ZoneSummary(
            id=zone.id,
            name=zone.name,
            code=zone.code,
            description=zone.description,
            delivery_fee=zone.delivery_fee,
            estimated_delivery_minutes=zone.estimated_delivery_minutes,
            min_order_amount=zone.min_order_amount,
            color=zone.color,
            priority=zone.priority,
            landmarks=zone.landmarks or [],
        )

    def _build_zone_read(self, zone: DeliveryZone) -> ZoneRead:
        try:
            lng, lat = geometry_centroid(zone.geometry)
            centroid: GeoPoint | None = GeoPoint(lng=lng, lat=lat)
        except GeometryError:
            centroid = None

        return ZoneRead(
            **self._build_zone_summary(zone).model_dump(),
            geometry=zone.geometry,
            status=zone.status,
            centroid=centroid,
            version=zone.version,
            created_at=zone.created_at,
            updated_at=zone.updated_at,
        )
