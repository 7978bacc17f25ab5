# marketplace/core/geometry.py
"""
Planar geometry helpers for delivery zones.

Zones are stored as GeoJSON geometries with [longitude, latitude]
positions:

    {"type": "Polygon", "coordinates": [outer_ring, hole_1, ...]}
    {"type": "MultiPolygon", "coordinates": [polygon_1, polygon_2, ...]}

Coordinates are treated as plain x/y values. Zones crossing the
antimeridian are not supported.
"""
import math
from typing import Any

Position = tuple[float, float]
Ring = list[Position]

SUPPORTED_TYPES = ("Polygon", "MultiPolygon")

# Tolerance used for "point lies on an edge" checks (degrees).
EPSILON = 1e-12


class GeometryError(ValueError):
    """Raised when a zone geometry is malformed."""


def is_valid_coordinate(longitude: Any, latitude: Any) -> bool:
    """
    True if both values are finite numbers inside the WGS84 ranges
    [-180, 180] / [-90, 90].
    """
    if isinstance(longitude, bool) or isinstance(latitude, bool):
        return False
    if not isinstance(longitude, (int, float)) or not isinstance(latitude, (int, float)):
        return False
    if not (math.isfinite(longitude) and math.isfinite(latitude)):
        return False
    return -180 <= longitude <= 180 and -90 <= latitude <= 90


# ---------------------------------------------------------------------------
# Validation / normalization
# ---------------------------------------------------------------------------


def normalize_geometry(geometry: Any) -> dict:
    """
    Validate a GeoJSON Polygon / MultiPolygon and return a normalized copy.

    Normalization:
      - positions become [lng, lat] float pairs (extra dimensions dropped)
      - consecutive duplicate positions are collapsed
      - open rings are closed

    Raises:
        GeometryError: if the type is unsupported, a position is not a
        valid coordinate, a ring has fewer than 3 distinct vertices,
        or a ring intersects itself.
    """
    if not isinstance(geometry, dict):
        raise GeometryError("geometry must be a GeoJSON object")

    geom_type = geometry.get("type")
    if geom_type not in SUPPORTED_TYPES:
        raise GeometryError(
            f"Unsupported geometry type {geom_type!r}; expected Polygon or MultiPolygon"
        )

    coordinates = geometry.get("coordinates")
    if not isinstance(coordinates, list) or not coordinates:
        raise GeometryError("geometry.coordinates must be a non-empty array")

    if geom_type == "Polygon":
        polygons = [coordinates]
    else:
        polygons = coordinates

    normalized: list[list[list[list[float]]]] = []
    for polygon in polygons:
        if not isinstance(polygon, list) or not polygon:
            raise GeometryError("each polygon must contain at least one ring")
        rings = [_normalize_ring(ring) for ring in polygon]
        normalized.append([[[lng, lat] for lng, lat in ring] for ring in rings])

    if geom_type == "Polygon":
        return {"type": "Polygon", "coordinates": normalized[0]}
    return {"type": "MultiPolygon", "coordinates": normalized}


def _normalize_ring(raw_ring: Any) -> Ring:
    if not isinstance(raw_ring, list):
        raise GeometryError("each ring must be an array of positions")

    ring: Ring = []
    for position in raw_ring:
        if not isinstance(position, (list, tuple)) or len(position) < 2:
            raise GeometryError("each position must be a [longitude, latitude] pair")
        lng, lat = position[0], position[1]
        if not is_valid_coordinate(lng, lat):
            raise GeometryError(f"invalid position {list(position)!r}")
        point = (float(lng), float(lat))
        if ring and ring[-1] == point:
            continue
        ring.append(point)

    if len(ring) > 1 and ring[0] == ring[-1]:
        ring.pop()

    if len(set(ring)) < 3:
        raise GeometryError("each ring needs at least 3 distinct vertices")
    if len(set(ring)) != len(ring):
        raise GeometryError("ring revisits a vertex (self-intersecting)")

    ring.append(ring[0])

    if _ring_self_intersects(ring):
        raise GeometryError("ring is self-intersecting")
    return ring


def _orientation(a: Position, b: Position, c: Position) -> int:
    value = (b[0] - a[0]) * (c[1] - a[1]) - (b[1] - a[1]) * (c[0] - a[0])
    if abs(value) <= EPSILON:
        return 0
    return 1 if value > 0 else -1


def _on_segment(p: Position, a: Position, b: Position) -> bool:
    """p is collinear with a-b; check it lies within the segment's box."""
    return (
        min(a[0], b[0]) - EPSILON <= p[0] <= max(a[0], b[0]) + EPSILON
        and min(a[1], b[1]) - EPSILON <= p[1] <= max(a[1], b[1]) + EPSILON
    )


def _segments_intersect(p1: Position, p2: Position, q1: Position, q2: Position) -> bool:
    o1 = _orientation(p1, p2, q1)
    o2 = _orientation(p1, p2, q2)
    o3 = _orientation(q1, q2, p1)
    o4 = _orientation(q1, q2, p2)

    if o1 != o2 and o3 != o4:
        return True

    if o1 == 0 and _on_segment(q1, p1, p2):
        return True
    if o2 == 0 and _on_segment(q2, p1, p2):
        return True
    if o3 == 0 and _on_segment(p1, q1, q2):
        return True
    if o4 == 0 and _on_segment(p2, q1, q2):
        return True
    return False


def _ring_self_intersects(ring: Ring) -> bool:
    """
    O(n^2) check of every pair of non-adjacent edges of a closed ring.
    """
    edges = [(ring[i], ring[i + 1]) for i in range(len(ring) - 1)]
    count = len(edges)
    for i in range(count):
        for j in range(i + 1, count):
            # Adjacent edges share a vertex by construction.
            if j == i + 1 or (i == 0 and j == count - 1):
                continue
            if _segments_intersect(edges[i][0], edges[i][1], edges[j][0], edges[j][1]):
                return True
    return False


# ---------------------------------------------------------------------------
# Containment
# ---------------------------------------------------------------------------


def _point_on_ring(lng: float, lat: float, ring: list) -> bool:
    point = (lng, lat)
    for i in range(len(ring) - 1):
        a = (ring[i][0], ring[i][1])
        b = (ring[i + 1][0], ring[i + 1][1])
        if _orientation(a, b, point) == 0 and _on_segment(point, a, b):
            return True
    return False


def _ray_crossings(lng: float, lat: float, ring: list) -> int:
    """Number of ring edges crossed by a ray cast from the point towards +x."""
    crossings = 0
    j = len(ring) - 1
    for i in range(len(ring)):
        xi, yi = ring[i][0], ring[i][1]
        xj, yj = ring[j][0], ring[j][1]
        if (yi > lat) != (yj > lat):
            x_cross = (xj - xi) * (lat - yi) / (yj - yi) + xi
            if lng < x_cross:
                crossings += 1
        j = i
    return crossings


def point_in_polygon(lng: float, lat: float, rings: list) -> bool:
    """
    Even-odd ray casting over every ring of one polygon, so holes are
    excluded. Points lying on any ring boundary count as inside.
    """
    for ring in rings:
        if _point_on_ring(lng, lat, ring):
            return True
    crossings = sum(_ray_crossings(lng, lat, ring) for ring in rings)
    return crossings % 2 == 1


def point_in_geometry(lng: float, lat: float, geometry: dict) -> bool:
    """
    Containment test against a stored Polygon or MultiPolygon.
    A MultiPolygon contains the point if any member polygon does.
    """
    geom_type = geometry.get("type")
    coordinates = geometry.get("coordinates") or []
    if geom_type == "Polygon":
        return point_in_polygon(lng, lat, coordinates)
    if geom_type == "MultiPolygon":
        return any(point_in_polygon(lng, lat, polygon) for polygon in coordinates)
    raise GeometryError(f"Unsupported geometry type {geom_type!r}")


def geometry_centroid(geometry: dict) -> Position:
    """
    Vertex mean of the first outer ring (closing vertex excluded).

    Good enough for centering a map on a zone; not an area centroid.
    """
    coordinates = geometry.get("coordinates") or []
    if geometry.get("type") == "MultiPolygon":
        coordinates = coordinates[0] if coordinates else []
    if not coordinates or not coordinates[0]:
        raise GeometryError("geometry has no outer ring")

    outer = coordinates[0]
    vertices = outer[:-1] if len(outer) > 1 and outer[0] == outer[-1] else outer
    sum_lng = sum(p[0] for p in vertices)
    sum_lat = sum(p[1] for p in vertices)
    return sum_lng / len(vertices), sum_lat / len(vertices)
