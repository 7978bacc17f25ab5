from datetime import datetime, timedelta, timezone


def square(min_lng: float, min_lat: float, max_lng: float, max_lat: float) -> dict:
    """Closed GeoJSON Polygon for an axis-aligned box."""
    return {
        "type": "Polygon",
        "coordinates": [
            [
                [min_lng, min_lat],
                [max_lng, min_lat],
                [max_lng, max_lat],
                [min_lng, max_lat],
                [min_lng, min_lat],
            ]
        ],
    }


def days_ago(days: int) -> datetime:
    return datetime.now(timezone.utc) - timedelta(days=days)
