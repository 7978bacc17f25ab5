import uuid

import pytest

from marketplace.models.delivery_zone import ZoneStatus
from marketplace.models.user import UserRole

from helpers import square

API = "/api/v1"


@pytest.fixture
def admin(make_user, login):
    user = make_user(UserRole.ADMIN)
    login(user)
    return user


def zone_body(**overrides) -> dict:
    body = {
        "name": "Westlands",
        "code": "west",
        "geometry": square(36.0, -2.0, 37.0, -1.0),
        "delivery_fee": 150.0,
        "estimated_delivery_minutes": 35,
        "min_order_amount": 300.0,
        "landmarks": [
            {"name": "Sarit Centre", "coordinates": {"lng": 36.5, "lat": -1.5}},
        ],
    }
    body.update(overrides)
    return body


# -------- Public zone endpoints --------


def test_list_active_zones_hides_geometry(client, login, make_zone):
    login(None)
    zone = make_zone()
    make_zone(name="Closed", status=ZoneStatus.INACTIVE)

    resp = client.get(f"{API}/delivery-zones")

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert [z["id"] for z in body["data"]] == [str(zone.id)]
    assert "geometry" not in body["data"][0]


def test_lookup_by_coordinates(client, login, make_zone):
    login(None)
    zone = make_zone(geometry=square(36.0, -2.0, 37.0, -1.0))

    inside = client.get(f"{API}/delivery-zones/coordinates", params={"lat": -1.5, "lng": 36.5})
    outside = client.get(f"{API}/delivery-zones/coordinates", params={"lat": 10, "lng": 10})

    assert inside.status_code == 200
    assert inside.json()["data"]["id"] == str(zone.id)
    assert outside.status_code == 200
    assert outside.json()["data"] is None
    assert outside.json()["message"]


def test_lookup_out_of_range_is_400(client, login):
    login(None)

    resp = client.get(f"{API}/delivery-zones/coordinates", params={"lat": 45, "lng": 200})

    assert resp.status_code == 400
    assert resp.json()["success"] is False
    assert resp.json()["error"]


def test_lookup_requires_both_coordinates(client, login):
    login(None)

    resp = client.get(f"{API}/delivery-zones/coordinates", params={"lat": 45})

    assert resp.status_code == 400
    assert resp.json()["success"] is False


def test_search(client, login, make_zone):
    login(None)
    make_zone(name="Upper Westlands")
    prefix = make_zone(name="Westlands")

    resp = client.get(f"{API}/delivery-zones/search", params={"q": "westlands"})

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data[0]["id"] == str(prefix.id)
    assert len(data) == 2


def test_blank_search_is_400(client, login):
    login(None)

    resp = client.get(f"{API}/delivery-zones/search", params={"q": " "})

    assert resp.status_code == 400


def test_validate_zone(client, login, make_zone):
    login(None)
    zone = make_zone(delivery_fee=99.0)
    closed = make_zone(name="Closed", status=ZoneStatus.INACTIVE)

    ok = client.post(f"{API}/delivery-zones/validate", json={"zoneId": str(zone.id)})
    gone = client.post(f"{API}/delivery-zones/validate", json={"zoneId": str(closed.id)})

    assert ok.status_code == 200
    assert ok.json()["data"]["delivery_fee"] == 99.0
    assert gone.status_code == 404
    assert gone.json()["success"] is False


def test_statistics(client, login, make_zone):
    login(None)
    make_zone()

    resp = client.get(f"{API}/delivery-zones/statistics")

    assert resp.status_code == 200
    assert resp.json()["data"]["total_zones"] == 1


# -------- Admin zone endpoints --------


def test_admin_routes_require_admin(client, login, make_user):
    login(None)
    assert client.get(f"{API}/admin/zones").status_code == 401

    login(make_user(UserRole.MERCHANT))
    assert client.post(f"{API}/admin/zones", json=zone_body()).status_code == 403


def test_admin_create_and_lookup(client, admin):
    created = client.post(f"{API}/admin/zones", json=zone_body())

    assert created.status_code == 201
    zone = created.json()["data"]
    assert zone["code"] == "WEST"
    assert zone["centroid"] == {"lng": 36.5, "lat": -1.5}

    found = client.get(f"{API}/delivery-zones/coordinates", params={"lat": -1.2, "lng": 36.2})
    assert found.json()["data"]["id"] == zone["id"]


def test_admin_create_rejects_bad_input(client, admin):
    bowtie = {"type": "Polygon", "coordinates": [[[0, 0], [2, 2], [2, 0], [0, 2], [0, 0]]]}

    assert client.post(f"{API}/admin/zones", json=zone_body(geometry=bowtie)).status_code == 400
    assert client.post(f"{API}/admin/zones", json=zone_body(code="bad code!")).status_code == 400
    assert client.post(f"{API}/admin/zones", json=zone_body(delivery_fee=-1)).status_code == 400
    assert client.post(f"{API}/admin/zones", json=zone_body(unknown=1)).status_code == 400

    client.post(f"{API}/admin/zones", json=zone_body())
    dup = client.post(f"{API}/admin/zones", json=zone_body(code="OTHER"))
    assert dup.status_code == 400
    assert "already exists" in dup.json()["error"]


def test_admin_update_and_delete(client, admin):
    zone_id = client.post(f"{API}/admin/zones", json=zone_body()).json()["data"]["id"]

    patched = client.patch(f"{API}/admin/zones/{zone_id}", json={"status": "INACTIVE"})
    assert patched.status_code == 200
    assert patched.json()["data"]["status"] == "INACTIVE"
    assert patched.json()["data"]["version"] == 2

    assert client.get(f"{API}/delivery-zones").json()["data"] == []

    deleted = client.delete(f"{API}/admin/zones/{zone_id}")
    assert deleted.status_code == 200
    assert client.get(f"{API}/admin/zones/{zone_id}").status_code == 404


def test_admin_landmarks(client, admin):
    zone_id = client.post(f"{API}/admin/zones", json=zone_body()).json()["data"]["id"]

    added = client.post(
        f"{API}/admin/zones/{zone_id}/landmarks",
        json={"name": "ABC Place", "coordinates": {"lng": 36.6, "lat": -1.4}, "is_popular": True},
    )
    assert added.status_code == 201

    renamed = client.patch(f"{API}/admin/zones/{zone_id}/landmarks/1", json={"name": "ABC"})
    assert renamed.json()["data"]["name"] == "ABC"

    assert client.delete(f"{API}/admin/zones/{zone_id}/landmarks/7").status_code == 404
    assert client.delete(f"{API}/admin/zones/{zone_id}/landmarks/0").status_code == 200

    zone = client.get(f"{API}/admin/zones/{zone_id}").json()["data"]
    assert [lm["name"] for lm in zone["landmarks"]] == ["ABC"]


def test_admin_zone_statistics(client, admin):
    zone_id = client.post(f"{API}/admin/zones", json=zone_body()).json()["data"]["id"]

    resp = client.get(f"{API}/admin/zones/{zone_id}/statistics")

    assert resp.status_code == 200
    assert resp.json()["data"]["orders_count"] == 0
    assert resp.json()["data"]["total_revenue"] == 0.0


def test_unknown_zone_is_404(client, admin):
    resp = client.get(f"{API}/admin/zones/{uuid.uuid4()}")

    assert resp.status_code == 404
    assert resp.json() == {
        "success": False,
        "data": None,
        "error": "Delivery zone not found",
        "message": None,
    }
