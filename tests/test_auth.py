import time
import uuid

import pytest
from jose import jwt
from sqlmodel import select

from marketplace.core.auth import get_current_user
from marketplace.core.config import get_settings
from marketplace.main import app
from marketplace.models.user import User, UserRole

API = "/api/v1"


def token_for(sub: str, email: str = "wanjiku@example.com", expires_in: int = 3600) -> str:
    settings = get_settings()
    claims = {"sub": sub, "email": email, "exp": int(time.time()) + expires_in}
    return jwt.encode(claims, settings.SUPABASE_JWT_SECRET, algorithm=settings.SUPABASE_JWT_ALG)


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def real_auth(client):
    """Use the JWT dependency instead of a logged-in override."""
    app.dependency_overrides.pop(get_current_user, None)
    return client


# -------- Token verification --------


def test_first_request_provisions_customer(real_auth, session):
    sub = str(uuid.uuid4())

    resp = real_auth.get(f"{API}/users/me", headers=bearer(token_for(sub)))

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["id"] == sub
    assert data["role"] == "customer"
    assert data["name"] == "wanjiku"
    assert session.exec(select(User).where(User.id == uuid.UUID(sub))).first() is not None


def test_existing_user_keeps_role(real_auth, make_user):
    driver = make_user(UserRole.DRIVER)

    resp = real_auth.get(
        f"{API}/users/me", headers=bearer(token_for(str(driver.id), driver.email))
    )

    assert resp.json()["data"]["role"] == "driver"


def test_missing_token_is_401(real_auth):
    resp = real_auth.get(f"{API}/users/me")

    assert resp.status_code == 401
    assert resp.json()["success"] is False


@pytest.mark.parametrize(
    "token",
    [
        "not-a-jwt",
        jwt.encode({"sub": str(uuid.uuid4()), "email": "x@example.com"}, "wrong-secret"),
        token_for("not-a-uuid"),
        token_for(str(uuid.uuid4()), expires_in=-60),
    ],
)
def test_bad_tokens_are_401(real_auth, token):
    resp = real_auth.get(f"{API}/users/me", headers=bearer(token))

    assert resp.status_code == 401


def test_public_routes_allow_guests(real_auth):
    assert real_auth.get(f"{API}/delivery-zones").status_code == 200
    assert real_auth.get("/").json()["status"] == "ok"


# -------- User administration --------


def test_admin_promotes_user(client, login, make_user):
    admin = make_user(UserRole.ADMIN)
    target = make_user(UserRole.CUSTOMER)
    login(admin)

    resp = client.patch(f"{API}/users/{target.id}/role", json={"role": "driver"})

    assert resp.status_code == 200
    assert resp.json()["data"]["role"] == "driver"
    assert client.get(f"{API}/users/{target.id}").json()["data"]["role"] == "driver"
    assert len(client.get(f"{API}/users").json()["data"]) == 2


def test_admin_cannot_demote_self(client, login, make_user):
    admin = make_user(UserRole.ADMIN)
    login(admin)

    resp = client.patch(f"{API}/users/{admin.id}/role", json={"role": "customer"})

    assert resp.status_code == 400


def test_user_admin_requires_admin(client, login, make_user):
    target = make_user(UserRole.CUSTOMER)
    login(make_user(UserRole.MERCHANT))

    assert client.get(f"{API}/users").status_code == 403
    assert client.patch(f"{API}/users/{target.id}/role", json={"role": "admin"}).status_code == 403


def test_unknown_role_is_rejected(client, login, make_user):
    target = make_user(UserRole.CUSTOMER)
    login(make_user(UserRole.ADMIN))

    resp = client.patch(f"{API}/users/{target.id}/role", json={"role": "superuser"})

    assert resp.status_code == 400


def test_logged_in_caller_survives_later_commits(client, login, make_user, make_merchant):
    admin = make_user(UserRole.ADMIN)
    # committing more rows expires the admin row in the test session
    make_merchant(make_user(UserRole.MERCHANT))
    login(admin)

    data = client.get(f"{API}/users/me").json()["data"]

    assert data["id"] == str(admin.id)
    assert data["role"] == "admin"
