# marketplace/core/auth.py
import uuid
from typing import Any

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from sqlmodel import Session, select

from marketplace.core.config import get_settings
from marketplace.database import get_session
from marketplace.models.user import User, UserRole

settings = get_settings()

# HTTP Bearer scheme:
# - auto_error=False => missing Authorization header will NOT raise immediately
#   so we can support "guest" mode (unauthenticated).
bearer_scheme = HTTPBearer(auto_error=False)


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Decode and verify an auth provider access token (JWT).

    Verification:
      - signature (HS256 using SUPABASE_JWT_SECRET)
      - expiration time (exp)
      - audience is NOT verified (provider 'aud' may vary)

    Raises:
        HTTPException(401): if token is invalid/expired.
    """
    try:
        return jwt.decode(
            token,
            settings.SUPABASE_JWT_SECRET,
            algorithms=[settings.SUPABASE_JWT_ALG],
            options={"verify_aud": False},
        )
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )


def _default_name_from_email(email: str) -> str:
    """
    Derive a default display name from email if the user has not
    completed their profile yet.
    """
    if "@" in email:
        return email.split("@", 1)[0][:50]
    return email[:50]


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    session: Session = Depends(get_session),
) -> User | None:
    """
    Resolve the current user from a JWT.

    Flow:
      1. If no Authorization header => guest => return None.
      2. Decode JWT => extract 'sub' (auth user id) and 'email'.
      3. Convert 'sub' to UUID to match User.id type.
      4. Find user profile in users.
      5. If missing, auto-provision a customer profile.

    Raises:
        HTTPException(401): if token is malformed or missing required claims.
    """
    if credentials is None:
        return None  # guest mode

    payload = decode_access_token(credentials.credentials)
    sub = payload.get("sub")
    email = payload.get("email")

    if not sub or not email:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token missing sub/email",
        )

    try:
        sub_uuid = uuid.UUID(sub)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid sub in token",
        )

    user = session.exec(select(User).where(User.id == sub_uuid)).first()

    # Merchants, drivers and admins are promoted by an admin later.
    if user is None:
        user = User(
            id=sub_uuid,
            email=email,
            name=_default_name_from_email(email),
            role=UserRole.CUSTOMER,
        )
        session.add(user)
        session.commit()
        session.refresh(user)

    return user


def require_auth(user: User | None = Depends(get_current_user)) -> User:
    """
    Enforce authentication.

    Raises:
        HTTPException(401): if user is None.
    """
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    return user


def require_roles(*roles: UserRole, label: str):
    """
    Build a dependency admitting only the given roles.

    Raises:
        HTTPException(403): `"{label} access required"` for any other role.
    """
    allowed = frozenset(roles)

    def _guard(user: User = Depends(require_auth)) -> User:
        if user.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"{label} access required",
            )
        return user

    return _guard


require_admin = require_roles(UserRole.ADMIN, label="Admin")

# Only customers place orders and read their own order history.
require_customer = require_roles(UserRole.CUSTOMER, label="Customer")

# Admins pass as well; which merchant a merchant user may act for is
# checked by the order service.
require_merchant = require_roles(UserRole.MERCHANT, UserRole.ADMIN, label="Merchant")

require_driver = require_roles(UserRole.DRIVER, label="Driver")
