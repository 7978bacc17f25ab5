import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SUPABASE_JWT_SECRET"] = "test-jwt-secret"

import uuid  # noqa: E402
from datetime import datetime  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlmodel import Session, SQLModel  # noqa: E402

from marketplace.core.auth import get_current_user  # noqa: E402
from marketplace.database import build_engine, get_session  # noqa: E402
from marketplace.main import app  # noqa: E402
from marketplace.models.delivery_zone import DeliveryZone, ZoneStatus  # noqa: E402
from marketplace.models.order import Order, OrderStatus  # noqa: E402
from marketplace.models.product import Merchant, Product  # noqa: E402
from marketplace.models.user import User, UserRole  # noqa: E402

from helpers import square  # noqa: E402


@pytest.fixture
def engine():
    engine = build_engine("sqlite://")
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def client(engine):
    def _get_session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = _get_session
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def login(client, session):
    """
    Switch the caller of subsequent requests: login(user) or login(None)
    for a guest.
    """

    def _login(user: User | None):
        caller = None
        if user is not None:
            # commits in the test session expire the seeded row; reload it
            # before taking a detached copy
            session.refresh(user)
            caller = User(**user.model_dump())
        app.dependency_overrides[get_current_user] = lambda: caller

    return _login


# -------- Seed helpers --------


@pytest.fixture
def make_user(session):
    def _make(role: UserRole = UserRole.CUSTOMER, name: str | None = None) -> User:
        uid = uuid.uuid4()
        user = User(
            id=uid,
            email=f"{uid.hex[:8]}@example.com",
            name=name or role.value,
            role=role,
        )
        session.add(user)
        session.commit()
        session.refresh(user)
        return user

    return _make


@pytest.fixture
def make_merchant(session):
    def _make(owner: User, is_active: bool = True) -> Merchant:
        merchant = Merchant(
            owner_id=owner.id,
            business_name=f"{owner.name} store",
            slug=f"store-{uuid.uuid4().hex[:8]}",
            is_active=is_active,
        )
        session.add(merchant)
        session.commit()
        session.refresh(merchant)
        return merchant

    return _make


@pytest.fixture
def make_product(session):
    def _make(merchant: Merchant, price: float = 10.0, is_active: bool = True) -> Product:
        product = Product(
            merchant_id=merchant.id,
            title="Chapati",
            price=price,
            is_active=is_active,
        )
        session.add(product)
        session.commit()
        session.refresh(product)
        return product

    return _make


@pytest.fixture
def make_zone(session):
    def _make(
        name: str = "Westlands",
        code: str | None = None,
        geometry: dict | None = None,
        priority: int = 0,
        status: ZoneStatus = ZoneStatus.ACTIVE,
        delivery_fee: float = 150.0,
        min_order_amount: float | None = None,
        landmarks: list[dict] | None = None,
        created_at: datetime | None = None,
    ) -> DeliveryZone:
        zone = DeliveryZone(
            name=name,
            code=code or uuid.uuid4().hex[:10].upper(),
            geometry=geometry or square(36.0, -2.0, 37.0, -1.0),
            priority=priority,
            status=status,
            delivery_fee=delivery_fee,
            estimated_delivery_minutes=30,
            min_order_amount=min_order_amount,
            landmarks=landmarks or [],
        )
        if created_at is not None:
            zone.created_at = created_at
        session.add(zone)
        session.commit()
        session.refresh(zone)
        return zone

    return _make


@pytest.fixture
def make_order(session):
    def _make(
        customer: User,
        merchant: Merchant,
        status: OrderStatus = OrderStatus.PENDING,
        zone: DeliveryZone | None = None,
        **fields,
    ) -> Order:
        order = Order(
            user_id=customer.id,
            merchant_id=merchant.id,
            delivery_zone_id=zone.id if zone else None,
            status=status,
            delivery_address="Ring Road, Westlands",
            subtotal=100.0,
            delivery_fee=50.0,
            total=150.0,
            delivery_code="DELIV1",
            **fields,
        )
        session.add(order)
        session.commit()
        session.refresh(order)
        return order

    return _make
