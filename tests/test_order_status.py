import uuid

import pytest
from sqlmodel import Session

from marketplace.core.errors import (
    ConflictingTransition,
    InvalidInput,
    InvalidTransition,
    NotFound,
    Unauthorized,
)
from marketplace.models.order import TERMINAL_STATUSES, OrderStatus
from marketplace.models.user import UserRole
from marketplace.repositories.order_repo import OrderRepository
from marketplace.services.order_status import (
    Actor,
    OrderStatusService,
    allowed_transitions,
    outgoing_transitions,
)

S = OrderStatus


@pytest.fixture
def service():
    return OrderStatusService(OrderRepository())


@pytest.fixture
def parties(make_user, make_merchant):
    customer = make_user(UserRole.CUSTOMER)
    owner = make_user(UserRole.MERCHANT)
    merchant = make_merchant(owner)
    driver = make_user(UserRole.DRIVER)
    admin = make_user(UserRole.ADMIN)
    return customer, owner, merchant, driver, admin


# -------- Transition table --------


def test_outgoing_edges():
    assert outgoing_transitions(S.PENDING) == {S.ACCEPTED_BY_MERCHANT, S.REJECTED_BY_MERCHANT}
    assert outgoing_transitions(S.ACCEPTED_BY_MERCHANT) == {
        S.IN_PREPARATION,
        S.CANCELED_BY_MERCHANT,
    }
    assert outgoing_transitions(S.IN_PREPARATION) == {
        S.READY_TO_DELIVER,
        S.CANCELED_BY_MERCHANT,
    }
    assert outgoing_transitions(S.READY_TO_DELIVER) == {
        S.ACCEPTED_BY_DRIVER,
        S.REJECTED_BY_DRIVER,
        S.CANCELED_BY_MERCHANT,
    }
    assert outgoing_transitions(S.ACCEPTED_BY_DRIVER) == {
        S.ON_THE_WAY,
        S.COMPLETED,
        S.CANCELED_BY_DRIVER,
    }
    assert outgoing_transitions(S.ON_THE_WAY) == {S.COMPLETED, S.CANCELED_BY_DRIVER}


@pytest.mark.parametrize("status", sorted(TERMINAL_STATUSES))
def test_terminal_statuses_have_no_exit(status):
    assert outgoing_transitions(status) == frozenset()


def test_admin_may_take_any_edge():
    for status in S:
        assert allowed_transitions(status, UserRole.ADMIN) == outgoing_transitions(status)


def test_customers_have_no_edges():
    for status in S:
        assert allowed_transitions(status, UserRole.CUSTOMER) == frozenset()


@pytest.mark.parametrize("current", list(S))
def test_exactly_outgoing_edges_are_accepted(current, service, session, parties, make_order):
    customer, _, merchant, driver, admin = parties
    actor = Actor(role=UserRole.ADMIN, user_id=admin.id)

    for target in S:
        order = make_order(customer, merchant, status=current)
        if target in outgoing_transitions(current):
            updated = service.transition(session, order.id, target, actor, driver_id=driver.id)
            assert updated.status == target
        else:
            with pytest.raises(InvalidTransition):
                service.transition(session, order.id, target, actor, driver_id=driver.id)


# -------- Ownership and roles --------


def test_merchant_cannot_touch_another_merchants_order(
    service, session, parties, make_user, make_merchant, make_order
):
    customer, _, merchant, _, _ = parties
    other_owner = make_user(UserRole.MERCHANT)
    other_merchant = make_merchant(other_owner)
    order = make_order(customer, merchant)

    actor = Actor(role=UserRole.MERCHANT, user_id=other_owner.id, merchant_id=other_merchant.id)
    for target in S:
        with pytest.raises(Unauthorized):
            service.transition(session, order.id, target, actor)


def test_merchant_cannot_take_driver_edge(service, session, parties, make_order):
    customer, owner, merchant, _, _ = parties
    order = make_order(customer, merchant, status=S.READY_TO_DELIVER, pickup_code="PICK01")
    actor = Actor(role=UserRole.MERCHANT, user_id=owner.id, merchant_id=merchant.id)

    with pytest.raises(Unauthorized):
        service.transition(session, order.id, S.ACCEPTED_BY_DRIVER, actor)


def test_unknown_order(service, session, parties):
    _, _, _, _, admin = parties
    with pytest.raises(NotFound):
        service.transition(
            session, uuid.uuid4(), S.ACCEPTED_BY_MERCHANT, Actor(UserRole.ADMIN, admin.id)
        )


def test_merchant_flow_issues_pickup_code(service, session, parties, make_order):
    customer, owner, merchant, _, _ = parties
    order = make_order(customer, merchant)
    actor = Actor(role=UserRole.MERCHANT, user_id=owner.id, merchant_id=merchant.id)

    for target in (S.ACCEPTED_BY_MERCHANT, S.IN_PREPARATION):
        order = service.transition(session, order.id, target, actor)
        assert order.pickup_code is None

    order = service.transition(session, order.id, S.READY_TO_DELIVER, actor)
    assert order.status == S.READY_TO_DELIVER
    assert order.pickup_code is not None
    assert len(order.pickup_code) == 6


# -------- Driver handover codes --------


def test_driver_accept_requires_pickup_code(service, session, parties, make_order):
    customer, _, merchant, driver, _ = parties
    order = make_order(customer, merchant, status=S.READY_TO_DELIVER, pickup_code="PICK01")
    actor = Actor(role=UserRole.DRIVER, user_id=driver.id)

    with pytest.raises(InvalidInput):
        service.transition(session, order.id, S.ACCEPTED_BY_DRIVER, actor)
    with pytest.raises(InvalidInput):
        service.transition(
            session, order.id, S.ACCEPTED_BY_DRIVER, actor, pickup_code="WRONG1"
        )

    order = service.transition(
        session, order.id, S.ACCEPTED_BY_DRIVER, actor, pickup_code="pick01"
    )
    assert order.status == S.ACCEPTED_BY_DRIVER
    assert order.driver_id == driver.id


def test_other_driver_cannot_continue_assigned_order(
    service, session, parties, make_user, make_order
):
    customer, _, merchant, driver, _ = parties
    intruder = make_user(UserRole.DRIVER)
    order = make_order(
        customer,
        merchant,
        status=S.ACCEPTED_BY_DRIVER,
        pickup_code="PICK01",
        driver_id=driver.id,
    )

    with pytest.raises(Unauthorized):
        service.transition(
            session, order.id, S.ON_THE_WAY, Actor(role=UserRole.DRIVER, user_id=intruder.id)
        )


def test_driver_completes_with_delivery_code(service, session, parties, make_order):
    customer, _, merchant, driver, _ = parties
    order = make_order(
        customer,
        merchant,
        status=S.ON_THE_WAY,
        pickup_code="PICK01",
        driver_id=driver.id,
    )
    actor = Actor(role=UserRole.DRIVER, user_id=driver.id)

    with pytest.raises(InvalidInput):
        service.transition(session, order.id, S.COMPLETED, actor, delivery_code="NOPE00")

    order = service.transition(session, order.id, S.COMPLETED, actor, delivery_code="DELIV1")
    assert order.status == S.COMPLETED


@pytest.mark.parametrize("current", [S.ACCEPTED_BY_DRIVER, S.ON_THE_WAY])
def test_driver_cannot_move_order_without_assigned_driver(
    service, session, parties, make_order, current
):
    customer, _, merchant, driver, _ = parties
    order = make_order(customer, merchant, status=current, pickup_code="PICK01")
    actor = Actor(role=UserRole.DRIVER, user_id=driver.id)

    for target in outgoing_transitions(current):
        with pytest.raises(Unauthorized):
            service.transition(session, order.id, target, actor, delivery_code="DELIV1")

    session.refresh(order)
    assert order.status == current


def test_admin_handover_assigns_named_driver(service, session, parties, make_user, make_order):
    customer, _, merchant, driver, admin = parties
    intruder = make_user(UserRole.DRIVER)
    order = make_order(customer, merchant, status=S.READY_TO_DELIVER, pickup_code="PICK01")
    admin_actor = Actor(role=UserRole.ADMIN, user_id=admin.id)

    with pytest.raises(InvalidInput):
        service.transition(session, order.id, S.ACCEPTED_BY_DRIVER, admin_actor)

    order = service.transition(
        session, order.id, S.ACCEPTED_BY_DRIVER, admin_actor, driver_id=driver.id
    )
    assert order.driver_id == driver.id

    with pytest.raises(Unauthorized):
        service.transition(
            session, order.id, S.ON_THE_WAY, Actor(role=UserRole.DRIVER, user_id=intruder.id)
        )

    order = service.transition(
        session, order.id, S.ON_THE_WAY, Actor(role=UserRole.DRIVER, user_id=driver.id)
    )
    assert order.status == S.ON_THE_WAY


# -------- Status history --------


def test_each_transition_is_recorded(service, session, parties, make_order):
    customer, owner, merchant, driver, _ = parties
    order = make_order(customer, merchant)
    merchant_actor = Actor(role=UserRole.MERCHANT, user_id=owner.id, merchant_id=merchant.id)

    for target in (S.ACCEPTED_BY_MERCHANT, S.IN_PREPARATION, S.READY_TO_DELIVER):
        order = service.transition(session, order.id, target, merchant_actor)
    order = service.transition(
        session,
        order.id,
        S.ACCEPTED_BY_DRIVER,
        Actor(role=UserRole.DRIVER, user_id=driver.id),
        pickup_code=order.pickup_code,
    )

    history = order.status_history
    assert [h["status"] for h in history] == [
        "ACCEPTED_BY_MERCHANT",
        "IN_PREPARATION",
        "READY_TO_DELIVER",
        "ACCEPTED_BY_DRIVER",
    ]
    assert [h["role"] for h in history] == ["merchant"] * 3 + ["driver"]
    assert history[-1]["user_id"] == str(driver.id)


def test_rejected_transition_is_not_recorded(service, session, parties, make_order):
    customer, owner, merchant, _, _ = parties
    order = make_order(customer, merchant)
    actor = Actor(role=UserRole.MERCHANT, user_id=owner.id, merchant_id=merchant.id)

    with pytest.raises(InvalidTransition):
        service.transition(session, order.id, S.COMPLETED, actor)

    session.refresh(order)
    assert order.status_history == []


# -------- Lost update --------


def test_concurrent_transitions_from_same_snapshot(service, engine, parties, make_order):
    customer, owner, merchant, _, _ = parties
    order = make_order(customer, merchant)
    actor = Actor(role=UserRole.MERCHANT, user_id=owner.id, merchant_id=merchant.id)

    with Session(engine) as first, Session(engine) as second:
        # both requests have read the order while it was PENDING; hold the
        # loaded rows so each session keeps its snapshot in the identity map
        first_view = first.get(type(order), order.id)
        second_view = second.get(type(order), order.id)
        assert first_view.status == S.PENDING
        assert second_view.status == S.PENDING

        accepted = service.transition(second, order.id, S.ACCEPTED_BY_MERCHANT, actor)
        assert accepted.status == S.ACCEPTED_BY_MERCHANT

        with pytest.raises(ConflictingTransition):
            service.transition(first, order.id, S.REJECTED_BY_MERCHANT, actor)

    with Session(engine) as check:
        stored = check.get(type(order), order.id)
        assert stored.status == S.ACCEPTED_BY_MERCHANT
        assert [h["status"] for h in stored.status_history] == ["ACCEPTED_BY_MERCHANT"]


def test_compare_and_set_skips_stale_status(session, parties, make_order):
    customer, _, merchant, _, _ = parties
    order = make_order(customer, merchant, status=S.IN_PREPARATION)
    repo = OrderRepository()

    assert not repo.transition_status(
        session, order.id, S.PENDING, {"status": S.ACCEPTED_BY_MERCHANT}
    )
    assert repo.transition_status(
        session, order.id, S.IN_PREPARATION, {"status": S.READY_TO_DELIVER}
    )
