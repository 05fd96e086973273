# backend/tests/services/test_booking_service.py
"""
Tests for BookingService.

Covers creation (HOME and IN_SHOP, idempotency, failure to assign),
provider responses, start/complete/cancel and the read paths. Every
booking's STATUS events must form a valid path through the state machine.
"""

from decimal import Decimal

import pytest

from jayple.core.caller import Caller
from jayple.core.exceptions import (
    FailedPreconditionException,
    InvalidArgumentException,
    NotFoundException,
    PermissionDeniedException,
    ResourceExhaustedException,
)
from jayple.models.booking import Booking
from jayple.models.service_catalog import Service
from jayple.services.dispatch import DispatchEngine
from jayple.services.state_machine import is_valid_status_chain

from ..helpers import CITY, status_path


@pytest.fixture
def vendor(seed):
    vendor = seed.vendor("vendor_1")
    seed.service("svc_home", price="1000", category="hair")
    seed.service("svc_shop", price="1000", category="hair", vendor_id=vendor.user_id)
    return vendor


@pytest.fixture
def customer(seed):
    return seed.customer("cust_1")


class TestCreateBooking:
    def test_home_booking_is_offered_to_best_freelancer(self, dispatch, seed, vendor, customer, scheduler):
        seed.freelancer("f_silver", tier="silver", idle_minutes=60)
        seed.freelancer("f_gold", tier="gold", idle_minutes=5)

        result = dispatch.bookings.create_booking(
            customer, city_id=CITY, service_id="svc_home", booking_type="HOME"
        )

        booking = result.booking
        assert result.already_exists is False
        assert booking.status == "ASSIGNED"
        assert booking.freelancer_id == "f_gold"
        assert booking.vendor_id is None
        assert booking.payment_mode == "ONLINE"
        assert booking.payment_status == "PENDING"
        assert booking.payment_amount == Decimal("1000")
        assert status_path(booking) == [(None, "CREATED"), ("CREATED", "ASSIGNED")]
        # Timeout armed only after commit, for the offered freelancer
        assert scheduler.calls == [(CITY, booking.id, "f_gold")]

    def test_in_shop_booking_waits_for_vendor(self, dispatch, vendor, customer, scheduler):
        result = dispatch.bookings.create_booking(
            customer, city_id=CITY, service_id="svc_shop", booking_type="IN_SHOP"
        )

        booking = result.booking
        assert booking.status == "CREATED"
        assert booking.vendor_id == "vendor_1"
        assert booking.freelancer_id is None
        assert booking.payment_mode == "OFFLINE"
        assert booking.payment_status == "NOT_REQUIRED"
        assert scheduler.calls == []

    def test_idempotency_key_returns_existing_booking(self, dispatch, db, vendor, customer):
        first = dispatch.bookings.create_booking(
            customer, city_id=CITY, service_id="svc_shop", booking_type="IN_SHOP", idempotency_key="k1"
        )
        second = dispatch.bookings.create_booking(
            customer, city_id=CITY, service_id="svc_shop", booking_type="IN_SHOP", idempotency_key="k1"
        )

        assert second.already_exists is True
        assert second.booking.id == first.booking.id
        assert db.query(Booking).count() == 1

    def test_withdrawn_service_is_not_found_even_with_known_key(self, dispatch, db, vendor, customer):
        dispatch.bookings.create_booking(
            customer, city_id=CITY, service_id="svc_shop", booking_type="IN_SHOP", idempotency_key="k1"
        )
        db.get(Service, "svc_shop").is_active = False
        db.commit()

        with pytest.raises(NotFoundException):
            dispatch.bookings.create_booking(
                customer, city_id=CITY, service_id="svc_shop", booking_type="IN_SHOP", idempotency_key="k1"
            )
        assert db.query(Booking).count() == 1

    def test_no_freelancer_persists_failed_booking(self, dispatch, db, vendor, customer, scheduler):
        with pytest.raises(ResourceExhaustedException):
            dispatch.bookings.create_booking(
                customer, city_id=CITY, service_id="svc_home", booking_type="HOME", idempotency_key="k2"
            )

        booking = db.query(Booking).one()
        assert booking.status == "FAILED"
        assert booking.failure_reason == "NO_FREELANCER_AVAILABLE"
        assert status_path(booking) == [(None, "CREATED"), ("CREATED", "FAILED")]
        assert scheduler.calls == []

    def test_only_customers_create(self, dispatch, vendor):
        with pytest.raises(PermissionDeniedException):
            dispatch.bookings.create_booking(
                Caller("vendor_1", "vendor"), city_id=CITY, service_id="svc_shop", booking_type="IN_SHOP"
            )

    def test_unknown_type_is_invalid(self, dispatch, vendor, customer):
        with pytest.raises(InvalidArgumentException):
            dispatch.bookings.create_booking(
                customer, city_id=CITY, service_id="svc_shop", booking_type="DRIVE_THRU"
            )

    def test_unknown_service(self, dispatch, vendor, customer, db):
        with pytest.raises(NotFoundException):
            dispatch.bookings.create_booking(
                customer, city_id=CITY, service_id="missing", booking_type="HOME"
            )
        assert db.query(Booking).count() == 0

    def test_service_in_other_city_is_not_found(self, dispatch, vendor, customer):
        with pytest.raises(NotFoundException):
            dispatch.bookings.create_booking(
                customer, city_id="hyd", service_id="svc_shop", booking_type="IN_SHOP"
            )

    def test_in_shop_requires_vendor_owned_service(self, dispatch, vendor, customer):
        with pytest.raises(FailedPreconditionException):
            dispatch.bookings.create_booking(
                customer, city_id=CITY, service_id="svc_home", booking_type="IN_SHOP"
            )


class TestVendorResponse:
    def test_accept_confirms(self, dispatch, flows, vendor, customer):
        booking = flows.shop_booking(customer)

        result = dispatch.bookings.respond_as_vendor(vendor, CITY, booking.id, "ACCEPT")

        assert result.booking.status == "CONFIRMED"
        assert result.action == "ACCEPT"

    def test_reject(self, dispatch, flows, vendor, customer):
        booking = flows.shop_booking(customer)

        result = dispatch.bookings.respond_as_vendor(vendor, CITY, booking.id, "REJECT")

        assert result.booking.status == "REJECTED"
        assert status_path(result.booking)[-1] == ("CREATED", "REJECTED")

    def test_other_vendor_is_denied(self, dispatch, flows, seed, vendor, customer):
        other = seed.vendor("vendor_2")
        booking = flows.shop_booking(customer)

        with pytest.raises(PermissionDeniedException):
            dispatch.bookings.respond_as_vendor(other, CITY, booking.id, "ACCEPT")

    def test_second_response_fails_precondition(self, dispatch, flows, vendor, customer):
        booking = flows.shop_booking(customer)
        dispatch.bookings.respond_as_vendor(vendor, CITY, booking.id, "ACCEPT")

        with pytest.raises(FailedPreconditionException):
            dispatch.bookings.respond_as_vendor(vendor, CITY, booking.id, "REJECT")

    def test_unknown_action(self, dispatch, flows, vendor, customer):
        booking = flows.shop_booking(customer)
        with pytest.raises(InvalidArgumentException):
            dispatch.bookings.respond_as_vendor(vendor, CITY, booking.id, "MAYBE")

    def test_vendor_cannot_answer_home_booking(self, dispatch, flows, seed, vendor, customer):
        seed.freelancer("f_1")
        booking = flows.home_booking(customer)
        with pytest.raises(FailedPreconditionException):
            dispatch.bookings.respond_as_vendor(vendor, CITY, booking.id, "ACCEPT")

    def test_missing_booking(self, dispatch, vendor):
        with pytest.raises(NotFoundException):
            dispatch.bookings.respond_as_vendor(vendor, CITY, "nope", "ACCEPT")


class TestFreelancerResponse:
    def test_accept_confirms(self, dispatch, flows, seed, vendor, customer):
        freelancer = seed.freelancer("f_1")
        booking = flows.home_booking(customer)

        result = dispatch.bookings.respond_as_freelancer(freelancer, CITY, booking.id, "ACCEPT")

        assert result.booking.status == "CONFIRMED"
        assert result.reassigned is False

    def test_reject_hands_booking_to_next_freelancer(self, dispatch, flows, seed, vendor, customer, scheduler):
        gold = seed.freelancer("f_gold", tier="gold")
        seed.freelancer("f_silver", tier="silver")
        booking = flows.home_booking(customer)

        result = dispatch.bookings.respond_as_freelancer(gold, CITY, booking.id, "REJECT")

        assert result.reassigned is True
        assert result.booking.status == "ASSIGNED"
        assert result.booking.freelancer_id == "f_silver"
        assert result.booking.tried_freelancer_ids == ["f_gold"]
        assert scheduler.calls[-1] == (CITY, booking.id, "f_silver")
        assert len(scheduler.calls) == 2

    def test_not_the_assigned_freelancer(self, dispatch, flows, seed, vendor, customer):
        seed.freelancer("f_gold", tier="gold")
        other = seed.freelancer("f_silver", tier="silver")
        booking = flows.home_booking(customer)

        with pytest.raises(PermissionDeniedException):
            dispatch.bookings.respond_as_freelancer(other, CITY, booking.id, "ACCEPT")

    def test_vendor_role_is_denied(self, dispatch, flows, seed, vendor, customer):
        seed.freelancer("f_1")
        booking = flows.home_booking(customer)
        with pytest.raises(PermissionDeniedException):
            dispatch.bookings.respond_as_freelancer(vendor, CITY, booking.id, "ACCEPT")


class TestDelivery:
    def test_start_then_complete_home_booking(self, dispatch, flows, seed, vendor, customer):
        seed.freelancer("f_1")
        booking, freelancer = flows.confirmed_home_booking(customer)

        started = dispatch.bookings.start_booking(freelancer, CITY, booking.id)
        assert started.status == "IN_PROGRESS"

        completed = dispatch.bookings.complete_booking(freelancer, CITY, booking.id)

        assert completed.status == "COMPLETED"
        assert completed.payment_status == "CAPTURED"
        assert completed.payment_provider_ref == f"MOCK_CAPTURE_{booking.id}"
        assert dispatch.ledger.get_payable_balance("f_1") == Decimal("900.00")
        assert is_valid_status_chain(status_path(completed))

    def test_complete_offline_booking_posts_commission_debt(self, dispatch, flows, vendor, customer):
        booking = flows.completed_shop_booking(customer, vendor)

        assert booking.status == "COMPLETED"
        assert booking.payment_status == "NOT_REQUIRED"
        entries = dispatch.ledger.get_entries("vendor_1")
        assert [(e.entry_type, e.balance_after) for e in entries] == [
            ("EARNING", Decimal("1000.00")),
            ("COMMISSION", Decimal("900.00")),
        ]
        assert dispatch.ledger.get_payable_balance("vendor_1") == Decimal("-100.00")

    def test_complete_without_authorization_leaves_payment_pending(self, dispatch, flows, seed, vendor, customer):
        seed.freelancer("f_1")
        booking, freelancer = flows.confirmed_home_booking(customer, authorize=False)

        completed = dispatch.bookings.complete_booking(freelancer, CITY, booking.id)

        assert completed.payment_status == "PENDING"

    def test_complete_twice_fails_and_posts_once(self, dispatch, flows, vendor, customer):
        booking = flows.completed_shop_booking(customer, vendor)

        with pytest.raises(FailedPreconditionException):
            dispatch.bookings.complete_booking(vendor, CITY, booking.id)
        assert len(dispatch.ledger.get_entries("vendor_1")) == 2

    def test_customer_cannot_complete(self, dispatch, flows, vendor, customer):
        booking = flows.shop_booking(customer)
        dispatch.bookings.respond_as_vendor(vendor, CITY, booking.id, "ACCEPT")
        with pytest.raises(PermissionDeniedException):
            dispatch.bookings.complete_booking(customer, CITY, booking.id)

    def test_start_requires_confirmed(self, dispatch, flows, vendor, customer):
        booking = flows.shop_booking(customer)
        with pytest.raises(FailedPreconditionException):
            dispatch.bookings.start_booking(vendor, CITY, booking.id)


class TestCancel:
    def test_cancel_created_booking(self, dispatch, flows, vendor, customer):
        booking = flows.shop_booking(customer)

        cancelled = dispatch.bookings.cancel_booking(customer, CITY, booking.id)

        assert cancelled.status == "CANCELLED"
        assert dispatch.ledger.get_entries("vendor_1") == []

    def test_cancel_completed_online_booking_refunds(self, dispatch, flows, seed, vendor, customer):
        seed.freelancer("f_1")
        booking, _ = flows.completed_home_booking(customer)

        cancelled = dispatch.bookings.cancel_booking(customer, CITY, booking.id)

        assert cancelled.status == "CANCELLED"
        assert cancelled.payment_status == "REFUNDED"
        assert dispatch.ledger.get_payable_balance("f_1") == Decimal("-100.00")
        assert is_valid_status_chain(status_path(cancelled))

    def test_cancel_failed_booking_is_refused(self, dispatch, db, vendor, customer):
        with pytest.raises(ResourceExhaustedException):
            dispatch.bookings.create_booking(
                customer, city_id=CITY, service_id="svc_home", booking_type="HOME"
            )
        booking = db.query(Booking).one()

        with pytest.raises(FailedPreconditionException):
            dispatch.bookings.cancel_booking(customer, CITY, booking.id)

    def test_cancel_twice_is_refused(self, dispatch, flows, vendor, customer):
        booking = flows.shop_booking(customer)
        dispatch.bookings.cancel_booking(customer, CITY, booking.id)
        with pytest.raises(FailedPreconditionException):
            dispatch.bookings.cancel_booking(customer, CITY, booking.id)

    def test_only_owner_cancels(self, dispatch, flows, seed, vendor, customer):
        stranger = seed.customer("cust_2")
        booking = flows.shop_booking(customer)
        with pytest.raises(PermissionDeniedException):
            dispatch.bookings.cancel_booking(stranger, CITY, booking.id)


class TestReads:
    def test_parties_and_operators_can_read(self, dispatch, flows, vendor, customer, operator):
        booking = flows.shop_booking(customer)

        for caller in (customer, vendor, operator):
            loaded = dispatch.bookings.get_booking_by_id(caller, CITY, booking.id)
            assert loaded.id == booking.id
        assert loaded.to_dict(include_events=True)["statusEvents"][0]["to"] == "CREATED"

    def test_stranger_cannot_read(self, dispatch, flows, seed, vendor, customer):
        stranger = seed.customer("cust_2")
        booking = flows.shop_booking(customer)
        with pytest.raises(PermissionDeniedException):
            dispatch.bookings.get_booking_by_id(stranger, CITY, booking.id)

    def test_wrong_city_is_not_found(self, dispatch, flows, vendor, customer):
        booking = flows.shop_booking(customer)
        with pytest.raises(NotFoundException):
            dispatch.bookings.get_booking_by_id(customer, "hyd", booking.id)

    def test_my_bookings(self, dispatch, flows, seed, vendor, customer, clock):
        first = flows.shop_booking(customer, key="a")
        clock.advance(minutes=1)
        second = flows.shop_booking(customer, key="b")
        seed.customer("cust_2")

        mine = dispatch.bookings.get_my_bookings(customer)
        vendors = dispatch.bookings.get_my_bookings(vendor)
        others = dispatch.bookings.get_my_bookings(Caller("cust_2", "customer"))

        assert [b.id for b in mine] == [second.id, first.id]
        assert {b.id for b in vendors} == {first.id, second.id}
        assert others == []


@pytest.fixture
def second_session(session_factory, clock, scheduler):
    """A second engine on its own session, as a concurrent worker would hold."""
    session = session_factory()
    try:
        yield session, DispatchEngine(session, clock=clock, scheduler=scheduler)
    finally:
        session.close()


class TestConcurrentResponses:
    def test_losing_response_fails_cleanly(self, dispatch, db, flows, seed, vendor, customer, scheduler, second_session):
        gold = seed.freelancer("f_gold", tier="gold")
        seed.freelancer("f_silver", tier="silver")
        booking = flows.home_booking(customer)
        other_db, other = second_session
        # the second worker reads the booking while it is still ASSIGNED
        assert other_db.get(Booking, booking.id).status == "ASSIGNED"

        dispatch.bookings.respond_as_freelancer(gold, CITY, booking.id, "ACCEPT")

        with pytest.raises(FailedPreconditionException):
            other.bookings.respond_as_freelancer(gold, CITY, booking.id, "REJECT")

        db.expire_all()
        stored = db.get(Booking, booking.id)
        assert stored.status == "CONFIRMED"
        assert stored.freelancer_id == "f_gold"
        assert stored.assignment_attempts == []
        assert status_path(stored)[-1] == ("ASSIGNED", "CONFIRMED")
        assert scheduler.calls == [(CITY, booking.id, "f_gold")]

    def test_timeout_on_stale_snapshot_is_noop(self, dispatch, db, flows, seed, vendor, customer, scheduler, second_session):
        gold = seed.freelancer("f_gold", tier="gold")
        seed.freelancer("f_silver", tier="silver")
        booking = flows.home_booking(customer)
        other_db, other = second_session
        assert other_db.get(Booking, booking.id).status == "ASSIGNED"

        dispatch.bookings.respond_as_freelancer(gold, CITY, booking.id, "ACCEPT")
        outcome = other.assignment.handle_assignment_timeout(CITY, booking.id, "f_gold")

        assert outcome.noop is True
        assert outcome.booking.status == "CONFIRMED"
        db.expire_all()
        stored = db.get(Booking, booking.id)
        assert stored.status == "CONFIRMED"
        assert stored.freelancer_id == "f_gold"
        assert [e for e in stored.status_events if e.to_status == "TIMEOUT"] == []
        assert len(scheduler.calls) == 1
