# backend/tests/services/test_blocking_service.py
"""
Tests for the outstanding-balance block: created on completion or refund,
enforced on provider responses, lifted by debt payments.
"""

from decimal import Decimal

import pytest

from jayple.core.caller import Caller
from jayple.core.exceptions import InvalidArgumentException, PermissionDeniedException
from jayple.models.blocked_account import BlockedAccount

from ..helpers import CITY


@pytest.fixture
def vendor(seed, dispatch):
    vendor = seed.vendor("vendor_1")
    seed.service("svc_shop", price="1000", category="hair", vendor_id=vendor.user_id)
    # Two offline commissions (-200) cross this limit
    dispatch.blocking.outstanding_limit = Decimal("150")
    return vendor


@pytest.fixture
def customer(seed):
    return seed.customer("cust_1")


class TestBlocking:
    def test_offline_commission_debt_blocks_vendor(self, dispatch, db, flows, vendor, customer):
        flows.completed_shop_booking(customer, vendor, key="a")
        assert dispatch.blocking.is_blocked("vendor_1") is False

        flows.completed_shop_booking(customer, vendor, key="b")

        block = db.get(BlockedAccount, "vendor_1")
        assert block is not None
        assert block.reason == "OUTSTANDING_LIMIT_EXCEEDED"
        assert block.outstanding_amount == Decimal("200.00")
        assert block.user_type == "vendor"

    def test_blocked_vendor_cannot_respond(self, dispatch, flows, vendor, customer):
        flows.completed_shop_booking(customer, vendor, key="a")
        flows.completed_shop_booking(customer, vendor, key="b")
        booking = flows.shop_booking(customer, key="c")

        with pytest.raises(PermissionDeniedException):
            dispatch.bookings.respond_as_vendor(vendor, CITY, booking.id, "ACCEPT")
        with pytest.raises(PermissionDeniedException):
            dispatch.bookings.respond_as_vendor(vendor, CITY, booking.id, "REJECT")

    def test_exactly_at_limit_is_not_blocked(self, dispatch, vendor):
        dispatch.blocking.outstanding_limit = Decimal("100")

        result = dispatch.blocking.check_outstanding_balance(
            "vendor_1", "vendor", pending_delta=Decimal("-100")
        )

        assert result.blocked is False
        assert result.changed is False

    def test_repeat_check_does_not_duplicate_block(self, dispatch, vendor):
        first = dispatch.blocking.check_outstanding_balance(
            "vendor_1", "vendor", pending_delta=Decimal("-500")
        )
        second = dispatch.blocking.check_outstanding_balance(
            "vendor_1", "vendor", pending_delta=Decimal("-500")
        )

        assert (first.blocked, first.changed) == (True, True)
        assert (second.blocked, second.changed) == (True, False)


class TestDebtPayments:
    def test_debt_payment_lifts_block(self, dispatch, flows, vendor, customer, operator):
        flows.completed_shop_booking(customer, vendor, key="a")
        flows.completed_shop_booking(customer, vendor, key="b")

        result = dispatch.blocking.record_debt_payment(
            operator, "vendor_1", "vendor", Decimal("100"), "CASH-42"
        )

        assert result["alreadyRecorded"] is False
        assert result["ledgerEntry"]["ledgerId"] == "debt_CASH-42"
        assert result["balance"] == Decimal("-100.00")
        assert result["blocked"] is False
        assert result["changed"] is True
        assert dispatch.blocking.is_blocked("vendor_1") is False

        # Unblocked vendor can answer again
        booking = flows.shop_booking(customer, key="c")
        dispatch.bookings.respond_as_vendor(vendor, CITY, booking.id, "ACCEPT")

    def test_same_reference_is_recorded_once(self, dispatch, vendor, operator):
        dispatch.blocking.record_debt_payment(operator, "vendor_1", "vendor", Decimal("50"), "R1")

        again = dispatch.blocking.record_debt_payment(
            operator, "vendor_1", "vendor", Decimal("50"), "R1"
        )

        assert again["alreadyRecorded"] is True
        assert again["ledgerEntry"] is None
        assert dispatch.ledger.get_payable_balance("vendor_1") == Decimal("50.00")

    def test_operator_only(self, dispatch, vendor):
        with pytest.raises(PermissionDeniedException):
            dispatch.blocking.record_debt_payment(vendor, "vendor_1", "vendor", Decimal("10"), "R2")

    @pytest.mark.parametrize("amount,reference", [(Decimal("0"), "R3"), (Decimal("10"), "")])
    def test_invalid_payment(self, dispatch, vendor, operator, amount, reference):
        with pytest.raises(InvalidArgumentException):
            dispatch.blocking.record_debt_payment(operator, "vendor_1", "vendor", amount, reference)

    def test_unblock_check_after_external_credit(self, dispatch, db, flows, vendor, customer, operator):
        flows.completed_shop_booking(customer, vendor, key="a")
        flows.completed_shop_booking(customer, vendor, key="b")
        dispatch.blocking.outstanding_limit = Decimal("1000")

        result = dispatch.blocking.unblock_user_if_cleared(operator, "vendor_1", "vendor")

        assert result.changed is True
        assert result.blocked is False
        assert db.get(BlockedAccount, "vendor_1") is None

    def test_unblock_check_is_operator_only(self, dispatch, vendor):
        with pytest.raises(PermissionDeniedException):
            dispatch.blocking.unblock_user_if_cleared(vendor, "vendor_1", "vendor")


class TestAccountSummary:
    def test_self_and_operator_can_read(self, dispatch, flows, vendor, customer, operator):
        flows.completed_shop_booking(customer, vendor, key="a")

        for caller in (vendor, operator):
            summary = dispatch.blocking.get_account_summary(caller, "vendor_1")
            assert summary["payableBalance"] == Decimal("-100.00")
            assert summary["blocked"] is False
            assert [e["entryType"] for e in summary["entries"]] == ["EARNING", "COMMISSION"]

    def test_others_cannot_read(self, dispatch, vendor):
        with pytest.raises(PermissionDeniedException):
            dispatch.blocking.get_account_summary(Caller("vendor_2", "vendor"), "vendor_1")
