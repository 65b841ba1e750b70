"""Tests for bill status resolution."""

from datetime import timedelta

import pytest

from billing.engine import check_override, resolve_for, resolve_status, with_resolved_status
from billing.exceptions import InvalidTransition
from billing.models import BillStatus
from utils.timezone import now_utc

from factories import TODAY, make_bill

YESTERDAY = TODAY - timedelta(days=1)
TOMORROW = TODAY + timedelta(days=1)


class TestResolveStatus:
    """Tests for resolve_status()."""

    def test_unpaid_before_due_is_pending(self):
        assert resolve_status(59000, 59000, TOMORROW, TODAY, False) == BillStatus.PENDING

    def test_due_today_is_not_overdue(self):
        assert resolve_status(59000, 59000, TODAY, TODAY, False) == BillStatus.PENDING

    def test_partial_before_due(self):
        assert resolve_status(29000, 59000, TOMORROW, TODAY, False) == BillStatus.PARTIALLY_PAID

    def test_zero_balance_is_paid(self):
        assert resolve_status(0, 59000, TOMORROW, TODAY, False) == BillStatus.PAID

    def test_zero_balance_past_due_is_still_paid(self):
        assert resolve_status(0, 59000, YESTERDAY, TODAY, False) == BillStatus.PAID

    def test_unpaid_past_due_is_overdue(self):
        assert resolve_status(59000, 59000, YESTERDAY, TODAY, False) == BillStatus.OVERDUE

    def test_partial_past_due_is_overdue(self):
        assert resolve_status(100, 59000, YESTERDAY, TODAY, False) == BillStatus.OVERDUE

    @pytest.mark.parametrize("balance", [0, 100, 59000])
    def test_cancelled_wins(self, balance):
        assert resolve_status(balance, 59000, YESTERDAY, TODAY, True) == BillStatus.CANCELLED


class TestResolveForBill:
    """Tests for resolve_for() and with_resolved_status()."""

    def test_overdue_detected_without_new_payment(self):
        bill = make_bill(bill_date=TODAY - timedelta(days=10), due_date=YESTERDAY)

        assert bill.status == BillStatus.PENDING
        assert resolve_for(bill, TODAY) == BillStatus.OVERDUE

    def test_unchanged_status_returns_same_object(self):
        bill = make_bill()

        assert with_resolved_status(bill, TODAY) is bill

    def test_changed_status_returns_new_bill(self):
        bill = make_bill(bill_date=TODAY - timedelta(days=10), due_date=YESTERDAY)

        resolved = with_resolved_status(bill, TODAY)

        assert resolved.status == BillStatus.OVERDUE
        assert resolved.version == bill.version

    def test_cancelled_bill_stays_cancelled(self):
        bill = make_bill(status=BillStatus.CANCELLED, cancelled_at=now_utc(), due_date=TOMORROW)

        assert resolve_for(bill, TODAY + timedelta(days=60)) == BillStatus.CANCELLED


class TestCheckOverride:
    """Tests for check_override()."""

    @pytest.mark.parametrize("current", [
        BillStatus.PENDING, BillStatus.PARTIALLY_PAID, BillStatus.OVERDUE,
    ])
    def test_cancel_from_open_status(self, current):
        check_override(current, BillStatus.CANCELLED)

    def test_cannot_cancel_paid(self):
        with pytest.raises(InvalidTransition, match="PAID to CANCELLED"):
            check_override(BillStatus.PAID, BillStatus.CANCELLED)

    def test_cannot_cancel_twice(self):
        with pytest.raises(InvalidTransition):
            check_override(BillStatus.CANCELLED, BillStatus.CANCELLED)

    @pytest.mark.parametrize("requested", [
        BillStatus.PENDING, BillStatus.PARTIALLY_PAID, BillStatus.PAID, BillStatus.OVERDUE,
    ])
    def test_derived_statuses_cannot_be_requested(self, requested):
        with pytest.raises(InvalidTransition):
            check_override(BillStatus.PENDING, requested)
