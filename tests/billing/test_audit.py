"""Tests for the bill audit trail."""

from unittest.mock import Mock

from psycopg2.extras import Json

from billing.audit import AuditLogger, bill_changes, compute_changes
from billing.engine import apply_payment
from billing.models import BillStatus, PaymentCreate, PaymentMethod
from utils.timezone import now_utc

from factories import TODAY, make_bill


def pay(bill, amount_cents):
    return apply_payment(bill, PaymentCreate(
        amount_cents=amount_cents, payment_date=TODAY,
        payment_method=PaymentMethod.DEBIT_CARD, reference="POS-5521",
    )).bill


class TestComputeChanges:
    """Tests for compute_changes()."""

    def test_changed_fields_only(self):
        changes = compute_changes(
            {"status": "PENDING", "balance_cents": 59000, "version": 1},
            {"status": "PAID", "balance_cents": 0, "version": 1},
        )

        assert changes == {
            "status": {"old": "PENDING", "new": "PAID"},
            "balance_cents": {"old": 59000, "new": 0},
        }

    def test_ignores_updated_at(self):
        assert compute_changes({"updated_at": "a"}, {"updated_at": "b"}) == {}

    def test_added_and_removed_keys(self):
        changes = compute_changes({"cancelled_at": None}, {"notes": "x"})

        assert changes == {"notes": {"old": None, "new": "x"}}

    def test_custom_exclusions(self):
        assert compute_changes({"version": 1}, {"version": 2}, exclude_fields={"version"}) == {}


class TestBillChanges:
    """Tests for bill_changes()."""

    def test_payment(self):
        before = make_bill()
        after = pay(before, 30000)

        changes = bill_changes(before, after)

        assert changes["paid_amount_cents"] == {"old": 0, "new": 30000}
        assert changes["balance_cents"] == {"old": 59000, "new": 29000}
        assert changes["version"] == {"old": 1, "new": 2}
        assert changes["payment_recorded"]["reference"] == "POS-5521"
        assert changes["payment_recorded"]["amount_cents"] == 30000
        assert "status" not in changes

    def test_cancellation(self):
        before = make_bill()
        after = before.evolve(status=BillStatus.CANCELLED, cancelled_at=now_utc(), version=2)

        changes = bill_changes(before, after)

        assert changes["status"] == {"old": "PENDING", "new": "CANCELLED"}
        assert changes["cancelled_at"]["old"] is None
        assert "payment_recorded" not in changes

    def test_untracked_fields_ignored(self):
        before = make_bill()

        assert bill_changes(before, before.evolve(notes="Follow-up")) == {}


class TestAuditLogger:
    """Tests for AuditLogger."""

    def test_record_created(self):
        postgres = Mock()
        bill = make_bill()

        AuditLogger(postgres).record_created(bill)

        query, params = postgres.execute.call_args.args
        assert "INSERT INTO audit_log" in query
        assert params[1:4] == ("bill", bill.id, "create")
        assert isinstance(params[4], Json)
        created = params[4].adapted["created"]
        assert created["total_amount_cents"] == 59000
        assert "payments" not in created

    def test_record_updated(self):
        postgres = Mock()
        before = make_bill()
        after = pay(before, 100)

        AuditLogger(postgres).record_updated(before, after)

        params = postgres.execute.call_args.args[1]
        assert params[3] == "update"
        assert params[4].adapted == bill_changes(before, after)

    def test_bill_history(self):
        postgres = Mock()
        postgres.execute.return_value = [{"action": "create"}]
        bill = make_bill()

        history = AuditLogger(postgres).get_bill_history(bill.id)

        assert history == [{"action": "create"}]
        assert postgres.execute.call_args.args[1] == ("bill", bill.id)
