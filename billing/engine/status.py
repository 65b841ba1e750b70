"""
Bill status resolution.

Status is a pure function of balance, total, due date, today's date and the
cancellation flag. The only administrative override is cancellation, and it
is accepted only while the bill is still open.

    PENDING ──pay part──▶ PARTIALLY_PAID ──pay rest──▶ PAID
       │                        │
       └──due date passes──▶ OVERDUE ──pay rest──▶ PAID
    PENDING / PARTIALLY_PAID / OVERDUE ──cancel──▶ CANCELLED
"""

from datetime import date

from billing.exceptions import InvalidTransition
from billing.models import Bill, BillStatus

# Statuses from which a manual cancellation is accepted
_CANCELLABLE = frozenset({BillStatus.PENDING, BillStatus.PARTIALLY_PAID, BillStatus.OVERDUE})


def resolve_status(
    balance_cents: int,
    total_cents: int,
    due_date: date,
    today: date,
    cancelled: bool,
) -> BillStatus:
    """Derive a bill's status. Rules are checked in order, first match wins."""
    if cancelled:
        return BillStatus.CANCELLED
    if balance_cents == 0:
        return BillStatus.PAID
    if today > due_date:
        return BillStatus.OVERDUE
    if balance_cents < total_cents:
        return BillStatus.PARTIALLY_PAID
    return BillStatus.PENDING


def resolve_for(bill: Bill, today: date) -> BillStatus:
    """Resolve status from a bill's current figures."""
    return resolve_status(
        bill.balance_cents,
        bill.total_amount_cents,
        bill.due_date,
        today,
        bill.is_cancelled,
    )


def with_resolved_status(bill: Bill, today: date) -> Bill:
    """Return the bill with its status re-derived, or the same bill if unchanged."""
    status = resolve_for(bill, today)
    if status == bill.status:
        return bill
    return bill.evolve(status=status)


def check_override(current: BillStatus, requested: BillStatus) -> None:
    """
    Validate an administrative status change.

    Only CANCELLED can be requested, and only from an open status. A paid
    bill cannot be cancelled this way.

    Raises:
        InvalidTransition: The change is not an allowed override
    """
    if requested != BillStatus.CANCELLED or current not in _CANCELLABLE:
        raise InvalidTransition(current.value, requested.value)
