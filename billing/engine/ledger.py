"""
Payment ledger.

Applies a payment to a bill in memory. The ledger is append-only: payments are
never edited or removed. Overpayment is rejected outright rather than tracked
as credit.

A resubmitted payment (same reference, amount and date as one already on the
bill) is recognised as a client retry and returns the bill unchanged instead
of recording it twice.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from uuid import uuid4

from billing.exceptions import BillClosed, InvalidAmount, MissingReference, Overpayment
from billing.models import Bill, Payment, PaymentCreate, PaymentMethod
from utils.timezone import now_utc

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LedgerResult:
    """Outcome of applying a payment."""

    bill: Bill
    payment: Payment
    duplicate: bool = False


def find_duplicate(bill: Bill, data: PaymentCreate) -> Payment | None:
    """Return the recorded payment that ``data`` resubmits, if any."""
    for payment in bill.payments:
        if payment.matches(data):
            return payment
    return None


def apply_payment(bill: Bill, data: PaymentCreate, recorded_at: datetime | None = None) -> LedgerResult:
    """
    Append a payment to a bill and recompute paid and balance amounts.

    The returned bill carries version + 1. Its status is left for the status
    resolver to re-derive.

    Args:
        bill: Current bill as read from the repository
        data: Payment to record
        recorded_at: Ledger timestamp (defaults to now)

    Returns:
        LedgerResult with the updated bill, or the untouched bill and the
        existing payment when ``data`` is a duplicate submission

    Raises:
        InvalidAmount: amount <= 0
        MissingReference: non-cash payment without a reference
        BillClosed: bill is PAID or CANCELLED
        Overpayment: amount exceeds the balance
    """
    if data.amount_cents <= 0:
        raise InvalidAmount(data.amount_cents)

    reference = data.reference.strip() if data.reference else None
    if data.payment_method != PaymentMethod.CASH and not reference:
        raise MissingReference(data.payment_method.value)

    existing = find_duplicate(bill, data)
    if existing is not None:
        logger.warning(
            f"Duplicate payment submission ignored for bill {bill.id} (reference={existing.reference})"
        )
        return LedgerResult(bill=bill, payment=existing, duplicate=True)

    if bill.is_closed:
        raise BillClosed(bill.id, bill.status.value)

    if data.amount_cents > bill.balance_cents:
        raise Overpayment(data.amount_cents, bill.balance_cents)

    payment = Payment(
        id=uuid4(),
        bill_id=bill.id,
        amount_cents=data.amount_cents,
        payment_date=data.payment_date,
        payment_method=data.payment_method,
        reference=reference,
        notes=data.notes,
        recorded_at=recorded_at or now_utc(),
    )

    payments = bill.payments + (payment,)
    paid = sum(p.amount_cents for p in payments)

    updated = bill.evolve(
        payments=payments,
        paid_amount_cents=paid,
        balance_cents=bill.total_amount_cents - paid,
        version=bill.version + 1,
        updated_at=payment.recorded_at,
    )

    return LedgerResult(bill=updated, payment=payment)
