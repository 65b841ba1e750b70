"""Constants and builders shared across the test suite."""

from datetime import date, timedelta
from uuid import UUID

from billing.models import BillCreate, BillItemRequest, ServiceReference

TODAY = date(2026, 3, 15)

PATIENT_ID = UUID("00000000-0000-0000-0000-000000000101")
PATIENT_B_ID = UUID("00000000-0000-0000-0000-000000000102")
HOSPITAL_ID = UUID("00000000-0000-0000-0000-000000000201")
HOSPITAL_B_ID = UUID("00000000-0000-0000-0000-000000000202")

CONSULTATION = ServiceReference(
    service_id=UUID("00000000-0000-0000-0000-000000000301"),
    service_name="General Consultation",
    service_type="CONSULTATION",
    unit_price_cents=50000,  # 500.00
    tax_rate_bps=1800,  # 18%
)

BLOOD_TEST = ServiceReference(
    service_id=UUID("00000000-0000-0000-0000-000000000302"),
    service_name="Complete Blood Count",
    service_type="LAB",
    unit_price_cents=33333,  # 333.33
    tax_rate_bps=1250,  # 12.5%
)

BANDAGE = ServiceReference(
    service_id=UUID("00000000-0000-0000-0000-000000000303"),
    service_name="Sterile Bandage",
    service_type="PHARMACY",
    unit_price_cents=1999,  # 19.99
    tax_rate_bps=500,  # 5%
    discount_rate_bps=1000,  # 10% catalog discount
)


def bill_request(*items: BillItemRequest, **overrides) -> BillCreate:
    """BillCreate for the primary patient and hospital, due in 30 days."""
    fields = {
        "patient_id": PATIENT_ID,
        "hospital_id": HOSPITAL_ID,
        "bill_date": TODAY,
        "due_date": TODAY + timedelta(days=30),
        "items": list(items) or [BillItemRequest(service_id=CONSULTATION.service_id)],
    }
    fields.update(overrides)
    return BillCreate(**fields)


def make_bill(*services: ServiceReference, due_date: date | None = None, bill_date: date = TODAY, **overrides):
    """A valid, unsaved version-1 Bill priced from ``services`` (one unit each)."""
    from uuid import uuid4

    from billing.engine import aggregate, price_line_item
    from billing.models import Bill, BillStatus
    from utils.timezone import now_utc

    items = tuple(price_line_item(s, 1) for s in (services or (CONSULTATION,)))
    totals = aggregate(items)
    now = now_utc()

    fields = {
        "id": uuid4(),
        "bill_number": "BILL-20260315-0001",
        "patient_id": PATIENT_ID,
        "hospital_id": HOSPITAL_ID,
        "bill_date": bill_date,
        "due_date": due_date or bill_date + timedelta(days=30),
        "items": items,
        **totals.as_fields(),
        "paid_amount_cents": 0,
        "balance_cents": totals.total_amount_cents,
        "status": BillStatus.PENDING,
        "version": 1,
        "created_at": now,
        "updated_at": now,
    }
    fields.update(overrides)
    return Bill(**fields)
