"""Bill domain models.

All amounts are stored in cents (integer) to avoid floating point issues.
590.00 = 59000 cents.

A Bill is an immutable value. Every change goes through ``Bill.evolve``,
which re-validates the whole record, so totals, paid amount and balance can
never be stored out of step with the items and payments they summarize.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from billing.models.bill_item import BillItem, BillItemRequest
from billing.models.payment import Payment
from billing.money import cents_to_decimal


class BillStatus(str, Enum):
    """Bill lifecycle status. Derived by the status resolver, never set directly."""

    PENDING = "PENDING"
    PARTIALLY_PAID = "PARTIALLY_PAID"
    PAID = "PAID"
    OVERDUE = "OVERDUE"
    CANCELLED = "CANCELLED"


class BillType(str, Enum):
    """What kind of encounter the bill covers."""

    GENERAL = "GENERAL"
    CONSULTATION = "CONSULTATION"  # Requires appointment_id
    PHARMACY = "PHARMACY"
    LAB = "LAB"


class BillCreate(BaseModel):
    """Data required to create a bill."""

    patient_id: UUID
    hospital_id: UUID
    bill_type: BillType = BillType.GENERAL
    appointment_id: UUID | None = None
    bill_date: date | None = None  # Defaults to today
    due_date: date | None = None  # Defaults to bill_date + configured days
    items: list[BillItemRequest] = Field(default_factory=list)
    notes: str | None = Field(None, max_length=2000)


class StatusUpdate(BaseModel):
    """Administrative status change request."""

    status: BillStatus


class Bill(BaseModel):
    """Full bill entity as stored."""

    id: UUID
    bill_number: str
    patient_id: UUID
    hospital_id: UUID
    bill_type: BillType = BillType.GENERAL
    appointment_id: UUID | None = None
    bill_date: date
    due_date: date
    items: tuple[BillItem, ...]
    payments: tuple[Payment, ...] = ()
    subtotal_cents: int
    discount_amount_cents: int
    tax_amount_cents: int
    total_amount_cents: int
    paid_amount_cents: int
    balance_cents: int
    status: BillStatus
    version: int = Field(..., ge=0)
    notes: str | None = None
    cancelled_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True, "frozen": True}

    @model_validator(mode="after")
    def check_invariants(self) -> "Bill":
        """Reject any bill whose stored figures disagree with its items and payments."""
        if not self.items:
            raise ValueError("Bill must contain at least one item")
        if self.due_date <= self.bill_date:
            raise ValueError("due_date must be after bill_date")

        expected = {
            "subtotal_cents": sum(i.line_subtotal_cents for i in self.items),
            "discount_amount_cents": sum(i.discount_amount_cents for i in self.items),
            "tax_amount_cents": sum(i.tax_amount_cents for i in self.items),
            "paid_amount_cents": sum(p.amount_cents for p in self.payments),
        }
        for field, value in expected.items():
            if getattr(self, field) != value:
                raise ValueError(f"{field} is {getattr(self, field)}, expected {value}")

        total = self.subtotal_cents - self.discount_amount_cents + self.tax_amount_cents
        if self.total_amount_cents != total:
            raise ValueError(f"total_amount_cents is {self.total_amount_cents}, expected {total}")

        if self.balance_cents != self.total_amount_cents - self.paid_amount_cents:
            raise ValueError("balance_cents must equal total_amount_cents - paid_amount_cents")
        if self.balance_cents < 0:
            raise ValueError("balance_cents cannot be negative")

        if (self.cancelled_at is not None) != (self.status == BillStatus.CANCELLED):
            raise ValueError("cancelled_at and CANCELLED status must agree")

        return self

    def evolve(self, **changes: Any) -> "Bill":
        """Return a re-validated copy with ``changes`` applied."""
        return Bill.model_validate({**self.model_dump(), **changes})

    @property
    def is_cancelled(self) -> bool:
        """Whether the bill was administratively cancelled."""
        return self.cancelled_at is not None

    @property
    def is_closed(self) -> bool:
        """Whether the bill accepts no further payments."""
        return self.status in (BillStatus.PAID, BillStatus.CANCELLED)

    @property
    def total_amount(self) -> Decimal:
        """Total amount for display."""
        return cents_to_decimal(self.total_amount_cents)

    @property
    def balance_amount(self) -> Decimal:
        """Remaining balance for display."""
        return cents_to_decimal(self.balance_cents)
