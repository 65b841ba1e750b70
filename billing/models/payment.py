"""Payment models.

Payments are append-only ledger entries. They are never edited or deleted.
"""

from datetime import date, datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field


class PaymentMethod(str, Enum):
    """How a payment was made."""

    CASH = "CASH"
    CREDIT_CARD = "CREDIT_CARD"
    DEBIT_CARD = "DEBIT_CARD"
    INSURANCE = "INSURANCE"
    UPI = "UPI"
    BANK_TRANSFER = "BANK_TRANSFER"
    OTHER = "OTHER"


class PaymentCreate(BaseModel):
    """Data submitted to record a payment against a bill."""

    amount_cents: int
    payment_date: date
    payment_method: PaymentMethod
    reference: str | None = Field(None, max_length=255)
    notes: str | None = Field(None, max_length=2000)


class Payment(BaseModel):
    """A recorded payment."""

    id: UUID
    bill_id: UUID
    amount_cents: int
    payment_date: date
    payment_method: PaymentMethod
    reference: str | None = None
    notes: str | None = None
    recorded_at: datetime

    model_config = {"from_attributes": True, "frozen": True}

    def matches(self, data: PaymentCreate) -> bool:
        """Whether ``data`` is a resubmission of this payment."""
        if not self.reference or not data.reference:
            return False
        return (
            self.reference == data.reference.strip()
            and self.amount_cents == data.amount_cents
            and self.payment_date == data.payment_date
        )
