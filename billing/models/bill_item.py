"""Bill line item models.

All amounts are stored in cents (integer) to avoid floating point issues.
Rates are basis points (10000 = 100%).
"""

from uuid import UUID

from pydantic import BaseModel, Field


class BillItemRequest(BaseModel):
    """A service to bill, as requested by the caller before pricing."""

    service_id: UUID
    quantity: int = 1
    discount_rate_bps: int | None = None
    description: str | None = Field(None, max_length=500)


class BillItem(BaseModel):
    """
    A priced line on a bill.

    Derived amounts are computed once by the line item calculator and stored,
    so a bill's history never depends on later catalog price changes.
    """

    service_id: UUID
    service_name: str
    service_type: str
    description: str | None = None
    quantity: int
    unit_price_cents: int
    tax_rate_bps: int
    discount_rate_bps: int = 0
    line_subtotal_cents: int
    discount_amount_cents: int
    taxable_amount_cents: int
    tax_amount_cents: int
    total_amount_cents: int

    model_config = {"from_attributes": True, "frozen": True}
