"""Read-only records supplied by external collaborators.

The service catalog and the patient/hospital directory are owned elsewhere.
These models carry only what the billing engine reads. Values are not
range-checked here; the line item calculator rejects bad catalog data.
"""

from uuid import UUID

from pydantic import BaseModel


class ServiceReference(BaseModel):
    """A priced service from the catalog."""

    service_id: UUID
    service_name: str
    service_type: str
    unit_price_cents: int
    tax_rate_bps: int = 0  # Basis points: 1800 = 18%
    discount_rate_bps: int | None = None

    model_config = {"from_attributes": True, "frozen": True}


class PatientRef(BaseModel):
    """Directory entry for a patient."""

    id: UUID
    name: str | None = None

    model_config = {"from_attributes": True, "frozen": True}


class HospitalRef(BaseModel):
    """Directory entry for a hospital."""

    id: UUID
    name: str | None = None

    model_config = {"from_attributes": True, "frozen": True}
