"""Billing engine configuration."""

from pydantic import BaseModel, Field


class BillingConfig(BaseModel):
    """
    Billing configuration.

    Durations are in days; everything else is a count.
    """

    bill_number_prefix: str = Field(
        default="BILL",
        description="Prefix for generated bill numbers (PREFIX-YYYYMMDD-NNNN)",
        min_length=1,
        max_length=10,
    )
    default_due_days: int = Field(
        default=30,
        description="Days after the bill date when payment falls due, if not given",
        ge=1,
        le=365,
    )
    collaborator_max_attempts: int = Field(
        default=3,
        description="Attempts per catalog/directory lookup before giving up",
        ge=1,
        le=5,
    )
    list_limit: int = Field(
        default=50,
        description="Maximum bills returned by list operations",
        ge=1,
        le=500,
    )
