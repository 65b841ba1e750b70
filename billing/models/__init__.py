"""Billing domain models."""

from billing.models.references import ServiceReference, PatientRef, HospitalRef
from billing.models.bill_item import BillItem, BillItemRequest
from billing.models.payment import Payment, PaymentCreate, PaymentMethod
from billing.models.bill import Bill, BillCreate, BillStatus, BillType, StatusUpdate

__all__ = [
    # Collaborator references
    "ServiceReference", "PatientRef", "HospitalRef",
    # BillItem
    "BillItem", "BillItemRequest",
    # Payment
    "Payment", "PaymentCreate", "PaymentMethod",
    # Bill
    "Bill", "BillCreate", "BillStatus", "BillType", "StatusUpdate",
]
