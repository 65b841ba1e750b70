"""Typed exceptions for billing failures.

Every error carries a machine-readable ``code``. The category base classes
decide how a caller should react:

- BillingValidationError: bad input, rejected before any mutation. Never retry.
- DomainRuleError: a business invariant would be violated. Never retry.
- ConcurrencyError: the bill changed underneath the caller. Re-read and retry.
- NotFoundError: unknown bill, service, patient or hospital.
- CollaboratorError: catalog or directory lookup failed. Retryable infrastructure error.
"""

from uuid import UUID


class BillingError(Exception):
    """Base class for all billing engine errors."""

    code = "BILLING_ERROR"


# =============================================================================
# VALIDATION
# =============================================================================


class BillingValidationError(BillingError, ValueError):
    """Input failed a shape or range check."""

    code = "VALIDATION_ERROR"


class InvalidQuantity(BillingValidationError):
    """Line item quantity below 1."""

    code = "INVALID_QUANTITY"

    def __init__(self, quantity: int):
        self.quantity = quantity
        super().__init__(f"Quantity must be at least 1, got {quantity}")


class InvalidRate(BillingValidationError):
    """Tax or discount rate outside 0-100%."""

    code = "INVALID_RATE"

    def __init__(self, name: str, rate_bps: int):
        self.name = name
        self.rate_bps = rate_bps
        super().__init__(
            f"{name} must be between 0 and 10000 basis points, got {rate_bps}"
        )


class InvalidPrice(BillingValidationError):
    """Catalog unit price is negative."""

    code = "INVALID_PRICE"

    def __init__(self, unit_price_cents: int):
        self.unit_price_cents = unit_price_cents
        super().__init__(f"Unit price cannot be negative, got {unit_price_cents} cents")


class InvalidAmount(BillingValidationError):
    """Payment amount is zero or negative."""

    code = "INVALID_AMOUNT"

    def __init__(self, amount_cents: int):
        self.amount_cents = amount_cents
        super().__init__(f"Payment amount must be positive, got {amount_cents} cents")


class MissingReference(BillingValidationError):
    """Non-cash payment submitted without a reference."""

    code = "MISSING_REFERENCE"

    def __init__(self, payment_method: str):
        self.payment_method = payment_method
        super().__init__(f"Payments by {payment_method} require a reference")


class InvalidBillDates(BillingValidationError):
    """Due date is not after the bill date."""

    code = "INVALID_BILL_DATES"


class InvalidBillRequest(BillingValidationError):
    """Bill request is inconsistent (e.g. consultation bill without appointment)."""

    code = "INVALID_BILL_REQUEST"


# =============================================================================
# DOMAIN RULES
# =============================================================================


class DomainRuleError(BillingError):
    """A business invariant would be violated."""

    code = "DOMAIN_RULE_VIOLATION"


class EmptyBill(DomainRuleError):
    """A bill cannot be finalized without line items."""

    code = "EMPTY_BILL"

    def __init__(self, message: str = "A bill must contain at least one line item"):
        super().__init__(message)


class Overpayment(DomainRuleError):
    """Payment exceeds the outstanding balance."""

    code = "OVERPAYMENT"

    def __init__(self, amount_cents: int, balance_cents: int):
        self.amount_cents = amount_cents
        self.balance_cents = balance_cents
        super().__init__(
            f"Payment of {amount_cents} cents exceeds balance due of {balance_cents} cents"
        )


class BillClosed(DomainRuleError):
    """Bill is PAID or CANCELLED and accepts no further payments."""

    code = "BILL_CLOSED"

    def __init__(self, bill_id: UUID, status: str):
        self.bill_id = bill_id
        self.status = status
        super().__init__(f"Bill {bill_id} is {status} and accepts no payments")


class InvalidTransition(DomainRuleError):
    """Requested status change is not an allowed administrative override."""

    code = "INVALID_STATUS_TRANSITION"

    def __init__(self, current: str, requested: str):
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot change bill status from {current} to {requested}")


# =============================================================================
# CONCURRENCY
# =============================================================================


class ConcurrencyError(BillingError):
    """Base class for optimistic concurrency failures."""

    code = "CONCURRENCY_ERROR"


class ConcurrentModification(ConcurrencyError):
    """
    Stored version no longer matches the version the caller read.

    The caller must re-read the bill and re-apply the operation.
    """

    code = "CONCURRENT_MODIFICATION"

    def __init__(self, bill_id: UUID, expected_version: int, actual_version: int | None = None):
        self.bill_id = bill_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Bill {bill_id} was modified concurrently "
            f"(expected version {expected_version}, found {actual_version})"
        )


# =============================================================================
# NOT FOUND
# =============================================================================


class NotFoundError(BillingError):
    """Referenced entity does not exist."""

    code = "NOT_FOUND"
    entity = "Entity"

    def __init__(self, entity_id: UUID):
        self.entity_id = entity_id
        super().__init__(f"{self.entity} {entity_id} not found")


class BillNotFound(NotFoundError):
    entity = "Bill"


class ServiceNotFound(NotFoundError):
    entity = "Service"


class PatientNotFound(NotFoundError):
    entity = "Patient"


class HospitalNotFound(NotFoundError):
    entity = "Hospital"


# =============================================================================
# COLLABORATORS
# =============================================================================


class CollaboratorError(BillingError):
    """
    Catalog or directory lookup failed or timed out.

    Treated as a retryable infrastructure error, not a domain error.
    """

    code = "SERVICE_UNAVAILABLE"
