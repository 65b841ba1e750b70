"""
Domain events for billing.

Immutable event objects published after a bill change has been committed.
Collaborators (notifications, dashboards) subscribe to these instead of
polling.

Events carry the full Bill so handlers don't need to re-fetch state.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import uuid4

from utils.timezone import now_utc


@dataclass(frozen=True, kw_only=True)
class BillingEvent:
    """Base class for all billing events."""
    event_id: str = field(default_factory=lambda: str(uuid4()))
    occurred_at: datetime = field(default_factory=now_utc)


@dataclass(frozen=True)
class BillCreated(BillingEvent):
    """A new bill was stored."""
    bill: Any = None  # Bill; Any avoids a circular import

    @classmethod
    def create(cls, bill: Any) -> "BillCreated":
        return cls(bill=bill)


@dataclass(frozen=True)
class PaymentRecorded(BillingEvent):
    """A payment was appended to a bill's ledger."""
    bill: Any = None
    payment: Any = None

    @classmethod
    def create(cls, bill: Any, payment: Any) -> "PaymentRecorded":
        return cls(bill=bill, payment=payment)


@dataclass(frozen=True)
class BillPaid(BillingEvent):
    """Bill balance reached zero."""
    bill: Any = None

    @classmethod
    def create(cls, bill: Any) -> "BillPaid":
        return cls(bill=bill)


@dataclass(frozen=True)
class BillCancelled(BillingEvent):
    """Bill was administratively cancelled."""
    bill: Any = None

    @classmethod
    def create(cls, bill: Any) -> "BillCancelled":
        return cls(bill=bill)


@dataclass(frozen=True)
class BillOverdue(BillingEvent):
    """A bill's due date passed with a balance outstanding."""
    bill: Any = None

    @classmethod
    def create(cls, bill: Any) -> "BillOverdue":
        return cls(bill=bill)
