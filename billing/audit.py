"""
Audit trail for bills.

Each committed bill write appends one row to ``audit_log``: the full bill
when it is created, and the changed money and lifecycle fields on every later
version. Rows are never modified or deleted. Together with the append-only
payment ledger this is the complete financial history of a bill.
"""

from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from psycopg2.extras import Json

from billing.models import Bill
from clients.postgres_client import PostgresClient
from utils.timezone import now_utc

ENTITY_TYPE = "bill"

# Compared between versions. Items are fixed at creation.
TRACKED_FIELDS = {"status", "paid_amount_cents", "balance_cents", "version", "cancelled_at"}


class AuditAction(Enum):
    """Type of change recorded."""

    CREATE = "create"
    UPDATE = "update"


def compute_changes(
    old: dict[str, Any],
    new: dict[str, Any],
    exclude_fields: set[str] | None = None
) -> dict[str, dict[str, Any]]:
    """
    Field-level diff of two JSON-ready snapshots.

    Returns:
        {field: {"old": ..., "new": ...}} for every field whose value differs.
        ``updated_at`` is ignored unless ``exclude_fields`` says otherwise.
    """
    exclude = exclude_fields or {"updated_at"}
    return {
        key: {"old": old.get(key), "new": new.get(key)}
        for key in sorted(set(old) | set(new))
        if key not in exclude and old.get(key) != new.get(key)
    }


def bill_changes(before: Bill, after: Bill) -> dict[str, Any]:
    """
    Diff two versions of a bill.

    A payment appended between the versions is included in full under
    ``payment_recorded``.
    """
    changes: dict[str, Any] = compute_changes(
        before.model_dump(mode="json", include=TRACKED_FIELDS),
        after.model_dump(mode="json", include=TRACKED_FIELDS),
    )
    appended = after.payments[len(before.payments):]
    if appended:
        changes["payment_recorded"] = appended[-1].model_dump(mode="json")
    return changes


class AuditLogger:
    """
    Writes and reads bill audit rows.

    Usage:
        audit = AuditLogger(postgres)

        audit.record_created(bill)
        audit.record_updated(previous, saved)

        history = audit.get_bill_history(bill.id)
    """

    def __init__(self, postgres: PostgresClient):
        self.postgres = postgres

    def record_created(self, bill: Bill) -> None:
        """Log a new bill with its items and totals."""
        self._insert(
            bill.id,
            AuditAction.CREATE,
            {"created": bill.model_dump(mode="json", exclude={"payments"})}
        )

    def record_updated(self, before: Bill, after: Bill) -> None:
        """Log the step from one stored version of a bill to the next."""
        self._insert(after.id, AuditAction.UPDATE, bill_changes(before, after))

    def _insert(self, bill_id: UUID, action: AuditAction, changes: dict[str, Any]) -> None:
        self.postgres.execute(
            """
            INSERT INTO audit_log (id, entity_type, entity_id, action, changes, created_at)
            VALUES (%s, %s, %s, %s, %s, %s)
            """,
            (uuid4(), ENTITY_TYPE, bill_id, action.value, Json(changes), now_utc())
        )

    def get_bill_history(self, bill_id: UUID) -> list[dict[str, Any]]:
        """Audit rows for a bill, newest first."""
        return self.postgres.execute(
            """
            SELECT id, entity_type, entity_id, action, changes, created_at
            FROM audit_log
            WHERE entity_type = %s AND entity_id = %s
            ORDER BY created_at DESC
            """,
            (ENTITY_TYPE, bill_id)
        )
