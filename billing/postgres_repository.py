"""
PostgreSQL-backed bill repository.

A bill spans three tables: ``bills``, ``bill_items`` and ``bill_payments``.
Each save is one transaction. Updates are guarded by
``WHERE id = %s AND version = %s`` so a stale writer changes zero rows and
gets ConcurrentModification. Items are written once at insert time; payments
are append-only inserts.
"""

from datetime import date
from typing import Any
from uuid import UUID

from billing.exceptions import ConcurrentModification
from billing.models import Bill
from billing.repository import BillRepository, _check_new_version
from clients.postgres_client import PostgresClient, TransactionCursor
from utils.timezone import to_utc

_ITEM_COLUMNS = (
    "service_id", "service_name", "service_type", "description",
    "quantity", "unit_price_cents", "tax_rate_bps", "discount_rate_bps",
    "line_subtotal_cents", "discount_amount_cents", "taxable_amount_cents",
    "tax_amount_cents", "total_amount_cents",
)

_PAYMENT_COLUMNS = (
    "id", "bill_id", "amount_cents", "payment_date", "payment_method",
    "reference", "notes", "recorded_at",
)


def _placeholders(count: int) -> str:
    return ", ".join(["%s"] * count)


class PostgresBillRepository(BillRepository):
    """Bill repository on PostgreSQL."""

    def __init__(self, postgres: PostgresClient):
        self.postgres = postgres

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def save(self, bill: Bill, expected_version: int) -> Bill:
        _check_new_version(bill, expected_version)

        with self.postgres.transaction() as cur:
            if expected_version == 0:
                self._insert_bill(cur, bill)
                for position, item in enumerate(bill.items):
                    self._insert_item(cur, bill.id, position, item.model_dump())
            else:
                self._update_bill(cur, bill, expected_version)

            for position, payment in enumerate(bill.payments):
                self._insert_payment(cur, position, payment.model_dump())

        return bill

    def _insert_bill(self, cur: TransactionCursor, bill: Bill) -> None:
        cur.execute(
            """
            INSERT INTO bills (
                id, bill_number, patient_id, hospital_id,
                bill_type, appointment_id, bill_date, due_date,
                subtotal_cents, discount_amount_cents, tax_amount_cents, total_amount_cents,
                paid_amount_cents, balance_cents, status, version,
                notes, cancelled_at, created_at, updated_at
            ) VALUES (
                %s, %s, %s, %s,
                %s, %s, %s, %s,
                %s, %s, %s, %s,
                %s, %s, %s, %s,
                %s, %s, %s, %s
            )
            """,
            (
                bill.id, bill.bill_number, bill.patient_id, bill.hospital_id,
                bill.bill_type.value, bill.appointment_id, bill.bill_date, bill.due_date,
                bill.subtotal_cents, bill.discount_amount_cents, bill.tax_amount_cents, bill.total_amount_cents,
                bill.paid_amount_cents, bill.balance_cents, bill.status.value, bill.version,
                bill.notes, bill.cancelled_at, bill.created_at, bill.updated_at
            )
        )

    def _insert_item(self, cur: TransactionCursor, bill_id: UUID, position: int, item: dict[str, Any]) -> None:
        cur.execute(
            f"""
            INSERT INTO bill_items (bill_id, position, {', '.join(_ITEM_COLUMNS)})
            VALUES (%s, %s, {_placeholders(len(_ITEM_COLUMNS))})
            """,
            (bill_id, position, *(item[c] for c in _ITEM_COLUMNS))
        )

    def _insert_payment(self, cur: TransactionCursor, position: int, payment: dict[str, Any]) -> None:
        payment["payment_method"] = payment["payment_method"].value
        cur.execute(
            f"""
            INSERT INTO bill_payments (position, {', '.join(_PAYMENT_COLUMNS)})
            VALUES (%s, {_placeholders(len(_PAYMENT_COLUMNS))})
            ON CONFLICT (id) DO NOTHING
            """,
            (position, *(payment[c] for c in _PAYMENT_COLUMNS))
        )

    def _update_bill(self, cur: TransactionCursor, bill: Bill, expected_version: int) -> None:
        rows = cur.execute(
            """
            UPDATE bills
            SET status = %s, paid_amount_cents = %s, balance_cents = %s,
                version = %s, cancelled_at = %s, updated_at = %s
            WHERE id = %s AND version = %s
            RETURNING id
            """,
            (
                bill.status.value, bill.paid_amount_cents, bill.balance_cents,
                bill.version, bill.cancelled_at, bill.updated_at,
                bill.id, expected_version
            )
        )
        if rows:
            return

        current = cur.execute("SELECT version FROM bills WHERE id = %s", (bill.id,))
        actual = current[0]["version"] if current else None
        raise ConcurrentModification(bill.id, expected_version, actual)

    def next_bill_number(self, prefix: str, day: date) -> str:
        key = f"{prefix}-{day.strftime('%Y%m%d')}-"

        # Upsert takes a row lock, so concurrent callers get distinct values.
        # A number drawn for a bill that never commits is skipped, not reused.
        row = self.postgres.execute_single(
            """
            INSERT INTO bill_number_sequences (key, last_value)
            VALUES (%s, 1)
            ON CONFLICT (key) DO UPDATE
                SET last_value = bill_number_sequences.last_value + 1
            RETURNING last_value
            """,
            (key,)
        )

        return f"{key}{row['last_value']:04d}"

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def find_by_id(self, bill_id: UUID) -> Bill | None:
        rows = self.postgres.execute("SELECT * FROM bills WHERE id = %s", (bill_id,))
        bills = self._hydrate(rows)
        return bills[0] if bills else None

    def find_by_patient(self, patient_id: UUID, limit: int = 50) -> list[Bill]:
        rows = self.postgres.execute(
            """
            SELECT * FROM bills
            WHERE patient_id = %s
            ORDER BY created_at DESC
            LIMIT %s
            """,
            (patient_id, limit)
        )
        return self._hydrate(rows)

    def find_by_hospital(self, hospital_id: UUID, limit: int = 50) -> list[Bill]:
        rows = self.postgres.execute(
            """
            SELECT * FROM bills
            WHERE hospital_id = %s
            ORDER BY created_at DESC
            LIMIT %s
            """,
            (hospital_id, limit)
        )
        return self._hydrate(rows)

    def find_open_past_due(self, today: date, limit: int = 50) -> list[Bill]:
        rows = self.postgres.execute(
            """
            SELECT * FROM bills
            WHERE cancelled_at IS NULL
              AND balance_cents > 0
              AND due_date < %s
            ORDER BY due_date ASC
            LIMIT %s
            """,
            (today, limit)
        )
        return self._hydrate(rows)

    def _hydrate(self, rows: list[dict[str, Any]]) -> list[Bill]:
        """Attach items and payments to bill rows and validate them into Bills."""
        if not rows:
            return []

        ids = [str(row["id"]) for row in rows]

        items: dict[str, list[dict[str, Any]]] = {i: [] for i in ids}
        for row in self.postgres.execute(
            "SELECT * FROM bill_items WHERE bill_id = ANY(%s::uuid[]) ORDER BY position ASC",
            (ids,)
        ):
            items[str(row["bill_id"])].append(row)

        payments: dict[str, list[dict[str, Any]]] = {i: [] for i in ids}
        for row in self.postgres.execute(
            "SELECT * FROM bill_payments WHERE bill_id = ANY(%s::uuid[]) ORDER BY position ASC",
            (ids,)
        ):
            row["recorded_at"] = to_utc(row["recorded_at"])
            payments[str(row["bill_id"])].append(row)

        bills = []
        for row in rows:
            key = str(row["id"])
            bills.append(Bill.model_validate({
                **row,
                "items": items[key],
                "payments": payments[key],
            }))
        return bills
