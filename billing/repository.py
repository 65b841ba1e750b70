"""
Bill storage.

``BillRepository`` is the contract the bill service depends on. Every write is
a compare-and-set on the bill's version: the caller says which version it
read, and the write only lands if that is still the stored version. Nothing
holds a lock while business logic runs, so a losing writer gets
ConcurrentModification and re-reads.
"""

import threading
from datetime import date
from uuid import UUID

from billing.exceptions import ConcurrentModification
from billing.models import Bill, BillStatus


class BillRepository:
    """Storage contract for bills, their items and their payments."""

    def save(self, bill: Bill, expected_version: int) -> Bill:
        """
        Persist a bill atomically.

        ``expected_version=0`` inserts a new bill, which must carry version 1.
        Otherwise the stored version must equal ``expected_version`` and the
        bill must carry ``expected_version + 1``.

        Raises:
            ConcurrentModification: Stored version differs from expected_version
        """
        raise NotImplementedError

    def find_by_id(self, bill_id: UUID) -> Bill | None:
        raise NotImplementedError

    def find_by_patient(self, patient_id: UUID, limit: int = 50) -> list[Bill]:
        raise NotImplementedError

    def find_by_hospital(self, hospital_id: UUID, limit: int = 50) -> list[Bill]:
        raise NotImplementedError

    def find_open_past_due(self, today: date, limit: int = 50) -> list[Bill]:
        """Bills not cancelled, with a balance, whose due date is before ``today``."""
        raise NotImplementedError

    def next_bill_number(self, prefix: str, day: date) -> str:
        """Next unused bill number for ``day``: PREFIX-YYYYMMDD-NNNN."""
        raise NotImplementedError


def _check_new_version(bill: Bill, expected_version: int) -> None:
    if bill.version != expected_version + 1:
        raise ValueError(
            f"Bill {bill.id} carries version {bill.version}, "
            f"expected {expected_version + 1} for this write"
        )


class InMemoryBillRepository(BillRepository):
    """
    Process-local bill store.

    A single lock guards the version check and the write together, so two
    threads saving against the same version cannot both succeed. Reads copy
    nothing: stored bills are immutable.
    """

    def __init__(self):
        self._bills: dict[UUID, Bill] = {}
        self._sequences: dict[str, int] = {}
        self._lock = threading.Lock()

    def save(self, bill: Bill, expected_version: int) -> Bill:
        _check_new_version(bill, expected_version)

        with self._lock:
            stored = self._bills.get(bill.id)
            actual = stored.version if stored is not None else 0

            if actual != expected_version:
                raise ConcurrentModification(bill.id, expected_version, actual)

            self._bills[bill.id] = bill

        return bill

    def find_by_id(self, bill_id: UUID) -> Bill | None:
        return self._bills.get(bill_id)

    def _newest_first(self, bills: list[Bill], limit: int) -> list[Bill]:
        return sorted(bills, key=lambda b: b.created_at, reverse=True)[:limit]

    def find_by_patient(self, patient_id: UUID, limit: int = 50) -> list[Bill]:
        bills = [b for b in list(self._bills.values()) if b.patient_id == patient_id]
        return self._newest_first(bills, limit)

    def find_by_hospital(self, hospital_id: UUID, limit: int = 50) -> list[Bill]:
        bills = [b for b in list(self._bills.values()) if b.hospital_id == hospital_id]
        return self._newest_first(bills, limit)

    def find_open_past_due(self, today: date, limit: int = 50) -> list[Bill]:
        bills = [
            b for b in list(self._bills.values())
            if b.status != BillStatus.CANCELLED and b.balance_cents > 0 and b.due_date < today
        ]
        return sorted(bills, key=lambda b: b.due_date)[:limit]

    def next_bill_number(self, prefix: str, day: date) -> str:
        key = f"{prefix}-{day.strftime('%Y%m%d')}-"
        with self._lock:
            sequence = self._sequences.get(key, 0) + 1
            self._sequences[key] = sequence
        return f"{key}{sequence:04d}"
