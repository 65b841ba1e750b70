"""
Bill service: the orchestrator for the billing engine.

Every mutation follows the same path: read the current bill, compute the new
bill in memory with the pure engine functions, then commit it with a single
versioned write. If another writer got there first the write fails with
ConcurrentModification and nothing is persisted; the caller re-reads and
retries. The service itself never retries a write.
"""

import logging
from datetime import date, timedelta
from typing import Callable, TypeVar
from uuid import UUID, uuid4

from billing.audit import AuditLogger
from billing.collaborators import Directory, ServiceCatalog
from billing.config import BillingConfig
from billing.engine import (
    BillDraft,
    apply_payment,
    check_override,
    resolve_for,
    with_resolved_status,
)
from billing.event_bus import EventBus
from billing.events import BillCancelled, BillCreated, BillOverdue, BillPaid, PaymentRecorded
from billing.exceptions import (
    BillNotFound,
    CollaboratorError,
    ConcurrentModification,
    EmptyBill,
    InvalidBillDates,
    InvalidBillRequest,
)
from billing.models import Bill, BillCreate, BillStatus, BillType, PaymentCreate
from billing.money import format_cents
from billing.repository import BillRepository
from utils.timezone import now_utc, today_utc

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BillService:
    """Service for bill operations."""

    def __init__(
        self,
        repository: BillRepository,
        catalog: ServiceCatalog,
        directory: Directory,
        audit: AuditLogger,
        event_bus: EventBus,
        config: BillingConfig | None = None,
        today: Callable[[], date] = today_utc,
    ):
        self.repository = repository
        self.catalog = catalog
        self.directory = directory
        self.audit = audit
        self.event_bus = event_bus
        self.config = config or BillingConfig()
        self._today = today

    # -------------------------------------------------------------------------
    # Collaborator access
    # -------------------------------------------------------------------------

    def _with_retries(self, lookup: Callable[..., T], *args) -> T:
        """
        Call a catalog/directory lookup, retrying infrastructure failures.

        NotFound and other domain errors propagate on the first attempt.
        """
        attempts = self.config.collaborator_max_attempts
        for attempt in range(1, attempts + 1):
            try:
                return lookup(*args)
            except CollaboratorError as e:
                if attempt == attempts:
                    logger.error(f"{lookup.__name__} failed after {attempts} attempts: {e}")
                    raise
                logger.warning(f"{lookup.__name__} failed (attempt {attempt}/{attempts}): {e}")

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    def create_bill(self, data: BillCreate) -> Bill:
        """
        Price, total and store a new bill.

        Args:
            data: Bill creation data

        Returns:
            Stored bill with its id, bill number and resolved status
            (PENDING unless the due date has already passed)

        Raises:
            InvalidBillDates: due date not after bill date
            InvalidBillRequest: consultation bill without appointment
            EmptyBill: no items requested
            PatientNotFound / HospitalNotFound / ServiceNotFound
            InvalidQuantity / InvalidRate / InvalidPrice: from pricing
            CollaboratorError: lookups kept failing
        """
        today = self._today()
        bill_date = data.bill_date or today
        due_date = data.due_date or bill_date + timedelta(days=self.config.default_due_days)

        if due_date <= bill_date:
            raise InvalidBillDates(
                f"Due date {due_date.isoformat()} must be after bill date {bill_date.isoformat()}"
            )
        if data.bill_type == BillType.CONSULTATION and data.appointment_id is None:
            raise InvalidBillRequest("Consultation bills require an appointment_id")
        if not data.items:
            raise EmptyBill()

        self._with_retries(self.directory.get_patient, data.patient_id)
        self._with_retries(self.directory.get_hospital, data.hospital_id)

        draft = BillDraft()
        for request in data.items:
            service = self._with_retries(self.catalog.get_service, request.service_id)
            draft.add_item(service, request.quantity, request.discount_rate_bps, request.description)

        items, totals = draft.finalize()
        now = now_utc()

        bill = Bill(
            id=uuid4(),
            bill_number=self.repository.next_bill_number(self.config.bill_number_prefix, today),
            patient_id=data.patient_id,
            hospital_id=data.hospital_id,
            bill_type=data.bill_type,
            appointment_id=data.appointment_id,
            bill_date=bill_date,
            due_date=due_date,
            items=items,
            payments=(),
            **totals.as_fields(),
            paid_amount_cents=0,
            balance_cents=totals.total_amount_cents,
            status=BillStatus.PENDING,
            version=1,
            notes=data.notes,
            created_at=now,
            updated_at=now,
        )
        bill = with_resolved_status(bill, today)

        bill = self.repository.save(bill, expected_version=0)

        logger.info(
            f"Created bill {bill.bill_number} ({bill.id}) for patient {bill.patient_id}: "
            f"{len(bill.items)} items, total {format_cents(bill.total_amount_cents)}"
        )

        self._audit(self.audit.record_created, bill)

        self.event_bus.publish(BillCreated.create(bill=bill))

        return bill

    def add_payment(self, bill_id: UUID, data: PaymentCreate) -> Bill:
        """
        Record a payment against a bill.

        A resubmission of an already recorded payment (same reference, amount
        and date) returns the bill without writing anything.

        Args:
            bill_id: Bill UUID
            data: Payment details

        Returns:
            Updated bill (status may become PARTIALLY_PAID or PAID)

        Raises:
            BillNotFound: unknown bill
            InvalidAmount / MissingReference: bad payment input
            BillClosed: bill is PAID or CANCELLED
            Overpayment: amount exceeds the balance
            ConcurrentModification: bill changed since it was read
        """
        current = self._load(bill_id)
        today = self._today()

        result = apply_payment(current, data)
        if result.duplicate:
            return with_resolved_status(current, today)

        updated = with_resolved_status(result.bill, today)
        saved = self._commit(current, updated)

        logger.info(
            f"Recorded payment {result.payment.id} of {format_cents(data.amount_cents)} "
            f"on bill {saved.bill_number}: balance {format_cents(saved.balance_cents)}, "
            f"status {saved.status.value}"
        )

        self.event_bus.publish(PaymentRecorded.create(bill=saved, payment=result.payment))
        if saved.status == BillStatus.PAID:
            self.event_bus.publish(BillPaid.create(bill=saved))
        self._publish_if_overdue(current, saved)

        return saved

    def update_status(self, bill_id: UUID, status: BillStatus) -> Bill:
        """
        Apply an administrative status change.

        Only cancellation is accepted, and only from PENDING, PARTIALLY_PAID
        or OVERDUE. Every other status is derived, never set.

        Raises:
            BillNotFound: unknown bill
            InvalidTransition: change not allowed from the current status
            ConcurrentModification: bill changed since it was read
        """
        current = self._load(bill_id)
        check_override(resolve_for(current, self._today()), status)

        now = now_utc()
        updated = current.evolve(
            status=BillStatus.CANCELLED,
            cancelled_at=now,
            version=current.version + 1,
            updated_at=now,
        )
        saved = self._commit(current, updated)

        logger.info(f"Cancelled bill {saved.bill_number} with balance {format_cents(saved.balance_cents)}")

        self.event_bus.publish(BillCancelled.create(bill=saved))

        return saved

    def refresh_status(self, bill_id: UUID) -> Bill:
        """
        Re-resolve a bill's status and persist it if it changed.

        Used to record OVERDUE once the due date passes without a payment.

        Raises:
            BillNotFound: unknown bill
            ConcurrentModification: bill changed since it was read
        """
        current = self._load(bill_id)
        resolved = with_resolved_status(current, self._today())
        if resolved is current:
            return current

        updated = resolved.evolve(version=current.version + 1, updated_at=now_utc())
        saved = self._commit(current, updated)

        logger.info(
            f"Bill {saved.bill_number} status {current.status.value} -> {saved.status.value}"
        )

        self._publish_if_overdue(current, saved)

        return saved

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get_bill(self, bill_id: UUID) -> Bill:
        """
        Get a bill by ID with its status resolved as of today.

        The resolved status is not written back; see refresh_status.

        Raises:
            BillNotFound: unknown bill
        """
        return with_resolved_status(self._load(bill_id), self._today())

    def list_by_patient(self, patient_id: UUID, limit: int | None = None) -> list[Bill]:
        """List a patient's bills, newest first."""
        bills = self.repository.find_by_patient(patient_id, limit or self.config.list_limit)
        return self._resolve_all(bills)

    def list_by_hospital(self, hospital_id: UUID, limit: int | None = None) -> list[Bill]:
        """List a hospital's bills, newest first."""
        bills = self.repository.find_by_hospital(hospital_id, limit or self.config.list_limit)
        return self._resolve_all(bills)

    def list_overdue(self, limit: int | None = None) -> list[Bill]:
        """List bills with an outstanding balance past their due date, oldest due first."""
        today = self._today()
        bills = self.repository.find_open_past_due(today, limit or self.config.list_limit)
        resolved = [with_resolved_status(b, today) for b in bills]
        return [b for b in resolved if b.status == BillStatus.OVERDUE]

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _load(self, bill_id: UUID) -> Bill:
        bill = self.repository.find_by_id(bill_id)
        if bill is None:
            raise BillNotFound(bill_id)
        return bill

    def _resolve_all(self, bills: list[Bill]) -> list[Bill]:
        today = self._today()
        return [with_resolved_status(b, today) for b in bills]

    def _commit(self, current: Bill, updated: Bill) -> Bill:
        """Write ``updated`` if ``current`` is still the stored version, then audit."""
        try:
            saved = self.repository.save(updated, expected_version=current.version)
        except ConcurrentModification:
            logger.warning(
                f"Concurrent modification on bill {current.id} at version {current.version}"
            )
            raise

        self._audit(self.audit.record_updated, current, saved)

        return saved

    def _audit(self, record: Callable[..., None], *bills: Bill) -> None:
        """
        Write an audit row for a change that has already committed.

        A failure here is logged and swallowed: the bill is stored, and
        raising would make the caller retry a payment that already landed.
        """
        try:
            record(*bills)
        except Exception:
            logger.exception(f"Audit write failed for bill {bills[-1].id} (version {bills[-1].version})")

    def _publish_if_overdue(self, before: Bill, after: Bill) -> None:
        if after.status == BillStatus.OVERDUE and before.status != BillStatus.OVERDUE:
            self.event_bus.publish(BillOverdue.create(bill=after))
