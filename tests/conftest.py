"""Shared test fixtures for the billing test suite.

Everything runs against the in-memory repository and collaborators, with the
calendar pinned to a fixed date so due-date rules are deterministic.
"""

from datetime import date
from unittest.mock import Mock

import pytest

from billing.audit import AuditLogger
from billing.collaborators import InMemoryDirectory, InMemoryServiceCatalog
from billing.config import BillingConfig
from billing.event_bus import EventBus
from billing.models import HospitalRef, PatientRef
from billing.repository import InMemoryBillRepository

from factories import (
    BANDAGE, BLOOD_TEST, CONSULTATION,
    HOSPITAL_B_ID, HOSPITAL_ID, PATIENT_B_ID, PATIENT_ID, TODAY,
    bill_request,
)


# =============================================================================
# COLLABORATOR FIXTURES
# =============================================================================


@pytest.fixture
def catalog():
    return InMemoryServiceCatalog([CONSULTATION, BLOOD_TEST, BANDAGE])


@pytest.fixture
def directory():
    return InMemoryDirectory(
        patients=[PatientRef(id=PATIENT_ID, name="Asha Rao"), PatientRef(id=PATIENT_B_ID)],
        hospitals=[HospitalRef(id=HOSPITAL_ID, name="City General"), HospitalRef(id=HOSPITAL_B_ID)],
    )


@pytest.fixture
def repository():
    return InMemoryBillRepository()


@pytest.fixture
def audit():
    return Mock(spec=AuditLogger)


@pytest.fixture
def event_bus():
    return EventBus()


@pytest.fixture
def published(event_bus):
    """Every billing event published on the bus, in order."""
    events = []
    for name in ("BillCreated", "PaymentRecorded", "BillPaid", "BillCancelled", "BillOverdue"):
        event_bus.subscribe(name, events.append)
    return events


@pytest.fixture
def config():
    return BillingConfig()


class Clock:
    """Settable calendar. Assign ``today`` to move time."""

    def __init__(self, today: date):
        self.today = today

    def __call__(self) -> date:
        return self.today


@pytest.fixture
def clock():
    return Clock(TODAY)


# =============================================================================
# SERVICE FIXTURES
# =============================================================================


@pytest.fixture
def bill_service(repository, catalog, directory, audit, event_bus, config, clock):
    from billing.services import BillService

    return BillService(
        repository=repository,
        catalog=catalog,
        directory=directory,
        audit=audit,
        event_bus=event_bus,
        config=config,
        today=clock,
    )


@pytest.fixture
def consultation_bill(bill_service):
    """A stored bill with one consultation: total 590.00, due in 30 days."""
    return bill_service.create_bill(bill_request())
