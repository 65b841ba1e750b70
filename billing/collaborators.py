"""
Lookups against systems the billing engine does not own.

The service catalog prices services; the directory confirms that a patient
or hospital exists. Both are read-only here. Infrastructure failures surface
as CollaboratorError so the bill service can retry them; a missing record is
a NotFoundError and is never retried.
"""

import logging
from typing import Iterable
from uuid import UUID

import psycopg2
import psycopg2.pool

from billing.exceptions import (
    CollaboratorError,
    HospitalNotFound,
    PatientNotFound,
    ServiceNotFound,
)
from billing.models import HospitalRef, PatientRef, ServiceReference
from clients.postgres_client import PostgresClient

logger = logging.getLogger(__name__)

# Lost connections and an exhausted or closed pool. Both clear up on their own.
_UNAVAILABLE = (psycopg2.OperationalError, psycopg2.pool.PoolError)


# =============================================================================
# SERVICE CATALOG
# =============================================================================


class ServiceCatalog:
    """Catalog lookup contract."""

    def get_service(self, service_id: UUID) -> ServiceReference:
        """
        Raises:
            ServiceNotFound: No such service
            CollaboratorError: Catalog unavailable
        """
        raise NotImplementedError


class InMemoryServiceCatalog(ServiceCatalog):
    """Catalog held in a dict. Used for development and tests."""

    def __init__(self, services: Iterable[ServiceReference] = ()):
        self._services = {s.service_id: s for s in services}

    def add(self, service: ServiceReference) -> None:
        self._services[service.service_id] = service

    def get_service(self, service_id: UUID) -> ServiceReference:
        service = self._services.get(service_id)
        if service is None:
            raise ServiceNotFound(service_id)
        return service


class PostgresServiceCatalog(ServiceCatalog):
    """Catalog read from the shared ``services`` table."""

    def __init__(self, postgres: PostgresClient):
        self.postgres = postgres

    def get_service(self, service_id: UUID) -> ServiceReference:
        try:
            row = self.postgres.execute_single(
                """
                SELECT id AS service_id, name AS service_name, service_type,
                       unit_price_cents, tax_rate_bps, discount_rate_bps
                FROM services
                WHERE id = %s AND deleted_at IS NULL
                """,
                (service_id,)
            )
        except _UNAVAILABLE as e:
            logger.warning(f"Service catalog lookup failed for {service_id}: {e}")
            raise CollaboratorError(f"Service catalog unavailable: {e}") from e

        if row is None:
            raise ServiceNotFound(service_id)

        return ServiceReference.model_validate(row)


# =============================================================================
# PATIENT / HOSPITAL DIRECTORY
# =============================================================================


class Directory:
    """Patient and hospital existence checks."""

    def get_patient(self, patient_id: UUID) -> PatientRef:
        raise NotImplementedError

    def get_hospital(self, hospital_id: UUID) -> HospitalRef:
        raise NotImplementedError


class InMemoryDirectory(Directory):
    """Directory held in dicts. Used for development and tests."""

    def __init__(self, patients: Iterable[PatientRef] = (), hospitals: Iterable[HospitalRef] = ()):
        self._patients = {p.id: p for p in patients}
        self._hospitals = {h.id: h for h in hospitals}

    def add_patient(self, patient: PatientRef) -> None:
        self._patients[patient.id] = patient

    def add_hospital(self, hospital: HospitalRef) -> None:
        self._hospitals[hospital.id] = hospital

    def get_patient(self, patient_id: UUID) -> PatientRef:
        patient = self._patients.get(patient_id)
        if patient is None:
            raise PatientNotFound(patient_id)
        return patient

    def get_hospital(self, hospital_id: UUID) -> HospitalRef:
        hospital = self._hospitals.get(hospital_id)
        if hospital is None:
            raise HospitalNotFound(hospital_id)
        return hospital


class PostgresDirectory(Directory):
    """Directory read from the shared ``patients`` and ``hospitals`` tables."""

    def __init__(self, postgres: PostgresClient):
        self.postgres = postgres

    def _lookup(self, query: str, entity_id: UUID) -> dict | None:
        try:
            return self.postgres.execute_single(query, (entity_id,))
        except _UNAVAILABLE as e:
            logger.warning(f"Directory lookup failed for {entity_id}: {e}")
            raise CollaboratorError(f"Directory unavailable: {e}") from e

    def get_patient(self, patient_id: UUID) -> PatientRef:
        row = self._lookup(
            "SELECT id, first_name || ' ' || last_name AS name FROM patients WHERE id = %s",
            patient_id
        )
        if row is None:
            raise PatientNotFound(patient_id)
        return PatientRef.model_validate(row)

    def get_hospital(self, hospital_id: UUID) -> HospitalRef:
        row = self._lookup("SELECT id, name FROM hospitals WHERE id = %s", hospital_id)
        if row is None:
            raise HospitalNotFound(hospital_id)
        return HospitalRef.model_validate(row)
