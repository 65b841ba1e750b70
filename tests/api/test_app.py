"""Tests for application assembly."""

from unittest.mock import Mock

from api.app import build_services, create_app
from billing.collaborators import PostgresDirectory, PostgresServiceCatalog
from billing.config import BillingConfig
from billing.postgres_repository import PostgresBillRepository
from billing.services import BillService


class TestBuildServices:
    """Postgres-backed wiring."""

    def test_bill_service_wiring(self):
        postgres = Mock()
        config = BillingConfig(default_due_days=14)

        services = build_services(postgres, config)

        service = services["bill"]
        assert isinstance(service, BillService)
        assert isinstance(service.repository, PostgresBillRepository)
        assert isinstance(service.catalog, PostgresServiceCatalog)
        assert isinstance(service.directory, PostgresDirectory)
        assert service.repository.postgres is postgres
        assert service.config.default_due_days == 14


class TestCreateApp:
    """Routes registered on the app."""

    def test_routes(self, bill_service):
        app = create_app({"bill": bill_service})

        paths = app.openapi()["paths"]
        assert "/api/actions" in paths
        assert "/api/data" in paths
