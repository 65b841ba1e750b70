"""Application assembly: wires the bill service into a FastAPI app."""

import logging

from fastapi import FastAPI

from api.actions import create_actions_router
from api.data import create_data_router
from api.errors import register_error_handlers
from api.middleware import RequestIDMiddleware
from billing.audit import AuditLogger
from billing.collaborators import PostgresDirectory, PostgresServiceCatalog
from billing.config import BillingConfig
from billing.event_bus import EventBus
from billing.postgres_repository import PostgresBillRepository
from billing.services import BillService
from clients.postgres_client import PostgresClient
from clients.vault_client import get_database_url

logger = logging.getLogger(__name__)


def create_app(services: dict) -> FastAPI:
    """FastAPI app with request IDs, error handlers, and data/actions routes."""
    app = FastAPI(title="Hospital Billing")
    app.add_middleware(RequestIDMiddleware)
    register_error_handlers(app)

    app.include_router(create_data_router(services), prefix="/api")
    app.include_router(create_actions_router(services), prefix="/api")

    return app


def build_services(postgres: PostgresClient, config: BillingConfig | None = None) -> dict:
    """Postgres-backed services, keyed the way the routers expect."""
    bill_service = BillService(
        repository=PostgresBillRepository(postgres),
        catalog=PostgresServiceCatalog(postgres),
        directory=PostgresDirectory(postgres),
        audit=AuditLogger(postgres),
        event_bus=EventBus(),
        config=config,
    )
    return {"bill": bill_service}


def create_production_app(config: BillingConfig | None = None) -> FastAPI:
    """App connected to the database whose URL is stored in Vault."""
    postgres = PostgresClient(get_database_url())
    logger.info("Billing services initialized")
    return create_app(build_services(postgres, config))
