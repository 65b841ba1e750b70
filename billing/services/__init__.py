"""Billing application services."""

from billing.services.bill_service import BillService
