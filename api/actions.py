"""POST /api/actions: unified mutation endpoint."""

from uuid import UUID

from fastapi import APIRouter, Request
from pydantic import BaseModel

from api.base import success_response
from billing.models import BillCreate, PaymentCreate, StatusUpdate


class ActionRequest(BaseModel):
    domain: str
    action: str
    data: dict


def create_actions_router(services: dict) -> APIRouter:
    router = APIRouter()

    handlers = {
        "bill": BillHandler(services["bill"]),
    }

    @router.post("/actions")
    async def perform_action(request: Request, body: ActionRequest):
        handler = handlers.get(body.domain)
        if handler is None:
            raise ValueError(
                f"Unknown domain '{body.domain}'. "
                f"Valid domains: {', '.join(sorted(handlers.keys()))}"
            )

        if body.action not in handler.ALLOWED_ACTIONS:
            raise ValueError(
                f"Action '{body.action}' not allowed on '{body.domain}'. "
                f"Allowed: {', '.join(sorted(handler.ALLOWED_ACTIONS))}"
            )

        method = getattr(handler, f"_handle_{body.action}")
        result = method(dict(body.data))
        return success_response(result, request.state.request_id).model_dump(mode="json")

    return router


# =============================================================================
# HANDLER CLASSES
# =============================================================================


def _bill_id(data: dict) -> UUID:
    if "id" not in data:
        raise ValueError("'id' is required")
    return UUID(str(data.pop("id")))


class BillHandler:
    ALLOWED_ACTIONS = {"create", "add_payment", "update_status", "refresh_status"}

    def __init__(self, service):
        self.service = service

    def _handle_create(self, data: dict):
        bill = self.service.create_bill(BillCreate(**data))
        return bill.model_dump(mode="json")

    def _handle_add_payment(self, data: dict):
        bill_id = _bill_id(data)
        bill = self.service.add_payment(bill_id, PaymentCreate(**data))
        return bill.model_dump(mode="json")

    def _handle_update_status(self, data: dict):
        bill_id = _bill_id(data)
        bill = self.service.update_status(bill_id, StatusUpdate(**data).status)
        return bill.model_dump(mode="json")

    def _handle_refresh_status(self, data: dict):
        bill = self.service.refresh_status(_bill_id(data))
        return bill.model_dump(mode="json")
