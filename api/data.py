"""GET /api/data: unified read endpoint."""

from uuid import UUID

from fastapi import APIRouter, Query, Request

from api.base import success_response


VALID_TYPES = {"bills"}


def create_data_router(services: dict) -> APIRouter:
    router = APIRouter()

    bill_svc = services["bill"]

    @router.get("/data")
    async def get_data(
        request: Request,
        type: str | None = Query(None),
        id: str | None = Query(None),
        patient_id: str | None = Query(None),
        hospital_id: str | None = Query(None),
        filter: str | None = Query(None),
        limit: int = Query(50, ge=1, le=500),
    ):
        if type is None:
            raise ValueError("'type' query parameter is required")

        if type not in VALID_TYPES:
            raise ValueError(f"Unknown type '{type}'. Valid types: {', '.join(sorted(VALID_TYPES))}")

        data = _handle_bills(bill_svc, id, patient_id, hospital_id, filter, limit)
        return success_response(data, request.state.request_id).model_dump(mode="json")

    return router


def _handle_bills(bill_svc, id, patient_id, hospital_id, filter, limit):
    if id:
        return bill_svc.get_bill(UUID(id)).model_dump(mode="json")

    if patient_id:
        bills = bill_svc.list_by_patient(UUID(patient_id), limit)
    elif hospital_id:
        bills = bill_svc.list_by_hospital(UUID(hospital_id), limit)
    elif filter == "overdue":
        bills = bill_svc.list_overdue(limit)
    else:
        raise ValueError(
            "'bills' type requires 'id', 'patient_id', 'hospital_id' or 'filter=overdue'"
        )

    return [b.model_dump(mode="json") for b in bills]
