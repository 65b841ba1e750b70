"""Global exception handlers for FastAPI."""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from starlette.responses import JSONResponse

from api.base import error_response, ErrorCodes
from billing.exceptions import (
    BillingError,
    BillingValidationError,
    CollaboratorError,
    ConcurrencyError,
    DomainRuleError,
    NotFoundError,
)

logger = logging.getLogger(__name__)

# Checked in order; first matching category wins
_STATUS_BY_CATEGORY = (
    (BillingValidationError, 400),
    (NotFoundError, 404),
    (DomainRuleError, 409),
    (ConcurrencyError, 409),
    (CollaboratorError, 503),
)


def status_for(exc: BillingError) -> int:
    """HTTP status for a billing error."""
    for category, status_code in _STATUS_BY_CATEGORY:
        if isinstance(exc, category):
            return status_code
    return 500


def _request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the app."""

    @app.exception_handler(BillingError)
    async def billing_error_handler(request: Request, exc: BillingError):
        status_code = status_for(exc)
        if status_code == 503:
            logger.warning(f"Collaborator failure: {exc}")
        return JSONResponse(
            status_code=status_code,
            content=error_response(exc.code, str(exc), _request_id(request)).model_dump(mode="json"),
        )

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        return JSONResponse(
            status_code=400,
            content=error_response(
                ErrorCodes.INVALID_REQUEST, str(exc), _request_id(request)
            ).model_dump(mode="json"),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=422,
            content=error_response(
                ErrorCodes.VALIDATION_ERROR, str(exc.errors()), _request_id(request)
            ).model_dump(mode="json"),
        )

    @app.exception_handler(ValidationError)
    async def model_validation_error_handler(request: Request, exc: ValidationError):
        return JSONResponse(
            status_code=422,
            content=error_response(
                ErrorCodes.VALIDATION_ERROR,
                str(exc.errors(include_url=False)),
                _request_id(request),
            ).model_dump(mode="json"),
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception")
        return JSONResponse(
            status_code=500,
            content=error_response(
                ErrorCodes.INTERNAL_ERROR,
                "An internal error occurred",
                _request_id(request),
            ).model_dump(mode="json"),
        )
