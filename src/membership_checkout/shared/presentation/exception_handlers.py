"""Exception handlers for the FastAPI application."""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from membership_checkout.shared.domain.exceptions import (
    AuthenticationRequiredError,
    CheckoutError,
    ForbiddenError,
    GatewaySessionError,
    InvalidTransitionError,
    LedgerWriteError,
    OrderNotFoundError,
    ReconciliationError,
    RecordNotFoundError,
    ValidationError,
    WebhookVerificationError,
)
from membership_checkout.shared.presentation.api_response import APIResponse

logger = structlog.get_logger(__name__)


def _error(status_code: int, message: str, errors: list[str]) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=APIResponse.error(message, errors).model_dump(),
    )


# Most specific first; the first match wins
_STATUS_CODES: list[tuple[type[CheckoutError], int, str]] = [
    (ValidationError, 400, "Validation failed"),
    (WebhookVerificationError, 400, "Webhook verification failed"),
    (AuthenticationRequiredError, 401, "Unauthorized"),
    (ForbiddenError, 403, "Forbidden"),
    (OrderNotFoundError, 404, "Order not found"),
    (RecordNotFoundError, 404, "Record not found"),
    (InvalidTransitionError, 409, "Invalid status transition"),
    (ReconciliationError, 409, "Payment could not be reconciled"),
    (LedgerWriteError, 500, "Order could not be recorded"),
    (GatewaySessionError, 502, "Payment provider error"),
]


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers."""

    @app.exception_handler(CheckoutError)
    async def checkout_error_handler(
        request: Request, exc: CheckoutError
    ) -> JSONResponse:
        for exc_type, status_code, summary in _STATUS_CODES:
            if isinstance(exc, exc_type):
                break
        else:
            status_code, summary = 400, "Checkout failed"

        if status_code >= 500:
            logger.error(
                "request_failed",
                path=request.url.path,
                error=str(exc),
                error_type=type(exc).__name__,
            )
        return _error(status_code, str(exc), [summary])

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = [
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
            for err in exc.errors()
        ]
        return _error(400, "Invalid request", errors)

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        logger.exception("unhandled_error", path=request.url.path)
        return _error(500, "Internal server error", ["Internal server error"])
