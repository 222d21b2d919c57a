"""HTTP translation of domain errors.

Registered after Protean's own ``register_exception_handlers``; FastAPI picks
the handler of the most specific exception class, so these take precedence
for the commerce errors while Protean's handlers still cover plain
``ValidationError`` and friends.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from commerce.api.schemas import ErrorResponse
from commerce.errors import (
    CartFull,
    CartNotActive,
    EmptyCartCheckout,
    IllegalOrderState,
    InsufficientStock,
    InvalidCoupon,
    InvalidQuantity,
    ResourceNotFound,
)
from commerce.utils.concurrency import ConcurrencyConflict

logger = structlog.get_logger(__name__)

STATUS_CODES = {
    ResourceNotFound: 404,
    InsufficientStock: 409,
    CartNotActive: 409,
    IllegalOrderState: 409,
    CartFull: 422,
    InvalidCoupon: 422,
    InvalidQuantity: 422,
    EmptyCartCheckout: 422,
}


def _message(exc) -> str:
    messages = getattr(exc, "messages", None) or {}
    for texts in messages.values():
        if texts:
            return texts[0] if isinstance(texts, list) else str(texts)
    return str(exc)


def error_body(exc) -> dict:
    return ErrorResponse(error=exc.code, message=_message(exc), details=exc.details()).model_dump(mode="json")


def register_commerce_error_handlers(app: FastAPI) -> None:
    def _handler(status_code):
        async def handle_commerce_error(request: Request, exc):
            logger.info(
                "Request rejected",
                path=request.url.path,
                error=exc.code,
                status_code=status_code,
            )
            return JSONResponse(status_code=status_code, content=error_body(exc))

        return handle_commerce_error

    for error_cls, status_code in STATUS_CODES.items():
        app.add_exception_handler(error_cls, _handler(status_code))

    async def handle_conflict(request: Request, exc: ConcurrencyConflict):
        logger.warning("Request lost concurrent update race", path=request.url.path, command=exc.command_name)
        return JSONResponse(
            status_code=409,
            content=ErrorResponse(
                error="concurrent_modification",
                message=str(exc),
                details={"attempts": exc.attempts},
            ).model_dump(mode="json"),
        )

    app.add_exception_handler(ConcurrencyConflict, handle_conflict)
