"""Shopcore FastAPI application.

Processes commands synchronously via HTTP inside the commerce domain
context.

Usage:
    uvicorn src.app:app --host 0.0.0.0 --port 8000 --reload
"""

from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from protean.integrations.fastapi import register_exception_handlers

from commerce.domain import commerce
from commerce.utils.logging import add_context, clear_context, configure_logging

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV controls which config overlay is applied.
configure_logging()
commerce.init()

# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Shopcore API",
    description="Inventory reservation, carts and order fulfillment",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the commerce domain context and a request id for each request."""
    clear_context()
    add_context(request_id=request.headers.get("x-request-id") or str(uuid4()))
    with commerce.domain_context():
        return await call_next(request)


# ---------------------------------------------------------------------------
# Routers and error handlers
# ---------------------------------------------------------------------------
from commerce.api.errors import register_commerce_error_handlers  # noqa: E402
from commerce.api.routes import cart_router, order_router, product_router  # noqa: E402

app.include_router(product_router)
app.include_router(cart_router)
app.include_router(order_router)

register_exception_handlers(app)
register_commerce_error_handlers(app)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(content={"status": "ok", "domain": commerce.name})
