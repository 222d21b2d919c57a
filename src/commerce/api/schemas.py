"""Pydantic request/response schemas for the commerce API.

These are external contracts (anti-corruption layer), separate from the
internal Protean commands.
"""

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Product Schemas
# ---------------------------------------------------------------------------
class RegisterProductRequest(BaseModel):
    sku: str = Field(max_length=50)
    name: str = Field(max_length=255)
    price: float = Field(ge=0)
    stock_quantity: int = 0
    low_stock_threshold: int = Field(default=10, ge=0)
    reorder_point: int = Field(default=5, ge=0)
    track_inventory: bool = True
    allow_backorder: bool = False

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "sku": "MUG-001",
                    "name": "Enamel Mug",
                    "price": 12.5,
                    "stock_quantity": 40,
                }
            ]
        }
    }


class StockQuantityRequest(BaseModel):
    quantity: int


class AddStockRequest(BaseModel):
    quantity: int
    reference: str | None = None


class ProductIdResponse(BaseModel):
    product_id: str


class StockResponse(BaseModel):
    product_id: str
    sku: str
    stock_quantity: int
    reserved_quantity: int
    available_quantity: int
    stock_status: str
    needs_reorder: bool


# ---------------------------------------------------------------------------
# Cart Schemas
# ---------------------------------------------------------------------------
class CreateCartRequest(BaseModel):
    user_id: str | None = None
    session_token: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"user_id": "cust-001"},
                {"session_token": "guest-7f3a"},
            ]
        }
    }


class AddToCartRequest(BaseModel):
    product_id: str
    quantity: int


class UpdateCartItemRequest(BaseModel):
    quantity: int


class ApplyCouponRequest(BaseModel):
    coupon_code: str = Field(max_length=100)


class MergeCartsRequest(BaseModel):
    source_cart_id: str


class CheckoutRequest(BaseModel):
    payment_method: str | None = None
    shipping_method: str | None = None
    tax_rate: float | None = Field(default=None, ge=0)


class CartItemSchema(BaseModel):
    product_id: str
    quantity: int
    unit_price: float
    line_total: float


class CartResponse(BaseModel):
    cart_id: str
    owner_kind: str
    owner_reference: str
    status: str
    items: list[CartItemSchema]
    coupon_code: str | None = None
    discount_amount: float
    subtotal: float
    total: float


class CartIdResponse(BaseModel):
    cart_id: str


class MergeResponse(BaseModel):
    items_merged: int


class LineAvailabilitySchema(BaseModel):
    product_id: str
    requested: int
    available: int
    sellable: bool
    unit_price: float
    current_price: float | None = None
    issues: list[str]
    ok: bool


class CartValidationResponse(BaseModel):
    cart_id: str
    valid: bool
    price_changed: bool
    lines: list[LineAvailabilitySchema]


# ---------------------------------------------------------------------------
# Order Schemas
# ---------------------------------------------------------------------------
class ShipOrderRequest(BaseModel):
    carrier: str | None = None
    tracking_number: str | None = None


class CancelOrderRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=500)


class RefundOrderRequest(BaseModel):
    amount: float | None = None
    reason: str | None = Field(default=None, max_length=500)


class MarkPaidRequest(BaseModel):
    transaction_id: str


class PaymentFailedRequest(BaseModel):
    reason: str | None = None


class RepriceOrderRequest(BaseModel):
    tax_rate: float | None = Field(default=None, ge=0)
    shipping_cost: float | None = Field(default=None, ge=0)
    discount_amount: float | None = Field(default=None, ge=0)
    coupon_code: str | None = None


class OrderItemSchema(BaseModel):
    product_id: str
    product_name: str
    quantity: int
    unit_price: float
    discount: float


class OrderResponse(BaseModel):
    order_id: str
    order_number: str
    customer_id: str
    status: str
    payment_status: str
    items: list[OrderItemSchema]
    subtotal: float
    tax_amount: float
    shipping_cost: float
    discount_amount: float
    coupon_discount: float
    total_amount: float
    refund_amount: float | None = None


class OrderSummarySchema(BaseModel):
    order_id: str
    order_number: str
    status: str
    payment_status: str
    item_count: int
    total_amount: float


class CustomerOrdersResponse(BaseModel):
    customer_id: str
    orders: list[OrderSummarySchema]


class OrderStatisticsResponse(BaseModel):
    total_orders: int
    by_status: dict[str, int]
    total_revenue: float


class OrderIdResponse(BaseModel):
    order_id: str


class StatusResponse(BaseModel):
    status: str = "ok"


# ---------------------------------------------------------------------------
# Error Schema
# ---------------------------------------------------------------------------
class ErrorResponse(BaseModel):
    error: str
    message: str
    details: dict = {}
