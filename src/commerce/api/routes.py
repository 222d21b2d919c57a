"""FastAPI routes for the commerce domain — products, carts and orders."""

from fastapi import APIRouter
from protean.utils.globals import current_domain

from commerce.api.schemas import (
    AddStockRequest,
    AddToCartRequest,
    ApplyCouponRequest,
    CancelOrderRequest,
    CartIdResponse,
    CartItemSchema,
    CartResponse,
    CartValidationResponse,
    CheckoutRequest,
    CreateCartRequest,
    CustomerOrdersResponse,
    LineAvailabilitySchema,
    MarkPaidRequest,
    MergeCartsRequest,
    MergeResponse,
    OrderIdResponse,
    OrderItemSchema,
    OrderResponse,
    OrderStatisticsResponse,
    OrderSummarySchema,
    PaymentFailedRequest,
    ProductIdResponse,
    RefundOrderRequest,
    RegisterProductRequest,
    RepriceOrderRequest,
    ShipOrderRequest,
    StatusResponse,
    StockQuantityRequest,
    StockResponse,
    UpdateCartItemRequest,
)
from commerce.cart.cart import OwnerKind
from commerce.cart.coupons import ApplyCouponToCart, RemoveCouponFromCart
from commerce.cart.items import AddToCart, ClearCart, RemoveFromCart, UpdateCartItem
from commerce.cart.management import CreateCart, MergeCarts, get_cart
from commerce.cart.validation import validate_cart
from commerce.order import cancellation
from commerce.order import checkout as checkout_flow
from commerce.order.cancellation import RefundOrder
from commerce.order.lifecycle import ConfirmOrder, DeliverOrder, MarkOutForDelivery, ShipOrder, StartProcessing
from commerce.order.modification import RepriceOrder
from commerce.order.payment import MarkOrderPaid, fail_payment
from commerce.order.queries import get_order, get_order_by_number, list_customer_orders, order_statistics
from commerce.product import ledger
from commerce.product.registration import ActivateProduct, DeactivateProduct, RegisterProduct


def _process(command):
    return current_domain.process(command, asynchronous=False)


# ---------------------------------------------------------------------------
# Product Router
# ---------------------------------------------------------------------------
product_router = APIRouter(prefix="/products", tags=["products"])


def _stock_response(product) -> StockResponse:
    return StockResponse(
        product_id=str(product.id),
        sku=product.sku,
        stock_quantity=product.stock_quantity,
        reserved_quantity=product.reserved_quantity,
        available_quantity=product.available_quantity,
        stock_status=product.stock_status().value,
        needs_reorder=product.needs_reorder(),
    )


@product_router.post("", status_code=201, response_model=ProductIdResponse)
async def register_product(body: RegisterProductRequest) -> ProductIdResponse:
    product_id = _process(RegisterProduct(**body.model_dump()))
    return ProductIdResponse(product_id=product_id)


@product_router.put("/{product_id}/activate", response_model=StatusResponse)
async def activate_product(product_id: str) -> StatusResponse:
    _process(ActivateProduct(product_id=product_id))
    return StatusResponse()


@product_router.put("/{product_id}/deactivate", response_model=StatusResponse)
async def deactivate_product(product_id: str) -> StatusResponse:
    _process(DeactivateProduct(product_id=product_id))
    return StatusResponse()


@product_router.get("/{product_id}/stock", response_model=StockResponse)
async def product_stock(product_id: str) -> StockResponse:
    return _stock_response(ledger.load_product(product_id))


@product_router.post("/{product_id}/stock/reserve", response_model=StockResponse)
async def reserve_stock(product_id: str, body: StockQuantityRequest) -> StockResponse:
    ledger.reserve(product_id, body.quantity)
    return _stock_response(ledger.load_product(product_id))


@product_router.post("/{product_id}/stock/release", response_model=StockResponse)
async def release_stock(product_id: str, body: StockQuantityRequest) -> StockResponse:
    ledger.release(product_id, body.quantity)
    return _stock_response(ledger.load_product(product_id))


@product_router.post("/{product_id}/stock/deduct", response_model=StockResponse)
async def deduct_stock(product_id: str, body: StockQuantityRequest) -> StockResponse:
    ledger.deduct(product_id, body.quantity)
    return _stock_response(ledger.load_product(product_id))


@product_router.post("/{product_id}/stock/add", response_model=StockResponse)
async def add_stock(product_id: str, body: AddStockRequest) -> StockResponse:
    ledger.add_stock(product_id, body.quantity, reference=body.reference)
    return _stock_response(ledger.load_product(product_id))


# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/carts", tags=["carts"])


def _cart_response(cart) -> CartResponse:
    return CartResponse(
        cart_id=str(cart.id),
        owner_kind=cart.owner.kind,
        owner_reference=cart.owner.reference,
        status=cart.status,
        items=[
            CartItemSchema(
                product_id=str(item.product_id),
                quantity=item.quantity,
                unit_price=item.unit_price,
                line_total=float(item.line_total),
            )
            for item in cart.items
        ],
        coupon_code=cart.coupon_code,
        discount_amount=cart.discount_amount or 0.0,
        subtotal=float(cart.subtotal),
        total=float(cart.total),
    )


@cart_router.post("", status_code=201, response_model=CartIdResponse)
async def create_cart(body: CreateCartRequest) -> CartIdResponse:
    if body.user_id:
        command = CreateCart(owner_kind=OwnerKind.USER.value, owner_reference=body.user_id)
    else:
        command = CreateCart(owner_kind=OwnerKind.GUEST.value, owner_reference=body.session_token)
    return CartIdResponse(cart_id=_process(command))


@cart_router.get("/{cart_id}", response_model=CartResponse)
async def show_cart(cart_id: str) -> CartResponse:
    return _cart_response(get_cart(cart_id))


@cart_router.get("/{cart_id}/validation", response_model=CartValidationResponse)
async def cart_validation(cart_id: str) -> CartValidationResponse:
    report = validate_cart(cart_id)
    return CartValidationResponse(
        cart_id=report.cart_id,
        valid=report.valid,
        price_changed=report.price_changed,
        lines=[
            LineAvailabilitySchema(
                product_id=line.product_id,
                requested=line.requested,
                available=line.available,
                sellable=line.sellable,
                unit_price=line.unit_price,
                current_price=line.current_price,
                issues=[issue.value for issue in line.issues],
                ok=line.ok,
            )
            for line in report.lines
        ],
    )


@cart_router.post("/{cart_id}/items", response_model=CartResponse)
async def add_cart_item(cart_id: str, body: AddToCartRequest) -> CartResponse:
    _process(AddToCart(cart_id=cart_id, product_id=body.product_id, quantity=body.quantity))
    return _cart_response(get_cart(cart_id))


@cart_router.put("/{cart_id}/items/{product_id}", response_model=CartResponse)
async def update_cart_item(cart_id: str, product_id: str, body: UpdateCartItemRequest) -> CartResponse:
    _process(UpdateCartItem(cart_id=cart_id, product_id=product_id, quantity=body.quantity))
    return _cart_response(get_cart(cart_id))


@cart_router.delete("/{cart_id}/items/{product_id}", response_model=CartResponse)
async def remove_cart_item(cart_id: str, product_id: str) -> CartResponse:
    _process(RemoveFromCart(cart_id=cart_id, product_id=product_id))
    return _cart_response(get_cart(cart_id))


@cart_router.delete("/{cart_id}/items", response_model=CartResponse)
async def clear_cart(cart_id: str) -> CartResponse:
    _process(ClearCart(cart_id=cart_id))
    return _cart_response(get_cart(cart_id))


@cart_router.put("/{cart_id}/coupon", response_model=CartResponse)
async def apply_coupon(cart_id: str, body: ApplyCouponRequest) -> CartResponse:
    _process(ApplyCouponToCart(cart_id=cart_id, coupon_code=body.coupon_code))
    return _cart_response(get_cart(cart_id))


@cart_router.delete("/{cart_id}/coupon", response_model=CartResponse)
async def remove_coupon(cart_id: str) -> CartResponse:
    _process(RemoveCouponFromCart(cart_id=cart_id))
    return _cart_response(get_cart(cart_id))


@cart_router.post("/{cart_id}/merge", response_model=MergeResponse)
async def merge_carts(cart_id: str, body: MergeCartsRequest) -> MergeResponse:
    merged = _process(MergeCarts(source_cart_id=body.source_cart_id, target_cart_id=cart_id))
    return MergeResponse(items_merged=merged)


@cart_router.post("/{cart_id}/checkout", status_code=201, response_model=OrderIdResponse)
async def checkout_cart(cart_id: str, body: CheckoutRequest) -> OrderIdResponse:
    order_id = checkout_flow.checkout(
        cart_id,
        payment_method=body.payment_method,
        shipping_method=body.shipping_method,
        tax_rate=body.tax_rate,
    )
    return OrderIdResponse(order_id=order_id)


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


def _order_response(detail) -> OrderResponse:
    return OrderResponse(
        order_id=str(detail.order_id),
        order_number=detail.order_number,
        customer_id=str(detail.customer_id),
        status=detail.status,
        payment_status=detail.payment_status,
        items=[OrderItemSchema(**item) for item in detail.line_items],
        subtotal=detail.subtotal,
        tax_amount=detail.tax_amount,
        shipping_cost=detail.shipping_cost,
        discount_amount=detail.discount_amount,
        coupon_discount=detail.coupon_discount,
        total_amount=detail.total_amount,
        refund_amount=detail.refund_amount,
    )


@order_router.get("/statistics", response_model=OrderStatisticsResponse)
async def show_order_statistics() -> OrderStatisticsResponse:
    stats = order_statistics()
    return OrderStatisticsResponse(
        total_orders=stats.total_orders,
        by_status=stats.by_status,
        total_revenue=stats.total_revenue,
    )


@order_router.get("/customer/{customer_id}", response_model=CustomerOrdersResponse)
async def customer_orders(customer_id: str, status: str | None = None) -> CustomerOrdersResponse:
    summaries = list_customer_orders(customer_id, status=status)
    return CustomerOrdersResponse(
        customer_id=customer_id,
        orders=[
            OrderSummarySchema(
                order_id=str(summary.order_id),
                order_number=summary.order_number,
                status=summary.status,
                payment_status=summary.payment_status,
                item_count=summary.item_count or 0,
                total_amount=summary.total_amount or 0.0,
            )
            for summary in summaries
        ],
    )


@order_router.get("/{order_id}", response_model=OrderResponse)
async def show_order(order_id: str) -> OrderResponse:
    return _order_response(get_order(order_id))


@order_router.get("/by-number/{order_number}", response_model=OrderResponse)
async def show_order_by_number(order_number: str) -> OrderResponse:
    return _order_response(get_order_by_number(order_number))


@order_router.put("/{order_id}/confirm", response_model=StatusResponse)
async def confirm_order(order_id: str) -> StatusResponse:
    _process(ConfirmOrder(order_id=order_id))
    return StatusResponse()


@order_router.put("/{order_id}/processing", response_model=StatusResponse)
async def start_processing(order_id: str) -> StatusResponse:
    _process(StartProcessing(order_id=order_id))
    return StatusResponse()


@order_router.put("/{order_id}/ship", response_model=StatusResponse)
async def ship_order(order_id: str, body: ShipOrderRequest) -> StatusResponse:
    _process(ShipOrder(order_id=order_id, carrier=body.carrier, tracking_number=body.tracking_number))
    return StatusResponse()


@order_router.put("/{order_id}/out-for-delivery", response_model=StatusResponse)
async def out_for_delivery(order_id: str) -> StatusResponse:
    _process(MarkOutForDelivery(order_id=order_id))
    return StatusResponse()


@order_router.put("/{order_id}/deliver", response_model=StatusResponse)
async def deliver_order(order_id: str) -> StatusResponse:
    _process(DeliverOrder(order_id=order_id))
    return StatusResponse()


@order_router.put("/{order_id}/cancel", response_model=StatusResponse)
async def cancel_order(order_id: str, body: CancelOrderRequest) -> StatusResponse:
    cancellation.cancel_order(order_id, reason=body.reason)
    return StatusResponse()


@order_router.put("/{order_id}/refund", response_model=StatusResponse)
async def refund_order(order_id: str, body: RefundOrderRequest) -> StatusResponse:
    _process(RefundOrder(order_id=order_id, amount=body.amount, reason=body.reason))
    return StatusResponse()


@order_router.put("/{order_id}/payment/paid", response_model=StatusResponse)
async def mark_paid(order_id: str, body: MarkPaidRequest) -> StatusResponse:
    _process(MarkOrderPaid(order_id=order_id, transaction_id=body.transaction_id))
    return StatusResponse()


@order_router.put("/{order_id}/payment/failed", response_model=StatusResponse)
async def payment_failed(order_id: str, body: PaymentFailedRequest) -> StatusResponse:
    fail_payment(order_id, reason=body.reason)
    return StatusResponse()


@order_router.put("/{order_id}/pricing", response_model=StatusResponse)
async def reprice_order(order_id: str, body: RepriceOrderRequest) -> StatusResponse:
    _process(RepriceOrder(order_id=order_id, **body.model_dump()))
    return StatusResponse()
