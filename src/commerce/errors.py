"""Domain error taxonomy.

Every error here is an expected, recoverable outcome that the calling layer
translates into a user-facing response. They extend Protean's exception
hierarchy so generic handlers (``except ValidationError``, Protean's FastAPI
exception handlers) keep working, and each one carries a machine-readable
``code`` plus structured ``details()`` so clients never parse free text.
"""

from protean.exceptions import InvalidOperationError, ObjectNotFoundError, ValidationError


class CommerceError:
    """Mixin for structured domain errors."""

    code = "commerce_error"

    def details(self) -> dict:
        return {}


class ResourceNotFound(CommerceError, ObjectNotFoundError):
    """A product, cart or order id is unknown (or the product is not sellable)."""

    code = "resource_not_found"

    def __init__(self, resource, identifier, reason=None):
        self.resource = resource
        self.identifier = str(identifier)
        self.reason = reason
        message = reason or f"{resource} {identifier} does not exist"
        super().__init__({resource.lower(): [message]})

    def details(self) -> dict:
        return {"resource": self.resource, "id": self.identifier}


class InsufficientStock(CommerceError, ValidationError):
    code = "insufficient_stock"

    def __init__(self, product_id, requested, available):
        self.product_id = str(product_id)
        self.requested = requested
        self.available = available
        super().__init__(
            {"quantity": [f"Insufficient stock for product {product_id}: {available} available, {requested} requested"]}
        )

    def details(self) -> dict:
        return {
            "product_id": self.product_id,
            "requested": self.requested,
            "available": self.available,
        }


class CartFull(CommerceError, ValidationError):
    code = "cart_full"

    def __init__(self, max_items):
        self.max_items = max_items
        super().__init__({"items": [f"Cart cannot hold more than {max_items} different products"]})

    def details(self) -> dict:
        return {"max_items": self.max_items}


class CartNotActive(CommerceError, ValidationError):
    code = "cart_not_active"

    def __init__(self, cart_id, status):
        self.cart_id = str(cart_id)
        self.status = status
        super().__init__({"status": [f"Cart {cart_id} is {status}; only active carts can be changed"]})

    def details(self) -> dict:
        return {"cart_id": self.cart_id, "status": self.status}


class InvalidCoupon(CommerceError, ValidationError):
    code = "invalid_coupon"

    def __init__(self, coupon_code, reason="Coupon code is not valid"):
        self.coupon_code = coupon_code
        self.reason = reason
        super().__init__({"coupon_code": [reason]})

    def details(self) -> dict:
        return {"coupon_code": self.coupon_code, "reason": self.reason}


class InvalidQuantity(CommerceError, ValidationError):
    code = "invalid_quantity"

    def __init__(self, quantity, reason="Quantity must be a positive integer"):
        self.quantity = quantity
        self.reason = reason
        super().__init__({"quantity": [reason]})

    def details(self) -> dict:
        return {"quantity": self.quantity, "reason": self.reason}


class EmptyCartCheckout(CommerceError, ValidationError):
    code = "empty_cart_checkout"

    def __init__(self, cart_id):
        self.cart_id = str(cart_id)
        super().__init__({"cart": ["Cannot create an order from an empty cart"]})

    def details(self) -> dict:
        return {"cart_id": self.cart_id}


class IllegalOrderState(CommerceError, InvalidOperationError):
    """An order transition was attempted outside its guard."""

    code = "illegal_order_state"

    def __init__(self, order_id, current, attempted, reason=None):
        self.order_id = str(order_id)
        self.current = current
        self.attempted = attempted
        message = reason or f"Cannot {attempted} an order in {current} state"
        super().__init__({"status": [message]})

    def details(self) -> dict:
        return {"order_id": self.order_id, "current": self.current, "attempted": self.attempted}
