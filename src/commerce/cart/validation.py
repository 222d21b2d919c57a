"""Cart validation — a read-only availability report for a cart's lines.

Nothing is reserved or changed. The report tells the storefront which lines
checkout would currently reject, so it can prompt the customer before they
try to place the order.
"""

from dataclasses import dataclass
from enum import Enum

from commerce.cart.management import load_cart
from commerce.errors import ResourceNotFound
from commerce.product.ledger import load_product


class LineIssue(Enum):
    UNAVAILABLE = "Unavailable"
    OUT_OF_STOCK = "OutOfStock"
    INSUFFICIENT_STOCK = "InsufficientStock"
    PRICE_CHANGED = "PriceChanged"


@dataclass(frozen=True)
class LineAvailability:
    product_id: str
    requested: int
    available: int
    sellable: bool
    unit_price: float
    current_price: float | None
    issues: tuple = ()

    @property
    def ok(self) -> bool:
        """A price change alone does not stop checkout."""
        return not any(issue != LineIssue.PRICE_CHANGED for issue in self.issues)


@dataclass(frozen=True)
class CartValidation:
    cart_id: str
    lines: tuple

    @property
    def valid(self) -> bool:
        return all(line.ok for line in self.lines)

    @property
    def price_changed(self) -> bool:
        return any(LineIssue.PRICE_CHANGED in line.issues for line in self.lines)


def _check_line(item) -> LineAvailability:
    try:
        product = load_product(item.product_id)
    except ResourceNotFound:
        return LineAvailability(
            product_id=str(item.product_id),
            requested=item.quantity,
            available=0,
            sellable=False,
            unit_price=item.unit_price,
            current_price=None,
            issues=(LineIssue.UNAVAILABLE,),
        )

    issues = []
    if not product.is_sellable:
        issues.append(LineIssue.UNAVAILABLE)
    elif not product.can_supply(item.quantity):
        if product.available_quantity <= 0:
            issues.append(LineIssue.OUT_OF_STOCK)
        else:
            issues.append(LineIssue.INSUFFICIENT_STOCK)
    if product.price != item.unit_price:
        issues.append(LineIssue.PRICE_CHANGED)

    return LineAvailability(
        product_id=str(item.product_id),
        requested=item.quantity,
        available=max(0, product.available_quantity),
        sellable=product.is_sellable,
        unit_price=item.unit_price,
        current_price=product.price,
        issues=tuple(issues),
    )


def validate_cart(cart_id) -> CartValidation:
    cart = load_cart(cart_id)
    return CartValidation(cart_id=str(cart.id), lines=tuple(_check_line(item) for item in cart.items))
