"""Cart maintenance sweeps — abandonment and expiry.

Both sweeps are triggered periodically by an external scheduler (cron, K8s
CronJob) through ``src/manage.py sweep-carts``. A sweep only selects
candidate cart ids; each cart is then handled by its own command, which
reloads the cart and re-checks its status, so a cart that was checked out
in the meantime is left alone. A failure on one cart is logged and the
sweep moves on.
"""

from datetime import timedelta

import structlog
from protean import handle
from protean.exceptions import InvalidOperationError, ObjectNotFoundError, ValidationError
from protean.fields import DateTime, Identifier, Integer
from protean.utils.globals import current_domain

from commerce import settings
from commerce.cart.cart import CartStatus, ShoppingCart
from commerce.cart.management import delete_cart, load_cart
from commerce.domain import commerce
from commerce.utils import clock
from commerce.utils.db import fetch_all

logger = structlog.get_logger(__name__)


@commerce.command(part_of="ShoppingCart")
class AbandonCart:
    """Mark a single cart abandoned if it is still active, non-empty and idle."""

    cart_id = Identifier(required=True)
    idle_since = DateTime(required=True)


@commerce.command(part_of="ShoppingCart")
class ExpireCart:
    """Expire and delete a single idle empty or abandoned cart."""

    cart_id = Identifier(required=True)
    idle_since = DateTime(required=True)


@commerce.command(part_of="ShoppingCart")
class DetectAbandonedCarts:
    """Flag active carts idle beyond the specified threshold."""

    idle_threshold_hours = Integer()
    as_of = DateTime()  # Optional: defaults to now


@commerce.command(part_of="ShoppingCart")
class PurgeExpiredCarts:
    """Expire carts that have been empty or abandoned beyond the retention window."""

    retention_days = Integer()
    as_of = DateTime()


def _candidate_ids(*statuses):
    repo = current_domain.repository_for(ShoppingCart)
    ids = []
    for status in statuses:
        ids.extend(str(cart.id) for cart in fetch_all(repo._dao.query.filter(status=status.value)))
    return ids


@commerce.command_handler(part_of=ShoppingCart)
class CartMaintenanceHandler:
    @handle(AbandonCart)
    def abandon_cart(self, command):
        cart = load_cart(command.cart_id)
        if not cart.is_active or cart.is_empty or not cart.is_idle_since(command.idle_since):
            return False

        cart.abandon()
        current_domain.repository_for(ShoppingCart).add(cart)
        logger.info(
            "Marked cart as abandoned",
            cart_id=str(cart.id),
            owner_kind=cart.owner.kind,
            item_count=len(cart.items),
        )
        return True

    @handle(ExpireCart)
    def expire_cart(self, command):
        cart = load_cart(command.cart_id)
        status = CartStatus(cart.status)
        eligible = status == CartStatus.ABANDONED or (status == CartStatus.ACTIVE and cart.is_empty)
        if not eligible or not cart.is_idle_since(command.idle_since):
            return False

        cart.expire()
        delete_cart(cart)
        logger.info("Expired cart", cart_id=str(cart.id), previous_status=status.value)
        return True


class _Sweep:
    """Dispatch one per-cart command for every candidate, counting successes."""

    def __init__(self, name, command_cls, cutoff):
        self.name = name
        self.command_cls = command_cls
        self.cutoff = cutoff

    def run(self, cart_ids):
        processed = 0
        for cart_id in cart_ids:
            try:
                if current_domain.process(
                    self.command_cls(cart_id=cart_id, idle_since=self.cutoff),
                    asynchronous=False,
                ):
                    processed += 1
            except (ValidationError, InvalidOperationError, ObjectNotFoundError) as exc:
                logger.warning(
                    "Skipping cart during sweep",
                    sweep=self.name,
                    cart_id=cart_id,
                    error=str(exc),
                )
        return processed


@commerce.command_handler(part_of=ShoppingCart)
class CartSweepHandler:
    @handle(DetectAbandonedCarts)
    def detect_abandoned_carts(self, command):
        as_of = command.as_of or clock.now()
        threshold_hours = command.idle_threshold_hours or settings.cart_abandon_after_hours()
        cutoff = as_of - timedelta(hours=threshold_hours)

        logger.info(
            "Checking for abandoned carts",
            cutoff=cutoff.isoformat(),
            threshold_hours=threshold_hours,
        )

        abandoned_count = _Sweep("abandon", AbandonCart, cutoff).run(_candidate_ids(CartStatus.ACTIVE))

        logger.info("Cart abandonment detection complete", abandoned_count=abandoned_count)
        return abandoned_count

    @handle(PurgeExpiredCarts)
    def purge_expired_carts(self, command):
        as_of = command.as_of or clock.now()
        retention_days = command.retention_days or settings.cart_expire_after_days()
        cutoff = as_of - timedelta(days=retention_days)

        logger.info(
            "Purging expired carts",
            cutoff=cutoff.isoformat(),
            retention_days=retention_days,
        )

        candidates = _candidate_ids(CartStatus.ACTIVE, CartStatus.ABANDONED)
        expired_count = _Sweep("expire", ExpireCart, cutoff).run(candidates)

        logger.info("Cart purge complete", expired_count=expired_count)
        return expired_count
