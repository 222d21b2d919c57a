"""Business settings for the commerce domain.

Values come from the ``[custom]`` section of ``domain.toml`` and fall back to
the defaults below when a key is absent.
"""

from protean.utils.globals import current_domain

DEFAULTS = {
    "cart_max_items": 100,
    "cart_abandon_after_hours": 24,
    "cart_expire_after_days": 90,
    "order_default_tax_rate": 0.0,
    "stock_conflict_retries": 3,
}


def setting(name):
    custom = current_domain.config.get("custom") or {}
    return custom.get(name, DEFAULTS[name])


def cart_max_items() -> int:
    return int(setting("cart_max_items"))


def cart_abandon_after_hours() -> int:
    return int(setting("cart_abandon_after_hours"))


def cart_expire_after_days() -> int:
    return int(setting("cart_expire_after_days"))


def order_default_tax_rate() -> float:
    return float(setting("order_default_tax_rate"))


def stock_conflict_retries() -> int:
    return int(setting("stock_conflict_retries"))
