"""Usage-based yearly cost calculation"""

import logging
import math
import re
from typing import Iterable, Mapping, Optional

from .models import Product, UsageDescriptor

logger = logging.getLogger(__name__)

PERIOD_MULTIPLIERS = {"day": 365, "week": 52, "month": 12}

VOLUME_UNIT = "ml"

_INT_PREFIX = re.compile(r"^\s*([+-]?\d+)")


def parse_pack_qty(value) -> int:
    """Parse the leading integer of a pack quantity. Anything else is 0."""
    if value is None:
        return 0
    m = _INT_PREFIX.match(str(value))
    if not m:
        if str(value).strip():
            logger.debug("Non-numeric pack quantity %r treated as 0", value)
        return 0
    return int(m.group(1))


def has_volume_unit(product: Product) -> bool:
    """True when the UOM quantity is volume-denominated (contains "ml")."""
    return VOLUME_UNIT in (product.uom_qty or "").lower()


def price_in_pounds(product: Product) -> float:
    """Pack price in major units. Malformed prices count as 0."""
    try:
        price = float(product.price or 0)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(price):
        return 0.0
    return price / 100


def calculate_yearly_uses(usage: UsageDescriptor) -> int:
    """Normalize a usage frequency to an annual count."""
    return usage.frequency * PERIOD_MULTIPLIERS.get(usage.period, 0)


def price_per_use(product: Product) -> float:
    """Price of one use.

    Volume products are consumed a whole pack at a time, so the pack price is
    used as-is. Everything else is divided by the pack quantity, with a zero
    quantity giving a zero price.
    """
    price = price_in_pounds(product)
    if has_volume_unit(product):
        return price
    qty = parse_pack_qty(product.qty)
    return 0.0 if qty == 0 else price / qty


def calculate_yearly_cost(product: Product, usage: UsageDescriptor) -> float:
    """Projected yearly spend on a product for the given usage."""
    return calculate_yearly_uses(usage) * price_per_use(product)


def unit_price(product: Product) -> float:
    """Price per discrete item inside a pack."""
    qty = parse_pack_qty(product.qty)
    if qty == 0:
        return 0.0
    return price_in_pounds(product) / qty


def format_price(value: Optional[float]) -> str:
    if value is None:
        return "0.00"
    try:
        value = float(value)
    except (TypeError, ValueError):
        return "0.00"
    if not math.isfinite(value):
        return "0.00"
    return f"{value:.2f}"


def pack_price_label(product: Product) -> str:
    """Pack price for display, preferring the textual pounds override."""
    return product.price_pounds or format_price(price_in_pounds(product))


def unit_price_label(product: Product) -> str:
    if has_volume_unit(product):
        return pack_price_label(product)
    return format_price(unit_price(product))


def yearly_total(
    products: Iterable[Product],
    usage_by_id: Mapping[str, UsageDescriptor],
) -> tuple[float, int]:
    """Sum yearly costs over products that have a non-zero usage.

    Returns:
        (total, number of products that contributed)
    """
    total = 0.0
    counted = 0
    for product in products:
        usage = usage_by_id.get(product.id)
        if usage is None or usage.frequency <= 0:
            continue
        total += calculate_yearly_cost(product, usage)
        counted += 1
    return total, counted
