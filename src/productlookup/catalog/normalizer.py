"""Normalize raw CSV rows onto the canonical product schema

Spreadsheet exports name their columns in many ways. Each canonical field has
an ordered list of accepted headers; the first one present with a non-empty
value wins. Supporting a new export format means editing FIELD_ALIASES only.
"""

import logging
import math
import re
from typing import Iterable, Mapping, Optional

from .models import ProductInsert

logger = logging.getLogger(__name__)

# canonical field -> (accepted headers in priority order, default)
FIELD_ALIASES: dict[str, tuple[list[str], object]] = {
    "supplier": (["Supplier", "Supplier Name", "supplier_name", "supplier"], ""),
    "category": (["Category", "VMP Name", "vmp_name", "VMP", "vmp", "Product Type", "product_type"], ""),
    "product_name": (["Product Name", "AMP Name", "amp_name", "AMP", "amp", "product_name"], ""),
    "colour": (["Colour", "Color", "colour", "color"], ""),
    "size_weight": (["sz/wt", "sz / wt", "Size", "size", "Product Size", "product_size", "Weight", "weight"], ""),
    "qty": (["QTY", "qty", "Quantity", "quantity", "Pack Size", "pack_size"], "0"),
    "uom_qty": (["UOM QTY", "uom_qty", "UOM Qty", "uom qty", "Unit of Measure Qty", "unit_of_measure_qty", "Unit Qty", "unit_qty"], ""),
    "amount": (["Amount", "amount"], ""),
    "order_number": (["Order number", "Prod Ord No", "prod_ord_no", "Order Code", "order_code", "Product Code", "product_code"], ""),
    "price": (["Price", "price", "Cost", "cost", "Unit Price", "unit_price"], 0.0),
    "price_pounds": (["pricePounds", "price_pounds", "Price Pounds", "price pounds"], ""),
}

# Fields parsed from text to numbers
NUMERIC_FIELDS = {"price"}

_FLOAT_PREFIX = re.compile(r"^\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


def resolve_field(row: Mapping[str, Optional[str]], aliases: Iterable[str]) -> Optional[str]:
    """Return the first alias value that is present and non-empty."""
    for key in aliases:
        value = row.get(key)
        if value is not None and value != "":
            return value
    return None


def parse_price(value) -> float:
    """Parse the leading number of a price. Malformed or negative gives 0."""
    if value is None:
        return 0.0
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        price = float(value)
    else:
        m = _FLOAT_PREFIX.match(str(value))
        if not m:
            logger.debug("Unparseable price %r defaulted to 0", value)
            return 0.0
        price = float(m.group(0))
    if not math.isfinite(price) or price < 0:
        logger.debug("Out of range price %r defaulted to 0", value)
        return 0.0
    return price


def normalize_row(row: Mapping[str, Optional[str]]) -> ProductInsert:
    """Map one raw CSV row onto the canonical product shape. Never raises."""
    values = {}
    for name, (aliases, default) in FIELD_ALIASES.items():
        raw = resolve_field(row, aliases)
        if name in NUMERIC_FIELDS:
            values[name] = parse_price(raw) if raw is not None else default
        else:
            values[name] = str(raw) if raw is not None else default
    return ProductInsert(**values)


def normalize_rows(rows: Iterable[Mapping[str, Optional[str]]]) -> list[ProductInsert]:
    return [normalize_row(row) for row in rows]


def detect_columns(headers: Iterable[str]) -> tuple[dict[str, str], list[str]]:
    """Report how headers map onto canonical fields.

    Returns:
        (canonical field -> header that would be used, unrecognized headers)
    """
    headers = list(headers)
    present = set(headers)
    mapping = {}
    known = set()
    for name, (aliases, _) in FIELD_ALIASES.items():
        known.update(aliases)
        for alias in aliases:
            if alias in present:
                mapping[name] = alias
                break
    ignored = [h for h in headers if h not in known]
    return mapping, ignored
