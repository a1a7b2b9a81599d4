"""Catalog data model definitions"""

from dataclasses import asdict, dataclass, field, fields
from typing import Optional

PERIODS = ("day", "week", "month")

# Canonical field -> original spreadsheet column header
COLUMN_HEADERS = {
    "supplier": "Supplier",
    "category": "Category",
    "product_name": "Product Name",
    "colour": "Colour",
    "size_weight": "sz/wt",
    "qty": "QTY",
    "uom_qty": "UOM QTY",
    "amount": "Amount",
    "order_number": "Order number",
    "price": "Price",
    "price_pounds": "pricePounds",
}


@dataclass
class ProductInsert:
    """A normalized CSV row, ready for insertion"""
    supplier: str = ""
    category: str = ""
    product_name: str = ""
    colour: str = ""
    size_weight: str = ""
    qty: str = "0"               # pack quantity, stored as text
    uom_qty: str = ""            # e.g. "250ml", "box"
    amount: str = ""
    order_number: str = ""
    price: float = 0             # pence
    price_pounds: str = ""       # optional display override in pounds

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class Product(ProductInsert):
    """Catalog entry as stored in the record store"""
    id: str = ""
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "Product":
        """Build a Product from a row dict, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        # NULL columns fall back to the field defaults
        values = {k: v for k, v in data.items() if k in known and v is not None}
        if "qty" in values:
            values["qty"] = str(values["qty"])
        if "price" in values:
            values["price"] = float(values["price"])
        if "id" in values:
            values["id"] = str(values["id"])
        return cls(**values)

    @property
    def sort_key(self) -> str:
        return (self.product_name or "").lower()


@dataclass
class UsageDescriptor:
    """Used `frequency` times per `period`"""
    frequency: int = 1
    period: str = "month"

    def __post_init__(self):
        if self.frequency < 0:
            raise ValueError(f"frequency must be non-negative: {self.frequency}")
        if self.period not in PERIODS:
            raise ValueError(f"period must be one of {PERIODS}: {self.period!r}")


@dataclass
class Favorite:
    """A session's bookmark of a product with its own usage"""
    session_id: str
    product: Product
    usage: UsageDescriptor = field(default_factory=UsageDescriptor)
    display_order: int = 0

    @property
    def product_id(self) -> str:
        return self.product.id


@dataclass
class SearchCriteria:
    """Search form input. Blank fields count as absent."""
    order_number: Optional[str] = None
    supplier: Optional[str] = None
    colour: Optional[str] = None
    product_name: Optional[str] = None

    def is_empty(self) -> bool:
        return not any(
            (v or "").strip()
            for v in (self.order_number, self.supplier, self.colour, self.product_name)
        )


@dataclass(frozen=True)
class Predicate:
    """One clause of a record store query.

    op: "ilike" (case-insensitive substring) or "eq" (exact match)
    """
    field: str
    op: str
    value: str
