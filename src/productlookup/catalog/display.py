"""Display list aggregation: favorites, history, and ad-hoc selections"""

from dataclasses import dataclass
from typing import Iterable, Optional

from .costs import (
    calculate_yearly_cost,
    has_volume_unit,
    pack_price_label,
    unit_price_label,
)
from .models import Product, UsageDescriptor
from .searcher import sort_by_name
from .state import FavoritesState


@dataclass
class DisplayRow:
    """One product card"""
    product: Product
    is_favorite: bool
    deletable: bool                    # in search history and not a favorite
    usage: Optional[UsageDescriptor]
    yearly_cost: float


def merge_selected(existing: list[Product], new: Iterable[Product]) -> list[Product]:
    """Append new search results to the current selection, skipping known ids"""
    combined = list(existing)
    seen = {p.id for p in combined}
    for product in new:
        if product.id not in seen:
            combined.append(product)
            seen.add(product.id)
    return combined


def aggregate_display(
    favorites: list[Product],
    history: list[Product],
    selected: list[Product],
) -> list[Product]:
    """Merge the three product sources into one list without duplicate ids.

    Non-favorites come first sorted by name, then the favorites in their
    own (already sorted) order, so favorites are always last.
    """
    seen = set()
    favorites_once = []
    for product in favorites:
        if product.id not in seen:
            seen.add(product.id)
            favorites_once.append(product)

    # history before selected, so a product in both counts as history
    unfavorited = []
    for product in list(history) + list(selected):
        if product.id not in seen:
            seen.add(product.id)
            unfavorited.append(product)
    return sort_by_name(unfavorited) + favorites_once


def build_display_rows(state: FavoritesState, selected: list[Product]) -> list[DisplayRow]:
    """Aggregate the display list and annotate each product with its yearly cost"""
    rows = []
    for product in aggregate_display(state.products, state.search_history, selected):
        usage = state.get_usage(product.id)
        is_favorite = usage is not None
        rows.append(DisplayRow(
            product=product,
            is_favorite=is_favorite,
            deletable=not is_favorite and state.is_in_search_history(product.id),
            usage=usage,
            yearly_cost=calculate_yearly_cost(product, usage) if usage else 0.0,
        ))
    return rows


def product_details(product: Product) -> str:
    """Plain-text summary of a product for copying"""
    quantity = product.qty
    if has_volume_unit(product):
        quantity += product.uom_qty.lower()
    return "\n".join([
        f"Product: {product.product_name}",
        f"Category: {product.category}",
        f"Supplier: {product.supplier}",
        f"Colour: {product.colour}",
        f"Size/Weight: {product.size_weight}",
        f"Quantity: {quantity}",
        f"Amount: {product.amount}",
        f"Pack Price: £{pack_price_label(product)}",
        f"Unit Price: £{unit_price_label(product)}",
        f"Order Code: {product.order_number}",
    ])
