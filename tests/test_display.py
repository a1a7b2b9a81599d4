"""
Tests for display list aggregation.
"""
import pytest

from productlookup.catalog.display import (
    aggregate_display,
    build_display_rows,
    merge_selected,
    product_details,
)
from productlookup.catalog.models import Product, UsageDescriptor
from productlookup.catalog.state import FavoritesState, MemoryStorage


def _p(pid, name, **kwargs):
    return Product(id=pid, product_name=name, **kwargs)


class TestAggregateDisplay:

    def test_favorites_last(self):
        a, b, c = _p("1", "A"), _p("2", "B"), _p("3", "C")
        result = aggregate_display(favorites=[b], history=[a, b], selected=[c])
        assert [p.product_name for p in result] == ["A", "C", "B"]

    def test_no_duplicate_ids(self):
        a, b = _p("1", "Alpha"), _p("2", "Beta")
        result = aggregate_display(favorites=[b], history=[a, b], selected=[a, b])
        assert [p.id for p in result] == ["1", "2"]

    def test_repeats_within_one_source(self):
        c = _p("3", "C")
        assert [p.id for p in aggregate_display([], [], [c, c])] == ["3"]
        a = _p("1", "A")
        assert [p.id for p in aggregate_display([], [a, a], [])] == ["1"]
        assert [p.id for p in aggregate_display([a, a], [], [])] == ["1"]

    def test_unfavorited_sorted_case_insensitively(self):
        result = aggregate_display(
            favorites=[],
            history=[_p("1", "zinc tape")],
            selected=[_p("2", "Apron"), _p("3", "bandage")],
        )
        assert [p.product_name for p in result] == ["Apron", "bandage", "zinc tape"]

    def test_favorites_keep_their_order(self):
        favorites = [_p("1", "Apron"), _p("2", "Zinc Tape")]
        result = aggregate_display(favorites, history=[], selected=[_p("3", "Bandage")])
        assert [p.product_name for p in result] == ["Bandage", "Apron", "Zinc Tape"]

    def test_empty(self):
        assert aggregate_display([], [], []) == []


class TestMergeSelected:

    def test_appends_new_ids_only(self):
        current = [_p("1", "A")]
        merged = merge_selected(current, [_p("1", "A"), _p("2", "B"), _p("2", "B")])
        assert [p.id for p in merged] == ["1", "2"]
        assert [p.id for p in current] == ["1"]


class TestDisplayRows:

    @pytest.fixture
    def state(self):
        return FavoritesState(MemoryStorage(), "session_test")

    def test_flags_and_cost(self, state):
        gloves = _p("1", "Gloves", price=1250, qty="5", uom_qty="box")
        swab = _p("2", "Swab", price=100, qty="10")
        state.add_to_search_history([gloves, swab])
        state.add_favorite(gloves, UsageDescriptor(2, "week"))

        rows = build_display_rows(state, selected=[])
        assert [r.product.product_name for r in rows] == ["Swab", "Gloves"]

        swab_row, gloves_row = rows
        assert not swab_row.is_favorite
        assert swab_row.deletable
        assert swab_row.usage is None
        assert swab_row.yearly_cost == 0

        assert gloves_row.is_favorite
        assert not gloves_row.deletable
        assert gloves_row.usage == UsageDescriptor(2, "week")
        assert gloves_row.yearly_cost == pytest.approx(260.0)

    def test_selected_products_not_deletable(self, state):
        rows = build_display_rows(state, selected=[_p("9", "Mask")])
        assert len(rows) == 1
        assert not rows[0].deletable

    def test_favoriting_moves_product_to_the_end(self, state):
        apron, zinc = _p("1", "Apron"), _p("2", "Zinc")
        state.add_to_search_history([apron, zinc])
        assert [r.product.id for r in build_display_rows(state, [])] == ["1", "2"]
        state.add_favorite(apron)
        assert [r.product.id for r in build_display_rows(state, [])] == ["2", "1"]


class TestProductDetails:

    def test_copy_text(self):
        product = Product(
            id="1", product_name="Saline", category="Fluids", supplier="MedCo",
            colour="", size_weight="", qty="1", uom_qty="250ML", amount="",
            price=450, order_number="SAL-2",
        )
        text = product_details(product)
        assert "Product: Saline" in text
        assert "Quantity: 1250ml" in text
        assert "Pack Price: £4.50" in text
        assert "Unit Price: £4.50" in text
        assert text.splitlines()[-1] == "Order Code: SAL-2"

    def test_pack_and_unit_price(self):
        product = Product(id="1", product_name="Gloves", qty="5", uom_qty="box", price=1250)
        text = product_details(product)
        assert "Quantity: 5" in text.splitlines()
        assert "Pack Price: £12.50" in text
        assert "Unit Price: £2.50" in text
