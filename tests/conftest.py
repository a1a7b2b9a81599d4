"""Shared fixtures: in-memory record store and product factory."""
import itertools

import pytest

from productlookup.catalog.models import Product
from productlookup.errors import StoreError


class FakeStore:
    """Record store double.

    find() applies predicates the way the real stores do, unless `canned`
    is set, in which case it returns those rows as-is (to simulate
    store-side false positives).
    """

    def __init__(self, products=None, fail_on_batch=None):
        self.products = list(products or [])
        self.fail_on_batch = fail_on_batch
        self.batches = []
        self.find_calls = []
        self.canned = None

    def find(self, predicates=(), order_by="product_name", limit=100):
        self.find_calls.append((list(predicates), order_by, limit))
        if self.canned is not None:
            return list(self.canned)
        rows = [p for p in self.products if all(self._match(p, pr) for pr in predicates)]
        rows.sort(key=lambda p: getattr(p, order_by).lower())
        return rows[:limit]

    @staticmethod
    def _match(product, predicate):
        value = getattr(product, predicate.field) or ""
        if predicate.op == "ilike":
            return predicate.value.lower() in value.lower()
        return value == predicate.value

    def insert_batch(self, rows):
        self.batches.append(list(rows))
        if self.fail_on_batch == len(self.batches):
            raise StoreError("insert rejected")

    def count(self, predicates=()):
        return len([p for p in self.products if all(self._match(p, pr) for pr in predicates)])


@pytest.fixture
def make_product():
    ids = itertools.count(1)

    def factory(name="Product", **kwargs):
        kwargs.setdefault("id", str(next(ids)))
        return Product(product_name=name, **kwargs)

    return factory


@pytest.fixture
def fake_store():
    return FakeStore()
