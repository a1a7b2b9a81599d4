"""Product search - criteria resolution and local re-filtering"""

import logging
import threading
from typing import Hashable, Optional

from ..errors import ValidationError
from .models import Predicate, Product, SearchCriteria

logger = logging.getLogger(__name__)

MAX_NAME_WORDS = 3
SEARCH_LIMIT = 100
ORDER_BY = "product_name"

STRATEGY_ORDER_NUMBER = "order-number"
STRATEGY_COMBINED = "combined"
STRATEGY_NONE = "none"


def _present(value: Optional[str]) -> bool:
    return bool(value and value.strip())


def split_words(phrase: Optional[str]) -> list[str]:
    """Whitespace split with empty tokens dropped"""
    return (phrase or "").split()


def resolve_strategy(criteria: SearchCriteria) -> str:
    """Pick the search strategy.

    An order code wins over every other field; otherwise any non-blank field
    gives a combined search; an empty form searches nothing.
    """
    if _present(criteria.order_number):
        return STRATEGY_ORDER_NUMBER
    if criteria.is_empty():
        return STRATEGY_NONE
    return STRATEGY_COMBINED


def validate_criteria(criteria: SearchCriteria):
    words = split_words(criteria.product_name)
    if not _present(criteria.order_number) and len(words) > MAX_NAME_WORDS:
        raise ValidationError(
            f"Product name search accepts at most {MAX_NAME_WORDS} words, got {len(words)}"
        )


def build_predicates(criteria: SearchCriteria) -> list[Predicate]:
    """Translate search criteria into record store predicates.

    Raises:
        ValidationError: product name phrase has more than MAX_NAME_WORDS words
    """
    validate_criteria(criteria)
    strategy = resolve_strategy(criteria)

    if strategy == STRATEGY_ORDER_NUMBER:
        return [Predicate("order_number", "ilike", criteria.order_number.strip())]
    if strategy == STRATEGY_NONE:
        return []

    predicates = [
        Predicate("product_name", "ilike", word)
        for word in split_words(criteria.product_name)
    ]
    if _present(criteria.supplier):
        predicates.append(Predicate("supplier", "eq", criteria.supplier))
    if _present(criteria.colour):
        predicates.append(Predicate("colour", "eq", criteria.colour))
    return predicates


def name_matches_all(product_name: Optional[str], words: list[str]) -> bool:
    name = (product_name or "").lower()
    return all(word.lower() in name for word in words)


def sort_by_name(products: list[Product]) -> list[Product]:
    return sorted(products, key=lambda p: p.sort_key)


class QueryCache:
    """Search results keyed by the exact resolved query.

    Must be invalidated whenever an import succeeds.
    """

    def __init__(self):
        self._entries: dict[Hashable, list[Product]] = {}

    @staticmethod
    def make_key(predicates: list[Predicate], order_by: str, limit: int) -> Hashable:
        return (tuple(predicates), order_by, limit)

    def get(self, key: Hashable) -> Optional[list[Product]]:
        cached = self._entries.get(key)
        return list(cached) if cached is not None else None

    def set(self, key: Hashable, products: list[Product]):
        self._entries[key] = list(products)

    def invalidate(self):
        if self._entries:
            logger.debug("Query cache cleared (%d entries)", len(self._entries))
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


def search_products(
    store,
    criteria: SearchCriteria,
    cache: Optional[QueryCache] = None,
    limit: int = SEARCH_LIMIT,
) -> list[Product]:
    """Search the record store.

    1. Resolve the strategy (order code only / combined / nothing)
    2. Query the store with the AND of the resolved predicates
    3. Re-check every name word locally; store-side substring matching can
       return rows that do not contain all the words

    Args:
        store: record store with find(predicates, order_by, limit)
        criteria: search form values
        cache: optional query cache

    Returns:
        Products ordered by name (case-insensitive), at most `limit`
    """
    predicates = build_predicates(criteria)
    strategy = resolve_strategy(criteria)
    if strategy == STRATEGY_NONE:
        return []

    key = QueryCache.make_key(predicates, ORDER_BY, limit)
    results = cache.get(key) if cache is not None else None
    if results is None:
        results = store.find(predicates, order_by=ORDER_BY, limit=limit)
        if cache is not None:
            cache.set(key, results)

    if strategy == STRATEGY_COMBINED and _present(criteria.product_name):
        words = split_words(criteria.product_name)
        fetched = len(results)
        results = [p for p in results if name_matches_all(p.product_name, words)]
        if len(results) != fetched:
            logger.debug("Dropped %d products failing the word check", fetched - len(results))

    logger.info("Search (%s) found %d products", strategy, len(results))
    return sort_by_name(results)


class SearchSession:
    """Runs searches for one user session, last submission wins.

    Every submit() takes a ticket. When a newer submission has started by the
    time a query returns, the older results are discarded so a slow query
    cannot overwrite a faster, later one.
    """

    def __init__(self, store, cache: Optional[QueryCache] = None):
        self.store = store
        self.cache = cache
        self.results: list[Product] = []
        self.criteria: Optional[SearchCriteria] = None
        self._latest = 0
        self._lock = threading.Lock()

    def _next_ticket(self) -> int:
        with self._lock:
            self._latest += 1
            return self._latest

    def is_current(self, ticket: int) -> bool:
        with self._lock:
            return ticket == self._latest

    def submit(self, criteria: SearchCriteria) -> Optional[list[Product]]:
        """Run a search. Returns None when a later submission superseded it."""
        ticket = self._next_ticket()
        results = search_products(self.store, criteria, cache=self.cache)
        with self._lock:
            if ticket != self._latest:
                logger.debug("Discarding results of superseded search #%d", ticket)
                return None
            self.results = results
            self.criteria = criteria
        return results
