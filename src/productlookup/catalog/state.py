"""Session state: favorites, product search history, recent queries

State lives in explicit containers that load from a storage adapter when
created and save after every mutation. A storage adapter is anything with
load(key) -> dict | None and save(key, data); CatalogDB provides one backed
by SQLite, MemoryStorage keeps everything in process.
"""

import copy
import logging
import time
import uuid
from typing import Optional

from .models import Favorite, Product, UsageDescriptor

logger = logging.getLogger(__name__)

FAVORITES_KEY = "favorites"
QUERY_HISTORY_KEY = "search-history"
SESSION_KEY = "session-id"

MAX_QUERY_HISTORY = 10


class MemoryStorage:
    """In-process storage adapter"""

    def __init__(self):
        self._data: dict[str, dict] = {}

    def load(self, key: str) -> Optional[dict]:
        data = self._data.get(key)
        return copy.deepcopy(data) if data is not None else None

    def save(self, key: str, data: dict):
        self._data[key] = copy.deepcopy(data)


def get_session_id(storage) -> str:
    """Return the persisted session id, creating one on first use"""
    try:
        data = storage.load(SESSION_KEY)
    except ValueError as e:
        logger.warning("Discarding unreadable session id: %s", e)
        data = None
    if isinstance(data, dict) and data.get("session_id"):
        return data["session_id"]
    session_id = f"session_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"
    storage.save(SESSION_KEY, {"session_id": session_id})
    return session_id


def sort_favorites(favorites: list[Favorite]) -> list[Favorite]:
    """Sort by product name (case-insensitive) and renumber display_order"""
    ordered = sorted(favorites, key=lambda f: f.product.sort_key)
    for i, fav in enumerate(ordered):
        fav.display_order = i
    return ordered


class FavoritesState:
    """Favorites with usage, plus the products kept from past searches.

    Favorites stay sorted by product name after every insertion. Removing a
    favorite never touches the catalog product itself.
    """

    def __init__(self, storage, session_id: str, key: str = FAVORITES_KEY):
        self.storage = storage
        self.session_id = session_id
        self.key = key
        self.favorites: list[Favorite] = []
        self.search_history: list[Product] = []
        self.load()

    # ── Persistence ──

    def load(self):
        """Load persisted state and re-sort favorites"""
        try:
            data = self.storage.load(self.key) or {}
            favorites = [
                Favorite(
                    session_id=self.session_id,
                    product=Product.from_dict(item["product"]),
                    usage=UsageDescriptor(**item.get("usage", {})),
                    display_order=item.get("display_order", 0),
                )
                for item in data.get("favorites", [])
            ]
            history = [Product.from_dict(p) for p in data.get("search_history", [])]
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            # ValueError includes JSONDecodeError from a corrupt stored value
            logger.warning("Discarding unreadable favorites state: %s", e)
            favorites, history = [], []
        self.favorites = sort_favorites(favorites)
        self.search_history = history

    def _save(self):
        self.storage.save(self.key, {
            "favorites": [
                {
                    "product": f.product.to_dict(),
                    "usage": {"frequency": f.usage.frequency, "period": f.usage.period},
                    "display_order": f.display_order,
                }
                for f in self.favorites
            ],
            "search_history": [p.to_dict() for p in self.search_history],
        })

    # ── Favorites ──

    @property
    def products(self) -> list[Product]:
        return [f.product for f in self.favorites]

    def get_favorite(self, product_id: str) -> Optional[Favorite]:
        for fav in self.favorites:
            if fav.product_id == product_id:
                return fav
        return None

    def is_favorite(self, product_id: str) -> bool:
        return self.get_favorite(product_id) is not None

    def add_favorite(self, product: Product, usage: Optional[UsageDescriptor] = None) -> Favorite:
        """Favorite a product (default usage: once a month).

        Favoriting an existing favorite only replaces its usage.
        """
        usage = usage or UsageDescriptor()
        existing = self.get_favorite(product.id)
        if existing:
            existing.usage = usage
            self._save()
            return existing

        fav = Favorite(session_id=self.session_id, product=product, usage=usage)
        self.favorites = sort_favorites(self.favorites + [fav])
        self._save()
        return fav

    def remove_favorite(self, product_id: str, keep_in_history: bool = False) -> bool:
        """Drop a favorite. Returns False when it was not a favorite.

        keep_in_history: move the product into search history so it stays
        on screen as an ordinary, deletable result.
        """
        fav = self.get_favorite(product_id)
        if fav is None:
            return False
        self.favorites = sort_favorites([f for f in self.favorites if f is not fav])
        if keep_in_history and not self.is_in_search_history(product_id):
            self.search_history.append(fav.product)
        self._save()
        return True

    def toggle_favorite(self, product: Product, usage: Optional[UsageDescriptor] = None) -> bool:
        """Favorite or unfavorite. Returns True when the product is now a favorite."""
        if self.is_favorite(product.id):
            self.remove_favorite(product.id, keep_in_history=True)
            return False
        self.add_favorite(product, usage)
        return True

    def update_usage(self, product_id: str, usage: UsageDescriptor) -> Favorite:
        """Change a favorite's usage in place"""
        fav = self.get_favorite(product_id)
        if fav is None:
            raise KeyError(f"Not a favorite: {product_id}")
        fav.usage = usage
        self._save()
        return fav

    def get_usage(self, product_id: str) -> Optional[UsageDescriptor]:
        fav = self.get_favorite(product_id)
        return fav.usage if fav else None

    def usage_by_id(self) -> dict[str, UsageDescriptor]:
        return {f.product_id: f.usage for f in self.favorites}

    def clear_favorites(self):
        self.favorites = []
        self._save()

    # ── Search history ──

    def is_in_search_history(self, product_id: str) -> bool:
        return any(p.id == product_id for p in self.search_history)

    def add_to_search_history(self, products: list[Product]) -> int:
        """Append products not already in history. Returns how many were added."""
        seen = {p.id for p in self.search_history}
        added = 0
        for product in products:
            if product.id in seen:
                continue
            self.search_history.append(product)
            seen.add(product.id)
            added += 1
        if added:
            self._save()
        return added

    def remove_from_search_history(self, product_id: str) -> bool:
        before = len(self.search_history)
        self.search_history = [p for p in self.search_history if p.id != product_id]
        if len(self.search_history) == before:
            return False
        self._save()
        return True

    def clear_search_history(self):
        self.search_history = []
        self._save()


class QueryHistory:
    """Recent search queries, newest first, without duplicates"""

    def __init__(self, storage, key: str = QUERY_HISTORY_KEY, limit: int = MAX_QUERY_HISTORY):
        self.storage = storage
        self.key = key
        self.limit = limit
        try:
            data = storage.load(key) or {}
            queries = [q for q in data.get("queries", []) if isinstance(q, str)]
        except (AttributeError, TypeError, ValueError) as e:
            logger.warning("Discarding unreadable query history: %s", e)
            queries = []
        self.queries: list[str] = queries[:limit]

    def _save(self):
        self.storage.save(self.key, {"queries": self.queries})

    def add(self, query: str):
        query = query.strip()
        if not query:
            return
        self.queries = [query] + [q for q in self.queries if q != query]
        self.queries = self.queries[:self.limit]
        self._save()

    def remove(self, query: str):
        self.queries = [q for q in self.queries if q != query]
        self._save()

    def clear(self):
        self.queries = []
        self._save()
