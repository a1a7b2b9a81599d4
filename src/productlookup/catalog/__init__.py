"""Product catalog core: search, CSV import, costs, display"""

from .costs import calculate_yearly_cost, calculate_yearly_uses, yearly_total
from .db import CatalogDB
from .display import aggregate_display, build_display_rows, merge_selected
from .importer import import_csv, import_products, preview_csv
from .models import Favorite, Predicate, Product, ProductInsert, SearchCriteria, UsageDescriptor
from .normalizer import normalize_row
from .searcher import QueryCache, SearchSession, search_products
from .state import FavoritesState, MemoryStorage, QueryHistory

__all__ = [
    "CatalogDB",
    "Favorite",
    "FavoritesState",
    "MemoryStorage",
    "Predicate",
    "Product",
    "ProductInsert",
    "QueryCache",
    "QueryHistory",
    "SearchCriteria",
    "SearchSession",
    "UsageDescriptor",
    "aggregate_display",
    "build_display_rows",
    "calculate_yearly_cost",
    "calculate_yearly_uses",
    "import_csv",
    "import_products",
    "merge_selected",
    "normalize_row",
    "preview_csv",
    "search_products",
    "yearly_total",
]
