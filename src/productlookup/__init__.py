"""productlookup - product catalog search, CSV import, and yearly cost toolkit"""

__version__ = "0.1.0"

from productlookup.catalog.db import CatalogDB
from productlookup.errors import (
    CatalogError,
    ConnectivityError,
    PartialImportFailure,
    StoreError,
    ValidationError,
)
from productlookup.remote import RemoteCatalogStore

__all__ = [
    "CatalogDB",
    "CatalogError",
    "ConnectivityError",
    "PartialImportFailure",
    "RemoteCatalogStore",
    "StoreError",
    "ValidationError",
]
