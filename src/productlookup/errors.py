"""Error types for the product catalog

Catalog errors share one base class so callers can catch the whole family.
"""

from typing import Optional

# Substring -> category, checked in order against the lower-cased message.
CONNECTIVITY_PATTERNS: list[tuple[str, str]] = [
    ("jwt", "authentication"),
    ("invalid api key", "authentication"),
    ("no api key", "authentication"),
    ("does not exist", "missing-schema"),
    ("could not find the table", "missing-schema"),
    ("no such table", "missing-schema"),
    ("unable to open database", "configuration"),
    ("row-level security", "permission"),
    ("permission denied", "permission"),
    ("invalid url", "configuration"),
    ("failed to fetch", "network"),
    ("connection", "network"),
    ("timed out", "network"),
    ("name or service not known", "network"),
]

CATEGORY_HINTS = {
    "authentication": "Authentication error - check the record store API key",
    "missing-schema": "Database table not found - create the product table first",
    "permission": "Permission denied - check the row level security policies",
    "configuration": "Invalid record store configuration - check CATALOG_STORE_URL / CATALOG_STORE_KEY",
    "network": "Network error - check your connection and the record store URL",
    "unknown": "Record store error",
}


class CatalogError(Exception):
    """Base error for the catalog."""


class ValidationError(CatalogError):
    """Malformed search criteria or CSV input. Raised before any I/O."""


class StoreError(CatalogError):
    """The record store rejected an operation."""


class ConnectivityError(StoreError):
    """Record store unreachable or misconfigured."""

    def __init__(self, category: str, message: str = ""):
        self.category = category
        self.hint = CATEGORY_HINTS.get(category, CATEGORY_HINTS["unknown"])
        super().__init__(f"Connectivity Error [{category}]: {message or self.hint}")


class PartialImportFailure(CatalogError):
    """One batch of a multi-batch import failed.

    Rows from earlier batches stay committed.
    """

    def __init__(
        self,
        batch_index: int,
        total_batches: int,
        rows_committed: int,
        cause: Optional[Exception] = None,
    ):
        self.batch_index = batch_index
        self.total_batches = total_batches
        self.rows_committed = rows_committed
        self.cause = cause
        super().__init__(
            f"Batch {batch_index} of {total_batches} failed: {cause} "
            f"({rows_committed} rows already committed)"
        )


def classify_store_error(message: str) -> Optional[str]:
    """Guess the connectivity category from an error message. None if unknown."""
    lowered = (message or "").lower()
    for needle, category in CONNECTIVITY_PATTERNS:
        if needle in lowered:
            return category
    return None


def store_error_from_message(message: str) -> StoreError:
    """Build a ConnectivityError when the message matches a known category."""
    category = classify_store_error(message)
    if category:
        return ConnectivityError(category, message)
    return StoreError(message)
