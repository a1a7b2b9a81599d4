"""
Environment-driven configuration.

The CLI loads a .env file first (python-dotenv), so every value here can come
from the process environment or from .env.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .errors import ConnectivityError

# Newer names first, then the names used by older deployments
STORE_URL_VARS = ("CATALOG_STORE_URL", "SUPABASE_URL", "NEXT_PUBLIC_SUPABASE_URL")
STORE_KEY_VARS = ("CATALOG_STORE_KEY", "SUPABASE_ANON_KEY", "NEXT_PUBLIC_SUPABASE_ANON_KEY")


def _first_env(names) -> Optional[str]:
    for name in names:
        value = os.getenv(name)
        if value:
            return value.strip()
    return None


@dataclass
class Settings:
    store_url: Optional[str] = None
    store_key: Optional[str] = None
    store_table: str = "product"
    db_path: Path = Path("catalog.db")
    batch_size: int = 100

    @classmethod
    def from_env(cls) -> "Settings":
        batch_size = os.getenv("CATALOG_BATCH_SIZE", "100")
        try:
            batch_size = int(batch_size)
        except ValueError:
            raise ValueError(f"CATALOG_BATCH_SIZE must be an integer: {batch_size!r}") from None
        if batch_size <= 0:
            raise ValueError(f"CATALOG_BATCH_SIZE must be positive: {batch_size}")

        return cls(
            store_url=_first_env(STORE_URL_VARS),
            store_key=_first_env(STORE_KEY_VARS),
            store_table=os.getenv("CATALOG_STORE_TABLE") or "product",
            db_path=Path(os.getenv("CATALOG_DB_PATH") or "catalog.db"),
            batch_size=batch_size,
        )

    @property
    def use_remote(self) -> bool:
        """A remote store is used as soon as either setting is given"""
        return bool(self.store_url or self.store_key)

    def validate_remote(self):
        """Raises ConnectivityError("configuration") for unusable remote settings"""
        if not self.store_url:
            raise ConnectivityError("configuration", "CATALOG_STORE_URL is not set")
        if not self.store_url.startswith(("http://", "https://")):
            raise ConnectivityError("configuration", f"Invalid URL: {self.store_url!r}")
        if not self.store_key:
            raise ConnectivityError("configuration", "CATALOG_STORE_KEY is not set")
