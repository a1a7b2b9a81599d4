"""Product catalog SQLite record store"""

import json
import logging
import sqlite3
import uuid
from pathlib import Path
from typing import Iterable, Optional, Sequence

from ..errors import StoreError, ValidationError, store_error_from_message
from .models import Predicate, Product, ProductInsert

logger = logging.getLogger(__name__)

DB_PATH = Path.cwd() / "catalog.db"

PRODUCT_COLUMNS = (
    "supplier", "category", "product_name", "colour", "size_weight", "qty",
    "uom_qty", "amount", "order_number", "price", "price_pounds",
)

SORTABLE_COLUMNS = PRODUCT_COLUMNS + ("created_at", "updated_at")


def _fold(value) -> str:
    """Unicode-aware lower-casing, registered as py_lower() on each connection"""
    return (value or "").lower()


def build_where(predicates: Iterable[Predicate]) -> tuple[str, list]:
    """Translate predicates into a WHERE clause joined with AND."""
    clauses = []
    params: list = []
    for p in predicates:
        if p.field not in PRODUCT_COLUMNS:
            raise ValidationError(f"Unknown product field: {p.field}")
        if p.op == "ilike":
            # SQLite LOWER() only folds ASCII
            clauses.append(f"instr(py_lower({p.field}), ?) > 0")
            params.append(_fold(p.value))
        elif p.op == "eq":
            clauses.append(f"{p.field} = ?")
            params.append(p.value)
        else:
            raise ValidationError(f"Unknown predicate operator: {p.op}")
    if not clauses:
        return "", params
    return "WHERE " + " AND ".join(clauses), params


class CatalogDB:
    """Catalog database

    Holds the products table and the session_state key/value table used to
    persist favorites and search history.
    """

    def __init__(self, db_path: Optional[Path] = None):
        self.db_path = db_path or DB_PATH
        self._conn: Optional[sqlite3.Connection] = None
        self._init_db()

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            try:
                self._conn = sqlite3.connect(str(self.db_path))
            except sqlite3.Error as e:
                raise store_error_from_message(str(e)) from e
            self._conn.row_factory = sqlite3.Row
            self._conn.create_function("py_lower", 1, _fold, deterministic=True)
        return self._conn

    def _init_db(self):
        """Create tables"""
        try:
            self._create_tables()
        except sqlite3.Error as e:
            raise store_error_from_message(str(e)) from e

    def _create_tables(self):
        self.conn.executescript("""
            CREATE TABLE IF NOT EXISTS products (
                id TEXT PRIMARY KEY,
                supplier TEXT DEFAULT '',
                category TEXT DEFAULT '',
                product_name TEXT DEFAULT '',
                colour TEXT DEFAULT '',
                size_weight TEXT DEFAULT '',
                qty TEXT DEFAULT '0',
                uom_qty TEXT DEFAULT '',
                amount TEXT DEFAULT '',
                order_number TEXT DEFAULT '',
                price REAL DEFAULT 0 CHECK(price >= 0),
                price_pounds TEXT DEFAULT '',
                created_at TEXT DEFAULT (datetime('now')),
                updated_at TEXT DEFAULT (datetime('now'))
            );

            CREATE TABLE IF NOT EXISTS session_state (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TEXT DEFAULT (datetime('now'))
            );

            CREATE INDEX IF NOT EXISTS idx_products_supplier ON products(supplier);
            CREATE INDEX IF NOT EXISTS idx_products_name ON products(product_name);
            CREATE INDEX IF NOT EXISTS idx_products_order_number ON products(order_number);
        """)
        self.conn.commit()

    def close(self):
        if self._conn:
            self._conn.close()
            self._conn = None

    # ── Products ──

    def find(
        self,
        predicates: Sequence[Predicate] = (),
        order_by: str = "product_name",
        limit: Optional[int] = 100,
    ) -> list[Product]:
        """Products matching every predicate, ordered and limited."""
        if order_by not in SORTABLE_COLUMNS:
            raise ValidationError(f"Unknown sort field: {order_by}")
        where, params = build_where(predicates)
        sql = f"SELECT * FROM products {where} ORDER BY {order_by} COLLATE NOCASE ASC"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)
        try:
            rows = self.conn.execute(sql, params).fetchall()
        except sqlite3.Error as e:
            raise store_error_from_message(str(e)) from e
        return [Product.from_dict(dict(r)) for r in rows]

    def insert_batch(self, rows: Sequence[ProductInsert]) -> list[str]:
        """Insert a batch in one transaction. Returns the new ids.

        Raises:
            StoreError: nothing from the batch is kept
        """
        ids = [str(uuid.uuid4()) for _ in rows]
        placeholders = ", ".join("?" for _ in PRODUCT_COLUMNS)
        sql = (
            f"INSERT INTO products (id, {', '.join(PRODUCT_COLUMNS)}) "
            f"VALUES (?, {placeholders})"
        )
        try:
            with self.conn:
                self.conn.executemany(sql, [
                    (product_id, *(getattr(row, c) for c in PRODUCT_COLUMNS))
                    for product_id, row in zip(ids, rows)
                ])
        except sqlite3.Error as e:
            raise store_error_from_message(str(e)) from e
        logger.debug("Inserted %d products", len(rows))
        return ids

    def count(self, predicates: Sequence[Predicate] = ()) -> int:
        where, params = build_where(predicates)
        try:
            row = self.conn.execute(
                f"SELECT COUNT(*) AS cnt FROM products {where}", params
            ).fetchone()
        except sqlite3.Error as e:
            raise store_error_from_message(str(e)) from e
        return row["cnt"]

    def get_product(self, product_id: str) -> Optional[Product]:
        row = self.conn.execute(
            "SELECT * FROM products WHERE id = ?", (product_id,)
        ).fetchone()
        return Product.from_dict(dict(row)) if row else None

    # ── Session state ──

    def load(self, key: str) -> Optional[dict]:
        """Load a persisted state payload"""
        row = self.conn.execute(
            "SELECT value FROM session_state WHERE key = ?", (key,)
        ).fetchone()
        if row:
            return json.loads(row["value"])
        return None

    def save(self, key: str, data: dict):
        """Persist a state payload, replacing any previous one"""
        try:
            self.conn.execute("""
                INSERT OR REPLACE INTO session_state (key, value, updated_at)
                VALUES (?, ?, datetime('now'))
            """, (key, json.dumps(data, ensure_ascii=False)))
            self.conn.commit()
        except sqlite3.Error as e:
            raise StoreError(f"Failed to save state {key!r}: {e}") from e
