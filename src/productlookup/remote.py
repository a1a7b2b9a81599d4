"""
Remote record store client (PostgREST / Supabase REST API)

The catalog table keeps the original spreadsheet column headers
("Product Name", "Order number", ...). This client maps them to and from the
canonical Product fields.

Request flow:
1. GET  /rest/v1/<table>?<filters>&order=...&limit=...   find
2. POST /rest/v1/<table>                                 insert_batch (one request per batch)
3. HEAD /rest/v1/<table>  Prefer: count=exact            count
"""

import logging
from typing import Optional, Sequence

import requests

from .catalog.models import COLUMN_HEADERS, Predicate, Product, ProductInsert
from .errors import ConnectivityError, StoreError, ValidationError, classify_store_error

logger = logging.getLogger(__name__)

REST_PATH = "/rest/v1"
DEFAULT_TABLE = "product"
DEFAULT_TIMEOUT = 15

HEADER_TO_FIELD = {header: name for name, header in COLUMN_HEADERS.items()}


def _quote(column: str) -> str:
    return f'"{column}"'


def _column(field_name: str) -> str:
    try:
        return _quote(COLUMN_HEADERS[field_name])
    except KeyError:
        raise ValidationError(f"Unknown product field: {field_name}") from None


def build_params(
    predicates: Sequence[Predicate],
    order_by: Optional[str] = None,
    limit: Optional[int] = None,
) -> list[tuple[str, str]]:
    """Predicates as PostgREST query parameters.

    The same column may appear more than once (one ilike per search word),
    so this returns a list of pairs rather than a dict.
    """
    params: list[tuple[str, str]] = []
    for p in predicates:
        column = _column(p.field)
        if p.op == "ilike":
            params.append((column, f"ilike.*{p.value}*"))
        elif p.op == "eq":
            params.append((column, f"eq.{p.value}"))
        else:
            raise ValidationError(f"Unknown predicate operator: {p.op}")
    if order_by:
        params.append(("order", f"{_column(order_by)}.asc"))
    if limit is not None:
        params.append(("limit", str(limit)))
    return params


def row_to_product(row: dict) -> Product:
    data = {HEADER_TO_FIELD.get(k, k): v for k, v in row.items()}
    return Product.from_dict(data)


def product_to_row(product: ProductInsert) -> dict:
    return {COLUMN_HEADERS[k]: v for k, v in product.to_dict().items() if k in COLUMN_HEADERS}


def _parse_content_range(value: Optional[str]) -> int:
    """ "0-99/1234" or "*/1234" -> 1234"""
    if not value or "/" not in value:
        return 0
    total = value.rsplit("/", 1)[1]
    return int(total) if total.isdigit() else 0


class RemoteCatalogStore:
    """PostgREST record store client"""

    def __init__(
        self,
        url: str,
        api_key: str,
        table: str = DEFAULT_TABLE,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        """
        Args:
            url: project base URL, e.g. "https://abcd.supabase.co"
            api_key: anon or service key, sent as apikey and Bearer token
            table: product table name
        """
        if not url or not url.startswith(("http://", "https://")):
            raise ConnectivityError("configuration", f"Invalid URL: {url!r}")
        if not api_key:
            raise ConnectivityError("configuration", "No API key configured")
        self.base_url = url.rstrip("/")
        self.table = table
        self.timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.update({
            "apikey": api_key,
            "Authorization": f"Bearer {api_key}",
            "Accept": "application/json",
        })

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}{REST_PATH}/{self.table}"

    def _request(self, method: str, **kwargs) -> requests.Response:
        try:
            resp = self._session.request(
                method, self.endpoint, timeout=self.timeout, **kwargs
            )
        except requests.RequestException as e:
            raise ConnectivityError("network", str(e)) from e

        if resp.status_code >= 400:
            raise self._error_from_response(resp)
        return resp

    @staticmethod
    def _error_from_response(resp: requests.Response) -> StoreError:
        try:
            body = resp.json()
            message = (body.get("message") if isinstance(body, dict) else None) or str(body)
        except ValueError:
            message = resp.text or resp.reason or ""
        message = f"HTTP {resp.status_code}: {message}"

        category = classify_store_error(message)
        if category is None:
            if resp.status_code == 401:
                category = "authentication"
            elif resp.status_code == 404:
                category = "missing-schema"
        if category:
            return ConnectivityError(category, message)
        return StoreError(message)

    # ── Record store operations ──

    def find(
        self,
        predicates: Sequence[Predicate] = (),
        order_by: str = "product_name",
        limit: Optional[int] = 100,
    ) -> list[Product]:
        params = [("select", "*")] + build_params(predicates, order_by, limit)
        resp = self._request("GET", params=params)
        rows = resp.json() or []
        logger.debug("find %s -> %d rows", params, len(rows))
        return [row_to_product(r) for r in rows]

    def insert_batch(self, rows: Sequence[ProductInsert]) -> None:
        """Insert one batch. PostgREST applies a bulk insert atomically."""
        self._request(
            "POST",
            json=[product_to_row(r) for r in rows],
            headers={"Prefer": "return=minimal"},
        )

    def count(self, predicates: Sequence[Predicate] = ()) -> int:
        params = [("select", "*")] + build_params(predicates)
        resp = self._request("HEAD", params=params, headers={"Prefer": "count=exact"})
        return _parse_content_range(resp.headers.get("Content-Range"))

    def ping(self) -> bool:
        """Connection test. Raises ConnectivityError when the store is unusable."""
        self._request("GET", params=[("select", "count"), ("limit", "1")])
        return True

    def close(self):
        self._session.close()
