"""
Tests for the PostgREST record store client, using a recorded-call session.
"""
import pytest
import requests

from productlookup.catalog.models import Predicate, ProductInsert
from productlookup.errors import ConnectivityError, StoreError
from productlookup.remote import (
    RemoteCatalogStore,
    build_params,
    product_to_row,
    row_to_product,
)


class FakeResponse:

    def __init__(self, status_code=200, payload=None, headers=None, text=""):
        self.status_code = status_code
        self._payload = payload
        self.headers = headers or {}
        self.text = text
        self.reason = ""

    def json(self):
        if self._payload is None:
            raise ValueError("no JSON body")
        return self._payload


class FakeSession:
    """Stands in for requests.Session, recording every call"""

    def __init__(self, *responses, error=None):
        self.headers = {}
        self.calls = []
        self.responses = list(responses)
        self.error = error
        self.closed = False

    def request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        if self.error:
            raise self.error
        return self.responses.pop(0)

    def close(self):
        self.closed = True


def _store(*responses, error=None):
    session = FakeSession(*responses, error=error)
    store = RemoteCatalogStore("https://demo.supabase.co/", "anon-key", session=session)
    return store, session


class TestBuildParams:

    def test_filters_order_and_limit(self):
        params = build_params(
            [
                Predicate("product_name", "ilike", "nitrile"),
                Predicate("product_name", "ilike", "gloves"),
                Predicate("supplier", "eq", "Acme"),
            ],
            order_by="product_name",
            limit=100,
        )
        assert params == [
            ('"Product Name"', "ilike.*nitrile*"),
            ('"Product Name"', "ilike.*gloves*"),
            ('"Supplier"', "eq.Acme"),
            ("order", '"Product Name".asc'),
            ("limit", "100"),
        ]

    def test_order_number_column(self):
        assert build_params([Predicate("order_number", "ilike", "GLV")]) == [
            ('"Order number"', "ilike.*GLV*"),
        ]


class TestRowMapping:

    def test_row_to_product(self):
        product = row_to_product({
            "id": 42,
            "Product Name": "Gloves",
            "QTY": 5,
            "UOM QTY": "box",
            "Price": "1250",
            "Colour": None,
        })
        assert product.id == "42"
        assert product.product_name == "Gloves"
        assert product.qty == "5"
        assert product.price == 1250
        assert product.colour == ""

    def test_product_to_row(self):
        row = product_to_row(ProductInsert(product_name="Gloves", size_weight="M", price=10))
        assert row["Product Name"] == "Gloves"
        assert row["sz/wt"] == "M"
        assert row["Price"] == 10
        assert "id" not in row


class TestConstruction:

    def test_invalid_url(self):
        with pytest.raises(ConnectivityError) as exc_info:
            RemoteCatalogStore("demo.supabase.co", "key", session=FakeSession())
        assert exc_info.value.category == "configuration"

    def test_missing_key(self):
        with pytest.raises(ConnectivityError) as exc_info:
            RemoteCatalogStore("https://demo.supabase.co", "", session=FakeSession())
        assert exc_info.value.category == "configuration"

    def test_auth_headers(self):
        store, session = _store()
        assert session.headers["apikey"] == "anon-key"
        assert session.headers["Authorization"] == "Bearer anon-key"
        assert store.endpoint == "https://demo.supabase.co/rest/v1/product"


class TestOperations:

    def test_find(self):
        store, session = _store(FakeResponse(payload=[{"id": 1, "Product Name": "Gloves"}]))
        products = store.find([Predicate("supplier", "eq", "Acme")], limit=10)
        assert [p.product_name for p in products] == ["Gloves"]
        method, url, kwargs = session.calls[0]
        assert method == "GET"
        assert url.endswith("/rest/v1/product")
        assert kwargs["params"][0] == ("select", "*")
        assert ('"Supplier"', "eq.Acme") in kwargs["params"]

    def test_insert_batch(self):
        store, session = _store(FakeResponse(status_code=201))
        store.insert_batch([ProductInsert(product_name="A"), ProductInsert(product_name="B")])
        method, _, kwargs = session.calls[0]
        assert method == "POST"
        assert [r["Product Name"] for r in kwargs["json"]] == ["A", "B"]
        assert kwargs["headers"]["Prefer"] == "return=minimal"

    def test_count_from_content_range(self):
        store, session = _store(FakeResponse(headers={"Content-Range": "0-99/1234"}))
        assert store.count() == 1234
        method, _, kwargs = session.calls[0]
        assert method == "HEAD"
        assert kwargs["headers"]["Prefer"] == "count=exact"

    def test_count_without_header(self):
        store, _ = _store(FakeResponse(headers={"Content-Range": "*/*"}))
        assert store.count() == 0

    def test_ping(self):
        store, session = _store(FakeResponse(payload=[{"count": 3}]))
        assert store.ping() is True
        assert session.calls[0][2]["params"] == [("select", "count"), ("limit", "1")]

    def test_close(self):
        store, session = _store()
        store.close()
        assert session.closed


class TestErrors:

    def test_network_error(self):
        store, _ = _store(error=requests.ConnectionError("boom"))
        with pytest.raises(ConnectivityError) as exc_info:
            store.find()
        assert exc_info.value.category == "network"

    def test_invalid_key(self):
        store, _ = _store(FakeResponse(status_code=401, payload={"message": "Invalid API key"}))
        with pytest.raises(ConnectivityError) as exc_info:
            store.find()
        assert exc_info.value.category == "authentication"

    def test_missing_table(self):
        body = {"message": 'relation "public.product" does not exist'}
        store, _ = _store(FakeResponse(status_code=404, payload=body))
        with pytest.raises(ConnectivityError) as exc_info:
            store.find()
        assert exc_info.value.category == "missing-schema"

    def test_row_level_security(self):
        body = {"message": 'new row violates row-level security policy for table "product"'}
        store, _ = _store(FakeResponse(status_code=403, payload=body))
        with pytest.raises(ConnectivityError) as exc_info:
            store.insert_batch([ProductInsert()])
        assert exc_info.value.category == "permission"

    def test_other_errors_are_store_errors(self):
        store, _ = _store(FakeResponse(status_code=400, text="bad request"))
        with pytest.raises(StoreError) as exc_info:
            store.insert_batch([ProductInsert()])
        assert not isinstance(exc_info.value, ConnectivityError)
        assert "bad request" in str(exc_info.value)
