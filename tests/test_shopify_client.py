import asyncio
from decimal import Decimal

import pytest
import requests

from services.catalog import ShopifyCatalog, resolve_products
from services.shopify_client import (
    PRODUCT_CREATE,
    PRODUCT_DELETE,
    VARIANTS_BULK_UPDATE,
    ShopifyAdminClient,
    ShopifyTransportError,
)


class FakeResponse:
    def __init__(self, body=None, status_code=200, invalid_json=False):
        self.body = body
        self.status_code = status_code
        self.invalid_json = invalid_json

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Server Error")

    def json(self):
        if self.invalid_json:
            raise ValueError("Expecting value")
        return self.body


class FakeSession:
    def __init__(self, *responses, error=None):
        self.responses = list(responses)
        self.error = error
        self.calls = []

    def post(self, url, json=None, headers=None, timeout=None):
        self.calls.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return self.responses.pop(0)


def _client(*responses, error=None):
    session = FakeSession(*responses, error=error)
    client = ShopifyAdminClient(
        "alpha.myshopify.com", "shpat_test", api_version="2025-01", timeout=5, session=session
    )
    return client, session


def test_create_product_strips_gid_prefixes():
    client, session = _client(FakeResponse({
        "data": {
            "productCreate": {
                "product": {
                    "id": "gid://shopify/Product/123",
                    "title": "Summer Pack",
                    "variants": {"edges": [{"node": {"id": "gid://shopify/ProductVariant/456", "price": "0.00"}}]},
                },
                "userErrors": [],
            }
        }
    }))

    result = asyncio.run(client.create_product("Summer Pack"))

    assert result.ok
    assert result.product_id == "123"
    assert result.product_gid == "gid://shopify/Product/123"
    assert result.variant_id == "456"
    call = session.calls[0]
    assert call["url"] == "https://alpha.myshopify.com/admin/api/2025-01/graphql.json"
    assert call["headers"]["X-Shopify-Access-Token"] == "shpat_test"
    assert call["timeout"] == 5
    assert call["json"]["query"] == PRODUCT_CREATE
    assert call["json"]["variables"] == {"product": {"title": "Summer Pack", "productType": "Bundle"}}


def test_create_product_title_is_sent_as_variable():
    title = 'Bob\'s "Best" Bundle'
    client, session = _client(FakeResponse({
        "data": {"productCreate": {"product": {"id": "gid://shopify/Product/1", "title": title}, "userErrors": []}}
    }))

    asyncio.run(client.create_product(title, product_type=None))

    assert session.calls[0]["json"]["variables"] == {"product": {"title": title}}
    assert title not in session.calls[0]["json"]["query"]


def test_create_product_returns_user_errors():
    client, _ = _client(FakeResponse({
        "data": {
            "productCreate": {
                "product": None,
                "userErrors": [{"field": ["title"], "message": "Title can't be blank"}],
            }
        }
    }))

    result = asyncio.run(client.create_product(""))

    assert not result.ok
    assert result.product_id is None
    assert result.user_errors[0].message == "Title can't be blank"
    assert result.user_errors[0].field == ["title"]


def test_top_level_graphql_errors_raise():
    client, _ = _client(FakeResponse({"errors": [{"message": "Throttled"}]}))

    with pytest.raises(ShopifyTransportError):
        asyncio.run(client.create_product("T"))


def test_http_error_raises_transport_error():
    client, _ = _client(FakeResponse({}, status_code=502))

    with pytest.raises(ShopifyTransportError):
        asyncio.run(client.delete_product("123"))


def test_connection_error_raises_transport_error():
    client, _ = _client(error=requests.ConnectionError("connection refused"))

    with pytest.raises(ShopifyTransportError):
        asyncio.run(client.create_product("T"))


def test_invalid_json_raises_transport_error():
    client, _ = _client(FakeResponse(invalid_json=True))

    with pytest.raises(ShopifyTransportError):
        asyncio.run(client.create_product("T"))


def test_missing_product_id_raises_transport_error():
    client, _ = _client(FakeResponse({"data": {"productCreate": {"product": None, "userErrors": []}}}))

    with pytest.raises(ShopifyTransportError):
        asyncio.run(client.create_product("T"))


def test_set_variant_price_sends_global_ids():
    client, session = _client(FakeResponse({
        "data": {
            "productVariantsBulkUpdate": {
                "productVariants": [{"id": "gid://shopify/ProductVariant/456", "price": "12.50"}],
                "userErrors": [],
            }
        }
    }))

    result = asyncio.run(client.set_variant_price("123", "456", Decimal("12.50")))

    assert result.ok
    assert result.variants[0]["price"] == "12.50"
    call = session.calls[0]["json"]
    assert call["query"] == VARIANTS_BULK_UPDATE
    assert call["variables"] == {
        "productId": "gid://shopify/Product/123",
        "variants": [{"id": "gid://shopify/ProductVariant/456", "price": "12.50"}],
    }


def test_delete_product_returns_user_errors():
    client, session = _client(FakeResponse({
        "data": {"productDelete": {"deletedProductId": None, "userErrors": [{"field": None, "message": "Not found"}]}}
    }))

    errors = asyncio.run(client.delete_product("123"))

    assert [e.message for e in errors] == ["Not found"]
    assert session.calls[0]["json"]["query"] == PRODUCT_DELETE
    assert session.calls[0]["json"]["variables"] == {"input": {"id": "gid://shopify/Product/123"}}


def test_fetch_products_skips_unknown_ids():
    client, session = _client(FakeResponse({
        "data": {
            "nodes": [
                {
                    "id": "gid://shopify/Product/1",
                    "title": "Board",
                    "featuredImage": {"url": "https://cdn/board.png"},
                    "variants": {"edges": [{"node": {"id": "gid://shopify/ProductVariant/11", "title": "Blue", "price": "15.90"}}]},
                },
                None,
            ]
        }
    }))

    products = asyncio.run(client.fetch_products(["1", "2", "1"]))

    assert len(products) == 1
    product = products[0]
    assert (product.id, product.title, product.price, product.variant_id, product.variant) == (
        "1", "Board", "15.90", "11", "Blue"
    )
    assert product.image_url == "https://cdn/board.png"
    assert session.calls[0]["json"]["variables"] == {
        "ids": ["gid://shopify/Product/1", "gid://shopify/Product/2"]
    }


def test_fetch_products_without_ids_skips_request():
    client, session = _client()

    assert asyncio.run(client.fetch_products([])) == []
    assert session.calls == []


def test_resolve_products_fills_placeholders_on_outage():
    client, _ = _client(error=requests.Timeout("read timed out"))

    products = asyncio.run(resolve_products(ShopifyCatalog(client), ["1", "2"]))

    assert set(products) == {"1", "2"}
    assert products["1"].title == "1"
    assert products["1"].price is None
