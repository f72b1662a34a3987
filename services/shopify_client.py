"""
Shopify Admin GraphQL client for bundle products.

Creates the product that backs a bundle, reads product/variant data in batches
and updates variant prices. Mutations report field-level `userErrors`, which
are returned to the caller as data; everything else that goes wrong on the
wire (connection failures, non-2xx responses, top-level GraphQL `errors`,
unreadable JSON) raises `ShopifyTransportError`.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

import requests

from schemas import Product, UserError, from_gid, to_gid
from settings import SHOPIFY_API_VERSION, SHOPIFY_TIMEOUT, shopify_graphql_url

logger = logging.getLogger(__name__)


PRODUCT_CREATE = """
mutation productCreate($product: ProductCreateInput!) {
  productCreate(product: $product) {
    product {
      id
      title
      handle
      status
      variants(first: 1) {
        edges { node { id price } }
      }
    }
    userErrors { field message }
  }
}
"""

PRODUCT_DELETE = """
mutation productDelete($input: ProductDeleteInput!) {
  productDelete(input: $input) {
    deletedProductId
    userErrors { field message }
  }
}
"""

VARIANTS_BULK_UPDATE = """
mutation productVariantsBulkUpdate($productId: ID!, $variants: [ProductVariantsBulkInput!]!) {
  productVariantsBulkUpdate(productId: $productId, variants: $variants) {
    productVariants { id price }
    userErrors { field message }
  }
}
"""

PRODUCTS_BY_IDS = """
query productsByIds($ids: [ID!]!) {
  nodes(ids: $ids) {
    ... on Product {
      id
      title
      featuredImage { url }
      variants(first: 1) {
        edges { node { id title price } }
      }
    }
  }
}
"""


class ShopifyTransportError(Exception):
    """The Admin API could not be reached or answered with something unusable."""


@dataclass
class ProductCreateResult:
    product_id: Optional[str] = None  # numeric id
    product_gid: Optional[str] = None
    variant_id: Optional[str] = None  # numeric id of the default variant
    title: Optional[str] = None
    price: Optional[str] = None
    user_errors: List[UserError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.user_errors and bool(self.product_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.product_gid,
            "productId": self.product_id,
            "variantId": self.variant_id,
            "title": self.title,
            "price": self.price,
        }


@dataclass
class VariantPriceResult:
    variants: List[Dict[str, Any]] = field(default_factory=list)
    user_errors: List[UserError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.user_errors


def _user_errors(payload: Optional[Dict[str, Any]]) -> List[UserError]:
    return [UserError.from_payload(e) for e in (payload or {}).get("userErrors") or []]


def _first_variant(product: Dict[str, Any]) -> Dict[str, Any]:
    edges = ((product.get("variants") or {}).get("edges")) or []
    if not edges:
        return {}
    return edges[0].get("node") or {}


class ShopifyAdminClient:
    """GraphQL client bound to one shop's Admin API credentials."""

    def __init__(
        self,
        shop: str,
        access_token: str,
        api_version: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        self.shop = shop
        self.access_token = access_token
        self.api_version = api_version or SHOPIFY_API_VERSION
        self.timeout = timeout if timeout is not None else SHOPIFY_TIMEOUT
        self.session = session or requests.Session()

    @property
    def endpoint(self) -> str:
        return shopify_graphql_url(self.shop, self.api_version)

    def _headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "X-Shopify-Access-Token": self.access_token,
        }

    def _post(self, query: str, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"query": query}
        if variables:
            payload["variables"] = variables
        try:
            response = self.session.post(
                self.endpoint, json=payload, headers=self._headers(), timeout=self.timeout
            )
            response.raise_for_status()
            body = response.json()
        except requests.RequestException as exc:
            raise ShopifyTransportError(f"Shopify request failed: {exc}") from exc
        except ValueError as exc:
            raise ShopifyTransportError(f"Shopify returned invalid JSON: {exc}") from exc

        if not isinstance(body, dict):
            raise ShopifyTransportError("Shopify returned an unexpected payload")
        if body.get("errors"):
            raise ShopifyTransportError(f"Shopify API error: {body['errors']}")
        return body.get("data") or {}

    async def graphql(self, query: str, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Run one GraphQL operation and return its `data` object."""
        return await asyncio.to_thread(self._post, query, variables)

    async def create_product(self, title: str, product_type: Optional[str] = "Bundle") -> ProductCreateResult:
        product_input: Dict[str, Any] = {"title": title}
        if product_type:
            product_input["productType"] = product_type
        data = await self.graphql(PRODUCT_CREATE, {"product": product_input})

        payload = data.get("productCreate") or {}
        errors = _user_errors(payload)
        if errors:
            logger.info(
                "productCreate returned %d user error(s) for shop=%s: %s",
                len(errors), self.shop, errors[0].message,
            )
            return ProductCreateResult(user_errors=errors)

        product = payload.get("product") or {}
        variant = _first_variant(product)
        result = ProductCreateResult(
            product_id=from_gid(product.get("id")),
            product_gid=product.get("id"),
            variant_id=from_gid(variant.get("id")),
            title=product.get("title"),
            price=variant.get("price"),
        )
        if not result.product_id:
            raise ShopifyTransportError("productCreate returned no product id")
        logger.info("Created Shopify product %s for shop=%s", result.product_id, self.shop)
        return result

    async def set_variant_price(
        self, product_id: str, variant_id: str, price: Any
    ) -> VariantPriceResult:
        if isinstance(price, Decimal):
            price = format(price, "f")
        variables = {
            "productId": to_gid("Product", product_id),
            "variants": [{"id": to_gid("ProductVariant", variant_id), "price": str(price)}],
        }
        data = await self.graphql(VARIANTS_BULK_UPDATE, variables)
        payload = data.get("productVariantsBulkUpdate") or {}
        errors = _user_errors(payload)
        if errors:
            return VariantPriceResult(user_errors=errors)
        return VariantPriceResult(variants=payload.get("productVariants") or [])

    async def delete_product(self, product_id: str) -> List[UserError]:
        data = await self.graphql(PRODUCT_DELETE, {"input": {"id": to_gid("Product", product_id)}})
        return _user_errors(data.get("productDelete"))

    async def fetch_products(self, product_ids: Iterable[str]) -> List[Product]:
        """Batch lookup by numeric ids; ids Shopify does not know are left out."""
        ids = [to_gid("Product", pid) for pid in dict.fromkeys(product_ids) if pid]
        if not ids:
            return []
        data = await self.graphql(PRODUCTS_BY_IDS, {"ids": ids})
        products: List[Product] = []
        for node in data.get("nodes") or []:
            if not node or not node.get("id"):
                continue
            variant = _first_variant(node)
            products.append(
                Product(
                    id=from_gid(node["id"]),
                    title=node.get("title") or from_gid(node["id"]),
                    image_url=(node.get("featuredImage") or {}).get("url"),
                    price=variant.get("price"),
                    variant_id=from_gid(variant.get("id")),
                    variant=variant.get("title") or "Default",
                )
            )
        return products
