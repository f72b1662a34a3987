"""
Catalog lookup for products referenced by bundles.

The detail view depends on `CatalogLookup` only; production wires in
`ShopifyCatalog`, tests pass their own implementation.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Dict, Iterable, List
import logging

from schemas import Product
from services.shopify_client import ShopifyAdminClient, ShopifyTransportError

logger = logging.getLogger(__name__)


class CatalogLookup(ABC):
    """Batch product lookup by numeric product id."""

    @abstractmethod
    async def fetch_products(self, product_ids: Iterable[str]) -> List[Product]:
        ...


class ShopifyCatalog(CatalogLookup):
    def __init__(self, client: ShopifyAdminClient):
        self.client = client

    async def fetch_products(self, product_ids: Iterable[str]) -> List[Product]:
        return await self.client.fetch_products(product_ids)


async def resolve_products(catalog: CatalogLookup, product_ids: Iterable[str]) -> Dict[str, Product]:
    """
    Look up every id, substituting placeholders for ids the catalog does not
    return. A failing catalog degrades to placeholders for the whole batch.
    """
    ids = [pid for pid in dict.fromkeys(product_ids) if pid]
    if not ids:
        return {}
    found: Dict[str, Product] = {}
    try:
        for product in await catalog.fetch_products(ids):
            found[product.id] = product
    except ShopifyTransportError as e:
        logger.warning(f"Catalog lookup failed for {len(ids)} product(s), using placeholders: {e}")
    missing = [pid for pid in ids if pid not in found]
    if missing:
        logger.debug("Catalog returned no data for product ids %s", missing)
    return {pid: found.get(pid) or Product.placeholder(pid) for pid in ids}
