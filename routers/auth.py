"""
Shop identity for admin requests.

Session handling lives in the embedded app's auth framework; by the time a
request reaches this service it carries the authenticated shop domain and the
shop's Admin API token in headers.
"""
from __future__ import annotations

from dataclasses import dataclass
import logging
import os
from typing import Optional

from fastapi import Depends, Header, HTTPException

from services.catalog import CatalogLookup, ShopifyCatalog
from services.shopify_client import ShopifyAdminClient
from settings import (
    ACCESS_TOKEN_HEADER,
    SHOP_DOMAIN_HEADER,
    SHOPIFY_ACCESS_TOKEN,
    resolve_shop_id,
    sanitize_shop_id,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ShopSession:
    shop: str
    access_token: str


async def authenticate_admin(
    shop_domain: Optional[str] = Header(None, alias=SHOP_DOMAIN_HEADER),
    access_token: Optional[str] = Header(None, alias=ACCESS_TOKEN_HEADER),
) -> ShopSession:
    """Resolve the request to a shop; development falls back to DEFAULT_SHOP_ID."""
    shop = sanitize_shop_id(shop_domain)
    if not shop and os.getenv("NODE_ENV") == "development":
        shop = resolve_shop_id(shop_domain)
    if not shop:
        raise HTTPException(status_code=401, detail="Missing shop session")
    return ShopSession(shop=shop, access_token=access_token or SHOPIFY_ACCESS_TOKEN)


def get_shopify_client(session: ShopSession = Depends(authenticate_admin)) -> ShopifyAdminClient:
    if not session.access_token:
        logger.warning("No Admin API token available for shop=%s", session.shop)
    return ShopifyAdminClient(session.shop, session.access_token)


def get_catalog(client: ShopifyAdminClient = Depends(get_shopify_client)) -> CatalogLookup:
    return ShopifyCatalog(client)
