"""
Centralized configuration helpers for shop scoping and the Shopify Admin API.
"""
from __future__ import annotations

import os
from typing import Any, Optional

from dotenv import load_dotenv

load_dotenv()

DEFAULT_SHOP_ID: str = os.getenv("DEFAULT_SHOP_ID") or "demo-shop.myshopify.com"

SHOPIFY_API_VERSION: str = os.getenv("SHOPIFY_API_VERSION") or "2025-01"
SHOPIFY_ACCESS_TOKEN: str = os.getenv("SHOPIFY_ACCESS_TOKEN", "")
SHOPIFY_TIMEOUT: float = float(os.getenv("SHOPIFY_TIMEOUT", "30"))

# Header names the embedded admin front-end forwards with every request.
SHOP_DOMAIN_HEADER = "X-Shopify-Shop-Domain"
ACCESS_TOKEN_HEADER = "X-Shopify-Access-Token"

SHOPIFY_ADMIN_URL = "https://admin.shopify.com"

# Service
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
PORT: int = int(os.getenv("PORT", "8080"))
INIT_DB_ON_STARTUP: bool = os.getenv("INIT_DB_ON_STARTUP", "false").lower() == "true"
CORS_ORIGINS: list = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "https://admin.shopify.com").split(",")
    if origin.strip()
] or ["https://admin.shopify.com"]


def sanitize_shop_id(value: Optional[Any]) -> Optional[str]:
    """Normalize raw shop domains (strip protocol, whitespace and slashes, lower-case)."""
    if value is None:
        return None
    text = str(value).strip()
    lowered = text.lower()
    if lowered.startswith("https://"):
        text = text[8:]
    elif lowered.startswith("http://"):
        text = text[7:]
    text = text.strip().strip("/")
    if not text:
        return None
    return text.lower()


def resolve_shop_id(*candidates: Optional[Any]) -> str:
    """
    Pick the first usable shop identifier from candidates, otherwise fall back to DEFAULT_SHOP_ID.
    """
    for candidate in candidates:
        normalized = sanitize_shop_id(candidate)
        if normalized:
            return normalized
    return DEFAULT_SHOP_ID


def shopify_graphql_url(shop: str, api_version: Optional[str] = None) -> str:
    return f"https://{shop}/admin/api/{api_version or SHOPIFY_API_VERSION}/graphql.json"


def shopify_admin_product_url(product_id: str) -> str:
    return f"{SHOPIFY_ADMIN_URL}/products/{product_id}"
