import asyncio
import os
import sys
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DATABASE_URL", "")
os.environ.setdefault("SHOPIFY_ACCESS_TOKEN", "test-token")

from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from database import Base
from schemas import Product, UserError
from services.catalog import CatalogLookup
from services.shopify_client import (
    ProductCreateResult,
    ShopifyTransportError,
    VariantPriceResult,
)
from services.storage import StorageService

SHOP = "alpha.myshopify.com"
OTHER_SHOP = "beta.myshopify.com"


class FakeShopifyClient:
    """Records calls; behaviour is switched with the public attributes."""

    def __init__(self):
        self.shop = SHOP
        self.next_product_id = 1000
        self.create_errors: List[UserError] = []
        self.create_raises = False
        self.delete_errors: List[UserError] = []
        self.delete_raises = False
        self.price_errors: List[UserError] = []
        self.created: List[Dict] = []
        self.deleted: List[str] = []
        self.prices: List[Dict] = []

    async def create_product(self, title, product_type="Bundle"):
        if self.create_raises:
            raise ShopifyTransportError("connection reset")
        if self.create_errors:
            return ProductCreateResult(user_errors=list(self.create_errors))
        self.next_product_id += 1
        product_id = str(self.next_product_id)
        self.created.append({"title": title, "product_type": product_type, "product_id": product_id})
        return ProductCreateResult(
            product_id=product_id,
            product_gid=f"gid://shopify/Product/{product_id}",
            variant_id=f"9{product_id}",
            title=title,
            price="0.00",
        )

    async def set_variant_price(self, product_id, variant_id, price):
        self.prices.append({"product_id": product_id, "variant_id": variant_id, "price": str(price)})
        if self.price_errors:
            return VariantPriceResult(user_errors=list(self.price_errors))
        return VariantPriceResult(variants=[{"id": f"gid://shopify/ProductVariant/{variant_id}", "price": str(price)}])

    async def delete_product(self, product_id):
        if self.delete_raises:
            raise ShopifyTransportError("timeout")
        self.deleted.append(product_id)
        return list(self.delete_errors)


class FakeCatalog(CatalogLookup):
    def __init__(self, products: Optional[Iterable[Product]] = None, fail: bool = False):
        self.products = {p.id: p for p in (products or [])}
        self.fail = fail
        self.calls: List[List[str]] = []

    async def fetch_products(self, product_ids):
        ids = list(product_ids)
        self.calls.append(ids)
        if self.fail:
            raise ShopifyTransportError("catalog down")
        return [self.products[pid] for pid in ids if pid in self.products]


class FailingInsertStorage(StorageService):
    async def insert_bundle(self, bundle_data):
        raise RuntimeError("insert exploded")


@pytest.fixture
def session_factory(tmp_path):
    # File-backed SQLite with NullPool: every session opens its own connection,
    # so asyncio.run() in tests and the TestClient loop never share one.
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'bundles.db'}", poolclass=NullPool)

    async def _create():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    asyncio.run(_create())
    yield async_sessionmaker(engine, expire_on_commit=False)
    asyncio.run(engine.dispose())


@pytest.fixture
def storage(session_factory):
    return StorageService(session_factory)


@pytest.fixture
def shopify():
    return FakeShopifyClient()


@pytest.fixture
def catalog():
    return FakeCatalog()
