"""
Storage Service Layer
Shop-scoped database operations for bundles and their items.

Every statement is built with the SQLAlchemy query builder so caller-supplied
values (titles, statuses, shop domains, ids) are always bound parameters.
"""
from sqlalchemy import select, func, desc
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from typing import List, Optional, Dict, Any, Iterable
from datetime import datetime, timezone
import logging
import uuid

from database import AsyncSessionLocal, Bundle, BundleItem, BundleReconciliation
from settings import sanitize_shop_id

logger = logging.getLogger(__name__)


class StorageService:
    """Storage service providing bundle database operations"""

    # Columns a bundle update may touch; type and product_id are fixed at creation
    UPDATABLE_BUNDLE_FIELDS = ("title", "status")

    def __init__(self, session_factory: Optional[async_sessionmaker] = None):
        self._session_factory = session_factory or AsyncSessionLocal

    def get_session(self) -> AsyncSession:
        """Get database session context manager"""
        return self._session_factory()

    @staticmethod
    def _now() -> datetime:
        return datetime.now(timezone.utc)

    # Bundle reads
    async def list_bundles(self, shop: str) -> List[Bundle]:
        """All bundles owned by a shop, newest first"""
        shop = sanitize_shop_id(shop)
        if not shop:
            return []
        async with self.get_session() as session:
            query = (
                select(Bundle)
                .where(Bundle.shop == shop)
                .order_by(desc(Bundle.created_at), Bundle.id)
            )
            result = await session.execute(query)
            return list(result.scalars().all())

    async def get_bundle(self, bundle_id: str, shop: str) -> Optional[Bundle]:
        """Bundle by id, only when it belongs to `shop`"""
        shop = sanitize_shop_id(shop)
        if not bundle_id or not shop:
            return None
        async with self.get_session() as session:
            query = select(Bundle).where(Bundle.id == bundle_id, Bundle.shop == shop)
            result = await session.execute(query)
            return result.scalars().first()

    async def count_items(self, bundle_id: str) -> int:
        async with self.get_session() as session:
            query = select(func.count(BundleItem.id)).where(BundleItem.bundle_id == bundle_id)
            result = await session.execute(query)
            return int(result.scalar() or 0)

    async def count_items_by_bundle(self, bundle_ids: Iterable[str]) -> Dict[str, int]:
        """Item counts for many bundles in one grouped query; bundles without items map to 0."""
        ids = [bundle_id for bundle_id in bundle_ids if bundle_id]
        if not ids:
            return {}
        async with self.get_session() as session:
            query = (
                select(BundleItem.bundle_id, func.count(BundleItem.id))
                .where(BundleItem.bundle_id.in_(ids))
                .group_by(BundleItem.bundle_id)
            )
            result = await session.execute(query)
            counts = {bundle_id: int(count) for bundle_id, count in result.all()}
        return {bundle_id: counts.get(bundle_id, 0) for bundle_id in ids}

    async def list_items(self, bundle_id: str) -> List[BundleItem]:
        async with self.get_session() as session:
            query = (
                select(BundleItem)
                .where(BundleItem.bundle_id == bundle_id)
                .order_by(BundleItem.id)
            )
            result = await session.execute(query)
            return list(result.scalars().all())

    # Bundle writes
    async def insert_bundle(self, bundle_data: Dict[str, Any]) -> Bundle:
        """Create new bundle; raises on any database error"""
        payload = dict(bundle_data)
        payload["shop"] = sanitize_shop_id(payload.get("shop"))
        if not payload["shop"]:
            raise ValueError("Bundle shop is required")
        now = self._now()
        payload.setdefault("id", str(uuid.uuid4()))
        payload.setdefault("status", "ACTIVE")
        payload.setdefault("created_at", now)
        payload.setdefault("updated_at", now)

        async with self.get_session() as session:
            bundle = Bundle(**payload)
            session.add(bundle)
            await session.commit()
            await session.refresh(bundle)
            logger.info(
                "Inserted bundle id=%s shop=%s type=%s product_id=%s",
                bundle.id, bundle.shop, bundle.type, bundle.product_id,
            )
            return bundle

    async def update_bundle(
        self, bundle_id: str, shop: str, updates: Dict[str, Any]
    ) -> Optional[Bundle]:
        """Overwrite title/status of a shop's bundle; None when no row matches"""
        shop = sanitize_shop_id(shop)
        if not bundle_id or not shop:
            return None
        change_set = {
            key: value
            for key, value in updates.items()
            if key in self.UPDATABLE_BUNDLE_FIELDS and value is not None
        }
        ignored = set(updates) - set(self.UPDATABLE_BUNDLE_FIELDS)
        if ignored:
            logger.debug("Ignoring non-updatable bundle fields: %s", sorted(ignored))

        async with self.get_session() as session:
            query = select(Bundle).where(Bundle.id == bundle_id, Bundle.shop == shop)
            result = await session.execute(query)
            bundle = result.scalars().first()
            if bundle is None:
                return None
            for key, value in change_set.items():
                setattr(bundle, key, value)
            bundle.updated_at = self._now()
            await session.commit()
            await session.refresh(bundle)
            return bundle

    async def add_items(self, bundle_id: str, product_ids: Iterable[str]) -> List[BundleItem]:
        """Attach products to a bundle (used by seeding and tests; no route writes items)"""
        async with self.get_session() as session:
            items = [
                BundleItem(id=str(uuid.uuid4()), bundle_id=bundle_id, product_id=str(product_id))
                for product_id in product_ids
            ]
            session.add_all(items)
            await session.commit()
            return items

    # Reconciliation
    async def record_reconciliation(
        self, shop: str, product_id: str, title: str, reason: str
    ) -> BundleReconciliation:
        """Remember a remote product that has no local bundle row"""
        async with self.get_session() as session:
            record = BundleReconciliation(
                id=str(uuid.uuid4()),
                shop=sanitize_shop_id(shop) or shop,
                product_id=product_id,
                title=title,
                reason=reason,
                created_at=self._now(),
            )
            session.add(record)
            await session.commit()
            await session.refresh(record)
            logger.warning(
                "Recorded bundle reconciliation shop=%s product_id=%s reason=%s",
                record.shop, product_id, reason,
            )
            return record

    async def list_reconciliations(self, shop: str) -> List[BundleReconciliation]:
        shop = sanitize_shop_id(shop)
        async with self.get_session() as session:
            query = (
                select(BundleReconciliation)
                .where(BundleReconciliation.shop == shop)
                .order_by(desc(BundleReconciliation.created_at))
            )
            result = await session.execute(query)
            return list(result.scalars().all())


# Global storage instance
storage = StorageService()
