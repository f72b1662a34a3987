"""
Bundle Orchestrator
Sequences Shopify product calls with bundle persistence for the admin routes.

Create flow:
    validate -> productCreate -> insert bundle row
    insert failure -> productDelete (best effort) -> reconciliation record

Update flow:
    validate -> load bundle -> resolve price variant -> write title/status
    -> productVariantsBulkUpdate (failure reported as `priceError`)

Nothing here retries; every failure is logged and turned into an ActionResult
the routes render as-is.
"""
from __future__ import annotations

import logging
import random
from typing import Any, Dict, List, Optional, Tuple

from database import Bundle
from schemas import (
    ActionResult,
    BundleDetailDict,
    BundleStatus,
    BundleSummaryDict,
    BuildOption,
    Product,
    format_price,
    parse_bundle_status,
    parse_bundle_type,
    parse_price,
)
from services.catalog import CatalogLookup, resolve_products
from services.shopify_client import ShopifyAdminClient, ShopifyTransportError
from services.storage import StorageService, storage as default_storage

logger = logging.getLogger(__name__)

DEMO_PRODUCT_COLORS = ("Red", "Orange", "Yellow", "Green")
DEMO_VARIANT_PRICE = "100.00"

ERR_INVALID_TYPE = "Invalid bundle type provided"
ERR_TITLE_REQUIRED = "Bundle title is required"
ERR_CREATE_FAILED = "Failed to create bundle"
ERR_SAVE_FAILED = "Failed to save bundle in database"
ERR_LOAD_FAILED = "Failed to load bundles"
ERR_NOT_FOUND = "Bundle not found"
ERR_INVALID_STATUS = "Invalid bundle status provided"
ERR_INVALID_PRICE = "Invalid bundle price provided"
ERR_INVALID_BUILD_OPTION = "Invalid build option provided"
ERR_UPDATE_FAILED = "Failed to update bundle"
ERR_PRICE_FAILED = "Failed to update bundle price"


def bundle_to_summary(bundle: Bundle, product_count: int = 0) -> BundleSummaryDict:
    return {
        "id": bundle.id,
        "title": bundle.title,
        "type": bundle.type,
        "status": bundle.status,
        "productId": bundle.product_id,
        "productCount": product_count,
        # Prices live on the Shopify product, not in the bundles table
        "price": None,
    }


def bundle_to_dict(bundle: Bundle) -> Dict[str, Any]:
    return {
        "id": bundle.id,
        "title": bundle.title,
        "type": bundle.type,
        "productId": bundle.product_id,
        "status": bundle.status,
    }


class BundleOrchestrator:
    """Request-scoped bundle flows; holds no state between calls."""

    def __init__(self, storage: Optional[StorageService] = None):
        self.storage = storage or default_storage

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    async def load_bundle_list(self, shop: str) -> Dict[str, Any]:
        """Bundles with item counts; a database failure yields an empty list plus an error."""
        try:
            bundles = await self.storage.list_bundles(shop)
            counts = await self.storage.count_items_by_bundle(b.id for b in bundles)
        except Exception:
            logger.exception("Error loading bundles for shop=%s", shop)
            return {"bundles": [], "error": ERR_LOAD_FAILED}
        return {
            "bundles": [bundle_to_summary(b, counts.get(b.id, 0)) for b in bundles],
            "error": None,
        }

    async def load_bundle_detail(
        self, shop: str, bundle_id: str, catalog: CatalogLookup
    ) -> Optional[BundleDetailDict]:
        """Bundle with catalog-enriched items; None when missing, foreign or unreadable."""
        try:
            bundle = await self.storage.get_bundle(bundle_id, shop)
            if bundle is None:
                logger.info("Bundle %s not found for shop=%s", bundle_id, shop)
                return None
            items = await self.storage.list_items(bundle.id)
        except Exception:
            logger.exception("Error fetching bundle details id=%s shop=%s", bundle_id, shop)
            return None

        products = await resolve_products(
            catalog, [bundle.product_id] + [item.product_id for item in items]
        )
        backing: Product = products.get(bundle.product_id) or Product.placeholder(bundle.product_id)

        return {
            "id": bundle.id,
            "title": bundle.title,
            "type": bundle.type,
            "status": bundle.status,
            "productId": bundle.product_id,
            "variantId": backing.variant_id,
            "price": backing.price or "",
            "priceLabel": format_price(backing.price),
            "items": [products[item.product_id].to_item_view(item.id) for item in items],
        }

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------
    async def create_bundle(
        self,
        shop: str,
        client: ShopifyAdminClient,
        title: Optional[str],
        bundle_type: Optional[str],
        is_new_product: bool = True,
    ) -> ActionResult:
        parsed_type = parse_bundle_type(bundle_type)
        if parsed_type is None:
            logger.info("Rejected bundle create with type=%r shop=%s", bundle_type, shop)
            return ActionResult.fail(ERR_INVALID_TYPE, 400)
        title = (title or "").strip()
        if not title:
            return ActionResult.fail(ERR_TITLE_REQUIRED, 400)
        if not is_new_product:
            # Existing-product bundles have no selection flow yet; a product is always created
            logger.info("isNewProduct=false requested for shop=%s; creating a new product", shop)

        try:
            created = await client.create_product(title)
        except ShopifyTransportError as e:
            logger.error(f"Error creating bundle product for shop={shop}: {e}")
            return ActionResult.fail(ERR_CREATE_FAILED, 502)
        if created.user_errors:
            return ActionResult.fail(created.user_errors[0].message, 422)

        try:
            bundle = await self.storage.insert_bundle({
                "shop": shop,
                "title": title,
                "type": parsed_type.value,
                "product_id": created.product_id,
                "status": BundleStatus.ACTIVE.value,
            })
        except Exception as e:
            logger.exception(
                "Database error creating bundle shop=%s product_id=%s", shop, created.product_id
            )
            await self._compensate_orphan(shop, client, created.product_id, title, str(e))
            return ActionResult.fail(ERR_SAVE_FAILED, 500)

        return ActionResult.ok(bundle_to_dict(bundle))

    async def _compensate_orphan(
        self, shop: str, client: ShopifyAdminClient, product_id: str, title: str, cause: str
    ) -> None:
        """Delete the remote product; if that fails too, leave a reconciliation record."""
        reason: Optional[str] = None
        try:
            errors = await client.delete_product(product_id)
            if errors:
                reason = f"productDelete failed: {errors[0].message}"
        except ShopifyTransportError as e:
            reason = f"productDelete failed: {e}"

        if reason is None:
            logger.info("Deleted orphaned Shopify product %s for shop=%s", product_id, shop)
            return

        logger.error("Could not delete orphaned product %s for shop=%s: %s", product_id, shop, reason)
        try:
            await self.storage.record_reconciliation(
                shop, product_id, title, f"bundle insert failed ({cause}); {reason}"
            )
        except Exception:
            logger.exception(
                "Failed to record reconciliation for orphaned product %s shop=%s", product_id, shop
            )

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------
    async def update_bundle(
        self,
        shop: str,
        bundle_id: str,
        client: ShopifyAdminClient,
        catalog: CatalogLookup,
        title: Optional[str] = None,
        status: Optional[str] = None,
        price: Optional[str] = None,
        build_option: Optional[str] = None,
    ) -> ActionResult:
        updates: Dict[str, Any] = {}
        if title is not None:
            title = title.strip()
            if not title:
                return ActionResult.fail(ERR_TITLE_REQUIRED, 400)
            updates["title"] = title
        if status:
            parsed_status = parse_bundle_status(status)
            if parsed_status is None:
                return ActionResult.fail(ERR_INVALID_STATUS, 400)
            updates["status"] = parsed_status.value
        if build_option and build_option not in {o.value for o in BuildOption}:
            return ActionResult.fail(ERR_INVALID_BUILD_OPTION, 400)
        try:
            new_price = parse_price(price)
        except ValueError:
            return ActionResult.fail(ERR_INVALID_PRICE, 400)

        try:
            current = await self.storage.get_bundle(bundle_id, shop)
        except Exception:
            logger.exception("Error loading bundle id=%s shop=%s for update", bundle_id, shop)
            return ActionResult.fail(ERR_UPDATE_FAILED, 500)
        if current is None:
            return ActionResult.fail(ERR_NOT_FOUND, 404)

        # Resolve the variant before writing so a price we cannot apply rejects the whole edit
        variant_id: Optional[str] = None
        if new_price is not None:
            variant_id, price_error = await self._price_target(current, catalog, new_price)
            if price_error:
                return ActionResult.fail(price_error, 502)

        try:
            bundle = await self.storage.update_bundle(bundle_id, shop, updates)
        except Exception:
            logger.exception("Error updating bundle id=%s shop=%s", bundle_id, shop)
            return ActionResult.fail(ERR_UPDATE_FAILED, 500)
        if bundle is None:
            return ActionResult.fail(ERR_NOT_FOUND, 404)

        if variant_id:
            price_error = await self._set_price(shop, bundle, client, variant_id, new_price)
            if price_error:
                # Title/status are saved; the price outcome is reported separately
                return ActionResult.ok(bundle_to_dict(bundle), priceError=price_error)

        return ActionResult.ok(bundle_to_dict(bundle))

    async def _price_target(
        self, bundle: Bundle, catalog: CatalogLookup, new_price
    ) -> Tuple[Optional[str], Optional[str]]:
        """(variant id to reprice, or None when the price is unchanged; error message)"""
        products = await resolve_products(catalog, [bundle.product_id])
        product = products[bundle.product_id]
        try:
            current = parse_price(product.price) if product.price else None
        except ValueError:
            current = None
        if current == new_price:
            return None, None
        if not product.variant_id:
            # Also the case when the catalog lookup failed and a placeholder came back
            logger.error("No variant found for product %s (bundle %s)", bundle.product_id, bundle.id)
            return None, ERR_PRICE_FAILED
        return product.variant_id, None

    async def _set_price(self, shop, bundle, client, variant_id, new_price) -> Optional[str]:
        try:
            result = await client.set_variant_price(bundle.product_id, variant_id, new_price)
        except ShopifyTransportError as e:
            logger.error(f"Error updating price for bundle {bundle.id} shop={shop}: {e}")
            return ERR_PRICE_FAILED
        if result.user_errors:
            return result.user_errors[0].message
        logger.info("Updated price of bundle %s to %s", bundle.id, new_price)
        return None

    # ------------------------------------------------------------------
    # Dashboard demo
    # ------------------------------------------------------------------
    async def generate_demo_product(self, client: ShopifyAdminClient) -> ActionResult:
        """Create a '{Color} Snowboard' product priced at 100.00 (dashboard demo, not a bundle)."""
        color = random.choice(DEMO_PRODUCT_COLORS)
        try:
            created = await client.create_product(f"{color} Snowboard", product_type=None)
            if created.user_errors:
                return ActionResult.fail(created.user_errors[0].message, 422)
            variants: List[Dict[str, Any]] = []
            if created.variant_id:
                priced = await client.set_variant_price(
                    created.product_id, created.variant_id, DEMO_VARIANT_PRICE
                )
                if priced.user_errors:
                    return ActionResult.fail(priced.user_errors[0].message, 422)
                variants = priced.variants
        except ShopifyTransportError as e:
            logger.error(f"Error generating demo product: {e}")
            return ActionResult.fail("Failed to generate product", 502)
        return ActionResult.ok(product=created.to_dict(), variant=variants)


orchestrator = BundleOrchestrator()
