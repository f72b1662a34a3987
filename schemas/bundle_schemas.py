"""
Bundle Schemas
==============

Canonical data structures shared by the storage layer, the Shopify client,
the orchestrator and the view-models.

BUNDLE TYPES:
-------------
- SIMPLE: a fixed set of products; customers cannot customize it
- INFINITE_OPTIONS: customers mix and match from predefined products

BUNDLE STATUSES:
----------------
- ACTIVE, INACTIVE, DRAFT

PRODUCT IDS:
------------
Bundles store the numeric Shopify product id ("123"). The Admin API speaks
global ids ("gid://shopify/Product/123"); use `to_gid` / `from_gid` at the
boundary.
"""

from typing import List, Dict, Any, Optional, TypedDict
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
import logging

logger = logging.getLogger(__name__)


# =============================================================================
# ENUMS
# =============================================================================

class BundleType(str, Enum):
    SIMPLE = "SIMPLE"
    INFINITE_OPTIONS = "INFINITE_OPTIONS"


class BundleStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    DRAFT = "DRAFT"


class BuildOption(str, Enum):
    QUICK = "quick"    # existing product variants
    MANUAL = "manual"  # new product options


# =============================================================================
# TYPE DEFINITIONS (payloads returned to the admin front-end)
# =============================================================================

class BundleSummaryDict(TypedDict, total=False):
    """One row of the bundle list."""
    id: str
    title: str
    type: str
    status: str
    productId: str
    productCount: int
    price: Optional[str]


class BundleItemViewDict(TypedDict, total=False):
    """A product included in a bundle, as shown on the detail page."""
    id: str
    productId: str
    title: str
    imageUrl: str
    price: str
    variant: str


class BundleDetailDict(TypedDict, total=False):
    """Bundle detail page payload."""
    id: str
    title: str
    type: str
    status: str
    productId: str
    variantId: Optional[str]
    price: str        # raw amount for the edit form, "" when unknown
    priceLabel: str   # "$15.99"
    items: List[BundleItemViewDict]


# =============================================================================
# DATACLASS DEFINITIONS
# =============================================================================

PLACEHOLDER_IMAGE_URL = "https://cdn.shopify.com/s/files/1/0757/9955/files/empty-state.svg"
PLACEHOLDER_PRICE = "$0.00"
PLACEHOLDER_VARIANT = "Default"


@dataclass
class UserError:
    """A field-level error returned by a Shopify mutation."""
    message: str
    field: Optional[List[str]] = None

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "UserError":
        raw_field = payload.get("field")
        if isinstance(raw_field, str):
            raw_field = [raw_field]
        return cls(message=str(payload.get("message") or "Unknown error"), field=raw_field)


@dataclass
class Product:
    """External (read-only) view of a Shopify product."""
    id: str  # numeric product id
    title: str
    image_url: Optional[str] = None
    price: Optional[str] = None  # raw decimal string, e.g. "15.99"
    variant_id: Optional[str] = None  # numeric id of the first variant
    variant: str = PLACEHOLDER_VARIANT

    @classmethod
    def placeholder(cls, product_id: str) -> "Product":
        return cls(id=product_id, title=product_id, image_url=PLACEHOLDER_IMAGE_URL, price=None)

    def to_item_view(self, item_id: str) -> BundleItemViewDict:
        return {
            "id": item_id,
            "productId": self.id,
            "title": self.title,
            "imageUrl": self.image_url or PLACEHOLDER_IMAGE_URL,
            "price": format_price(self.price),
            "variant": self.variant or PLACEHOLDER_VARIANT,
        }


@dataclass
class ActionResult:
    """Outcome of a create/update action, rendered by the routes."""
    success: bool
    error: Optional[str] = None
    status_code: int = 200
    bundle: Optional[Dict[str, Any]] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, bundle: Optional[Dict[str, Any]] = None, **extra: Any) -> "ActionResult":
        return cls(success=True, bundle=bundle, extra=extra)

    @classmethod
    def fail(cls, error: str, status_code: int) -> "ActionResult":
        return cls(success=False, error=error, status_code=status_code)

    def to_dict(self) -> Dict[str, Any]:
        if not self.success:
            return {"success": False, "error": self.error}
        payload: Dict[str, Any] = {"success": True}
        if self.bundle is not None:
            payload["bundle"] = self.bundle
        payload.update(self.extra)
        return payload


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def to_gid(object_type: str, object_id: str) -> str:
    """Build a Shopify global id; ids that already are gids pass through."""
    object_id = str(object_id)
    if object_id.startswith("gid://"):
        return object_id
    return f"gid://shopify/{object_type}/{object_id}"


def from_gid(gid: Optional[str]) -> Optional[str]:
    """Strip the "gid://shopify/<Type>/" prefix, keeping only the trailing id."""
    if not gid:
        return None
    gid = str(gid)
    if not gid.startswith("gid://"):
        return gid
    return gid.rstrip("/").rsplit("/", 1)[-1] or None


def parse_bundle_type(value: Optional[str]) -> Optional[BundleType]:
    """Return the BundleType for an exact enum value, else None."""
    try:
        return BundleType(value)
    except ValueError:
        return None


def parse_bundle_status(value: Optional[str]) -> Optional[BundleStatus]:
    try:
        return BundleStatus(value)
    except ValueError:
        return None


def parse_price(value: Optional[str]) -> Optional[Decimal]:
    """
    Parse a merchant-entered price ("15.99", "$15.99", "1,015.00").

    Returns None for blank input; raises ValueError for anything that is not a
    non-negative amount.
    """
    if value is None:
        return None
    cleaned = str(value).strip().replace("$", "").replace(",", "").strip()
    if not cleaned:
        return None
    try:
        amount = Decimal(cleaned)
    except InvalidOperation:
        raise ValueError(f"Invalid price {value!r}")
    if not amount.is_finite() or amount < 0:
        raise ValueError(f"Invalid price {value!r}")
    try:
        # Raises once the amount has more digits than the context precision
        return amount.quantize(Decimal("0.01"))
    except InvalidOperation:
        raise ValueError(f"Invalid price {value!r}")


def format_price(value: Optional[Any]) -> str:
    """Format a raw amount for display ("15.9" -> "$15.90"); blanks show the placeholder."""
    if value in (None, ""):
        return PLACEHOLDER_PRICE
    try:
        return f"${Decimal(str(value)).quantize(Decimal('0.01'))}"
    except InvalidOperation:
        logger.warning(f"Unparseable price value: {value!r}")
        return PLACEHOLDER_PRICE
