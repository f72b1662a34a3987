"""
Bundle Schemas Package
Provides the shared data structures for bundles and Shopify products.
"""

from .bundle_schemas import (
    # Enums
    BundleType,
    BundleStatus,
    BuildOption,

    # Payload shapes
    BundleSummaryDict,
    BundleItemViewDict,
    BundleDetailDict,

    # Dataclasses
    UserError,
    Product,
    ActionResult,

    # Helpers
    PLACEHOLDER_IMAGE_URL,
    PLACEHOLDER_PRICE,
    PLACEHOLDER_VARIANT,
    to_gid,
    from_gid,
    parse_bundle_type,
    parse_bundle_status,
    parse_price,
    format_price,
)

__all__ = [
    "BundleType",
    "BundleStatus",
    "BuildOption",
    "BundleSummaryDict",
    "BundleItemViewDict",
    "BundleDetailDict",
    "UserError",
    "Product",
    "ActionResult",
    "PLACEHOLDER_IMAGE_URL",
    "PLACEHOLDER_PRICE",
    "PLACEHOLDER_VARIANT",
    "to_gid",
    "from_gid",
    "parse_bundle_type",
    "parse_bundle_status",
    "parse_price",
    "format_price",
]
