"""
View-models for the bundle list and detail screens.

Pure presentation state: nothing in this module touches the database or
Shopify. The GET routes serialize these objects and the embedded admin
front-end renders them; the same objects drive tab filtering, dialog
validation and the "unsaved changes" check.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

from schemas import (
    PLACEHOLDER_IMAGE_URL,
    BundleDetailDict,
    BundleStatus,
    BundleSummaryDict,
    BundleType,
    BuildOption,
    Product,
)
from settings import shopify_admin_product_url

BUNDLES_PATH = "/app/bundles"
EMPTY_STATE_IMAGE_URL = "https://cdn.shopify.com/s/files/1/0262/4071/2726/files/emptystate-files.png"


# ---------------------------------------------------------------------------
# Tabs & badges
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class BundleTab:
    id: str
    content: str
    bundle_type: Optional[BundleType] = None


BUNDLE_TABS: Sequence[BundleTab] = (
    BundleTab("all", "All"),
    BundleTab("simple", "Simple Bundles", BundleType.SIMPLE),
    BundleTab("infinite", "Infinite Options Bundles", BundleType.INFINITE_OPTIONS),
)


def filter_bundles_by_tab(bundles: Sequence[Mapping[str, Any]], tab_index: int) -> List[Mapping[str, Any]]:
    """Filter the already-loaded list; indexes outside the tab bar show everything."""
    if tab_index < 0 or tab_index >= len(BUNDLE_TABS):
        return list(bundles)
    wanted = BUNDLE_TABS[tab_index].bundle_type
    if wanted is None:
        return list(bundles)
    return [b for b in bundles if b.get("type") == wanted.value]


@dataclass(frozen=True)
class Badge:
    label: str
    tone: Optional[str] = None

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {"label": self.label, "tone": self.tone}


_TYPE_BADGES = {
    BundleType.SIMPLE.value: Badge("Simple", "info"),
    BundleType.INFINITE_OPTIONS.value: Badge("Infinite Options", "success"),
}

_STATUS_BADGES = {
    BundleStatus.ACTIVE.value: Badge("Active", "success"),
    BundleStatus.INACTIVE.value: Badge("Inactive", "warning"),
    BundleStatus.DRAFT.value: Badge("Draft", "attention"),
}


def type_badge(bundle_type: Optional[str]) -> Badge:
    return _TYPE_BADGES.get(bundle_type, Badge(str(bundle_type)))


def status_badge(status: Optional[str]) -> Badge:
    return _STATUS_BADGES.get(status, Badge(str(status)))


def detail_title_badge(status: Optional[str]) -> Badge:
    # The detail header only distinguishes live bundles from everything else
    if status == BundleStatus.ACTIVE.value:
        return Badge("Active", "success")
    return Badge("Draft", "info")


# ---------------------------------------------------------------------------
# Creation dialogs
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class BundleTypeOption:
    type: BundleType
    heading: str
    description: str
    action: str
    primary: bool = False


BUNDLE_TYPE_OPTIONS: Sequence[BundleTypeOption] = (
    BundleTypeOption(
        BundleType.SIMPLE,
        "Simple Bundle",
        "Create a bundle with a fixed set of products. Customers cannot customize the products in this bundle.",
        "Create Simple Bundle",
        primary=True,
    ),
    BundleTypeOption(
        BundleType.INFINITE_OPTIONS,
        "Infinite Options Bundle",
        "Create a customizable bundle that allows customers to mix and match products from predefined collections.",
        "Create Infinite Options Bundle",
    ),
)


@dataclass
class CreateBundleDialog:
    """Title dialog shown after a bundle type is picked."""
    bundle_type: BundleType
    is_new_product: bool = True
    title: str = ""

    @property
    def heading(self) -> str:
        if self.bundle_type == BundleType.SIMPLE:
            return "Create simple bundle"
        return "Create infinite options bundle"

    @property
    def help_text(self) -> str:
        if self.is_new_product:
            return "A new product will be created and used as your bundle."
        return "An existing product will be used as your bundle."

    @property
    def can_submit(self) -> bool:
        return bool(self.title)

    def to_form(self) -> Dict[str, str]:
        return {
            "action": "create_bundle",
            "title": self.title,
            "type": self.bundle_type.value,
            "isNewProduct": "true" if self.is_new_product else "false",
        }


# ---------------------------------------------------------------------------
# Detail / edit form
# ---------------------------------------------------------------------------

def is_edit_mode(query: Mapping[str, Any]) -> bool:
    return query.get("mode") == "edit"


@dataclass
class BundleDetailForm:
    """Edit-mode form state compared against the record it was loaded from."""
    loaded: Mapping[str, Any]
    edit_mode: bool = False
    title: str = ""
    price: str = ""
    status: str = ""
    build_option: str = BuildOption.QUICK.value

    @classmethod
    def from_bundle(cls, bundle: Mapping[str, Any], edit_mode: bool = False) -> "BundleDetailForm":
        return cls(
            loaded=bundle,
            edit_mode=edit_mode,
            title=bundle.get("title") or "",
            price=bundle.get("price") or "",
            status=bundle.get("status") or "",
        )

    @property
    def has_changes(self) -> bool:
        return (
            self.title != (self.loaded.get("title") or "")
            or self.price != (self.loaded.get("price") or "")
            or self.status != (self.loaded.get("status") or "")
        )

    @property
    def can_save(self) -> bool:
        return self.edit_mode and self.has_changes

    @property
    def bundle_id(self) -> str:
        return str(self.loaded.get("id"))

    @property
    def view_url(self) -> str:
        return f"{BUNDLES_PATH}/{self.bundle_id}"

    @property
    def edit_url(self) -> str:
        return f"{self.view_url}?mode=edit"

    @property
    def toggle_url(self) -> str:
        return self.view_url if self.edit_mode else self.edit_url

    def to_form(self) -> Dict[str, str]:
        return {
            "action": "update_bundle",
            "title": self.title,
            "price": self.price,
            "buildOption": self.build_option,
            "status": self.status,
        }


# ---------------------------------------------------------------------------
# Product picker
# ---------------------------------------------------------------------------

@dataclass
class ProductSelector:
    """Searchable product picker with a selection cap."""
    products: Sequence[Product]
    max_selections: int = 1
    search_term: str = ""
    selected: List[Product] = field(default_factory=list)

    @property
    def visible_products(self) -> List[Product]:
        term = self.search_term.strip().lower()
        if not term:
            return list(self.products)
        return [p for p in self.products if term in p.title.lower()]

    def is_selected(self, product: Product) -> bool:
        return any(p.id == product.id for p in self.selected)

    def toggle(self, product: Product) -> None:
        if self.is_selected(product):
            self.selected = [p for p in self.selected if p.id != product.id]
        elif len(self.selected) < self.max_selections:
            self.selected = self.selected + [product]

    @property
    def can_add(self) -> bool:
        return bool(self.selected)

    @property
    def selection_label(self) -> str:
        return f"{len(self.selected)}/{self.max_selections} products selected"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "searchTerm": self.search_term,
            "maxSelections": self.max_selections,
            "products": [
                {
                    "id": p.id,
                    "title": p.title,
                    "imageUrl": p.image_url or PLACEHOLDER_IMAGE_URL,
                    "selected": self.is_selected(p),
                }
                for p in self.visible_products
            ],
            "selectionLabel": self.selection_label,
            "canAdd": self.can_add,
        }


def product_picker_for(bundle: Mapping[str, Any], query: Mapping[str, Any]) -> ProductSelector:
    """Picker over the bundle's catalog-resolved items, filtered by `?q=`."""
    candidates = [
        Product(id=item["productId"], title=item["title"], image_url=item.get("imageUrl"))
        for item in bundle.get("items") or []
    ]
    return ProductSelector(candidates, search_term=query.get("q") or "")


# ---------------------------------------------------------------------------
# Page payloads
# ---------------------------------------------------------------------------

def build_list_view(
    bundles: Sequence[BundleSummaryDict], tab_index: int = 0, error: Optional[str] = None
) -> Dict[str, Any]:
    visible = filter_bundles_by_tab(bundles, tab_index)
    return {
        "bundles": list(bundles),
        "tabs": [{"id": t.id, "content": t.content} for t in BUNDLE_TABS],
        "selectedTab": tab_index if 0 <= tab_index < len(BUNDLE_TABS) else 0,
        "rows": [
            {
                **b,
                "price": b.get("price") or "-",
                "typeBadge": type_badge(b.get("type")).to_dict(),
                "statusBadge": status_badge(b.get("status")).to_dict(),
                "viewUrl": f"{BUNDLES_PATH}/{b['id']}",
                "editUrl": f"{BUNDLES_PATH}/{b['id']}?mode=edit",
            }
            for b in visible
        ],
        "isEmpty": not visible,
        "emptyState": {
            "heading": "Create your first bundle",
            "image": EMPTY_STATE_IMAGE_URL,
        },
        "bundleTypes": [
            {
                "type": o.type.value,
                "heading": o.heading,
                "description": o.description,
                "action": o.action,
                "primary": o.primary,
            }
            for o in BUNDLE_TYPE_OPTIONS
        ],
        "error": error,
    }


def build_detail_view(bundle: BundleDetailDict, query: Mapping[str, Any]) -> Dict[str, Any]:
    form = BundleDetailForm.from_bundle(bundle, edit_mode=is_edit_mode(query))
    items = bundle.get("items") or []
    thumbnail = items[0].get("imageUrl") if items else None
    return {
        "bundle": bundle,
        "isEditMode": form.edit_mode,
        "pageTitle": f"Editing: {bundle['title']}" if form.edit_mode else bundle["title"],
        "titleBadge": detail_title_badge(bundle.get("status")).to_dict(),
        "thumbnail": thumbnail or PLACEHOLDER_IMAGE_URL,
        "shopifyUrl": shopify_admin_product_url(bundle["productId"]),
        "toggleUrl": form.toggle_url,
        "backUrl": BUNDLES_PATH,
        "form": form.to_form(),
        "hasChanges": form.has_changes,
        "canSave": form.can_save,
        "statusOptions": [BundleStatus.ACTIVE.value, BundleStatus.DRAFT.value],
        "buildOptions": [o.value for o in BuildOption],
        "productPicker": product_picker_for(bundle, query).to_dict() if form.edit_mode else None,
    }
