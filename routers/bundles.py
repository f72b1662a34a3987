"""
Bundles Router
Embedded admin pages for listing, creating and editing bundles.
"""
from fastapi import APIRouter, Depends, Form, HTTPException, Query, Request
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import BaseModel
from typing import Any, Dict, Optional
import logging

from routers.auth import ShopSession, authenticate_admin, get_catalog, get_shopify_client
from services.bundle_orchestrator import BundleOrchestrator, orchestrator
from services.bundle_views import BUNDLES_PATH, build_detail_view, build_list_view
from services.catalog import CatalogLookup
from services.shopify_client import ShopifyAdminClient

logger = logging.getLogger(__name__)
router = APIRouter(prefix=BUNDLES_PATH, tags=["bundles"])


class BundleOut(BaseModel):
    id: str
    title: str
    type: str
    productId: str
    status: str


class CreateBundleResponse(BaseModel):
    success: bool
    bundle: BundleOut


def get_orchestrator() -> BundleOrchestrator:
    return orchestrator


@router.get("")
async def list_bundles(
    tab: int = Query(0),
    session: ShopSession = Depends(authenticate_admin),
    flows: BundleOrchestrator = Depends(get_orchestrator),
) -> Dict[str, Any]:
    """Bundle list page; tab switching filters client-side on the returned `bundles`"""
    loaded = await flows.load_bundle_list(session.shop)
    return build_list_view(loaded["bundles"], tab, error=loaded["error"])


@router.post("", response_model=CreateBundleResponse)
async def bundles_action(
    action: Optional[str] = Form(None),
    title: Optional[str] = Form(None),
    type: Optional[str] = Form(None),
    isNewProduct: Optional[str] = Form("true"),
    session: ShopSession = Depends(authenticate_admin),
    client: ShopifyAdminClient = Depends(get_shopify_client),
    flows: BundleOrchestrator = Depends(get_orchestrator),
):
    if action != "create_bundle":
        raise HTTPException(status_code=400, detail="Unknown action")

    result = await flows.create_bundle(
        session.shop,
        client,
        title=title,
        bundle_type=type,
        is_new_product=(isNewProduct or "").lower() == "true",
    )
    if not result.success:
        raise HTTPException(status_code=result.status_code, detail=result.error)
    return result.to_dict()


@router.get("/{bundle_id}")
async def bundle_detail(
    bundle_id: str,
    request: Request,
    session: ShopSession = Depends(authenticate_admin),
    catalog: CatalogLookup = Depends(get_catalog),
    flows: BundleOrchestrator = Depends(get_orchestrator),
):
    """Bundle detail page; `?mode=edit` switches the page into edit mode"""
    bundle = await flows.load_bundle_detail(session.shop, bundle_id, catalog)
    if bundle is None:
        return RedirectResponse(url=BUNDLES_PATH, status_code=302)
    return build_detail_view(bundle, request.query_params)


@router.post("/{bundle_id}")
async def bundle_detail_action(
    bundle_id: str,
    action: Optional[str] = Form(None),
    title: Optional[str] = Form(None),
    price: Optional[str] = Form(None),
    buildOption: Optional[str] = Form(None),
    status: Optional[str] = Form(None),
    session: ShopSession = Depends(authenticate_admin),
    client: ShopifyAdminClient = Depends(get_shopify_client),
    catalog: CatalogLookup = Depends(get_catalog),
    flows: BundleOrchestrator = Depends(get_orchestrator),
):
    if action != "update_bundle":
        raise HTTPException(status_code=400, detail="Unknown action")

    result = await flows.update_bundle(
        session.shop,
        bundle_id,
        client,
        catalog,
        title=title,
        status=status,
        price=price,
        build_option=buildOption,
    )
    if result.status_code == 404:
        return RedirectResponse(url=BUNDLES_PATH, status_code=302)
    return JSONResponse(status_code=result.status_code, content=result.to_dict())
