"""
Dashboard Router
App home page plus the demo product generator.
"""
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from typing import Any, Dict
import logging

from routers.auth import ShopSession, authenticate_admin, get_shopify_client
from routers.bundles import get_orchestrator
from services.bundle_orchestrator import BundleOrchestrator
from services.bundle_views import BUNDLES_PATH
from services.shopify_client import ShopifyAdminClient

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/app", tags=["dashboard"])


@router.get("")
async def dashboard(session: ShopSession = Depends(authenticate_admin)) -> Dict[str, Any]:
    return {
        "shopName": session.shop,
        "links": [
            {"label": "Bundles", "url": BUNDLES_PATH},
            {"label": "Shopify Help Center", "url": "https://help.shopify.com", "external": True},
            {"label": "Shopify API Documentation", "url": "https://shopify.dev", "external": True},
        ],
    }


@router.post("")
async def generate_product(
    client: ShopifyAdminClient = Depends(get_shopify_client),
    flows: BundleOrchestrator = Depends(get_orchestrator),
):
    """Create a sample snowboard product (demo action, unrelated to bundles)"""
    result = await flows.generate_demo_product(client)
    return JSONResponse(status_code=result.status_code, content=result.to_dict())
