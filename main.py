"""
FastAPI Application Entry Point
Bundle Manager - embedded Shopify admin backend for product bundles
"""
from contextvars import ContextVar
from fastapi import FastAPI, Request, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
import os
import asyncio
import logging
import json
import sys
import time
import uuid as _uuid
from typing import Callable

import settings
from routers import bundles, dashboard
from database import init_db, check_db_health

# Set per request by ShopRequestMiddleware, stamped onto every log line
request_id_var: ContextVar[str] = ContextVar("request_id", default="-")
shop_var: ContextVar[str] = ContextVar("shop", default="-")


# ---- Logging setup (JSON on stdout) ----
class RequestContextFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get()
        record.shop = shop_var.get()
        return True


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "severity": record.levelname,
            "time": self.formatTime(record, "%Y-%m-%dT%H:%M:%S%z"),
            "logger": record.name,
            "message": record.getMessage(),
            "rid": getattr(record, "request_id", "-"),
            "shop": getattr(record, "shop", "-"),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def configure_logging(level: str = settings.LOG_LEVEL) -> None:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())
    handler.addFilter(RequestContextFilter())

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)

    logging.getLogger("uvicorn.access").setLevel(logging.INFO)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)  # INFO prints SQL
    # requests/urllib3 log every Admin API connection at DEBUG
    logging.getLogger("urllib3").setLevel(logging.WARNING)


configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Bundle Manager API",
    description="Create and manage product bundles for Shopify stores",
    version="1.0.0",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


class ShopRequestMiddleware(BaseHTTPMiddleware):
    """Tags the request with an id and the calling shop, logs one line in and one out."""

    async def dispatch(self, request: Request, call_next: Callable):
        request_id = request.headers.get("X-Request-Id") or str(_uuid.uuid4())
        shop = settings.sanitize_shop_id(request.headers.get(settings.SHOP_DOMAIN_HEADER)) or "-"
        rid_token = request_id_var.set(request_id)
        shop_token = shop_var.set(shop)
        request.state.request_id = request_id
        start = time.perf_counter()

        logger.info(f"REQ {request.method} {request.url.path} qs={request.url.query!s}")
        try:
            response = await call_next(request)
            dur_ms = int((time.perf_counter() - start) * 1000)
            logger.info(f"RES {request.method} {request.url.path} status={response.status_code} durMs={dur_ms}")
            response.headers["X-Request-Id"] = request_id
            return response
        except Exception:
            logger.exception(f"Unhandled error serving {request.method} {request.url.path}")
            raise
        finally:
            request_id_var.reset(rid_token)
            shop_var.reset(shop_token)


app.add_middleware(ShopRequestMiddleware)


@app.get("/")
async def root_index():
    return {"ok": True, "service": "bundle-manager"}


@app.get("/healthz")
async def healthz():
    """Liveness probe; never touches the database."""
    return {"ok": True}


@app.get("/api/health")
async def api_health():
    db_health = await check_db_health()
    return {
        "status": "healthy" if db_health["status"] == "healthy" else "degraded",
        "database": db_health,
        "shopifyApiVersion": settings.SHOPIFY_API_VERSION,
        "timestamp": time.time(),
    }


# --- Error handlers ---
# Every error body carries an "error" string; the admin front-end shows it as-is.
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"Rejected malformed request: {exc.errors()}")
    return JSONResponse(status_code=422, content={"error": "Validation failed", "detail": exc.errors()})


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    if exc.status_code >= 500:
        logger.error(f"HTTP {exc.status_code}: {exc.detail}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


app.include_router(dashboard.router)
app.include_router(bundles.router)


@app.on_event("startup")
async def startup():
    logger.info(f"Starting Bundle Manager API (Admin API {settings.SHOPIFY_API_VERSION})")
    if not settings.INIT_DB_ON_STARTUP:
        logger.info("Schema is managed by Alembic; skipping create_all")
        return
    # Local/dev bootstrap only
    try:
        await asyncio.wait_for(init_db(), timeout=60)
        logger.info("Bundle tables created")
    except asyncio.TimeoutError:
        logger.error("create_all timed out after 60s, serving without it")
    except Exception as e:
        logger.error(f"create_all failed (continuing to serve): {e}", exc_info=True)


@app.on_event("shutdown")
async def shutdown():
    logger.info("Shutting down Bundle Manager API")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=settings.PORT,
        reload=os.getenv("NODE_ENV") == "development",
    )
