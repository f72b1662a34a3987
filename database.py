"""
Database engine, session factory and ORM models for bundles.

Without DATABASE_URL the app runs on an in-memory SQLite database (local
development and tests); deployed databases are Postgres via asyncpg.
"""
from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy import (
    String, Text, DateTime, ForeignKey, func, Index, CheckConstraint
)
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError
from sqlalchemy.pool import StaticPool
from sqlalchemy import text
from datetime import datetime
from typing import List
import logging, os, uuid

# Load environment variables early (before reading DATABASE_URL)
from dotenv import load_dotenv
load_dotenv()

# -------------------------------------------------------------------
# Engine / Session
# -------------------------------------------------------------------
DATABASE_URL = os.getenv("DATABASE_URL", "")

if DATABASE_URL:
    DATABASE_URL = DATABASE_URL.replace("postgresql://", "postgresql+asyncpg://")
    connect_args = {
        "server_settings": {
            "application_name": "bundle_manager",
        },
        "command_timeout": 60,
        "timeout": 30,
    }
    # asyncpg uses 'ssl', not libpq's 'sslmode'
    if "sslmode=" in DATABASE_URL:
        base, _, query = DATABASE_URL.partition("?")
        params = [p for p in query.split("&") if p and not p.startswith("sslmode=")]
        DATABASE_URL = base + ("?" + "&".join(params) if params else "")
        connect_args["ssl"] = "require"

    engine = create_async_engine(
        DATABASE_URL,
        echo=os.getenv("NODE_ENV") == "development",
        pool_size=int(os.getenv("DB_POOL_SIZE", "10")),
        max_overflow=20,
        pool_pre_ping=True,  # Verify connections before use
        pool_recycle=1800,  # Recycle connections after 30 minutes
        pool_timeout=15,
        connect_args=connect_args,
    )
else:
    DATABASE_URL = "sqlite+aiosqlite:///:memory:"
    engine = create_async_engine(
        DATABASE_URL,
        echo=os.getenv("NODE_ENV") == "development",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

def _redact_db_url(url: str) -> str:
    try:
        return make_url(url).render_as_string(hide_password=True)
    except ArgumentError:
        return "******"


logger = logging.getLogger(__name__)
logger.info(f"Creating SQL engine for { _redact_db_url(DATABASE_URL) }")

async def probe_db_connection():
    try:
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
        logger.info("DB connectivity probe: OK")
        return True
    except Exception as e:
        logger.exception(f"DB connectivity probe failed: {e}")
        return False

# -------------------------------------------------------------------
# Base
# -------------------------------------------------------------------
class Base(DeclarativeBase):
    pass

# -------------------------------------------------------------------
# MODELS
# -------------------------------------------------------------------

BUNDLE_TYPES = ("SIMPLE", "INFINITE_OPTIONS")
BUNDLE_STATUSES = ("ACTIVE", "INACTIVE", "DRAFT")


class Bundle(Base):
    __tablename__ = "bundles"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    shop: Mapped[str] = mapped_column(String, nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    # Set once at creation; nothing updates it afterwards
    type: Mapped[str] = mapped_column(String, nullable=False)
    # Numeric Shopify product id (gid prefix stripped)
    product_id: Mapped[str] = mapped_column(String, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="ACTIVE")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=func.now(), onupdate=func.now(), nullable=False)

    items: Mapped[List["BundleItem"]] = relationship(
        back_populates="bundle", cascade="all, delete-orphan", passive_deletes=True
    )

    __table_args__ = (
        CheckConstraint("type IN ('SIMPLE','INFINITE_OPTIONS')", name="ck_bundles_type"),
        CheckConstraint("status IN ('ACTIVE','INACTIVE','DRAFT')", name="ck_bundles_status"),
    )


class BundleItem(Base):
    __tablename__ = "bundle_items"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    bundle_id: Mapped[str] = mapped_column(
        String, ForeignKey("bundles.id", ondelete="CASCADE"), nullable=False
    )
    product_id: Mapped[str] = mapped_column(String, nullable=False)

    bundle: Mapped["Bundle"] = relationship(back_populates="items")


class BundleReconciliation(Base):
    """Remote products created for a bundle that never made it into `bundles`."""
    __tablename__ = "bundle_reconciliations"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    shop: Mapped[str] = mapped_column(String, nullable=False)
    product_id: Mapped[str] = mapped_column(String, nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=func.now(), nullable=False)


Index('ix_bundles_shop', Bundle.shop)
Index('ix_bundles_shop_created_at', Bundle.shop, Bundle.created_at)
Index('ix_bundle_items_bundle', BundleItem.bundle_id)
Index('ix_bundle_reconciliations_shop', BundleReconciliation.shop)
# -------------------------------------------------------------------
# Init + health helpers
# -------------------------------------------------------------------
async def init_db():
    """Create tables for local/dev databases; deployed databases use Alembic migrations."""
    await probe_db_connection()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("DB init complete (tables ensured).")

async def check_db_health() -> dict:
    ok = await probe_db_connection()
    return {"status": "healthy" if ok else "unhealthy", "url": _redact_db_url(DATABASE_URL)}
