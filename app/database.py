"""Database connection and session management using SQLAlchemy async ORM"""
from typing import Optional

from redis import asyncio as aioredis
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import StaticPool

from app import config

def resolve_database_url(url: str) -> str:
    """Rewrite sync driver URLs to their async equivalents."""
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if url.startswith("sqlite://"):
        return url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    return url

DATABASE_URL = resolve_database_url(config.DATABASE_URL)

def build_engine(url: str, echo: bool = False) -> AsyncEngine:
    """
    Create an async engine for the given URL.

    SQLite (used by the test suite and local demos) gets a single shared
    connection; server databases get a connection pool.
    """
    url = resolve_database_url(url)
    if url.startswith("sqlite"):
        return create_async_engine(
            url,
            echo=echo,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    # pool_size=20: Keep 20 connections alive in the pool
    # max_overflow=30: Allow 30 additional connections under load (total 50 max)
    # pool_recycle=3600: Recycle connections every hour to prevent stale connections
    return create_async_engine(
        url,
        echo=echo,
        pool_size=20,
        max_overflow=30,
        pool_recycle=3600,
        pool_pre_ping=True,
    )

def build_session_factory(bind: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )

engine = build_engine(DATABASE_URL)

# Create async session factory
AsyncSessionLocal = build_session_factory(engine)

# Base class for declarative models
Base = declarative_base()

# Redis client (initialized on app startup when REDIS_URL is set)
redis_client: Optional[aioredis.Redis] = None

async def create_tables(bind: AsyncEngine = None) -> None:
    """Create all tables directly from the models (demo and test databases)."""
    import app.models  # noqa: F401  registers the mappers on Base

    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

async def init_redis() -> aioredis.Redis:
    """Initialize Redis connection with async client"""
    global redis_client
    redis_client = await aioredis.from_url(
        config.REDIS_URL,
        encoding="utf-8",
        decode_responses=True,
        max_connections=50,
    )
    return redis_client

async def close_redis():
    """Close Redis connection"""
    global redis_client
    if redis_client:
        await redis_client.aclose()
        redis_client = None


def get_redis() -> Optional[aioredis.Redis]:
    """
    Dependency for FastAPI endpoints to get Redis client.

    Returns None when Redis is not configured.
    """
    return redis_client
