import os
from dotenv import load_dotenv
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from models import Base
from services.stripe_provider import StripePaymentProvider

load_dotenv()

ENVIRONMENT = os.getenv("ENVIRONMENT", "dev")
DEBUG = ENVIRONMENT == "dev"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

DATABASE_URL = os.getenv("DATABASE_URL")

STRIPE_SECRET_KEY = os.getenv("STRIPE_SECRET_KEY")
STRIPE_WEBHOOK_SECRET = os.getenv("STRIPE_WEBHOOK_SECRET")
STRIPE_API_VERSION = os.getenv("STRIPE_API_VERSION", "2024-11-20.acacia")

PAYMENT_CURRENCY = os.getenv("PAYMENT_CURRENCY", "usd")
PLATFORM_FEE_PERCENT = os.getenv("PLATFORM_FEE_PERCENT", "0.02")
PLATFORM_FEE_FIXED = int(os.getenv("PLATFORM_FEE_FIXED", "30"))

EMAIL_FRONTEND_URL = os.getenv("EMAIL_FRONTEND_URL", "http://localhost:5173")

CORS_ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv(
        "CORS_ALLOWED_ORIGINS",
        "http://localhost:5173,http://localhost:3000,https://livey-payment.web.app",
    ).split(",")
    if origin.strip()
]


def _async_database_url(url: str) -> str:
    if url.startswith("sqlite://"):
        return url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    if url.startswith("sqlite+aiosqlite://"):
        return url

    asyncpg_url = url.replace("postgresql://", "postgresql+asyncpg://")

    if "?" in asyncpg_url:
        base_url = asyncpg_url.split("?")[0]
    else:
        base_url = asyncpg_url

    return f"{base_url}?prepared_statement_cache_size=0"


def _sync_database_url(url: str) -> str:
    return url.replace("postgresql+asyncpg://", "postgresql://").replace("sqlite+aiosqlite://", "sqlite://")


_async_engine = None
_sync_engine = None
_session_factory = None
_payment_provider = None


def get_async_engine():
    global _async_engine
    if _async_engine is None:
        if not DATABASE_URL:
            raise ValueError("DATABASE_URL must be set in environment variables")

        engine_kwargs = {"echo": False, "pool_pre_ping": False}
        if not DATABASE_URL.startswith("sqlite"):
            engine_kwargs.update(pool_size=5, max_overflow=0)

        _async_engine = create_async_engine(_async_database_url(DATABASE_URL), **engine_kwargs)

    return _async_engine


def get_session_factory():
    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(
            bind=get_async_engine(),
            class_=AsyncSession,
            expire_on_commit=False
        )

    return _session_factory


def get_sync_engine():
    global _sync_engine
    if _sync_engine is None:
        if not DATABASE_URL:
            raise ValueError("DATABASE_URL must be set in environment variables")
        _sync_engine = create_engine(_sync_database_url(DATABASE_URL))

    return _sync_engine


async def get_db():
    async with get_session_factory()() as session:
        yield session


async def init_db(engine=None):
    engine = engine or get_async_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


def get_payment_provider():
    """Stripe-backed provider shared by all requests; tests override this dependency."""
    global _payment_provider
    if _payment_provider is None:
        if not STRIPE_SECRET_KEY:
            raise ValueError("STRIPE_SECRET_KEY must be set in environment variables")

        _payment_provider = StripePaymentProvider(
            api_key=STRIPE_SECRET_KEY,
            webhook_secret=STRIPE_WEBHOOK_SECRET,
            api_version=STRIPE_API_VERSION,
        )

    return _payment_provider
