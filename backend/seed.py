"""
Seed a demo seller so a fresh database can walk through onboarding.

Usage: python seed.py
"""
import asyncio
import logging
from sqlalchemy.ext.asyncio import AsyncSession
from config import get_session_factory, init_db
from models import Seller
from services.stores import SellerStore

logger = logging.getLogger(__name__)

DEMO_SELLER_EMAIL = "demo@example.com"
DEMO_BUSINESS_NAME = "Demo Business"


async def seed_demo_seller(session: AsyncSession) -> Seller:
    seller = await SellerStore(session).get_or_create_by_email(DEMO_SELLER_EMAIL)
    if not seller.business_name:
        seller.business_name = DEMO_BUSINESS_NAME
    await session.commit()
    await session.refresh(seller)
    return seller


async def main():
    await init_db()
    async with get_session_factory()() as session:
        seller = await seed_demo_seller(session)
    logger.info(f"Demo seller ready: {seller.email} ({seller.id}), status {seller.stripe_account_status.value}")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(main())
