from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from pydantic import validate_email
from uuid import UUID
from config import get_db
from models import Seller, AccountStatus
from services.stores import SellerStore
from .schemas import SellerCreate, SellerResponse
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sellers", tags=["Sellers"])


@router.post("", response_model=SellerResponse, status_code=status.HTTP_201_CREATED)
async def create_seller(
    seller_data: SellerCreate,
    db: AsyncSession = Depends(get_db)
):
    """
    Register a seller ahead of onboarding
    """
    sellers = SellerStore(db)
    try:
        if await sellers.get_by_email(seller_data.email):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Seller already exists"
            )

        seller = sellers.add(Seller(
            email=seller_data.email,
            business_name=seller_data.business_name,
            stripe_onboarding_completed=False,
            stripe_account_status=AccountStatus.PENDING
        ))
        await db.commit()
        await db.refresh(seller)

        return SellerResponse.model_validate(seller)

    except HTTPException:
        raise
    except IntegrityError:
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Seller already exists"
        )
    except Exception as e:
        logger.error(f"Create seller error: {str(e)}")
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create seller"
        )


@router.get("/by-email/{email}", response_model=SellerResponse)
async def get_seller_by_email(
    email: str,
    db: AsyncSession = Depends(get_db)
):
    try:
        try:
            _, normalized_email = validate_email(email)
        except ValueError:
            normalized_email = None

        seller = await SellerStore(db).get_by_email(normalized_email) if normalized_email else None
        if not seller:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Seller not found"
            )

        return SellerResponse.model_validate(seller)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Get seller by email error: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch seller"
        )


@router.get("/{seller_id}", response_model=SellerResponse)
async def get_seller(
    seller_id: UUID,
    db: AsyncSession = Depends(get_db)
):
    try:
        seller = await SellerStore(db).get(seller_id)
        if not seller:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Seller not found"
            )

        return SellerResponse.model_validate(seller)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Get seller error: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch seller"
        )
