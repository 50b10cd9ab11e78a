from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
from uuid import UUID
from config import get_db, get_payment_provider, PAYMENT_CURRENCY, PLATFORM_FEE_PERCENT, PLATFORM_FEE_FIXED
from services.payment_service import PaymentService, NotFoundError, PaymentStateError
from services.stripe_provider import PaymentProvider
from .schemas import (
    OnboardSellerRequest, OnboardSellerResponse, AccountStatusResponse,
    CreatePaymentIntentRequest, PaymentIntentResponse, LoginLinkRequest, LoginLinkResponse
)
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments", tags=["Payments"])


def get_payment_service(
    db: AsyncSession = Depends(get_db),
    provider: PaymentProvider = Depends(get_payment_provider)
) -> PaymentService:
    return PaymentService(
        db,
        provider,
        currency=PAYMENT_CURRENCY,
        fee_percent=PLATFORM_FEE_PERCENT,
        fee_fixed=PLATFORM_FEE_FIXED
    )


@router.post("/onboard", response_model=OnboardSellerResponse)
async def onboard_seller(
    onboard_data: OnboardSellerRequest,
    payments: PaymentService = Depends(get_payment_service)
):
    """
    Start (or resume) Stripe Connect onboarding for a seller.
    Creates the connected account on first call; every call returns a fresh onboarding link.
    """
    try:
        url, account_id = await payments.start_onboarding(
            onboard_data.seller_id,
            str(onboard_data.refresh_url),
            str(onboard_data.return_url)
        )
        return OnboardSellerResponse(url=url, account_id=account_id)

    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except Exception as e:
        logger.error(f"Onboarding error for seller {onboard_data.seller_id}: {str(e)}")
        await payments.session.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create onboarding link"
        )


@router.get("/callback", response_model=AccountStatusResponse)
async def onboarding_callback(
    seller_id: Optional[str] = Query(None, alias="sellerId"),
    payments: PaymentService = Depends(get_payment_service)
):
    """
    Pull the seller's live account status from Stripe after the onboarding redirect
    """
    if not seller_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing sellerId")

    try:
        seller_uuid = UUID(seller_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid seller ID format. Must be a valid UUID."
        )

    try:
        account_status = await payments.sync_account_status(seller_uuid)
        return AccountStatusResponse(status=account_status.as_dict())

    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except Exception as e:
        logger.error(f"Callback error for seller {seller_id}: {str(e)}")
        await payments.session.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to process callback"
        )


@router.post("/create-intent", response_model=PaymentIntentResponse)
async def create_payment_intent(
    intent_data: CreatePaymentIntentRequest,
    payments: PaymentService = Depends(get_payment_service)
):
    """
    Create, or reuse, the Stripe payment intent for an order.
    Safe to call repeatedly: retries return the pending intent instead of charging twice.
    """
    try:
        intent = await payments.create_payment_intent(intent_data.order_id)
        return PaymentIntentResponse(client_secret=intent.client_secret, payment_intent_id=intent.id)

    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except PaymentStateError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        logger.error(f"Create intent error for order {intent_data.order_id}: {str(e)}")
        await payments.session.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create payment intent"
        )


@router.post("/portal", response_model=LoginLinkResponse)
async def create_portal_link(
    link_data: LoginLinkRequest,
    payments: PaymentService = Depends(get_payment_service)
):
    """
    Short-lived link to the seller's Stripe Express dashboard
    """
    try:
        url = await payments.create_login_link(link_data.seller_id)
        return LoginLinkResponse(url=url)

    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except Exception as e:
        logger.error(f"Portal error for seller {link_data.seller_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create portal link"
        )
