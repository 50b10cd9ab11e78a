from fastapi import APIRouter, Depends, HTTPException, status, BackgroundTasks
from sqlalchemy.ext.asyncio import AsyncSession
from uuid import UUID
from config import get_db, EMAIL_FRONTEND_URL
from services.order_service import OrderService
from utils.notifications import dispatch_payment_link, build_payment_link
from .schemas import OrderCreate, OrderCreateResponse, OrderSummary, OrderDetailResponse, OrderResponse
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/orders", tags=["Orders"])


@router.post("", response_model=OrderCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_order(
    order_data: OrderCreate,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db)
):
    """
    Create an order for a buyer and email them the payment link.
    Totals are computed from the items; the seller is created on first use of its email.
    """
    try:
        order = await OrderService(db).create_order(order_data)
    except Exception as e:
        logger.error(f"Error creating order: {str(e)}")
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create order"
        )

    # Best effort: runs after the response and never fails the request
    background_tasks.add_task(
        dispatch_payment_link,
        {
            "id": str(order.id),
            "buyer_email": order.buyer_email,
            "buyer_name": order.buyer_name,
            "buyer_phone": order.buyer_phone,
            "total_amount": order.total_amount,
            "payment_link": build_payment_link(EMAIL_FRONTEND_URL, order.id),
        }
    )

    return OrderCreateResponse(order=OrderSummary.model_validate(order))


@router.get("/{order_id}", response_model=OrderDetailResponse)
async def get_order(
    order_id: UUID,
    db: AsyncSession = Depends(get_db)
):
    """
    Get an order with its items, seller and payment transactions
    """
    try:
        order = await OrderService(db).get_order(order_id)
        if not order:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Order not found"
            )

        return OrderDetailResponse(order=OrderResponse.model_validate(order))

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching order {order_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch order"
        )
