from fastapi import APIRouter, Depends, HTTPException, status, Request
from services.payment_service import PaymentService
from services.stripe_provider import WebhookVerificationError
from routers.payments.payments import get_payment_service
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["Webhooks"])


@router.post("/stripe")
async def stripe_webhook(
    request: Request,
    payments: PaymentService = Depends(get_payment_service)
):
    """
    Stripe event endpoint. The raw body is verified against the Stripe-Signature
    header before any state is touched; Stripe redelivers on any non-2xx answer.
    """
    signature = request.headers.get("stripe-signature")
    payload = await request.body()

    if not signature or not payments.provider.webhook_secret:
        logger.error("Missing Stripe signature or webhook secret")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid webhook configuration")

    try:
        event = payments.provider.construct_event(payload, signature)
    except WebhookVerificationError as e:
        logger.error(f"Webhook signature verification failed: {e}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid signature")

    try:
        await payments.handle_event(event)
    except Exception as e:
        logger.error(f"Webhook processing error for event {event.get('id')}: {str(e)}")
        await payments.session.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Webhook processing failed"
        )

    return {"received": True}
