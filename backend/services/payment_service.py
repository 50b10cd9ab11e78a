"""
Payment orchestration: seller onboarding, payment intents and webhook reconciliation.

State machines driven from here:
    Transaction.status     pending -> succeeded | failed
    Order.payment_status   unpaid  -> paid
"""
from decimal import Decimal, ROUND_HALF_UP
from sqlalchemy.ext.asyncio import AsyncSession
from models import Order, Seller, PaymentStatus, TransactionStatus
from services.stores import SellerStore, OrderStore, TransactionStore
from services.stripe_provider import (
    PaymentProvider, PaymentProviderError, PaymentIntentHandle, AccountStatusSnapshot
)
from typing import Optional, Tuple, Union
import logging
import uuid

logger = logging.getLogger(__name__)


class NotFoundError(Exception):
    pass


class PaymentStateError(Exception):
    """The order or seller is not in a state that allows the requested payment operation."""


def calculate_platform_fee(total_amount: int, percent: Union[str, Decimal] = "0.02", fixed: int = 30) -> int:
    """Platform fee in minor units: percentage of the total, rounded half up, plus a fixed part"""
    percentage_part = (Decimal(total_amount) * Decimal(percent)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return int(percentage_part) + fixed


def payment_intent_idempotency_key(order_id: uuid.UUID, previous_attempts: int = 0) -> str:
    if previous_attempts:
        return f"pi_{order_id}_{previous_attempts}"
    return f"pi_{order_id}"


class PaymentService:
    def __init__(
        self,
        session: AsyncSession,
        provider: PaymentProvider,
        currency: str = "usd",
        fee_percent: Union[str, Decimal] = "0.02",
        fee_fixed: int = 30,
    ):
        self.session = session
        self.provider = provider
        self.currency = currency
        self.fee_percent = fee_percent
        self.fee_fixed = fee_fixed
        self.sellers = SellerStore(session)
        self.orders = OrderStore(session)
        self.transactions = TransactionStore(session)

    # --- Seller onboarding ---

    async def start_onboarding(self, seller_id: uuid.UUID, refresh_url: str, return_url: str) -> Tuple[str, str]:
        seller = await self.sellers.get(seller_id)
        if not seller:
            raise NotFoundError("Seller not found")

        account_id = seller.stripe_account_id
        if not account_id:
            account_id = await self.provider.create_account()
            await self.sellers.set_account_id(seller, account_id)
            await self.session.commit()
            logger.info(f"Linked Stripe account {account_id} to seller {seller_id}")

        url = await self.provider.create_account_link(account_id, refresh_url, return_url)
        return url, account_id

    async def sync_account_status(self, seller_id: uuid.UUID) -> AccountStatusSnapshot:
        seller = await self.sellers.get(seller_id)
        if not seller or not seller.stripe_account_id:
            raise NotFoundError("Invalid seller")

        account_status = await self.provider.get_account_status(seller.stripe_account_id)
        await self.sellers.update_account_status(
            seller.id,
            charges_enabled=account_status.charges_enabled,
            details_submitted=account_status.details_submitted,
        )
        await self.session.commit()

        logger.info(
            f"Seller {seller_id} account status: charges_enabled={account_status.charges_enabled}, "
            f"details_submitted={account_status.details_submitted}"
        )
        return account_status

    async def create_login_link(self, seller_id: uuid.UUID) -> str:
        seller = await self.sellers.get(seller_id)
        if not seller or not seller.stripe_account_id:
            raise NotFoundError("Seller not connected to Stripe")

        return await self.provider.create_login_link(seller.stripe_account_id)

    # --- Payment intents ---

    async def create_payment_intent(self, order_id: uuid.UUID) -> PaymentIntentHandle:
        order = await self.orders.get(order_id)
        if not order:
            raise NotFoundError("Order not found")

        if order.payment_status == PaymentStatus.PAID:
            raise PaymentStateError("Order already paid")

        seller: Seller = order.seller
        if not seller.stripe_account_id or not seller.stripe_onboarding_completed:
            raise PaymentStateError("Seller payment setup incomplete")

        application_fee_amount = calculate_platform_fee(order.total_amount, self.fee_percent, self.fee_fixed)
        if application_fee_amount >= order.total_amount:
            raise PaymentStateError("Order total is below the minimum chargeable amount")

        existing_intent = await self._reusable_intent(order)
        if existing_intent:
            return existing_intent

        previous_attempts = await self.transactions.count_for_order(order.id)
        intent = await self.provider.create_payment_intent(
            amount=order.total_amount,
            currency=self.currency,
            destination_account_id=seller.stripe_account_id,
            application_fee_amount=application_fee_amount,
            metadata={"orderId": str(order.id), "sellerId": str(seller.id)},
            idempotency_key=payment_intent_idempotency_key(order.id, previous_attempts),
        )

        await self.transactions.upsert_pending(
            seller_id=seller.id,
            order_id=order.id,
            payment_intent_id=intent.id,
            amount_total=order.total_amount,
            application_fee_amount=application_fee_amount,
            currency=self.currency,
            buyer_email=order.buyer_email,
        )
        await self.session.commit()

        logger.info(f"Payment intent {intent.id} ready for order {order.id} (fee {application_fee_amount})")
        return intent

    async def _reusable_intent(self, order: Order) -> Optional[PaymentIntentHandle]:
        pending = await self.transactions.find_pending_for_order(order.id)
        if not pending:
            return None

        try:
            intent = await self.provider.retrieve_payment_intent(pending.stripe_payment_intent_id)
        except PaymentProviderError:
            logger.warning(
                f"Could not retrieve payment intent {pending.stripe_payment_intent_id} for order {order.id}, "
                "creating a new one"
            )
            return None

        if intent.is_reusable:
            logger.info(f"Reusing payment intent {intent.id} for order {order.id}")
            return intent

        if intent.status == "canceled":
            await self.transactions.set_status_for_intent(
                intent.id, TransactionStatus.FAILED, exclude_statuses=(TransactionStatus.SUCCEEDED,)
            )
        return None

    # --- Webhooks ---

    async def handle_event(self, event: dict) -> None:
        event_type = event.get("type")
        data_object = (event.get("data") or {}).get("object") or {}

        if event_type == "payment_intent.succeeded":
            await self._payment_succeeded(data_object)
        elif event_type == "payment_intent.payment_failed":
            await self._payment_failed(data_object)
        elif event_type == "account.updated":
            await self._account_updated(data_object)
        else:
            logger.info(f"Ignoring webhook event {event.get('id')} of type {event_type}")
            return

        await self.session.commit()

    async def _payment_succeeded(self, payment_intent: dict) -> None:
        intent_id = payment_intent.get("id")
        updated = await self.transactions.set_status_for_intent(intent_id, TransactionStatus.SUCCEEDED)

        order_id = _parse_uuid((payment_intent.get("metadata") or {}).get("orderId"))
        if order_id is None:
            logger.warning(f"Payment intent {intent_id} succeeded without a usable orderId in metadata")
            return

        paid = await self.orders.mark_paid(order_id)
        logger.info(f"Payment intent {intent_id} succeeded: {updated} transaction(s), order {order_id} paid={bool(paid)}")
        # Inventory deduction, fulfillment and buyer confirmation hook in here once they exist.

    async def _payment_failed(self, payment_intent: dict) -> None:
        intent_id = payment_intent.get("id")
        updated = await self.transactions.set_status_for_intent(
            intent_id,
            TransactionStatus.FAILED,
            exclude_statuses=(TransactionStatus.SUCCEEDED,),
        )
        logger.info(f"Payment intent {intent_id} failed: {updated} transaction(s) marked failed")

    async def _account_updated(self, account: dict) -> None:
        account_id = account.get("id")
        charges_enabled = bool(account.get("charges_enabled"))
        updated = await self.sellers.update_account_status_by_account_id(account_id, charges_enabled)
        logger.info(f"Account {account_id} updated: charges_enabled={charges_enabled}, {updated} seller(s)")


def _parse_uuid(value) -> Optional[uuid.UUID]:
    if not value:
        return None
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None
