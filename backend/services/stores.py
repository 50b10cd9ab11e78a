"""
Data access for sellers, orders and transactions.

Every write that has to be race-safe is an INSERT ... ON CONFLICT statement,
so concurrent requests are serialized by the database unique indexes rather
than by application locks.
"""
from sqlalchemy import select, update, func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from models import (
    Seller, Order, OrderItem, Transaction,
    AccountStatus, OrderStatus, PaymentStatus, TransactionStatus
)
from typing import List, Optional
import uuid


def dialect_insert(session: AsyncSession, table):
    """INSERT construct supporting ON CONFLICT for the session's backend."""
    if session.bind.dialect.name == "postgresql":
        return postgresql.insert(table)
    return sqlite.insert(table)


class SellerStore:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, seller_id: uuid.UUID) -> Optional[Seller]:
        result = await self.session.execute(select(Seller).where(Seller.id == seller_id))
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> Optional[Seller]:
        result = await self.session.execute(select(Seller).where(Seller.email == email))
        return result.scalar_one_or_none()

    async def get_or_create_by_email(self, email: str) -> Seller:
        statement = dialect_insert(self.session, Seller).values(
            id=uuid.uuid4(),
            email=email,
            stripe_onboarding_completed=False,
            stripe_account_status=AccountStatus.PENDING,
        ).on_conflict_do_nothing(index_elements=["email"])
        await self.session.execute(statement)

        result = await self.session.execute(
            select(Seller).where(Seller.email == email).execution_options(populate_existing=True)
        )
        return result.scalar_one()

    def add(self, seller: Seller) -> Seller:
        self.session.add(seller)
        return seller

    async def set_account_id(self, seller: Seller, account_id: str) -> None:
        seller.stripe_account_id = account_id
        await self.session.flush()

    async def update_account_status(
        self,
        seller_id: uuid.UUID,
        charges_enabled: bool,
        details_submitted: Optional[bool] = None,
    ) -> None:
        values = {
            "stripe_account_status": AccountStatus.ENABLED if charges_enabled else AccountStatus.RESTRICTED,
            "updated_at": func.now(),
        }
        if details_submitted is not None:
            values["stripe_onboarding_completed"] = details_submitted

        await self.session.execute(
            update(Seller).where(Seller.id == seller_id).values(**values)
        )

    async def update_account_status_by_account_id(self, account_id: str, charges_enabled: bool) -> int:
        result = await self.session.execute(
            update(Seller)
            .where(Seller.stripe_account_id == account_id)
            .values(
                stripe_account_status=AccountStatus.ENABLED if charges_enabled else AccountStatus.RESTRICTED,
                updated_at=func.now(),
            )
        )
        return result.rowcount


class OrderStore:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, order_id: uuid.UUID, with_details: bool = False) -> Optional[Order]:
        query = select(Order).where(Order.id == order_id).options(selectinload(Order.seller))
        if with_details:
            query = query.options(selectinload(Order.items), selectinload(Order.transactions))

        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    def add(self, order: Order, items: List[OrderItem]) -> Order:
        order.items = items
        self.session.add(order)
        return order

    async def mark_paid(self, order_id: uuid.UUID) -> int:
        """Move an unpaid order to paid; a no-op for orders already paid."""
        result = await self.session.execute(
            update(Order)
            .where(Order.id == order_id, Order.payment_status != PaymentStatus.PAID)
            .values(status=OrderStatus.PAID, payment_status=PaymentStatus.PAID, updated_at=func.now())
        )
        return result.rowcount


class TransactionStore:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_pending_for_order(self, order_id: uuid.UUID) -> Optional[Transaction]:
        result = await self.session.execute(
            select(Transaction)
            .where(Transaction.order_id == order_id, Transaction.status == TransactionStatus.PENDING)
            .order_by(Transaction.created_at.desc(), Transaction.updated_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def count_for_order(self, order_id: uuid.UUID) -> int:
        result = await self.session.execute(
            select(func.count(Transaction.id)).where(Transaction.order_id == order_id)
        )
        return result.scalar() or 0

    async def upsert_pending(
        self,
        *,
        seller_id: uuid.UUID,
        order_id: uuid.UUID,
        payment_intent_id: str,
        amount_total: int,
        application_fee_amount: int,
        currency: str,
        buyer_email: str,
    ) -> None:
        """Insert the transaction for an intent, or reset an existing one to pending."""
        statement = dialect_insert(self.session, Transaction).values(
            id=uuid.uuid4(),
            seller_id=seller_id,
            order_id=order_id,
            stripe_payment_intent_id=payment_intent_id,
            amount_total=amount_total,
            application_fee_amount=application_fee_amount,
            seller_transfer_amount=amount_total - application_fee_amount,
            currency=currency,
            buyer_email=buyer_email,
            status=TransactionStatus.PENDING,
        )
        statement = statement.on_conflict_do_update(
            index_elements=["stripe_payment_intent_id"],
            set_={"status": TransactionStatus.PENDING.value, "updated_at": func.now()},
        )
        await self.session.execute(statement)

    async def set_status_for_intent(
        self,
        payment_intent_id: str,
        status: TransactionStatus,
        exclude_statuses: tuple = (),
    ) -> int:
        query = update(Transaction).where(Transaction.stripe_payment_intent_id == payment_intent_id)
        if exclude_statuses:
            query = query.where(Transaction.status.not_in(exclude_statuses))

        result = await self.session.execute(query.values(status=status, updated_at=func.now()))
        return result.rowcount
