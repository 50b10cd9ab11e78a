from sqlalchemy.ext.asyncio import AsyncSession
from models import Order, OrderItem, OrderStatus, PaymentStatus, FulfillmentStatus
from services.stores import SellerStore, OrderStore
from typing import Iterable, Optional, Tuple
import logging
import uuid

logger = logging.getLogger(__name__)


def calculate_order_totals(items: Iterable, shipping_amount: int = 0, tax_amount: int = 0) -> Tuple[int, int]:
    """Return (subtotal, total) in minor units from the line items"""
    subtotal = sum(item.quantity * item.unit_price for item in items)
    return subtotal, subtotal + shipping_amount + tax_amount


class OrderService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.sellers = SellerStore(session)
        self.orders = OrderStore(session)

    async def create_order(self, order_data) -> Order:
        """
        Persist an order and its items in one commit.
        Totals always come from the items; the seller is created on first use of its email.
        """
        seller = await self.sellers.get_or_create_by_email(order_data.seller_email)

        subtotal, total_amount = calculate_order_totals(
            order_data.items, order_data.shipping_amount, order_data.tax_amount
        )

        order = Order(
            id=uuid.uuid4(),
            seller_id=seller.id,
            buyer_email=order_data.buyer_email,
            buyer_name=order_data.buyer_name,
            buyer_phone=order_data.buyer_phone,
            subtotal=subtotal,
            shipping_amount=order_data.shipping_amount,
            tax_amount=order_data.tax_amount,
            total_amount=total_amount,
            status=OrderStatus.PENDING,
            payment_status=PaymentStatus.UNPAID,
            fulfillment_status=FulfillmentStatus.PENDING,
            notes=order_data.notes
        )
        items = [
            OrderItem(
                position=position,
                product_id=item.product_id or uuid.uuid4(),
                product_name=item.product_name,
                product_sku=item.product_sku,
                quantity=item.quantity,
                unit_price=item.unit_price,
                total_price=item.quantity * item.unit_price
            )
            for position, item in enumerate(order_data.items)
        ]

        self.orders.add(order, items)
        await self.session.commit()

        logger.info(f"Created order {order.id} for seller {seller.id} totalling {total_amount}")
        return order

    async def get_order(self, order_id: uuid.UUID) -> Optional[Order]:
        return await self.orders.get(order_id, with_details=True)
