from sqlalchemy import (
    Boolean,
    String,
    Text,
    DateTime,
    CheckConstraint,
    Enum as SAEnum,
    Index,
    Integer,
    ForeignKey,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship, declarative_base
from typing import Optional, List
from datetime import datetime
from enum import Enum
import uuid

Base = declarative_base()


class AccountStatus(str, Enum):
    PENDING = "pending"
    RESTRICTED = "restricted"
    ENABLED = "enabled"


class OrderStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"


class PaymentStatus(str, Enum):
    UNPAID = "unpaid"
    PAID = "paid"


class FulfillmentStatus(str, Enum):
    PENDING = "pending"
    FULFILLED = "fulfilled"


class TransactionStatus(str, Enum):
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


def status_column(enum_class):
    """Closed enum persisted by value; unknown values are rejected before hitting the database."""
    return SAEnum(
        enum_class,
        native_enum=False,
        validate_strings=True,
        length=20,
        values_callable=lambda members: [member.value for member in members],
    )


class Seller(Base):
    """
    A seller with a Stripe connected account (Express) receiving order payouts
    """
    __tablename__ = "sellers"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    business_name: Mapped[Optional[str]] = mapped_column(String(255))

    # Stripe Connect
    stripe_account_id: Mapped[Optional[str]] = mapped_column(String(100), unique=True)
    stripe_onboarding_completed: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        server_default=text("false"),
        nullable=False
    )
    stripe_account_status: Mapped[AccountStatus] = mapped_column(
        status_column(AccountStatus),
        default=AccountStatus.PENDING,
        server_default=AccountStatus.PENDING.value,
        nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(True),
        server_default=text("CURRENT_TIMESTAMP"),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(True),
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=text("CURRENT_TIMESTAMP"),
        nullable=False
    )

    orders: Mapped[List["Order"]] = relationship("Order", back_populates="seller")
    transactions: Mapped[List["Transaction"]] = relationship("Transaction", back_populates="seller")


class Order(Base):
    """
    Orders generated for a buyer, paid through a destination charge to the seller
    """
    __tablename__ = "orders"
    __table_args__ = (
        CheckConstraint("subtotal >= 0", name="subtotal_non_negative_check"),
        CheckConstraint("shipping_amount >= 0", name="shipping_amount_non_negative_check"),
        CheckConstraint("tax_amount >= 0", name="tax_amount_non_negative_check"),
        CheckConstraint("total_amount > 0", name="total_amount_positive_check"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    seller_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("sellers.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )

    # Buyer contact
    buyer_email: Mapped[str] = mapped_column(String(255), nullable=False)
    buyer_name: Mapped[Optional[str]] = mapped_column(String(255))
    buyer_phone: Mapped[Optional[str]] = mapped_column(String(50))

    # Amounts in minor currency units
    subtotal: Mapped[int] = mapped_column(Integer, nullable=False)
    shipping_amount: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    tax_amount: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_amount: Mapped[int] = mapped_column(Integer, nullable=False)

    status: Mapped[OrderStatus] = mapped_column(
        status_column(OrderStatus), default=OrderStatus.PENDING, nullable=False
    )
    payment_status: Mapped[PaymentStatus] = mapped_column(
        status_column(PaymentStatus), default=PaymentStatus.UNPAID, nullable=False
    )
    fulfillment_status: Mapped[FulfillmentStatus] = mapped_column(
        status_column(FulfillmentStatus), default=FulfillmentStatus.PENDING, nullable=False
    )

    notes: Mapped[Optional[str]] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(True),
        server_default=text("CURRENT_TIMESTAMP"),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(True),
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=text("CURRENT_TIMESTAMP"),
        nullable=False
    )

    seller: Mapped["Seller"] = relationship("Seller", back_populates="orders")
    items: Mapped[List["OrderItem"]] = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.position"
    )
    transactions: Mapped[List["Transaction"]] = relationship(
        "Transaction",
        back_populates="order",
        order_by="Transaction.created_at"
    )


class OrderItem(Base):
    """
    Line items of an order; created with the order and never edited on their own
    """
    __tablename__ = "order_items"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="quantity_positive_check"),
        CheckConstraint("unit_price > 0", name="unit_price_positive_check"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    product_id: Mapped[uuid.UUID] = mapped_column(Uuid, default=uuid.uuid4, nullable=False)
    product_name: Mapped[str] = mapped_column(String(255), nullable=False)
    product_sku: Mapped[Optional[str]] = mapped_column(String(100))

    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[int] = mapped_column(Integer, nullable=False)
    total_price: Mapped[int] = mapped_column(Integer, nullable=False)

    order: Mapped["Order"] = relationship("Order", back_populates="items")


class Transaction(Base):
    """
    One Stripe payment intent attempt for an order
    """
    __tablename__ = "transactions"
    __table_args__ = (
        CheckConstraint("application_fee_amount >= 0", name="application_fee_non_negative_check"),
        Index("transactions_order_id_status_idx", "order_id", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    seller_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("sellers.id", ondelete="RESTRICT"),
        nullable=False
    )
    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False
    )

    stripe_payment_intent_id: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)

    amount_total: Mapped[int] = mapped_column(Integer, nullable=False)
    application_fee_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    seller_transfer_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(10), default="usd", nullable=False)
    buyer_email: Mapped[str] = mapped_column(String(255), nullable=False)

    status: Mapped[TransactionStatus] = mapped_column(
        status_column(TransactionStatus), default=TransactionStatus.PENDING, nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(True),
        server_default=text("CURRENT_TIMESTAMP"),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(True),
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=text("CURRENT_TIMESTAMP"),
        nullable=False
    )

    seller: Mapped["Seller"] = relationship("Seller", back_populates="transactions")
    order: Mapped["Order"] = relationship("Order", back_populates="transactions")
