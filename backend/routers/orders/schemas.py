from pydantic import EmailStr, Field
from typing import Optional, List
from datetime import datetime
from uuid import UUID
from models import OrderStatus, PaymentStatus, FulfillmentStatus, AccountStatus, TransactionStatus
from utils.response_helpers import CamelModel, StrictCamelModel


class OrderItemCreate(StrictCamelModel):
    product_id: Optional[UUID] = None
    product_name: str = Field(min_length=1, max_length=255)
    product_sku: Optional[str] = Field(None, max_length=100)
    quantity: int = Field(gt=0, strict=True)
    unit_price: int = Field(gt=0, strict=True, description="Unit price in minor currency units")


class OrderCreate(StrictCamelModel):
    seller_email: EmailStr
    buyer_email: EmailStr
    buyer_name: Optional[str] = Field(None, max_length=255)
    buyer_phone: Optional[str] = Field(None, max_length=50)
    items: List[OrderItemCreate] = Field(min_length=1)
    shipping_amount: int = Field(default=0, ge=0, strict=True)
    tax_amount: int = Field(default=0, ge=0, strict=True)
    notes: Optional[str] = None


class OrderSummary(CamelModel):
    id: UUID
    total_amount: int
    status: OrderStatus


class OrderCreateResponse(CamelModel):
    success: bool = True
    order: OrderSummary


class OrderItemResponse(CamelModel):
    id: UUID
    product_id: UUID
    product_name: str
    product_sku: Optional[str] = None
    quantity: int
    unit_price: int
    total_price: int


class OrderSellerResponse(CamelModel):
    id: UUID
    email: str
    business_name: Optional[str] = None
    stripe_account_id: Optional[str] = None
    stripe_onboarding_completed: bool
    stripe_account_status: AccountStatus


class OrderTransactionResponse(CamelModel):
    id: UUID
    stripe_payment_intent_id: str
    amount_total: int
    application_fee_amount: int
    seller_transfer_amount: int
    currency: str
    status: TransactionStatus
    created_at: datetime
    updated_at: datetime


class OrderResponse(CamelModel):
    id: UUID
    seller_id: UUID
    buyer_email: str
    buyer_name: Optional[str] = None
    buyer_phone: Optional[str] = None
    subtotal: int
    shipping_amount: int
    tax_amount: int
    total_amount: int
    status: OrderStatus
    payment_status: PaymentStatus
    fulfillment_status: FulfillmentStatus
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    items: List[OrderItemResponse]
    seller: OrderSellerResponse
    transactions: List[OrderTransactionResponse]


class OrderDetailResponse(CamelModel):
    success: bool = True
    order: OrderResponse
