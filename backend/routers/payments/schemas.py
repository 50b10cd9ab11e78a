from pydantic import AnyHttpUrl, Field
from typing import Optional
from uuid import UUID
from utils.response_helpers import CamelModel, StrictCamelModel


class OnboardSellerRequest(StrictCamelModel):
    seller_id: UUID
    refresh_url: AnyHttpUrl = Field(description="Where Stripe sends the seller if the link expires")
    return_url: AnyHttpUrl = Field(description="Where Stripe sends the seller after onboarding")


class OnboardSellerResponse(CamelModel):
    success: bool = True
    url: str
    account_id: str


class AccountStatusResponse(CamelModel):
    success: bool = True
    status: dict


class CreatePaymentIntentRequest(StrictCamelModel):
    order_id: UUID


class PaymentIntentResponse(CamelModel):
    success: bool = True
    client_secret: Optional[str] = None
    payment_intent_id: str


class LoginLinkRequest(StrictCamelModel):
    seller_id: UUID


class LoginLinkResponse(CamelModel):
    success: bool = True
    url: str
