from pydantic import EmailStr, Field
from typing import Optional
from datetime import datetime
from uuid import UUID
from models import AccountStatus
from utils.response_helpers import CamelModel, StrictCamelModel


class SellerCreate(StrictCamelModel):
    email: EmailStr
    business_name: Optional[str] = Field(None, max_length=255)


class SellerResponse(CamelModel):
    id: UUID
    email: str
    business_name: Optional[str] = None
    stripe_account_id: Optional[str] = None
    stripe_onboarding_completed: bool
    stripe_account_status: AccountStatus
    created_at: datetime
    updated_at: datetime
