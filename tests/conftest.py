import hashlib
import hmac
import json
import time
import uuid
import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from config import get_db, get_payment_provider, init_db
from main import app
from models import Seller, AccountStatus
from services.stripe_provider import (
    StripePaymentProvider, PaymentIntentHandle, AccountStatusSnapshot, PaymentProviderError
)

WEBHOOK_SECRET = "whsec_test_secret"


class FakeStripeProvider(StripePaymentProvider):
    """Stripe stand-in that records calls; webhook signature checks stay real."""

    def __init__(self):
        super().__init__(api_key="sk_test_fake", webhook_secret=WEBHOOK_SECRET)
        self.calls = []
        self.accounts = {}
        self.intents = {}
        self.intents_by_key = {}
        self.failing = set()

    def _record(self, operation, **kwargs):
        self.calls.append((operation, kwargs))
        if operation in self.failing:
            raise PaymentProviderError(f"Stripe {operation} failed")

    def count(self, operation):
        return sum(1 for name, _ in self.calls if name == operation)

    def last_call(self, operation):
        return [kwargs for name, kwargs in self.calls if name == operation][-1]

    async def create_account(self):
        self._record("create_account")
        account_id = f"acct_{uuid.uuid4().hex[:16]}"
        self.accounts[account_id] = AccountStatusSnapshot(account_id, False, False)
        return account_id

    async def create_account_link(self, account_id, refresh_url, return_url):
        self._record("create_account_link", account_id=account_id, refresh_url=refresh_url, return_url=return_url)
        return f"https://connect.stripe.com/setup/e/{account_id}"

    async def get_account_status(self, account_id):
        self._record("get_account_status", account_id=account_id)
        return self.accounts.get(account_id, AccountStatusSnapshot(account_id, False, False))

    async def create_payment_intent(self, *, amount, currency, destination_account_id,
                                    application_fee_amount, metadata, idempotency_key):
        self._record(
            "create_payment_intent",
            amount=amount,
            currency=currency,
            destination_account_id=destination_account_id,
            application_fee_amount=application_fee_amount,
            metadata=metadata,
            idempotency_key=idempotency_key,
        )
        # Same key, same intent: what Stripe does for idempotent retries
        if idempotency_key in self.intents_by_key:
            return self.intents_by_key[idempotency_key]

        intent_id = f"pi_{uuid.uuid4().hex[:24]}"
        intent = PaymentIntentHandle(intent_id, f"{intent_id}_secret_test", "requires_payment_method")
        self.intents[intent_id] = intent
        self.intents_by_key[idempotency_key] = intent
        return intent

    async def retrieve_payment_intent(self, payment_intent_id):
        self._record("retrieve_payment_intent", payment_intent_id=payment_intent_id)
        if payment_intent_id not in self.intents:
            raise PaymentProviderError("No such payment_intent")
        return self.intents[payment_intent_id]

    async def create_login_link(self, account_id):
        self._record("create_login_link", account_id=account_id)
        return f"https://connect.stripe.com/express/{account_id}/login"


def sign_payload(payload: str, secret: str = WEBHOOK_SECRET, timestamp: int = None) -> str:
    """Stripe-Signature header value for a payload"""
    timestamp = timestamp or int(time.time())
    signature = hmac.new(
        secret.encode("utf-8"),
        f"{timestamp}.{payload}".encode("utf-8"),
        hashlib.sha256
    ).hexdigest()
    return f"t={timestamp},v1={signature}"


def stripe_event(event_type: str, data_object: dict) -> str:
    return json.dumps({
        "id": f"evt_{uuid.uuid4().hex[:24]}",
        "object": "event",
        "type": event_type,
        "data": {"object": data_object},
    })


def order_payload(**overrides) -> dict:
    payload = {
        "sellerEmail": "seller@example.com",
        "buyerEmail": "buyer@example.com",
        "buyerName": "Ada Buyer",
        "items": [
            {"productName": "Vintage jacket", "productSku": "VJ-01", "quantity": 2, "unitPrice": 500}
        ],
        "shippingAmount": 300,
        "taxAmount": 50,
    }
    payload.update(overrides)
    return payload


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def provider():
    return FakeStripeProvider()


@pytest.fixture
async def client(session_factory, provider):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payment_provider] = lambda: provider

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def create_order(client):
    async def _create_order(**overrides) -> str:
        response = await client.post("/api/orders", json=order_payload(**overrides))
        assert response.status_code == 201, response.text
        return response.json()["order"]["id"]

    return _create_order


@pytest.fixture
def onboard_seller(session_factory):
    """Give the seller behind an email a connected account that finished onboarding"""
    async def _onboard_seller(email: str = "seller@example.com", account_id: str = "acct_ready") -> str:
        async with session_factory() as session:
            await session.execute(
                update(Seller)
                .where(Seller.email == email)
                .values(
                    stripe_account_id=account_id,
                    stripe_onboarding_completed=True,
                    stripe_account_status=AccountStatus.ENABLED,
                )
            )
            await session.commit()
        return account_id

    return _onboard_seller
