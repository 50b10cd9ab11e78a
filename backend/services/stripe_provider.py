"""
Payment provider client.

`PaymentProvider` is the narrow surface the payment service depends on;
`StripePaymentProvider` implements it with the Stripe SDK. The SDK is
synchronous, so every network call is pushed to the thread pool.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Optional
from fastapi.concurrency import run_in_threadpool
import json
import logging
import stripe

logger = logging.getLogger(__name__)

# Intent states from which the buyer can no longer complete a payment
TERMINAL_INTENT_STATUSES = {"canceled", "succeeded"}


class PaymentProviderError(Exception):
    """Raised when the payment provider rejects or fails a call."""


class WebhookVerificationError(Exception):
    """Raised when a webhook payload cannot be authenticated or parsed."""


@dataclass
class PaymentIntentHandle:
    id: str
    client_secret: Optional[str]
    status: str

    @property
    def is_reusable(self) -> bool:
        return self.status not in TERMINAL_INTENT_STATUSES


@dataclass
class AccountStatusSnapshot:
    id: str
    charges_enabled: bool
    details_submitted: bool

    def as_dict(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "charges_enabled": self.charges_enabled,
            "details_submitted": self.details_submitted,
        }


class PaymentProvider(ABC):
    webhook_secret: Optional[str] = None

    @abstractmethod
    async def create_account(self) -> str:
        """Create a connected account and return its id."""

    @abstractmethod
    async def create_account_link(self, account_id: str, refresh_url: str, return_url: str) -> str:
        """Return a hosted onboarding URL for the account."""

    @abstractmethod
    async def get_account_status(self, account_id: str) -> AccountStatusSnapshot:
        ...

    @abstractmethod
    async def create_payment_intent(
        self,
        *,
        amount: int,
        currency: str,
        destination_account_id: str,
        application_fee_amount: int,
        metadata: Dict[str, str],
        idempotency_key: str,
    ) -> PaymentIntentHandle:
        ...

    @abstractmethod
    async def retrieve_payment_intent(self, payment_intent_id: str) -> PaymentIntentHandle:
        ...

    @abstractmethod
    async def create_login_link(self, account_id: str) -> str:
        """Return a short-lived Express dashboard URL."""

    @abstractmethod
    def construct_event(self, payload: bytes, signature: str) -> dict:
        """Verify a webhook delivery and return the decoded event."""


class StripePaymentProvider(PaymentProvider):

    def __init__(
        self,
        api_key: str,
        webhook_secret: Optional[str] = None,
        api_version: Optional[str] = None,
        webhook_tolerance: int = stripe.Webhook.DEFAULT_TOLERANCE,
    ):
        self.api_key = api_key
        self.webhook_secret = webhook_secret
        self.api_version = api_version
        self.webhook_tolerance = webhook_tolerance

    def _request_options(self) -> dict:
        options = {"api_key": self.api_key}
        if self.api_version:
            options["stripe_version"] = self.api_version
        return options

    async def _call(self, operation: str, func, *args, **kwargs):
        try:
            return await run_in_threadpool(func, *args, **kwargs)
        except stripe.StripeError as e:
            logger.error(f"Stripe {operation} failed: {e}")
            raise PaymentProviderError(f"Stripe {operation} failed") from e

    async def create_account(self) -> str:
        account = await self._call(
            "account creation",
            stripe.Account.create,
            type="express",
            capabilities={
                "card_payments": {"requested": True},
                "transfers": {"requested": True},
            },
            **self._request_options()
        )
        logger.info(f"Created Stripe connected account {account.id}")
        return account.id

    async def create_account_link(self, account_id: str, refresh_url: str, return_url: str) -> str:
        account_link = await self._call(
            "account link creation",
            stripe.AccountLink.create,
            account=account_id,
            refresh_url=refresh_url,
            return_url=return_url,
            type="account_onboarding",
            **self._request_options()
        )
        if not account_link.url:
            raise PaymentProviderError("Stripe did not return an onboarding URL")
        return account_link.url

    async def get_account_status(self, account_id: str) -> AccountStatusSnapshot:
        account = await self._call(
            "account retrieval",
            stripe.Account.retrieve,
            account_id,
            **self._request_options()
        )
        return AccountStatusSnapshot(
            id=account.id,
            charges_enabled=bool(account.charges_enabled),
            details_submitted=bool(account.details_submitted),
        )

    async def create_payment_intent(
        self,
        *,
        amount: int,
        currency: str,
        destination_account_id: str,
        application_fee_amount: int,
        metadata: Dict[str, str],
        idempotency_key: str,
    ) -> PaymentIntentHandle:
        intent = await self._call(
            "payment intent creation",
            stripe.PaymentIntent.create,
            amount=amount,
            currency=currency,
            application_fee_amount=application_fee_amount,
            transfer_data={"destination": destination_account_id},
            metadata=metadata,
            automatic_payment_methods={"enabled": True},
            idempotency_key=idempotency_key,
            **self._request_options()
        )
        return PaymentIntentHandle(id=intent.id, client_secret=intent.client_secret, status=intent.status)

    async def retrieve_payment_intent(self, payment_intent_id: str) -> PaymentIntentHandle:
        intent = await self._call(
            "payment intent retrieval",
            stripe.PaymentIntent.retrieve,
            payment_intent_id,
            **self._request_options()
        )
        return PaymentIntentHandle(id=intent.id, client_secret=intent.client_secret, status=intent.status)

    async def create_login_link(self, account_id: str) -> str:
        login_link = await self._call(
            "login link creation",
            stripe.Account.create_login_link,
            account_id,
            **self._request_options()
        )
        if not login_link.url:
            raise PaymentProviderError("Stripe did not return a login link URL")
        return login_link.url

    def construct_event(self, payload: bytes, signature: str) -> dict:
        if not self.webhook_secret:
            raise WebhookVerificationError("Webhook secret is not configured")

        try:
            body = payload.decode("utf-8") if isinstance(payload, bytes) else payload
            stripe.WebhookSignature.verify_header(body, signature, self.webhook_secret, self.webhook_tolerance)
            event = json.loads(body)
        except (stripe.SignatureVerificationError, ValueError) as e:
            raise WebhookVerificationError(str(e)) from e

        if not isinstance(event, dict) or "type" not in event:
            raise WebhookVerificationError("Webhook payload is not an event")
        return event
