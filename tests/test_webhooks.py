import uuid
from sqlalchemy import select

from conftest import sign_payload, stripe_event
from models import Order, Seller, Transaction, AccountStatus, OrderStatus, PaymentStatus, TransactionStatus


async def _order_with_intent(client, create_order, onboard_seller):
    order_id = await create_order()
    await onboard_seller()
    intent = (await client.post("/api/payments/create-intent", json={"orderId": order_id})).json()
    return order_id, intent["paymentIntentId"]


async def _deliver(client, payload, signature=None):
    return await client.post(
        "/api/webhooks/stripe",
        content=payload,
        headers={"stripe-signature": signature or sign_payload(payload), "content-type": "application/json"},
    )


async def _state(session_factory, order_id, intent_id):
    async with session_factory() as session:
        order = (await session.execute(select(Order).where(Order.id == uuid.UUID(order_id)))).scalar_one()
        transaction = (await session.execute(
            select(Transaction).where(Transaction.stripe_payment_intent_id == intent_id)
        )).scalar_one()
        return order, transaction


async def test_payment_succeeded_marks_order_paid(client, create_order, onboard_seller, session_factory):
    order_id, intent_id = await _order_with_intent(client, create_order, onboard_seller)
    payload = stripe_event("payment_intent.succeeded", {"id": intent_id, "metadata": {"orderId": order_id}})

    response = await _deliver(client, payload)

    assert response.status_code == 200
    assert response.json() == {"received": True}
    order, transaction = await _state(session_factory, order_id, intent_id)
    assert transaction.status == TransactionStatus.SUCCEEDED
    assert order.status == OrderStatus.PAID
    assert order.payment_status == PaymentStatus.PAID


async def test_replayed_success_is_a_no_op(client, create_order, onboard_seller, session_factory):
    order_id, intent_id = await _order_with_intent(client, create_order, onboard_seller)
    payload = stripe_event("payment_intent.succeeded", {"id": intent_id, "metadata": {"orderId": order_id}})

    first = await _deliver(client, payload)
    second = await _deliver(client, payload)

    assert first.status_code == second.status_code == 200
    order, transaction = await _state(session_factory, order_id, intent_id)
    assert order.payment_status == PaymentStatus.PAID
    assert transaction.status == TransactionStatus.SUCCEEDED


async def test_paid_order_cannot_get_a_new_intent(client, create_order, onboard_seller):
    order_id, intent_id = await _order_with_intent(client, create_order, onboard_seller)
    await _deliver(client, stripe_event("payment_intent.succeeded", {"id": intent_id, "metadata": {"orderId": order_id}}))

    response = await client.post("/api/payments/create-intent", json={"orderId": order_id})

    assert response.status_code == 400
    assert response.json()["detail"] == "Order already paid"


async def test_invalid_signature_changes_nothing(client, create_order, onboard_seller, session_factory):
    order_id, intent_id = await _order_with_intent(client, create_order, onboard_seller)
    payload = stripe_event("payment_intent.succeeded", {"id": intent_id, "metadata": {"orderId": order_id}})

    response = await _deliver(client, payload, signature=sign_payload(payload, secret="whsec_forged"))

    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid signature"
    order, transaction = await _state(session_factory, order_id, intent_id)
    assert transaction.status == TransactionStatus.PENDING
    assert order.payment_status == PaymentStatus.UNPAID


async def test_tampered_payload_is_rejected(client, create_order, onboard_seller, session_factory):
    order_id, intent_id = await _order_with_intent(client, create_order, onboard_seller)
    signed = stripe_event("payment_intent.payment_failed", {"id": intent_id, "metadata": {"orderId": order_id}})
    forged = stripe_event("payment_intent.succeeded", {"id": intent_id, "metadata": {"orderId": order_id}})

    response = await _deliver(client, forged, signature=sign_payload(signed))

    assert response.status_code == 400
    order, _ = await _state(session_factory, order_id, intent_id)
    assert order.payment_status == PaymentStatus.UNPAID


async def test_stale_signature_is_rejected(client):
    payload = stripe_event("payment_intent.succeeded", {"id": "pi_old", "metadata": {}})

    response = await _deliver(client, payload, signature=sign_payload(payload, timestamp=1_000_000_000))

    assert response.status_code == 400


async def test_non_utf8_body_is_rejected(client):
    payload = b'{"type": "payment_intent.succeeded", "x": "\xff\xfe"}'

    response = await _deliver(client, payload, signature="t=1,v1=deadbeef")

    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid signature"


async def test_missing_signature_header(client):
    response = await client.post("/api/webhooks/stripe", content=stripe_event("ping", {}))

    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid webhook configuration"


async def test_payment_failed_marks_transaction_only(client, create_order, onboard_seller, session_factory):
    order_id, intent_id = await _order_with_intent(client, create_order, onboard_seller)

    response = await _deliver(client, stripe_event(
        "payment_intent.payment_failed", {"id": intent_id, "metadata": {"orderId": order_id}}
    ))

    assert response.status_code == 200
    order, transaction = await _state(session_factory, order_id, intent_id)
    assert transaction.status == TransactionStatus.FAILED
    assert order.payment_status == PaymentStatus.UNPAID
    assert order.status == OrderStatus.PENDING


async def test_late_failure_does_not_undo_success(client, create_order, onboard_seller, session_factory):
    order_id, intent_id = await _order_with_intent(client, create_order, onboard_seller)
    intent = {"id": intent_id, "metadata": {"orderId": order_id}}

    await _deliver(client, stripe_event("payment_intent.succeeded", intent))
    await _deliver(client, stripe_event("payment_intent.payment_failed", intent))

    order, transaction = await _state(session_factory, order_id, intent_id)
    assert transaction.status == TransactionStatus.SUCCEEDED
    assert order.payment_status == PaymentStatus.PAID


async def test_account_updated_sets_seller_status(client, create_order, onboard_seller, session_factory):
    await create_order()
    account_id = await onboard_seller(account_id="acct_webhook")

    await _deliver(client, stripe_event("account.updated", {"id": account_id, "charges_enabled": False}))
    async with session_factory() as session:
        seller = (await session.execute(select(Seller))).scalar_one()
        assert seller.stripe_account_status == AccountStatus.RESTRICTED

    await _deliver(client, stripe_event("account.updated", {"id": account_id, "charges_enabled": True}))
    async with session_factory() as session:
        seller = (await session.execute(select(Seller))).scalar_one()
        assert seller.stripe_account_status == AccountStatus.ENABLED


async def test_unhandled_event_is_acknowledged(client):
    response = await _deliver(client, stripe_event("charge.refunded", {"id": "ch_123"}))

    assert response.status_code == 200
    assert response.json() == {"received": True}


async def test_success_without_order_metadata_only_touches_transaction(client, create_order, onboard_seller, session_factory):
    order_id, intent_id = await _order_with_intent(client, create_order, onboard_seller)

    response = await _deliver(client, stripe_event("payment_intent.succeeded", {"id": intent_id, "metadata": {}}))

    assert response.status_code == 200
    order, transaction = await _state(session_factory, order_id, intent_id)
    assert transaction.status == TransactionStatus.SUCCEEDED
    assert order.payment_status == PaymentStatus.UNPAID


async def test_processing_failure_returns_server_error(client, monkeypatch):
    from services.payment_service import PaymentService

    async def broken_handle_event(self, event):
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(PaymentService, "handle_event", broken_handle_event)

    response = await _deliver(client, stripe_event("payment_intent.succeeded", {"id": "pi_1", "metadata": {}}))

    assert response.status_code == 500
    assert response.json()["detail"] == "Webhook processing failed"
