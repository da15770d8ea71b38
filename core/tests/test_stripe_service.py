import hashlib
import hmac
import json
import time
from datetime import datetime, timezone
from unittest import IsolatedAsyncioTestCase
from unittest.mock import AsyncMock, patch

import httpx

from core.stripe_service import PaymentOutcome, StripeService


def sign(payload: bytes, secret: str, timestamp: int) -> str:
    signature = hmac.new(
        secret.encode(), f"{timestamp}.".encode() + payload, hashlib.sha256
    ).hexdigest()
    return f"t={timestamp},v1={signature}"


def session_event(event_type: str, **session) -> dict:
    obj = {
        "id": "cs_test_abc",
        "object": "checkout.session",
        "mode": "payment",
        "payment_status": "paid",
        "payment_intent": "pi_abc",
        "amount_total": 10000,
        "metadata": {"ticket_id": "4d1c7d3e-0000-4000-8000-000000000001"},
    }
    obj.update(session)
    return {"id": "evt_1", "type": event_type, "data": {"object": obj}}


class TestStripeService(IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.service = StripeService(
            api_key="sk_test_key",
            base_url="https://stripe.test/",
            webhook_secret="whsec_test",
        )

    async def test_create_checkout_session(self):
        request = httpx.Request("POST", "https://stripe.test/v1/checkout/sessions")
        response = httpx.Response(
            200,
            json={
                "id": "cs_test_abc",
                "url": "https://checkout.stripe.com/c/pay/cs_test_abc",
                "expires_at": 1767225600,
            },
            request=request,
        )
        expires_at = datetime(2026, 1, 1, tzinfo=timezone.utc)

        with patch("httpx.AsyncClient.post", new=AsyncMock(return_value=response)) as post:
            session = await self.service.create_checkout_session(
                unit_amount=5000,
                quantity=2,
                currency="ILS",
                product_name="Concert",
                success_url="https://site.test/ok",
                cancel_url="https://site.test/cancel",
                metadata={"ticket_id": "t-1"},
                customer_email="noa@example.com",
                expires_at=expires_at,
            )

        self.assertEqual(session.session_reference, "cs_test_abc")
        self.assertEqual(session.url, "https://checkout.stripe.com/c/pay/cs_test_abc")

        args, kwargs = post.call_args
        self.assertEqual(args[0], "https://stripe.test/v1/checkout/sessions")
        data = kwargs["data"]
        self.assertEqual(data["mode"], "payment")
        self.assertEqual(data["line_items[0][quantity]"], "2")
        self.assertEqual(data["line_items[0][price_data][currency]"], "ils")
        self.assertEqual(data["line_items[0][price_data][unit_amount]"], "5000")
        self.assertEqual(data["metadata[ticket_id]"], "t-1")
        self.assertEqual(data["expires_at"], str(int(expires_at.timestamp())))
        self.assertEqual(kwargs["headers"]["Authorization"], "Bearer sk_test_key")

    async def test_checkout_expiry_is_rounded_up(self):
        request = httpx.Request("POST", "https://stripe.test/v1/checkout/sessions")
        response = httpx.Response(
            200,
            json={"id": "cs_test_abc", "url": "https://checkout.stripe.com/c/pay/cs_test_abc"},
            request=request,
        )
        expires_at = datetime(2026, 1, 1, 0, 30, 0, 250000, tzinfo=timezone.utc)

        with patch("httpx.AsyncClient.post", new=AsyncMock(return_value=response)) as post:
            await self.service.create_checkout_session(
                unit_amount=5000,
                quantity=1,
                currency="ILS",
                product_name="Concert",
                success_url="https://site.test/ok",
                cancel_url="https://site.test/cancel",
                metadata={"ticket_id": "t-1"},
                expires_at=expires_at,
            )

        data = post.call_args.kwargs["data"]
        self.assertEqual(data["expires_at"], str(int(expires_at.timestamp()) + 1))

    async def test_create_checkout_session_error(self):
        request = httpx.Request("POST", "https://stripe.test/v1/checkout/sessions")
        response = httpx.Response(
            400, json={"error": {"message": "bad"}}, request=request
        )
        with patch("httpx.AsyncClient.post", new=AsyncMock(return_value=response)):
            with self.assertRaises(httpx.HTTPStatusError):
                await self.service.create_checkout_session(
                    unit_amount=5000,
                    quantity=1,
                    currency="ILS",
                    product_name="Concert",
                    success_url="https://site.test/ok",
                    cancel_url="https://site.test/cancel",
                    metadata={"ticket_id": "t-1"},
                )

    async def test_verify_webhook_signature(self):
        payload = json.dumps(session_event("checkout.session.completed")).encode()
        now = int(time.time())

        self.assertTrue(
            self.service.verify_webhook_signature(payload, sign(payload, "whsec_test", now))
        )
        self.assertFalse(
            self.service.verify_webhook_signature(payload, sign(payload, "wrong", now))
        )
        self.assertFalse(
            self.service.verify_webhook_signature(
                payload, sign(payload, "whsec_test", now - 3600)
            )
        )
        self.assertFalse(
            self.service.verify_webhook_signature(payload + b" ", sign(payload, "whsec_test", now))
        )
        self.assertFalse(self.service.verify_webhook_signature(payload, "garbage"))

        unconfigured = StripeService(api_key="sk_test_key")
        self.assertFalse(
            unconfigured.verify_webhook_signature(payload, sign(payload, "whsec_test", now))
        )

    async def test_parse_webhook_event(self):
        callback = StripeService.parse_webhook_event(
            session_event("checkout.session.completed")
        )
        self.assertEqual(callback.outcome, PaymentOutcome.SUCCEEDED)
        self.assertEqual(callback.session_reference, "cs_test_abc")
        self.assertEqual(callback.payment_reference, "pi_abc")
        self.assertEqual(callback.amount_total, 10000)

        self.assertIsNone(
            StripeService.parse_webhook_event(
                session_event("checkout.session.completed", payment_status="unpaid")
            )
        )
        self.assertEqual(
            StripeService.parse_webhook_event(
                session_event("checkout.session.async_payment_succeeded")
            ).outcome,
            PaymentOutcome.SUCCEEDED,
        )
        self.assertEqual(
            StripeService.parse_webhook_event(
                session_event("checkout.session.async_payment_failed")
            ).outcome,
            PaymentOutcome.FAILED,
        )
        self.assertEqual(
            StripeService.parse_webhook_event(
                session_event("checkout.session.expired", payment_status="unpaid")
            ).outcome,
            PaymentOutcome.EXPIRED,
        )
        self.assertIsNone(
            StripeService.parse_webhook_event(session_event("checkout.session.completed", metadata={}))
        )
        self.assertIsNone(
            StripeService.parse_webhook_event(
                session_event("checkout.session.completed", mode="subscription")
            )
        )
        self.assertIsNone(
            StripeService.parse_webhook_event(session_event("payment_intent.succeeded"))
        )

    async def test_parse_malformed_event(self):
        self.assertIsNone(StripeService.parse_webhook_event({"type": "checkout.session.completed"}))
        self.assertIsNone(
            StripeService.parse_webhook_event(
                {"type": "checkout.session.completed", "data": []}
            )
        )
        self.assertIsNone(
            StripeService.parse_webhook_event(
                {"type": "checkout.session.completed", "data": {"object": "cs_test_abc"}}
            )
        )
        self.assertIsNone(
            StripeService.parse_webhook_event(
                session_event("checkout.session.completed", metadata=["ticket_id"])
            )
        )
