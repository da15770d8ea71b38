from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
import hashlib
import hmac
import math
import time
import traceback
import httpx
from typing import Dict, Any, Optional

from core.log import logger


class PaymentOutcome(StrEnum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    EXPIRED = "expired"


@dataclass(frozen=True)
class CheckoutSession:
    url: str
    session_reference: str
    expires_at: Optional[int] = None


@dataclass(frozen=True)
class PaymentCallback:
    session_reference: str
    outcome: PaymentOutcome
    ticket_id: Optional[str] = None
    payment_reference: Optional[str] = None
    amount_total: Optional[int] = None


class StripeService:
    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.stripe.com",
        webhook_secret: Optional[str] = None,
        webhook_tolerance: int = 300,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.webhook_secret = webhook_secret
        self.webhook_tolerance = webhook_tolerance
        self.headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/x-www-form-urlencoded",
        }

    async def create_checkout_session(
        self,
        unit_amount: int,
        quantity: int,
        currency: str,
        product_name: str,
        success_url: str,
        cancel_url: str,
        metadata: Dict[str, str],
        customer_email: Optional[str] = None,
        description: Optional[str] = None,
        expires_at: Optional[datetime] = None,
    ) -> CheckoutSession:
        """
        Create a one-time payment checkout session on Stripe.

        Args:
            unit_amount: Price of one seat in minor currency units
            quantity: Number of seats
            currency: ISO currency code
            product_name: Line item name shown on the checkout page
            success_url: Redirect after a successful payment
            cancel_url: Redirect when the purchaser abandons the checkout
            metadata: Attached to the session and echoed back in webhooks,
                must contain ``ticket_id``
            customer_email: Prefill for the checkout form (optional)
            description: Line item description (optional)
            expires_at: When Stripe should expire the session (optional)

        Returns:
            CheckoutSession with the hosted checkout url and the session id

        Raises:
            httpx.HTTPError: If the request fails
        """
        endpoint = f"{self.base_url}/v1/checkout/sessions"

        payload = {
            "mode": "payment",
            "success_url": success_url,
            "cancel_url": cancel_url,
            "line_items[0][quantity]": str(quantity),
            "line_items[0][price_data][currency]": currency.lower(),
            "line_items[0][price_data][unit_amount]": str(unit_amount),
            "line_items[0][price_data][product_data][name]": product_name,
        }
        if description:
            payload["line_items[0][price_data][product_data][description]"] = (
                description
            )
        if customer_email:
            payload["customer_email"] = customer_email
        if expires_at is not None:
            payload["expires_at"] = str(math.ceil(expires_at.timestamp()))
        for key, value in metadata.items():
            payload[f"metadata[{key}]"] = str(value)

        try:
            async with httpx.AsyncClient() as client:
                response = await client.post(
                    endpoint,
                    data=payload,
                    headers=self.headers,
                    timeout=30.0,
                )
                response.raise_for_status()
                result = response.json()
                logger.info(
                    f"Checkout session {result.get('id')} created for ticket {metadata.get('ticket_id')}"
                )
                return CheckoutSession(
                    url=result["url"],
                    session_reference=result["id"],
                    expires_at=result.get("expires_at"),
                )
        except httpx.HTTPStatusError as e:
            logger.error(
                f"Stripe API returned error {e.response.status_code}: {e.response.text}"
            )
            logger.debug(f"Request URL: {e.request.url}")
            raise
        except httpx.RequestError as e:
            logger.error(f"Request to Stripe failed: {e}")
            raise
        except Exception as e:
            logger.error(f"Unexpected error during checkout creation: {repr(e)}")
            logger.debug(traceback.format_exc())
            raise

    async def expire_checkout_session(self, session_reference: str) -> Dict[str, Any]:
        """
        Expire an open checkout session so it can no longer be paid.

        Args:
            session_reference: Checkout session id

        Returns:
            The session object returned by Stripe

        Raises:
            httpx.HTTPError: If the request fails
        """
        endpoint = f"{self.base_url}/v1/checkout/sessions/{session_reference}/expire"

        try:
            async with httpx.AsyncClient() as client:
                response = await client.post(
                    endpoint,
                    headers=self.headers,
                    timeout=30.0,
                )
                response.raise_for_status()
                result = response.json()
                logger.info(f"Checkout session {session_reference} expired on Stripe")
                return result
        except httpx.HTTPStatusError as e:
            logger.error(
                f"Stripe API returned error {e.response.status_code}: {e.response.text}"
            )
            raise
        except httpx.RequestError as e:
            logger.error(f"Request to Stripe failed: {e}")
            raise

    def verify_webhook_signature(self, payload: bytes, signature: str) -> bool:
        """
        Verify the Stripe-Signature header of a webhook delivery.

        Args:
            payload: Raw request body
            signature: Value of the Stripe-Signature header

        Returns:
            True if signature is valid, False otherwise
        """
        if not self.webhook_secret:
            logger.error("Stripe webhook secret not configured, rejecting webhook")
            return False

        # Format: t=timestamp,v1=signature1,v1=signature2,...
        ts = None
        signatures = []
        for part in signature.split(","):
            key, _, value = part.strip().partition("=")
            if key == "t":
                ts = value
            elif key == "v1":
                signatures.append(value)

        if not ts or not signatures:
            logger.error("Invalid signature format")
            return False

        try:
            timestamp = int(ts)
        except ValueError:
            logger.error("Invalid signature timestamp")
            return False

        # prevent replay attacks
        if abs(int(time.time()) - timestamp) > self.webhook_tolerance:
            logger.error("Webhook timestamp too old")
            return False

        signed_payload = f"{ts}.".encode() + payload
        expected_signature = hmac.new(
            self.webhook_secret.encode(),
            signed_payload,
            hashlib.sha256,
        ).hexdigest()

        for sig in signatures:
            if hmac.compare_digest(expected_signature, sig):
                return True

        logger.error("Webhook signature mismatch")
        return False

    @staticmethod
    def parse_webhook_event(event: Dict[str, Any]) -> Optional[PaymentCallback]:
        """
        Map a Stripe event onto the outcome of a ticket checkout.

        Returns None for events that say nothing final about a ticket payment:
        other event types, sessions without a ticket id, and completed sessions
        whose payment is still processing.
        """
        event_type = event.get("type")
        data = event.get("data")
        session = data.get("object") if isinstance(data, dict) else None
        if not isinstance(session, dict):
            return None
        metadata = session.get("metadata")
        if not isinstance(metadata, dict):
            return None

        if session.get("object") != "checkout.session" or session.get("mode") not in (
            None,
            "payment",
        ):
            return None
        if not session.get("id") or not metadata.get("ticket_id"):
            return None

        if event_type == "checkout.session.completed":
            if session.get("payment_status") not in ("paid", "no_payment_required"):
                return None
            outcome = PaymentOutcome.SUCCEEDED
        elif event_type == "checkout.session.async_payment_succeeded":
            outcome = PaymentOutcome.SUCCEEDED
        elif event_type == "checkout.session.async_payment_failed":
            outcome = PaymentOutcome.FAILED
        elif event_type == "checkout.session.expired":
            outcome = PaymentOutcome.EXPIRED
        else:
            return None

        return PaymentCallback(
            session_reference=session["id"],
            outcome=outcome,
            ticket_id=metadata.get("ticket_id"),
            payment_reference=session.get("payment_intent"),
            amount_total=session.get("amount_total"),
        )
