"""Mock gateway adapter - For development and testing."""

import hashlib
import hmac
import json
import secrets
import time
from decimal import Decimal
from typing import Any
from urllib.parse import urlencode

from membership_checkout.features.orders.domain.enums import PaymentProvider
from membership_checkout.features.payments.application.ports import (
    CheckoutSessionRequest,
    CheckoutSessionResult,
    GatewayEvent,
    GatewayEventKind,
    GatewaySession,
    PaymentGatewayPort,
    RefundResult,
)
from membership_checkout.shared.core.settings import Settings, get_settings
from membership_checkout.shared.domain.exceptions import (
    GatewaySessionError,
    WebhookVerificationError,
)

MOCK_EVENT_KINDS = {
    "payment.succeeded": GatewayEventKind.SUCCEEDED,
    "payment.failed": GatewayEventKind.FAILED,
}


class MockGatewayAdapter(PaymentGatewayPort):
    """
    Mock payment gateway for development and testing.

    Simulates hosted checkout without external API calls. Webhooks can be
    triggered manually via the /api/webhooks/mock endpoint.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()
        self._sessions: dict[str, dict[str, Any]] = {}

    @property
    def provider(self) -> PaymentProvider:
        return PaymentProvider.MOCK

    async def create_checkout_session(
        self, request: CheckoutSessionRequest
    ) -> CheckoutSessionResult:
        """Create a mock session with a fake checkout URL."""
        session_id = f"mock_cs_{secrets.token_hex(12)}"
        total = sum(
            (item.unit_amount * item.quantity for item in request.line_items),
            Decimal("0"),
        )
        currency = request.line_items[0].currency if request.line_items else ""

        query = urlencode({"session_id": session_id, "amount": str(total), "currency": currency})
        checkout_url = f"{self._settings.app_base_url}/payment/mock-checkout?{query}"

        self._sessions[session_id] = {
            "status": "open",
            "payment_status": "unpaid",
            "amount": str(total),
            "currency": currency,
            "metadata": dict(request.metadata),
            "success_url": request.success_url,
            "cancel_url": request.cancel_url,
            "created_at": time.time(),
        }

        return CheckoutSessionResult(
            session_id=session_id,
            url=checkout_url,
            payload={"session_id": session_id, "url": checkout_url},
        )

    async def retrieve_session(self, session_id: str) -> GatewaySession:
        """
        Report a mock session.

        Open sessions report as paid, as if the customer completed checkout.
        """
        data = self._sessions.get(session_id)
        if data is None:
            raise GatewaySessionError("mock", f"No such checkout session: {session_id}")

        if data["status"] == "open":
            self.simulate_payment_success(session_id)

        return GatewaySession(
            session_id=session_id,
            status=data["status"],
            payment_status=data["payment_status"],
            metadata=dict(data["metadata"]),
            payment_intent=data.get("payment_intent"),
            payload={"session_id": session_id, "status": data["status"]},
        )

    async def expire_session(self, session_id: str) -> bool:
        """Expire a mock session."""
        data = self._sessions.get(session_id)
        if data is None or data["status"] != "open":
            return False
        data["status"] = "expired"
        return True

    async def refund(
        self, session_id: str, amount: Decimal | None = None
    ) -> RefundResult:
        """Refund a mock payment."""
        data = self._sessions.get(session_id)
        if data is not None and data["payment_status"] != "paid":
            return RefundResult(success=False, error_message="Session was not paid")
        if data is not None:
            data["refunded"] = str(amount) if amount is not None else data["amount"]
        return RefundResult(success=True, refund_id=f"mock_re_{secrets.token_hex(8)}")

    def parse_webhook(self, payload: bytes, signature: str) -> GatewayEvent:
        """
        Verify a mock webhook and normalise it.

        Expected signature format: t=<timestamp>,v1=<signature>
        Expected body: {"id", "type", "data": {"session_id", "metadata"}}
        """
        if not self.verify_signature(payload, signature):
            raise WebhookVerificationError("Invalid signature")

        try:
            event = json.loads(payload)
        except ValueError as e:
            raise WebhookVerificationError("Invalid payload") from e

        data = event.get("data") or {}
        event_type = event.get("type", "")
        kind = MOCK_EVENT_KINDS.get(event_type, GatewayEventKind.IGNORED)

        session_id = data.get("session_id")
        if session_id in self._sessions:
            if kind == GatewayEventKind.SUCCEEDED:
                self.simulate_payment_success(session_id)
            elif kind == GatewayEventKind.FAILED:
                self.simulate_payment_failure(session_id)

        return GatewayEvent(
            id=event.get("id") or f"mock_evt_{secrets.token_hex(8)}",
            type=event_type,
            kind=kind,
            provider=PaymentProvider.MOCK,
            session_id=session_id,
            metadata={k: str(v) for k, v in (data.get("metadata") or {}).items()},
            failure_reason=data.get("failure_reason")
            or ("Payment failed" if kind == GatewayEventKind.FAILED else None),
            payload=data,
        )

    def verify_signature(self, payload: bytes, signature: str) -> bool:
        """Check a `t=<timestamp>,v1=<hex hmac>` signature."""
        try:
            parts = dict(part.split("=", 1) for part in signature.split(","))
            timestamp = parts.get("t", "")
            provided_sig = parts.get("v1", "")

            if not timestamp:
                return False
            if abs(int(time.time()) - int(timestamp)) > self._settings.mock_webhook_tolerance:
                return False

            signed_payload = f"{timestamp}.{payload.decode()}"
            expected_sig = hmac.new(
                self._settings.mock_webhook_secret.encode(),
                signed_payload.encode(),
                hashlib.sha256,
            ).hexdigest()

            # Timing-safe comparison
            return hmac.compare_digest(expected_sig, provided_sig)

        except (ValueError, UnicodeDecodeError):
            return False

    def generate_webhook_signature(self, payload: str, timestamp: int | None = None) -> str:
        """
        Generate a webhook signature for testing.

        Useful for simulating webhook calls in development.
        """
        ts = str(timestamp if timestamp is not None else int(time.time()))
        signature = hmac.new(
            self._settings.mock_webhook_secret.encode(),
            f"{ts}.{payload}".encode(),
            hashlib.sha256,
        ).hexdigest()
        return f"t={ts},v1={signature}"

    def simulate_payment_success(self, session_id: str) -> None:
        """Simulate a completed checkout."""
        if session_id in self._sessions:
            self._sessions[session_id].update(
                status="complete",
                payment_status="paid",
                payment_intent=f"mock_pi_{secrets.token_hex(8)}",
            )

    def simulate_payment_failure(self, session_id: str) -> None:
        """Simulate a failed checkout."""
        if session_id in self._sessions:
            self._sessions[session_id].update(status="expired", payment_status="unpaid")
