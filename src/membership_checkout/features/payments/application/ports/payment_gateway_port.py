"""Payment gateway port (interface) - Adapter Pattern."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any

from membership_checkout.features.orders.domain.enums import PaymentProvider


@dataclass
class LineItem:
    """One purchasable line on the hosted checkout page."""

    name: str
    unit_amount: Decimal
    currency: str
    description: str | None = None
    image_url: str | None = None
    quantity: int = 1


@dataclass
class CheckoutSessionRequest:
    """Request to open a hosted checkout session."""

    line_items: list[LineItem]
    success_url: str
    cancel_url: str
    metadata: dict[str, str]
    customer_email: str | None = None


@dataclass
class CheckoutSessionResult:
    """Result from creating a checkout session."""

    session_id: str
    url: str
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass
class GatewaySession:
    """State of a checkout session as the gateway reports it."""

    session_id: str
    status: str
    payment_status: str
    metadata: dict[str, str] = field(default_factory=dict)
    payment_intent: str | None = None
    payload: dict[str, Any] = field(default_factory=dict)

    @property
    def is_paid(self) -> bool:
        return self.payment_status in ("paid", "no_payment_required")


@dataclass
class RefundResult:
    """Result from a refund operation."""

    success: bool
    refund_id: str | None = None
    error_message: str | None = None


class GatewayEventKind(str, Enum):
    """What a gateway event means for the ledger."""

    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    IGNORED = "IGNORED"


@dataclass
class GatewayEvent:
    """A verified webhook event normalised across gateways."""

    id: str
    type: str
    kind: GatewayEventKind
    provider: PaymentProvider
    session_id: str | None = None
    metadata: dict[str, str] = field(default_factory=dict)
    payment_intent: str | None = None
    failure_reason: str | None = None
    payload: dict[str, Any] = field(default_factory=dict)


class PaymentGatewayPort(ABC):
    """
    Abstract interface for payment gateways (Adapter Pattern).

    Implementations:
    - StripeGatewayAdapter
    - MockGatewayAdapter (for development)
    """

    @property
    @abstractmethod
    def provider(self) -> PaymentProvider:
        """Provider recorded on payments made through this gateway."""
        pass

    @abstractmethod
    async def create_checkout_session(
        self, request: CheckoutSessionRequest
    ) -> CheckoutSessionResult:
        """
        Open a hosted checkout session.

        Raises GatewaySessionError when the gateway rejects or times out.
        """
        pass

    @abstractmethod
    async def retrieve_session(self, session_id: str) -> GatewaySession:
        """
        Fetch the current state of a checkout session.

        Used after returning from checkout to sync state.
        """
        pass

    @abstractmethod
    async def expire_session(self, session_id: str) -> bool:
        """
        Expire an open checkout session.

        Returns True if the session was expired.
        """
        pass

    @abstractmethod
    async def refund(
        self, session_id: str, amount: Decimal | None = None
    ) -> RefundResult:
        """
        Refund the payment collected by a checkout session.

        If amount is None, full refund is performed.
        """
        pass

    @abstractmethod
    def parse_webhook(self, payload: bytes, signature: str) -> GatewayEvent:
        """
        Verify the signature of an incoming webhook and normalise it.

        Raises WebhookVerificationError on a bad signature or body.
        """
        pass
