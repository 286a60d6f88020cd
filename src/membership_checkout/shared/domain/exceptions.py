"""Domain exceptions for the Checkout Service."""


class CheckoutError(Exception):
    """Base exception for checkout errors."""

    pass


class ValidationError(CheckoutError):
    """Raised when a checkout request is not eligible.

    Offering not found or closed, incomplete guest info, duplicate
    registration, capacity or quota exhausted. No records are created.
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class LedgerWriteError(CheckoutError):
    """Raised when an order or payment write fails."""

    def __init__(self, operation: str, message: str) -> None:
        self.operation = operation
        super().__init__(f"Ledger write '{operation}' failed: {message}")


class GatewaySessionError(CheckoutError):
    """Raised when the payment gateway rejects or times out."""

    def __init__(self, provider: str, message: str) -> None:
        self.provider = provider
        super().__init__(f"Payment gateway '{provider}' error: {message}")


class NotificationError(CheckoutError):
    """Raised when a confirmation message cannot be delivered."""

    def __init__(self, recipient: str, message: str) -> None:
        self.recipient = recipient
        super().__init__(f"Notification to '{recipient}' failed: {message}")


class ReconciliationError(CheckoutError):
    """Raised when a gateway event does not resolve to known records."""

    def __init__(self, event_id: str, reason: str) -> None:
        self.event_id = event_id
        self.reason = reason
        super().__init__(f"Gateway event '{event_id}' cannot be reconciled: {reason}")


class InvalidTransitionError(CheckoutError):
    """Raised when a status change is not allowed by the lifecycle."""

    def __init__(self, entity: str, entity_id: int, current: str, target: str) -> None:
        self.entity = entity
        self.entity_id = entity_id
        self.current = current
        self.target = target
        super().__init__(
            f"{entity} {entity_id} cannot move from '{current}' to '{target}'"
        )


class OrderNotFoundError(CheckoutError):
    """Raised when an order is not found."""

    def __init__(self, order_id: str) -> None:
        self.order_id = order_id
        super().__init__(f"Order with ID '{order_id}' not found")


class RecordNotFoundError(CheckoutError):
    """Raised when a registration or membership is not found."""

    def __init__(self, kind: str, record_id: str) -> None:
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"{kind.capitalize()} with ID '{record_id}' not found")


class AuthenticationRequiredError(CheckoutError):
    """Raised when an endpoint needs a signed-in member."""

    def __init__(self) -> None:
        super().__init__("Unauthorized")


class ForbiddenError(CheckoutError):
    """Raised when the actor does not own the requested resource."""

    def __init__(self, message: str = "Forbidden") -> None:
        super().__init__(message)


class WebhookVerificationError(CheckoutError):
    """Raised when webhook signature verification fails."""

    def __init__(self, reason: str = "Invalid signature") -> None:
        super().__init__(f"Webhook verification failed: {reason}")
