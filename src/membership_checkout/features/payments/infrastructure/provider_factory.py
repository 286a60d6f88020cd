"""Payment gateway factory - Dependency injection."""

from functools import lru_cache

from membership_checkout.features.payments.application.ports import PaymentGatewayPort
from membership_checkout.features.payments.infrastructure.adapters import (
    MockGatewayAdapter,
    StripeGatewayAdapter,
)
from membership_checkout.shared.core.settings import get_settings


@lru_cache
def get_payment_gateway() -> PaymentGatewayPort:
    """
    Get the payment gateway based on configuration.

    Factory function for dependency injection.
    """
    settings = get_settings()

    match settings.payment_provider:
        case "stripe":
            return StripeGatewayAdapter(settings)
        case _:
            return MockGatewayAdapter(settings)
