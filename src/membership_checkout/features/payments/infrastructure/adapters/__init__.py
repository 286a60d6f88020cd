"""Payment gateway adapters."""

from membership_checkout.features.payments.infrastructure.adapters.mock_adapter import (
    MockGatewayAdapter,
)
from membership_checkout.features.payments.infrastructure.adapters.stripe_adapter import (
    StripeGatewayAdapter,
)

__all__ = ["MockGatewayAdapter", "StripeGatewayAdapter"]
