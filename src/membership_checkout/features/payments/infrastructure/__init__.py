"""Payment infrastructure module."""

from membership_checkout.features.payments.infrastructure.provider_factory import (
    get_payment_gateway,
)

__all__ = ["get_payment_gateway"]
