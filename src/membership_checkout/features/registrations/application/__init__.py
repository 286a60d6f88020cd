"""Registration application module."""

from membership_checkout.features.registrations.application.factory import (
    DomainRecordFactory,
)

__all__ = ["DomainRecordFactory"]
