"""Webhook infrastructure module."""

from membership_checkout.features.webhooks.infrastructure.repository import (
    ProcessedEventRepository,
)

__all__ = ["ProcessedEventRepository"]
