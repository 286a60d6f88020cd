"""Registration infrastructure module."""

from membership_checkout.features.registrations.infrastructure.repository import (
    MembershipRepository,
    RegistrationRepository,
)

__all__ = ["MembershipRepository", "RegistrationRepository"]
