"""Registration domain module."""

from membership_checkout.features.registrations.domain.entities import (
    DomainRecord,
    EventRegistration,
    GuestContact,
    Membership,
)
from membership_checkout.features.registrations.domain.enums import (
    MembershipOperation,
    MembershipStatus,
    RecordKind,
    RegistrationStatus,
)

__all__ = [
    "DomainRecord",
    "EventRegistration",
    "GuestContact",
    "Membership",
    "MembershipOperation",
    "MembershipStatus",
    "RecordKind",
    "RegistrationStatus",
]
