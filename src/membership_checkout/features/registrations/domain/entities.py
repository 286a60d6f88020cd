"""Domain records: event registrations and memberships."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any

from membership_checkout.features.registrations.domain.enums import (
    MembershipOperation,
    MembershipStatus,
    RecordKind,
    RegistrationStatus,
)


@dataclass(frozen=True)
class GuestContact:
    """Contact details of an attendee without an account."""

    full_name: str
    email: str
    phone: str

    @property
    def is_complete(self) -> bool:
        return all(
            value and value.strip() for value in (self.full_name, self.email, self.phone)
        )


@dataclass
class EventRegistration:
    """Registration of a member or a guest to an event."""

    id: int
    public_id: str
    event_id: int
    status: RegistrationStatus
    price: Decimal
    currency: str
    user_id: int | None = None
    guest: GuestContact | None = None
    membership_level_id: int | None = None
    registered_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def kind(self) -> RecordKind:
        return RecordKind.EVENT_REGISTRATION

    @property
    def offering_id(self) -> int:
        return self.event_id

    @property
    def is_guest(self) -> bool:
        return self.user_id is None

    @property
    def is_settled(self) -> bool:
        return self.status in (RegistrationStatus.PAID, RegistrationStatus.ATTENDED)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "public_id": self.public_id,
            "kind": self.kind.value,
            "event_id": self.event_id,
            "status": self.status.value,
            "price": str(self.price),
            "currency": self.currency,
            "guest": self.is_guest,
            "registered_at": self.registered_at.isoformat() if self.registered_at else None,
        }


@dataclass
class Membership:
    """A member's subscription to a membership level."""

    id: int
    public_id: str
    user_id: int
    membership_level_id: int
    operation: MembershipOperation
    status: MembershipStatus
    price: Decimal
    currency: str
    start_date: datetime | None = None
    end_date: datetime | None = None
    previous_membership_id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def kind(self) -> RecordKind:
        return RecordKind.MEMBERSHIP

    @property
    def offering_id(self) -> int:
        return self.membership_level_id

    @property
    def is_settled(self) -> bool:
        return self.status == MembershipStatus.ACTIVE

    def is_current(self, now: datetime) -> bool:
        """Active and not past its end date."""
        if self.status != MembershipStatus.ACTIVE:
            return False
        return self.end_date is None or self.end_date > now

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "public_id": self.public_id,
            "kind": self.kind.value,
            "membership_level_id": self.membership_level_id,
            "operation": self.operation.value,
            "status": self.status.value,
            "price": str(self.price),
            "currency": self.currency,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
        }


DomainRecord = EventRegistration | Membership
