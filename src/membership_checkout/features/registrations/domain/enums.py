"""Registration and membership domain enums."""

from enum import Enum

from membership_checkout.features.orders.domain.enums import OrderType


class RecordKind(str, Enum):
    """Kind of domain record a checkout produces."""

    EVENT_REGISTRATION = "event_registration"
    MEMBERSHIP = "membership"


class RegistrationStatus(str, Enum):
    """Event registration status."""

    PENDING = "PENDING"
    PAID = "PAID"
    ATTENDED = "ATTENDED"
    CANCELLED = "CANCELLED"


class MembershipStatus(str, Enum):
    """Membership status. ACTIVE plays the role PAID has for registrations."""

    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    SUPERSEDED = "SUPERSEDED"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"


class MembershipOperation(str, Enum):
    """Membership checkout operation."""

    NEW = "NEW"
    EXTEND = "EXTEND"
    UPGRADE = "UPGRADE"
    DOWNGRADE = "DOWNGRADE"

    @property
    def order_type(self) -> OrderType:
        return {
            MembershipOperation.NEW: OrderType.MEMBERSHIP_PURCHASE,
            MembershipOperation.EXTEND: OrderType.MEMBERSHIP_RENEWAL,
            MembershipOperation.UPGRADE: OrderType.MEMBERSHIP_UPGRADE,
            MembershipOperation.DOWNGRADE: OrderType.MEMBERSHIP_DOWNGRADE,
        }[self]


REGISTRATION_TRANSITIONS: dict[RegistrationStatus, frozenset[RegistrationStatus]] = {
    RegistrationStatus.PENDING: frozenset(
        {RegistrationStatus.PAID, RegistrationStatus.CANCELLED}
    ),
    RegistrationStatus.PAID: frozenset(
        {RegistrationStatus.ATTENDED, RegistrationStatus.CANCELLED}
    ),
}

MEMBERSHIP_TRANSITIONS: dict[MembershipStatus, frozenset[MembershipStatus]] = {
    MembershipStatus.PENDING: frozenset(
        {MembershipStatus.ACTIVE, MembershipStatus.CANCELLED}
    ),
    MembershipStatus.ACTIVE: frozenset(
        {
            MembershipStatus.SUPERSEDED,
            MembershipStatus.CANCELLED,
            MembershipStatus.EXPIRED,
        }
    ),
}

# Registrations that hold a seat
LIVE_REGISTRATION_STATUSES = (
    RegistrationStatus.PENDING,
    RegistrationStatus.PAID,
    RegistrationStatus.ATTENDED,
)


def registration_sources(target: RegistrationStatus) -> list[RegistrationStatus]:
    return [s for s, targets in REGISTRATION_TRANSITIONS.items() if target in targets]


def membership_sources(target: MembershipStatus) -> list[MembershipStatus]:
    return [s for s, targets in MEMBERSHIP_TRANSITIONS.items() if target in targets]
