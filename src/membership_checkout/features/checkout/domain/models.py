"""Checkout value objects."""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from membership_checkout.features.checkout.domain.actors import ActorContext, MemberActor
from membership_checkout.features.offerings.domain.entities import (
    Event,
    EventPriceTier,
    Offering,
    OfferingKind,
)
from membership_checkout.features.orders.domain.entities import Order, Payment
from membership_checkout.features.orders.domain.enums import OrderType
from membership_checkout.features.registrations.domain.entities import (
    DomainRecord,
    EventRegistration,
    Membership,
)
from membership_checkout.features.registrations.domain.enums import (
    MembershipOperation,
    RecordKind,
)


class CheckoutStage(str, Enum):
    """Progress of one checkout attempt."""

    VALIDATING = "VALIDATING"
    RECORD_CREATED = "RECORD_CREATED"
    LEDGER_CREATED = "LEDGER_CREATED"
    FREE_SETTLED = "FREE_SETTLED"
    GATEWAY_SESSION_CREATED = "GATEWAY_SESSION_CREATED"
    RECONCILED = "RECONCILED"


class TransactionType(str, Enum):
    """Discriminator written into gateway metadata."""

    EVENT_MEMBER = "event_member"
    EVENT_GUEST = "event_guest"
    MEMBERSHIP = "membership"


@dataclass(frozen=True)
class CheckoutCommand:
    """A request to buy an offering."""

    offering_kind: OfferingKind
    offering_id: int
    actor: ActorContext
    tier_ref: int | None = None
    operation: MembershipOperation | None = None
    locale: str = "en"


@dataclass(frozen=True)
class ValidatedCheckout:
    """Outcome of eligibility and pricing checks. Price is server-computed."""

    offering: Offering
    actor: ActorContext
    price: Decimal
    base_price: Decimal
    discount: Decimal
    currency: str
    tier: EventPriceTier | None = None
    operation: MembershipOperation | None = None
    current_membership: Membership | None = None
    # Abandoned PENDING registration the new one replaces
    stale_record: EventRegistration | None = None

    @property
    def is_free(self) -> bool:
        return self.price <= 0

    @property
    def record_kind(self) -> RecordKind:
        if isinstance(self.offering, Event):
            return RecordKind.EVENT_REGISTRATION
        return RecordKind.MEMBERSHIP

    @property
    def membership_level_id(self) -> int | None:
        """Level whose pricing applied."""
        if self.tier is not None:
            return self.tier.membership_level_id
        if self.record_kind == RecordKind.MEMBERSHIP:
            return self.offering.id
        return None

    @property
    def order_type(self) -> OrderType:
        if self.record_kind == RecordKind.EVENT_REGISTRATION:
            return OrderType.EVENT
        return (self.operation or MembershipOperation.NEW).order_type

    @property
    def transaction_type(self) -> TransactionType:
        if self.record_kind == RecordKind.MEMBERSHIP:
            return TransactionType.MEMBERSHIP
        if isinstance(self.actor, MemberActor):
            return TransactionType.EVENT_MEMBER
        return TransactionType.EVENT_GUEST


@dataclass(frozen=True)
class CheckoutResult:
    """What the HTTP layer hands back to the caller."""

    record: DomainRecord
    is_free: bool
    redirect_url: str | None = None
    order: Order | None = None
    payment: Payment | None = None

    @property
    def public_id(self) -> str:
        return self.record.public_id
