"""Offering domain entities: events, price tiers and membership levels."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum


class EventStatus(str, Enum):
    """Event publication status."""

    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"


class OfferingKind(str, Enum):
    """What a checkout is buying."""

    EVENT = "event"
    MEMBERSHIP = "membership"


@dataclass(frozen=True)
class EventPriceTier:
    """Member discount of one membership level on one event."""

    id: int
    event_id: int
    membership_level_id: int
    discount: Decimal
    quota: int | None = None
    is_active: bool = True


@dataclass
class Event:
    """Event offering."""

    id: int
    slug: str
    title: str
    base_price: Decimal
    status: EventStatus
    is_public: bool = True
    capacity: int | None = None
    short_description: str | None = None
    image_url: str | None = None
    start_at: datetime | None = None
    location: str | None = None
    price_tiers: list[EventPriceTier] = field(default_factory=list)

    @property
    def kind(self) -> OfferingKind:
        return OfferingKind.EVENT

    @property
    def accepts_registrations(self) -> bool:
        """Only public, published events are open for checkout."""
        return self.is_public and self.status == EventStatus.PUBLISHED

    def tier_for(self, membership_level_id: int) -> EventPriceTier | None:
        """Find the price tier of a membership level, active or not."""
        for tier in self.price_tiers:
            if tier.membership_level_id == membership_level_id:
                return tier
        return None


@dataclass(frozen=True)
class MembershipLevel:
    """Membership offering. Higher priority means a better tier."""

    id: int
    name: str
    price: Decimal
    priority: int
    duration_days: int
    description: str | None = None
    is_active: bool = True

    @property
    def kind(self) -> OfferingKind:
        return OfferingKind.MEMBERSHIP

    @property
    def title(self) -> str:
        return f"{self.name} Membership"


Offering = Event | MembershipLevel
