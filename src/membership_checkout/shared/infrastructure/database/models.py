"""ORM models for SQLAlchemy."""

from datetime import timezone
from decimal import Decimal

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    TypeDecorator,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB

from membership_checkout.features.checkout.domain.actors import MemberActor
from membership_checkout.features.offerings.domain.entities import (
    Event,
    EventPriceTier,
    EventStatus,
    MembershipLevel,
)
from membership_checkout.features.orders.domain.entities import (
    Order,
    Payment,
    PriceBreakdown,
)
from membership_checkout.features.orders.domain.enums import (
    OrderStatus,
    OrderType,
    PaymentProvider,
    PaymentStatus,
)
from membership_checkout.features.registrations.domain.entities import (
    EventRegistration,
    GuestContact,
    Membership,
)
from membership_checkout.features.registrations.domain.enums import (
    LIVE_REGISTRATION_STATUSES,
    MembershipOperation,
    MembershipStatus,
    RegistrationStatus,
)
from membership_checkout.shared.domain.clock import utcnow
from membership_checkout.shared.infrastructure.database.connection import Base

JSONType = JSON().with_variant(JSONB(), "postgresql")


class UTCDateTime(TypeDecorator):
    """Timestamp column that always hands back aware UTC datetimes.

    SQLite drops the offset on the way in.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None and value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
            if dialect.name == "sqlite":
                value = value.replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value


def _decimal(value) -> Decimal:
    return Decimal(str(value)) if value is not None else Decimal("0")


class UserModel(Base):
    """Account owned by the auth system. Read-only here."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    email = Column(String(255), nullable=False, unique=True)
    name = Column(String(255), nullable=True)

    def to_domain(self) -> MemberActor:
        return MemberActor(user_id=self.id, email=self.email, name=self.name)


class MembershipLevelModel(Base):
    """Membership level ORM model."""

    __tablename__ = "membership_levels"

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Numeric(10, 2), nullable=False, default=0)
    priority = Column(Integer, nullable=False, default=0)
    duration_days = Column(Integer, nullable=False, default=365)
    is_active = Column(Boolean, nullable=False, default=True)

    def to_domain(self) -> MembershipLevel:
        return MembershipLevel(
            id=self.id,
            name=self.name,
            description=self.description,
            price=_decimal(self.price),
            priority=self.priority,
            duration_days=self.duration_days,
            is_active=bool(self.is_active),
        )


class EventModel(Base):
    """Event ORM model."""

    __tablename__ = "events"

    id = Column(Integer, primary_key=True)
    slug = Column(String(255), nullable=False, unique=True)
    title = Column(String(255), nullable=False)
    short_description = Column(Text, nullable=True)
    image_url = Column(Text, nullable=True)
    location = Column(String(255), nullable=True)
    start_at = Column(UTCDateTime, nullable=True)
    status = Column(String(20), nullable=False, default=EventStatus.DRAFT.value)
    is_public = Column(Boolean, nullable=False, default=True)
    # NULL means unlimited
    capacity = Column(Integer, nullable=True)
    base_price = Column(Numeric(10, 2), nullable=False, default=0)

    def to_domain(self, tiers: list["EventPriceTierModel"] | None = None) -> Event:
        return Event(
            id=self.id,
            slug=self.slug,
            title=self.title,
            short_description=self.short_description,
            image_url=self.image_url,
            location=self.location,
            start_at=self.start_at,
            status=EventStatus(self.status),
            is_public=bool(self.is_public),
            capacity=self.capacity,
            base_price=_decimal(self.base_price),
            price_tiers=[tier.to_domain() for tier in tiers or []],
        )


class EventPriceTierModel(Base):
    """Per-membership-level pricing of an event."""

    __tablename__ = "event_price_tiers"
    __table_args__ = (
        UniqueConstraint("event_id", "membership_level_id", name="uq_event_price_tier"),
    )

    id = Column(Integer, primary_key=True)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=False, index=True)
    membership_level_id = Column(
        Integer, ForeignKey("membership_levels.id"), nullable=False
    )
    discount = Column(Numeric(10, 2), nullable=False, default=0)
    quota = Column(Integer, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    def to_domain(self) -> EventPriceTier:
        return EventPriceTier(
            id=self.id,
            event_id=self.event_id,
            membership_level_id=self.membership_level_id,
            discount=_decimal(self.discount),
            quota=self.quota,
            is_active=bool(self.is_active),
        )


class EventRegistrationModel(Base):
    """Event registration ORM model."""

    __tablename__ = "event_registrations"

    id = Column(Integer, primary_key=True)
    public_id = Column(String(64), nullable=False, unique=True)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=False, index=True)

    # Member or guest, never both
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    guest_full_name = Column(String(255), nullable=True)
    guest_email = Column(String(255), nullable=True, index=True)
    guest_phone = Column(String(50), nullable=True)

    membership_level_id = Column(
        Integer, ForeignKey("membership_levels.id"), nullable=True
    )
    price = Column(Numeric(10, 2), nullable=False, default=0)
    currency = Column(String(3), nullable=False)
    status = Column(String(20), nullable=False, default=RegistrationStatus.PENDING.value)

    registered_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        # One live registration per member and event
        Index(
            "uq_event_registrations_live_member",
            "event_id",
            "user_id",
            unique=True,
            postgresql_where=status.in_([s.value for s in LIVE_REGISTRATION_STATUSES]),
            sqlite_where=status.in_([s.value for s in LIVE_REGISTRATION_STATUSES]),
        ),
    )

    def to_domain(self) -> EventRegistration:
        guest = None
        if self.user_id is None:
            guest = GuestContact(
                full_name=self.guest_full_name or "",
                email=self.guest_email or "",
                phone=self.guest_phone or "",
            )
        return EventRegistration(
            id=self.id,
            public_id=self.public_id,
            event_id=self.event_id,
            status=RegistrationStatus(self.status),
            price=_decimal(self.price),
            currency=self.currency,
            user_id=self.user_id,
            guest=guest,
            membership_level_id=self.membership_level_id,
            registered_at=self.registered_at,
            updated_at=self.updated_at,
        )


class MembershipModel(Base):
    """Membership ORM model."""

    __tablename__ = "memberships"

    id = Column(Integer, primary_key=True)
    public_id = Column(String(64), nullable=False, unique=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    membership_level_id = Column(
        Integer, ForeignKey("membership_levels.id"), nullable=False
    )
    operation = Column(String(20), nullable=False, default=MembershipOperation.NEW.value)
    price = Column(Numeric(10, 2), nullable=False, default=0)
    currency = Column(String(3), nullable=False)
    status = Column(String(20), nullable=False, default=MembershipStatus.PENDING.value)
    start_date = Column(UTCDateTime, nullable=True)
    end_date = Column(UTCDateTime, nullable=True)
    previous_membership_id = Column(Integer, ForeignKey("memberships.id"), nullable=True)

    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def to_domain(self) -> Membership:
        return Membership(
            id=self.id,
            public_id=self.public_id,
            user_id=self.user_id,
            membership_level_id=self.membership_level_id,
            operation=MembershipOperation(self.operation),
            status=MembershipStatus(self.status),
            price=_decimal(self.price),
            currency=self.currency,
            start_date=self.start_date,
            end_date=self.end_date,
            previous_membership_id=self.previous_membership_id,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class OrderModel(Base):
    """Order ORM model."""

    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    public_id = Column(String(64), nullable=False, unique=True)
    order_number = Column(String(32), nullable=False, unique=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    type = Column(String(30), nullable=False)
    status = Column(String(20), nullable=False, default=OrderStatus.PENDING.value)
    gross_amount = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(3), nullable=False)
    breakdown = Column(JSONType, nullable=False, default=dict)
    # "metadata" is reserved on declarative classes
    order_metadata = Column("metadata", JSONType, nullable=False, default=dict)
    paid_at = Column(UTCDateTime, nullable=True)

    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def to_domain(self, payments: list["PaymentModel"] | None = None) -> Order:
        return Order(
            id=self.id,
            public_id=self.public_id,
            order_number=self.order_number,
            user_id=self.user_id,
            type=OrderType(self.type),
            status=OrderStatus(self.status),
            gross_amount=_decimal(self.gross_amount),
            currency=self.currency,
            breakdown=PriceBreakdown.from_dict(self.breakdown),
            metadata=dict(self.order_metadata or {}),
            paid_at=self.paid_at,
            created_at=self.created_at,
            updated_at=self.updated_at,
            payments=[payment.to_domain() for payment in payments or []],
        )


class PaymentModel(Base):
    """Payment ORM model."""

    __tablename__ = "payments"

    id = Column(Integer, primary_key=True)
    public_id = Column(String(64), nullable=False, unique=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    provider = Column(String(20), nullable=False)
    status = Column(String(20), nullable=False, default=PaymentStatus.PENDING.value)
    amount = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(3), nullable=False)

    # Gateway checkout session id, written once the session exists
    provider_ref = Column(String(255), nullable=True, index=True)
    provider_payload = Column(JSONType, nullable=True)
    failure_reason = Column(Text, nullable=True)
    processed_at = Column(UTCDateTime, nullable=True)

    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def to_domain(self) -> Payment:
        return Payment(
            id=self.id,
            public_id=self.public_id,
            order_id=self.order_id,
            provider=PaymentProvider(self.provider),
            status=PaymentStatus(self.status),
            amount=_decimal(self.amount),
            currency=self.currency,
            provider_ref=self.provider_ref,
            provider_payload=self.provider_payload,
            failure_reason=self.failure_reason,
            processed_at=self.processed_at,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class ProcessedGatewayEventModel(Base):
    """Gateway webhook events already handled."""

    __tablename__ = "processed_gateway_events"

    id = Column(Integer, primary_key=True)
    event_id = Column(String(255), nullable=False, unique=True)
    provider = Column(String(20), nullable=False)
    event_type = Column(String(100), nullable=False)
    outcome = Column(String(30), nullable=False)
    needs_review = Column(Boolean, nullable=False, default=False)
    error = Column(Text, nullable=True)
    received_at = Column(UTCDateTime, nullable=False, default=utcnow)
