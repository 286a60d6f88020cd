"""Pricing and eligibility checks. Reads only."""

from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from membership_checkout.features.checkout.domain.actors import GuestActor, MemberActor
from membership_checkout.features.checkout.domain.models import (
    CheckoutCommand,
    ValidatedCheckout,
)
from membership_checkout.features.offerings.domain.entities import OfferingKind
from membership_checkout.features.offerings.infrastructure.repository import (
    OfferingRepository,
)
from membership_checkout.features.registrations.domain.enums import (
    MembershipOperation,
    RegistrationStatus,
)
from membership_checkout.features.registrations.infrastructure.repository import (
    MembershipRepository,
    RegistrationRepository,
)
from membership_checkout.shared.domain.clock import utcnow
from membership_checkout.shared.domain.exceptions import ValidationError
from membership_checkout.shared.domain.money import quantize

ZERO = Decimal("0")


class CheckoutValidator:
    """
    Decides whether an actor may buy an offering, and at what price.

    Price always comes from the database, never from the request.
    """

    def __init__(self, session: AsyncSession, currency: str) -> None:
        self._currency = currency
        self._offerings = OfferingRepository(session)
        self._registrations = RegistrationRepository(session)
        self._memberships = MembershipRepository(session)

    async def validate(self, command: CheckoutCommand) -> ValidatedCheckout:
        """
        Validate a checkout command.

        Raises:
            ValidationError: The actor cannot check out this offering
        """
        if command.offering_kind == OfferingKind.EVENT:
            return await self._validate_event(command)
        return await self._validate_membership(command)

    async def _validate_event(self, command: CheckoutCommand) -> ValidatedCheckout:
        event = await self._offerings.get_event(command.offering_id)
        if event is None:
            raise ValidationError("Event not found")
        if not event.accepts_registrations:
            raise ValidationError("Event is not open for registration")

        actor = command.actor
        now = utcnow()
        level_id = None

        match actor:
            case GuestActor(contact=contact):
                if not contact.is_complete or "@" not in contact.email:
                    raise ValidationError(
                        "Full name, email and phone are required to register as a guest"
                    )
                if command.tier_ref is not None:
                    raise ValidationError("Member pricing requires a signed-in member")
                existing = await self._registrations.find_live_for_guest(
                    event.id, contact.email
                )
            case MemberActor(user_id=user_id):
                active = await self._memberships.get_active_for_user(user_id, now)
                if command.tier_ref is not None:
                    if active is None or active.membership_level_id != command.tier_ref:
                        raise ValidationError(
                            "Membership tier is not available for your account"
                        )
                    level_id = command.tier_ref
                elif active is not None:
                    level_id = active.membership_level_id
                existing = await self._registrations.find_live_for_member(
                    event.id, user_id
                )
            case _:
                raise ValidationError("A member session or guest details are required")

        stale = None
        if existing is not None:
            if existing.status != RegistrationStatus.PENDING:
                raise ValidationError("Already registered for this event")
            # Abandoned checkout; the factory supersedes it
            stale = existing

        if event.capacity is not None:
            taken = await self._registrations.count_live(event.id)
            if stale is not None:
                taken -= 1
            if taken >= event.capacity:
                raise ValidationError("Event is full")

        tier = event.tier_for(level_id) if level_id is not None else None
        discount = ZERO
        if tier is not None:
            if not tier.is_active:
                raise ValidationError("Member pricing for your tier is not available")
            if tier.quota is not None:
                taken = await self._registrations.count_live_for_level(
                    event.id, tier.membership_level_id
                )
                if stale is not None and stale.membership_level_id == tier.membership_level_id:
                    taken -= 1
                if taken >= tier.quota:
                    raise ValidationError("No seats left for your membership tier")
            discount = tier.discount

        base = quantize(event.base_price)
        price = quantize(max(ZERO, base - discount))
        return ValidatedCheckout(
            offering=event,
            actor=actor,
            price=price,
            base_price=base,
            discount=quantize(min(discount, base)),
            currency=self._currency,
            tier=tier,
            stale_record=stale,
        )

    async def _validate_membership(self, command: CheckoutCommand) -> ValidatedCheckout:
        actor = command.actor
        if not isinstance(actor, MemberActor):
            raise ValidationError("Memberships require a signed-in member")

        level = await self._offerings.get_membership_level(command.offering_id)
        if level is None:
            raise ValidationError("Membership level not found")
        if not level.is_active:
            raise ValidationError("Membership level is not available")

        operation = command.operation or MembershipOperation.NEW
        active = await self._memberships.get_active_for_user(actor.user_id, utcnow())

        if operation == MembershipOperation.NEW:
            if active is not None:
                raise ValidationError("You already have an active membership")
        else:
            if active is None:
                raise ValidationError(
                    f"No active membership to {operation.value.lower()}"
                )
            current_level = await self._offerings.get_membership_level(
                active.membership_level_id
            )
            current_priority = current_level.priority if current_level else 0

            if operation == MembershipOperation.EXTEND:
                if active.membership_level_id != level.id:
                    raise ValidationError(
                        "Only the current membership level can be extended"
                    )
            elif operation == MembershipOperation.UPGRADE:
                if level.priority <= current_priority:
                    raise ValidationError("Upgrades must move to a higher level")
            elif operation == MembershipOperation.DOWNGRADE:
                if level.priority >= current_priority:
                    raise ValidationError("Downgrades must move to a lower level")

        base = quantize(level.price)
        return ValidatedCheckout(
            offering=level,
            actor=actor,
            price=quantize(max(ZERO, base)),
            base_price=base,
            discount=ZERO,
            currency=self._currency,
            operation=operation,
            current_membership=active,
        )
