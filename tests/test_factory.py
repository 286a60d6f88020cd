"""Domain record creation and status changes."""

import pytest

from membership_checkout.features.checkout.application.validator import CheckoutValidator
from membership_checkout.features.registrations.application.factory import (
    DomainRecordFactory,
)
from membership_checkout.features.registrations.domain.enums import (
    RecordKind,
    RegistrationStatus,
)
from membership_checkout.shared.domain.exceptions import (
    RecordNotFoundError,
    ValidationError,
)

from helpers import (
    GOLD_LEVEL_ID,
    GOLD_MEMBER,
    OTHER_MEMBER_ID,
    PAID_EVENT_ID,
    PLAIN_MEMBER,
    SMALL_EVENT_ID,
    add_registration,
    event_command,
    guest,
)

pytestmark = pytest.mark.anyio


async def _validated(session, command):
    return await CheckoutValidator(session, "hkd").validate(command)


class TestCreate:
    async def test_member_registration_keeps_pricing_tier(self, session):
        validated = await _validated(session, event_command(PAID_EVENT_ID, GOLD_MEMBER))

        record = await DomainRecordFactory(session).create(
            validated, GOLD_MEMBER, RegistrationStatus.PENDING
        )

        assert record.kind == RecordKind.EVENT_REGISTRATION
        assert record.status == RegistrationStatus.PENDING
        assert record.user_id == GOLD_MEMBER.user_id
        assert record.membership_level_id == GOLD_LEVEL_ID
        assert len(record.public_id) >= 16
        assert str(record.price) == "80.00"

    async def test_guest_registration_stores_contact(self, session):
        actor = guest(email="Guest@Example.com")
        validated = await _validated(session, event_command(PAID_EVENT_ID, actor))

        record = await DomainRecordFactory(session).create(
            validated, actor, RegistrationStatus.PENDING
        )

        assert record.is_guest
        assert record.guest.email == "guest@example.com"
        assert record.guest.full_name == "Chan Tai Man"

    async def test_capacity_is_rechecked_at_write_time(self, session):
        validated = await _validated(session, event_command(SMALL_EVENT_ID, PLAIN_MEMBER))
        await add_registration(session, SMALL_EVENT_ID, status="PENDING", user_id=OTHER_MEMBER_ID)

        with pytest.raises(ValidationError, match="full"):
            await DomainRecordFactory(session).create(
                validated, PLAIN_MEMBER, RegistrationStatus.PENDING
            )

    async def test_concurrent_duplicate_is_rejected(self, session):
        validated = await _validated(session, event_command(PAID_EVENT_ID, PLAIN_MEMBER))
        await add_registration(
            session, PAID_EVENT_ID, status="PAID", user_id=PLAIN_MEMBER.user_id
        )

        with pytest.raises(ValidationError, match="Already registered"):
            await DomainRecordFactory(session).create(
                validated, PLAIN_MEMBER, RegistrationStatus.PENDING
            )


class TestTransitions:
    async def test_activate_is_idempotent(self, session):
        record_id = await add_registration(
            session, PAID_EVENT_ID, status="PENDING", user_id=PLAIN_MEMBER.user_id
        )
        factory = DomainRecordFactory(session)

        assert await factory.activate(RecordKind.EVENT_REGISTRATION, record_id)
        assert not await factory.activate(RecordKind.EVENT_REGISTRATION, record_id)

    async def test_cancel_pending_only_leaves_paid_record(self, session):
        record_id = await add_registration(
            session, PAID_EVENT_ID, status="PAID", user_id=PLAIN_MEMBER.user_id
        )
        factory = DomainRecordFactory(session)

        assert not await factory.cancel(
            RecordKind.EVENT_REGISTRATION, record_id, pending_only=True
        )
        assert await factory.cancel(RecordKind.EVENT_REGISTRATION, record_id)

        record = await factory.get(RecordKind.EVENT_REGISTRATION, record_id)
        assert record.status == RegistrationStatus.CANCELLED

    async def test_unknown_record(self, session):
        factory = DomainRecordFactory(session)

        with pytest.raises(RecordNotFoundError):
            await factory.activate(RecordKind.EVENT_REGISTRATION, 404)
        with pytest.raises(RecordNotFoundError):
            await factory.get_by_public_id(RecordKind.MEMBERSHIP, "missing")
