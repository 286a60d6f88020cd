from contextlib import asynccontextmanager
from decimal import Decimal

from httpx import ASGITransport, AsyncClient

from membership_checkout.features.checkout.domain.actors import GuestActor, MemberActor
from membership_checkout.features.checkout.domain.models import CheckoutCommand
from membership_checkout.features.offerings.domain.entities import OfferingKind
from membership_checkout.features.registrations.domain.entities import GuestContact
from membership_checkout.shared.core.settings import get_settings
from membership_checkout.shared.domain.clock import new_public_id
from membership_checkout.shared.infrastructure.database import get_db_session
from membership_checkout.shared.infrastructure.database.models import (
    EventRegistrationModel,
)

GOLD_MEMBER_ID = 1
PLAIN_MEMBER_ID = 2
OTHER_MEMBER_ID = 3

SILVER_LEVEL_ID = 1
GOLD_LEVEL_ID = 2
RETIRED_LEVEL_ID = 3

PAID_EVENT_ID = 1
FREE_EVENT_ID = 2
DRAFT_EVENT_ID = 3
SMALL_EVENT_ID = 4

GOLD_MEMBER = MemberActor(user_id=GOLD_MEMBER_ID, email="gold@example.com", name="Gold Member")
PLAIN_MEMBER = MemberActor(
    user_id=PLAIN_MEMBER_ID, email="plain@example.com", name="Plain Member"
)
OTHER_MEMBER = MemberActor(user_id=OTHER_MEMBER_ID, email="other@example.com", name=None)


def guest(email="guest@example.com", full_name="Chan Tai Man", phone="+852 9123 4567"):
    return GuestActor(contact=GuestContact(full_name=full_name, email=email, phone=phone))


def event_command(event_id, actor, tier_ref=None):
    return CheckoutCommand(
        offering_kind=OfferingKind.EVENT,
        offering_id=event_id,
        actor=actor,
        tier_ref=tier_ref,
    )


def membership_command(level_id, actor, operation=None):
    return CheckoutCommand(
        offering_kind=OfferingKind.MEMBERSHIP,
        offering_id=level_id,
        actor=actor,
        operation=operation,
    )


async def add_registration(
    session,
    event_id,
    status="PAID",
    user_id=None,
    guest_email=None,
    membership_level_id=None,
):
    model = EventRegistrationModel(
        public_id=new_public_id(),
        event_id=event_id,
        user_id=user_id,
        guest_full_name="Existing Guest" if guest_email else None,
        guest_email=guest_email,
        guest_phone="+852 0000 0000" if guest_email else None,
        membership_level_id=membership_level_id,
        price=Decimal("0"),
        currency="hkd",
        status=status,
    )
    session.add(model)
    await session.commit()
    return model.id


@asynccontextmanager
async def api_client(session_factory, gateway, queue, settings):
    """HTTP client for the app wired to the test database, gateway and queue."""
    from membership_checkout.app import create_app
    from membership_checkout.shared.presentation.dependencies import (
        get_gateway,
        get_notification_queue,
    )

    async def override_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app = create_app()
    app.dependency_overrides[get_db_session] = override_session
    app.dependency_overrides[get_gateway] = lambda: gateway
    app.dependency_overrides[get_notification_queue] = lambda: queue
    app.dependency_overrides[get_settings] = lambda: settings

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://testserver"
    ) as client:
        yield client


def member_headers(user_id):
    return {"X-User-Id": str(user_id)}
