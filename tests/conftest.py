from datetime import timedelta
from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from membership_checkout.features.notifications.application.notifier import (
    ConfirmationNotifier,
)
from membership_checkout.features.notifications.application.ports import (
    ConfirmationMessage,
    NotificationQueue,
)
from membership_checkout.features.orders.domain.enums import PaymentProvider
from membership_checkout.features.payments.application.ports import (
    CheckoutSessionRequest,
    CheckoutSessionResult,
    GatewayEvent,
    GatewaySession,
    PaymentGatewayPort,
    RefundResult,
)
from membership_checkout.shared.core.settings import Settings
from membership_checkout.shared.domain.clock import utcnow
from membership_checkout.shared.domain.exceptions import GatewaySessionError
from membership_checkout.shared.infrastructure.database import Base
from membership_checkout.shared.infrastructure.database.models import (
    EventModel,
    EventPriceTierModel,
    MembershipLevelModel,
    MembershipModel,
    UserModel,
)

from helpers import (
    api_client,
    DRAFT_EVENT_ID,
    FREE_EVENT_ID,
    GOLD_LEVEL_ID,
    GOLD_MEMBER_ID,
    OTHER_MEMBER_ID,
    PAID_EVENT_ID,
    PLAIN_MEMBER_ID,
    RETIRED_LEVEL_ID,
    SILVER_LEVEL_ID,
    SMALL_EVENT_ID,
)


class FakeGateway(PaymentGatewayPort):
    """In-memory gateway that records every call."""

    def __init__(self) -> None:
        self.requests: list[CheckoutSessionRequest] = []
        self.sessions: dict[str, GatewaySession] = {}
        self.expired: list[str] = []
        self.refunds: list[str] = []
        self.fail_create = False
        self.fail_refund = False
        self.before_create = None

    @property
    def provider(self) -> PaymentProvider:
        return PaymentProvider.STRIPE

    async def create_checkout_session(
        self, request: CheckoutSessionRequest
    ) -> CheckoutSessionResult:
        if self.before_create is not None:
            await self.before_create(request)
        if self.fail_create:
            raise GatewaySessionError("stripe", "connection reset by peer")
        self.requests.append(request)
        session_id = f"cs_test_{len(self.requests)}"
        self.sessions[session_id] = GatewaySession(
            session_id=session_id,
            status="open",
            payment_status="unpaid",
            metadata=dict(request.metadata),
        )
        return CheckoutSessionResult(
            session_id=session_id,
            url=f"https://checkout.stripe.test/{session_id}",
            payload={"session_id": session_id},
        )

    async def retrieve_session(self, session_id: str) -> GatewaySession:
        if session_id not in self.sessions:
            raise GatewaySessionError("stripe", f"No such checkout session: {session_id}")
        return self.sessions[session_id]

    async def expire_session(self, session_id: str) -> bool:
        self.expired.append(session_id)
        return True

    async def refund(self, session_id: str, amount: Decimal | None = None) -> RefundResult:
        if self.fail_refund:
            return RefundResult(success=False, error_message="charge already refunded")
        self.refunds.append(session_id)
        return RefundResult(success=True, refund_id=f"re_{session_id}")

    def parse_webhook(self, payload: bytes, signature: str) -> GatewayEvent:
        raise NotImplementedError

    def mark_paid(self, session_id: str) -> None:
        session = self.sessions[session_id]
        session.status = "complete"
        session.payment_status = "paid"
        session.payment_intent = f"pi_{session_id}"


class RecordingQueue(NotificationQueue):
    """Keeps queued messages instead of sending them."""

    def __init__(self) -> None:
        self.messages: list[ConfirmationMessage] = []

    def enqueue(self, message: ConfirmationMessage) -> None:
        self.messages.append(message)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        app_base_url="http://site.test",
        default_locale="en",
        currency="hkd",
        payment_provider="mock",
        mock_webhook_secret="whsec_test",
        email_provider="log",
    )


@pytest.fixture
async def session_factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'checkout.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(
        bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )
    async with factory() as session:
        await _seed(session)

    yield factory

    await engine.dispose()


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def queue():
    return RecordingQueue()


@pytest.fixture
def notifier(session, queue, settings):
    return ConfirmationNotifier(session, queue, settings.app_base_url)


@pytest.fixture
async def client(session_factory, gateway, queue, settings):
    async with api_client(session_factory, gateway, queue, settings) as client:
        yield client


async def _seed(session: AsyncSession) -> None:
    now = utcnow()
    session.add_all(
        [
            UserModel(id=GOLD_MEMBER_ID, email="gold@example.com", name="Gold Member"),
            UserModel(id=PLAIN_MEMBER_ID, email="plain@example.com", name="Plain Member"),
            UserModel(id=OTHER_MEMBER_ID, email="other@example.com", name=None),
            MembershipLevelModel(
                id=SILVER_LEVEL_ID,
                name="Silver",
                price=Decimal("500.00"),
                priority=1,
                duration_days=365,
            ),
            MembershipLevelModel(
                id=GOLD_LEVEL_ID,
                name="Gold",
                price=Decimal("1000.00"),
                priority=2,
                duration_days=365,
            ),
            MembershipLevelModel(
                id=RETIRED_LEVEL_ID,
                name="Founding",
                price=Decimal("0"),
                priority=3,
                duration_days=365,
                is_active=False,
            ),
        ]
    )
    await session.flush()

    session.add_all(
        [
            EventModel(
                id=PAID_EVENT_ID,
                slug="menopause-wellness-talk",
                title="Menopause Wellness Talk",
                short_description="An evening with our clinicians",
                status="PUBLISHED",
                capacity=50,
                base_price=Decimal("100.00"),
            ),
            EventModel(
                id=FREE_EVENT_ID,
                slug="community-walk",
                title="Community Walk",
                status="PUBLISHED",
                base_price=Decimal("0"),
            ),
            EventModel(
                id=DRAFT_EVENT_ID,
                slug="draft-workshop",
                title="Draft Workshop",
                status="DRAFT",
                base_price=Decimal("50.00"),
            ),
            EventModel(
                id=SMALL_EVENT_ID,
                slug="small-circle",
                title="Small Circle",
                status="PUBLISHED",
                capacity=1,
                base_price=Decimal("60.00"),
            ),
        ]
    )
    await session.flush()

    session.add_all(
        [
            EventPriceTierModel(
                event_id=PAID_EVENT_ID,
                membership_level_id=GOLD_LEVEL_ID,
                discount=Decimal("20.00"),
            ),
            EventPriceTierModel(
                event_id=PAID_EVENT_ID,
                membership_level_id=SILVER_LEVEL_ID,
                discount=Decimal("10.00"),
                quota=1,
            ),
            MembershipModel(
                public_id="gold-membership",
                user_id=GOLD_MEMBER_ID,
                membership_level_id=GOLD_LEVEL_ID,
                operation="NEW",
                price=Decimal("1000.00"),
                currency="hkd",
                status="ACTIVE",
                start_date=now - timedelta(days=30),
                end_date=now + timedelta(days=335),
            ),
        ]
    )
    await session.commit()
