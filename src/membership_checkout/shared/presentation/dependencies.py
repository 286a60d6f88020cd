"""FastAPI dependencies shared by the routers."""

from typing import Annotated

from fastapi import BackgroundTasks, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from membership_checkout.features.checkout.application.coordinator import (
    CheckoutCoordinator,
)
from membership_checkout.features.checkout.domain.actors import MemberActor
from membership_checkout.features.checkout.infrastructure.repository import UserRepository
from membership_checkout.features.notifications.application.notifier import (
    ConfirmationNotifier,
)
from membership_checkout.features.notifications.application.ports import (
    NotificationQueue,
)
from membership_checkout.features.notifications.infrastructure.background_queue import (
    BackgroundTaskNotificationQueue,
)
from membership_checkout.features.notifications.infrastructure.sender_factory import (
    get_email_sender,
)
from membership_checkout.features.orders.application.service import OrderService
from membership_checkout.features.payments.application.ports import PaymentGatewayPort
from membership_checkout.features.payments.infrastructure.provider_factory import (
    get_payment_gateway,
)
from membership_checkout.features.webhooks.application.reconciler import (
    GatewayReconciler,
)
from membership_checkout.shared.core.settings import Settings, get_settings
from membership_checkout.shared.domain.exceptions import AuthenticationRequiredError
from membership_checkout.shared.infrastructure.database import get_db_session

DbSession = Annotated[AsyncSession, Depends(get_db_session)]
AppSettings = Annotated[Settings, Depends(get_settings)]


def get_gateway() -> PaymentGatewayPort:
    """Dependency for getting the payment gateway."""
    return get_payment_gateway()


def get_notification_queue(background_tasks: BackgroundTasks) -> NotificationQueue:
    """Queue that sends e-mail after the response is written."""
    return BackgroundTaskNotificationQueue(background_tasks, get_email_sender())


async def get_current_actor(
    request: Request, session: DbSession, settings: AppSettings
) -> MemberActor | None:
    """
    Resolve the signed-in member.

    The upstream session layer forwards the user id in a trusted header.
    """
    raw = request.headers.get(settings.auth_user_header)
    if not raw:
        return None
    try:
        user_id = int(raw)
    except ValueError:
        return None
    return await UserRepository(session).get_member(user_id)


async def require_member(
    actor: Annotated[MemberActor | None, Depends(get_current_actor)],
) -> MemberActor:
    """Like get_current_actor, but 401 without a session."""
    if actor is None:
        raise AuthenticationRequiredError()
    return actor


def get_notifier(
    session: DbSession,
    queue: Annotated[NotificationQueue, Depends(get_notification_queue)],
    settings: AppSettings,
) -> ConfirmationNotifier:
    return ConfirmationNotifier(session, queue, settings.app_base_url)


def get_coordinator(
    session: DbSession,
    gateway: Annotated[PaymentGatewayPort, Depends(get_gateway)],
    notifier: Annotated[ConfirmationNotifier, Depends(get_notifier)],
    settings: AppSettings,
) -> CheckoutCoordinator:
    return CheckoutCoordinator(session, gateway, notifier, settings)


def get_reconciler(
    session: DbSession,
    notifier: Annotated[ConfirmationNotifier, Depends(get_notifier)],
) -> GatewayReconciler:
    return GatewayReconciler(session, notifier)


def get_order_service(
    session: DbSession,
    gateway: Annotated[PaymentGatewayPort, Depends(get_gateway)],
    reconciler: Annotated[GatewayReconciler, Depends(get_reconciler)],
) -> OrderService:
    return OrderService(session, gateway, reconciler)


CurrentActor = Annotated[MemberActor | None, Depends(get_current_actor)]
CurrentMember = Annotated[MemberActor, Depends(require_member)]
