"""Confirmation e-mail bodies."""

from html import escape

from membership_checkout.features.notifications.application.ports import (
    ConfirmationMessage,
)
from membership_checkout.features.offerings.domain.entities import Event, MembershipLevel
from membership_checkout.features.registrations.domain.entities import (
    EventRegistration,
    Membership,
)


def registration_confirmation(
    registration: EventRegistration,
    event: Event,
    recipient: str,
    recipient_name: str,
    base_url: str,
) -> ConfirmationMessage:
    """Build the e-mail confirming an event registration."""
    date = event.start_at.strftime("%d %B %Y") if event.start_at else "To be announced"
    time = event.start_at.strftime("%H:%M") if event.start_at else ""
    ticket_url = (
        f"{base_url}/events/{event.slug}/register/success"
        f"?registration={registration.public_id}"
    )

    lines = [
        f"Hi {recipient_name},",
        "",
        f"You're registered for {event.title}.",
        f"Date: {date}",
    ]
    if time:
        lines.append(f"Time: {time}")
    if event.location:
        lines.append(f"Location: {event.location}")
    lines += [
        f"Registration ID: {registration.public_id}",
        "",
        f"View your registration: {ticket_url}",
    ]
    text = "\n".join(lines)

    return ConfirmationMessage(
        recipient=recipient,
        recipient_name=recipient_name,
        subject=f"Registration confirmed: {event.title}",
        text=text,
        html="<br>".join(escape(line) for line in lines),
    )


def membership_confirmation(
    membership: Membership,
    level: MembershipLevel,
    recipient: str,
    recipient_name: str,
    base_url: str,
) -> ConfirmationMessage:
    """Build the e-mail confirming an active membership."""
    until = membership.end_date.strftime("%d %B %Y") if membership.end_date else "-"
    lines = [
        f"Hi {recipient_name},",
        "",
        f"Your {level.title} is now active.",
        f"Valid until: {until}",
        "",
        f"Manage your membership: {base_url}/member/membership",
    ]
    text = "\n".join(lines)

    return ConfirmationMessage(
        recipient=recipient,
        recipient_name=recipient_name,
        subject=f"Welcome to {level.title}",
        text=text,
        html="<br>".join(escape(line) for line in lines),
    )
