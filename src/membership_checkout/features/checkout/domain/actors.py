"""Who is checking out."""

from dataclasses import dataclass

from membership_checkout.features.registrations.domain.entities import GuestContact


@dataclass(frozen=True)
class MemberActor:
    """Signed-in account holder."""

    user_id: int
    email: str
    name: str | None = None

    @property
    def display_name(self) -> str:
        return self.name or self.email

    @property
    def label(self) -> str:
        return f"member:{self.user_id}"


@dataclass(frozen=True)
class GuestActor:
    """Attendee without an account."""

    contact: GuestContact

    @property
    def email(self) -> str:
        return self.contact.email

    @property
    def display_name(self) -> str:
        return self.contact.full_name

    @property
    def label(self) -> str:
        return "guest"


ActorContext = MemberActor | GuestActor
