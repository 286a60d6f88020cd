"""Clock helpers."""

import secrets
from datetime import datetime, timezone


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


def new_public_id() -> str:
    """Opaque identifier for user-visible entities."""
    return secrets.token_urlsafe(16)
