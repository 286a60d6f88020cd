"""Database infrastructure module."""

from membership_checkout.shared.infrastructure.database.connection import (
    Base,
    get_db_session,
    init_db,
    close_db,
    DatabaseSession,
)

__all__ = ["Base", "get_db_session", "init_db", "close_db", "DatabaseSession"]
