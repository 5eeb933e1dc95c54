"""Database module for the API.

Provides SQLAlchemy models, async database session management, and the
repositories the referral service reads and writes through.
"""

from referral_api.db.database import (
    Base,
    create_engine_for_url,
    create_session_factory,
    get_db,
    init_db,
)
from referral_api.db.models import Referral, ReferralStatus, User
from referral_api.db.repository import ReferralRepository, UserRepository

__all__ = [
    "Base",
    "Referral",
    "ReferralRepository",
    "ReferralStatus",
    "User",
    "UserRepository",
    "create_engine_for_url",
    "create_session_factory",
    "get_db",
    "init_db",
]
