"""Repository layer for referral and user storage.

The service talks to the store only through these classes, so any backend
SQLAlchemy can drive (SQLite, PostgreSQL) works unchanged. Uniqueness and
foreign keys are enforced by the schema; violations surface as
``sqlalchemy.exc.IntegrityError`` from ``insert``/``update``.
"""

from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from referral_api.db.models import Referral, ReferralStatus, User


class UserRepository:
    """Repository for User operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_by_id(self, user_id: UUID) -> User | None:
        """Get user by ID."""
        return await self.session.get(User, user_id)

    async def find_by_email(self, email: str) -> User | None:
        """Get user by exact email."""
        result = await self.session.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    async def insert(self, user: User) -> User:
        """Add a new user and flush it so constraints are checked."""
        self.session.add(user)
        await self.session.flush()
        return user

    async def count(self) -> int:
        """Count all users."""
        result = await self.session.execute(select(func.count(User.id)))
        return result.scalar() or 0


class ReferralRepository:
    """Repository for Referral operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_by_id(self, referral_id: UUID) -> Referral | None:
        """Get referral by primary key."""
        return await self.session.get(Referral, referral_id)

    async def find_by_code(self, referral_code: str) -> Referral | None:
        """Get referral by its unique code."""
        result = await self.session.execute(
            select(Referral).where(Referral.referral_code == referral_code)
        )
        return result.scalar_one_or_none()

    async def code_exists(self, referral_code: str) -> bool:
        """Check whether a code is already taken."""
        result = await self.session.execute(
            select(Referral.id).where(Referral.referral_code == referral_code)
        )
        return result.first() is not None

    async def list_by_referrer(self, referrer_user_id: UUID) -> list[Referral]:
        """List referrals created by a user, newest first."""
        result = await self.session.execute(
            select(Referral)
            .where(Referral.referrer_user_id == referrer_user_id)
            .order_by(Referral.created_at.desc())
        )
        return list(result.scalars().all())

    async def count_by_status(self, referrer_user_id: UUID) -> dict[ReferralStatus, int]:
        """Count a user's referrals grouped by status."""
        result = await self.session.execute(
            select(Referral.status, func.count(Referral.id))
            .where(Referral.referrer_user_id == referrer_user_id)
            .group_by(Referral.status)
        )
        return {ReferralStatus(status): count for status, count in result.all()}

    async def count(self) -> int:
        """Count all referrals."""
        result = await self.session.execute(select(func.count(Referral.id)))
        return result.scalar() or 0

    async def insert(self, referral: Referral) -> Referral:
        """Add a new referral and flush it so constraints are checked."""
        self.session.add(referral)
        await self.session.flush()
        return referral

    async def update(self, referral: Referral) -> Referral:
        """Persist changes made to a loaded referral."""
        self.session.add(referral)
        await self.session.flush()
        return referral
