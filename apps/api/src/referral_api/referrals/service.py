"""Referral service: creation, status transitions and statistics.

Status only moves forward. Transition guards compare ordinals
(pending < installed < completed < cancelled) and reject a transition when
the current status already ranks above the target, so a cancelled
referral can never be installed or completed again.
"""

import logging
from collections.abc import Callable
from uuid import UUID, uuid4

from sqlalchemy.ext.asyncio import AsyncSession

from referral_api.config import settings
from referral_api.db.models import Referral, ReferralStatus, User, utcnow
from referral_api.db.repository import ReferralRepository, UserRepository
from referral_api.referrals.codes import build_shareable_link, generate_referral_code
from referral_api.referrals.exceptions import (
    ReferralCodeGenerationError,
    UserNotFoundError,
)
from referral_api.referrals.schemas import (
    CreateReferralRequest,
    ReferralDetails,
    ReferralStats,
)

logger = logging.getLogger("referral-api.service")


class ReferralService:
    """Service for managing referrals over one database session."""

    def __init__(
        self,
        session: AsyncSession,
        *,
        link_base_url: str | None = None,
        auto_provision_users: bool | None = None,
        max_code_attempts: int | None = None,
        code_generator: Callable[[], str] = generate_referral_code,
    ):
        self.session = session
        self.referrals = ReferralRepository(session)
        self.users = UserRepository(session)
        self.link_base_url = link_base_url or settings.link_base_url
        self.auto_provision_users = (
            settings.auto_provision_users
            if auto_provision_users is None
            else auto_provision_users
        )
        self.max_code_attempts = max_code_attempts or settings.code_max_attempts
        self.code_generator = code_generator

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    async def list_user_referrals(self, user_id: UUID) -> list[Referral]:
        """List referrals created by a user, newest first.

        Unknown users simply have no referrals.
        """
        return await self.referrals.list_by_referrer(user_id)

    async def get_referral_by_id(self, referral_id: UUID) -> Referral | None:
        """Get a referral by ID. Ownership is the caller's concern."""
        return await self.referrals.find_by_id(referral_id)

    async def get_referral_by_code(self, referral_code: str) -> ReferralDetails | None:
        """Resolve a shared code to its public details."""
        referral = await self.referrals.find_by_code(referral_code)
        if referral is None:
            return None
        return ReferralDetails.from_referral(referral)

    async def get_referral_stats(self, user_id: UUID) -> ReferralStats:
        """Count a user's referrals by status."""
        counts = await self.referrals.count_by_status(user_id)
        return ReferralStats(
            total_referrals=sum(counts.values()),
            pending_count=counts.get(ReferralStatus.PENDING, 0),
            installed_count=counts.get(ReferralStatus.INSTALLED, 0),
            completed_count=counts.get(ReferralStatus.COMPLETED, 0),
            cancelled_count=counts.get(ReferralStatus.CANCELLED, 0),
        )

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    async def create_referral(
        self, user_id: UUID, request: CreateReferralRequest
    ) -> Referral:
        """Create a pending referral for ``user_id``.

        Args:
            user_id: The referrer.
            request: Optional referee email.

        Returns:
            The persisted referral.

        Raises:
            UserNotFoundError: Referrer is unknown and auto-provisioning is off.
            ReferralCodeGenerationError: No free code within the attempt budget.
        """
        await self._ensure_user(user_id)

        referee: User | None = None
        if request.referee_email:
            referee = await self._find_or_create_referee(str(request.referee_email))

        referral_code = await self._generate_unique_code()
        now = utcnow()

        referral = Referral(
            id=uuid4(),
            referral_code=referral_code,
            referrer_user_id=user_id,
            referee_user_id=referee.id if referee else None,
            status=ReferralStatus.PENDING,
            created_at=now,
            updated_at=now,
            shareable_link=build_shareable_link(self.link_base_url, referral_code),
        )
        await self.referrals.insert(referral)
        await self.session.commit()

        logger.info(f"Referral {referral_code} created by {user_id}")
        return referral

    async def mark_referral_as_installed(self, referral_code: str) -> bool:
        """Record that the referee installed the app.

        Returns False without changes if the code is unknown or the referral
        is already completed or cancelled.
        """
        referral = await self.referrals.find_by_code(referral_code)
        if referral is None:
            logger.warning(f"Install rejected: unknown code {referral_code}")
            return False
        if referral.status.rank > ReferralStatus.INSTALLED.rank:
            logger.warning(
                f"Install rejected for {referral_code}: status is {referral.status.value}"
            )
            return False

        now = utcnow()
        referral.status = ReferralStatus.INSTALLED
        referral.installed_at = now
        referral.updated_at = now

        await self.referrals.update(referral)
        await self.session.commit()

        logger.info(f"Referral {referral_code} marked as installed")
        return True

    async def mark_referral_as_completed(
        self, referral_code: str, referee_user_id: UUID
    ) -> bool:
        """Record that the referee completed registration.

        The referee is overwritten with ``referee_user_id``. Returns False
        without changes if the code is unknown or the referral is cancelled.

        Raises:
            UserNotFoundError: Referee is unknown and auto-provisioning is off.
        """
        referral = await self.referrals.find_by_code(referral_code)
        if referral is None:
            logger.warning(f"Completion rejected: unknown code {referral_code}")
            return False
        if referral.status.rank > ReferralStatus.COMPLETED.rank:
            logger.warning(
                f"Completion rejected for {referral_code}: status is {referral.status.value}"
            )
            return False

        await self._ensure_user(referee_user_id)

        now = utcnow()
        referral.status = ReferralStatus.COMPLETED
        referral.completed_at = now
        referral.referee_user_id = referee_user_id
        referral.updated_at = now

        await self.referrals.update(referral)
        await self.session.commit()

        logger.info(f"Referral {referral_code} completed by {referee_user_id}")
        return True

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    async def _ensure_user(self, user_id: UUID) -> User:
        """Return the user, creating a bare record in development mode.

        Auto-provisioning stands in for a real registration flow and is
        controlled by REFERRAL_AUTO_PROVISION_USERS.
        """
        user = await self.users.find_by_id(user_id)
        if user is not None:
            return user
        if not self.auto_provision_users:
            raise UserNotFoundError(user_id)

        logger.info(f"Auto-provisioning user {user_id}")
        return await self.users.insert(User(id=user_id))

    async def _find_or_create_referee(self, email: str) -> User:
        """Match a referee by email, creating the user if needed."""
        user = await self.users.find_by_email(email)
        if user is not None:
            return user
        return await self.users.insert(User(id=uuid4(), email=email))

    async def _generate_unique_code(self) -> str:
        """Draw codes until one is not taken in the store."""
        for attempt in range(1, self.max_code_attempts + 1):
            code = self.code_generator()
            if not await self.referrals.code_exists(code):
                return code
            logger.warning(f"Referral code collision on attempt {attempt}: {code}")
        raise ReferralCodeGenerationError(self.max_code_attempts)
