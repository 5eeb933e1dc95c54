"""Mock data for local development.

Seeds two known users and a handful of referrals in every status so the
API has something to show without a registration flow. Runs only against
an empty store.
"""

import logging
from datetime import timedelta
from uuid import UUID, uuid4

from sqlalchemy.ext.asyncio import AsyncSession

from referral_api.config import DEFAULT_MOCK_USER_ID, settings
from referral_api.db.models import Referral, ReferralStatus, User, utcnow
from referral_api.db.repository import ReferralRepository, UserRepository
from referral_api.referrals.codes import build_shareable_link, generate_referral_code

logger = logging.getLogger("referral-api.seed")

SECOND_MOCK_USER_ID = "87654321-4321-4321-4321-210987654321"

# Statuses cycle in declaration order: pending, installed, completed, cancelled
_STATUS_CYCLE = list(ReferralStatus)


async def seed_mock_data(session: AsyncSession, link_base_url: str | None = None) -> bool:
    """Populate an empty store with mock users and referrals.

    Returns:
        True if data was seeded, False if the store already had data.
    """
    users = UserRepository(session)
    referrals = ReferralRepository(session)

    if await users.count() or await referrals.count():
        logger.info("Store not empty - skipping mock data")
        return False

    base_url = link_base_url or settings.link_base_url
    now = utcnow()
    issued_codes: set[str] = set()

    def new_code() -> str:
        code = generate_referral_code()
        while code in issued_codes:
            code = generate_referral_code()
        issued_codes.add(code)
        return code

    user_one = User(
        id=UUID(DEFAULT_MOCK_USER_ID), email="user1@example.com", name="User One"
    )
    user_two = User(
        id=UUID(SECOND_MOCK_USER_ID), email="user2@example.com", name="User Two"
    )
    session.add_all([user_one, user_two])

    seeded: list[Referral] = []
    referees: list[User] = []

    # User one: five referrals across every status
    for i in range(5):
        status = _STATUS_CYCLE[i % len(_STATUS_CYCLE)]
        created_at = now - timedelta(days=10 - i)
        code = new_code()

        referee = None
        if i % 2 == 0:
            referee = User(id=uuid4(), email=f"friend{i}@example.com")
            referees.append(referee)

        referral = Referral(
            id=uuid4(),
            referral_code=code,
            referrer_user_id=user_one.id,
            status=status,
            created_at=created_at,
            updated_at=created_at,
            shareable_link=build_shareable_link(base_url, code),
            referee_user_id=referee.id if referee else None,
        )

        if status in (ReferralStatus.INSTALLED, ReferralStatus.COMPLETED):
            referral.installed_at = created_at + timedelta(hours=2)

        if status == ReferralStatus.COMPLETED:
            referral.completed_at = created_at + timedelta(days=1)
            if referee is None:
                referee = User(id=uuid4())
                referees.append(referee)
            referral.referee_user_id = referee.id

        seeded.append(referral)

    # User two: one pending, one installed
    for i in range(2):
        status = ReferralStatus.PENDING if i == 0 else ReferralStatus.INSTALLED
        created_at = now - timedelta(days=5 - i)
        code = new_code()

        referral = Referral(
            id=uuid4(),
            referral_code=code,
            referrer_user_id=user_two.id,
            status=status,
            created_at=created_at,
            updated_at=created_at,
            shareable_link=build_shareable_link(base_url, code),
        )
        if status == ReferralStatus.INSTALLED:
            referral.installed_at = created_at + timedelta(hours=1)

        seeded.append(referral)

    session.add_all(referees)
    await session.flush()
    session.add_all(seeded)
    await session.commit()

    logger.info(
        f"Seeded {2 + len(referees)} mock users and {len(seeded)} mock referrals"
    )
    return True
