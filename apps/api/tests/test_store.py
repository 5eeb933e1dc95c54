"""Tests for the repositories, schema constraints and mock data."""

import sys
from datetime import timedelta, timezone
from pathlib import Path
from uuid import UUID, uuid4

import pytest
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from referral_api.config import DEFAULT_MOCK_USER_ID
from referral_api.db import (
    Referral,
    ReferralRepository,
    ReferralStatus,
    User,
    UserRepository,
    create_engine_for_url,
    create_session_factory,
    init_db,
)
from referral_api.db.models import utcnow
from referral_api.referrals.seed import SECOND_MOCK_USER_ID, seed_mock_data


@pytest.fixture
async def engine():
    """Fresh in-memory database per test."""
    engine = create_engine_for_url("sqlite:///:memory:")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
async def session(engine):
    factory = create_session_factory(engine)
    async with factory() as session:
        yield session


def make_referral(referrer_id, code="REF-TESTCODE2", **overrides):
    """Build an unsaved pending referral."""
    now = utcnow()
    fields = {
        "id": uuid4(),
        "referral_code": code,
        "referrer_user_id": referrer_id,
        "status": ReferralStatus.PENDING,
        "created_at": now,
        "updated_at": now,
        "shareable_link": f"https://cartoncaps.app/refer/{code}",
    }
    fields.update(overrides)
    return Referral(**fields)


async def add_user(session, email=None) -> User:
    user = User(id=uuid4(), email=email)
    session.add(user)
    await session.commit()
    return user


# =============================================================================
# Repositories
# =============================================================================


class TestUserRepository:
    """Tests for user lookups."""

    async def test_find_by_id_and_email(self, session):
        """Users are found by id and by exact email."""
        repo = UserRepository(session)
        user = await repo.insert(User(id=uuid4(), email="a@example.com"))

        assert await repo.find_by_id(user.id) is user
        assert await repo.find_by_email("a@example.com") is user
        assert await repo.find_by_email("b@example.com") is None

    async def test_users_without_email(self, session):
        """Email is optional and several users may omit it."""
        repo = UserRepository(session)
        await repo.insert(User(id=uuid4()))
        await repo.insert(User(id=uuid4()))

        assert await repo.count() == 2


class TestReferralRepository:
    """Tests for referral lookups and aggregates."""

    async def test_find_by_code(self, session):
        """Codes resolve to their referral."""
        user = await add_user(session)
        repo = ReferralRepository(session)
        referral = await repo.insert(make_referral(user.id))

        assert await repo.find_by_code("REF-TESTCODE2") is referral
        assert await repo.find_by_code("REF-UNKNOWN22") is None
        assert await repo.code_exists("REF-TESTCODE2") is True
        assert await repo.code_exists("REF-UNKNOWN22") is False

    async def test_list_by_referrer_newest_first(self, session):
        """Listing filters by referrer and sorts by creation time descending."""
        user = await add_user(session)
        other = await add_user(session)
        repo = ReferralRepository(session)
        now = utcnow()
        for i, code in enumerate(["REF-AAAAAAAAA", "REF-BBBBBBBBB", "REF-CCCCCCCCC"]):
            created = now - timedelta(days=i)
            await repo.insert(
                make_referral(user.id, code, created_at=created, updated_at=created)
            )
        await repo.insert(make_referral(other.id, "REF-DDDDDDDDD"))

        referrals = await repo.list_by_referrer(user.id)

        assert [r.referral_code for r in referrals] == [
            "REF-AAAAAAAAA",
            "REF-BBBBBBBBB",
            "REF-CCCCCCCCC",
        ]

    async def test_timestamps_read_back_as_utc(self, session):
        """Stored timestamps come back timezone-aware in UTC."""
        user = await add_user(session)
        repo = ReferralRepository(session)
        referral = await repo.insert(make_referral(user.id))
        await session.commit()
        created_at = referral.created_at

        await session.refresh(referral)

        assert referral.created_at.utcoffset() == timedelta(0)
        assert referral.created_at == created_at
        assert referral.installed_at is None

    async def test_timestamps_normalised_to_utc(self, session):
        """Offsets other than UTC are converted before storage."""
        user = await add_user(session)
        local = utcnow().astimezone(timezone(timedelta(hours=2)))
        referral = await ReferralRepository(session).insert(
            make_referral(user.id, installed_at=local)
        )
        await session.commit()

        await session.refresh(referral)

        assert referral.installed_at.utcoffset() == timedelta(0)
        assert referral.installed_at == local

    async def test_count_by_status(self, session):
        """Counts are grouped by status and omit empty groups."""
        user = await add_user(session)
        repo = ReferralRepository(session)
        await repo.insert(make_referral(user.id, "REF-AAAAAAAAA"))
        await repo.insert(make_referral(user.id, "REF-BBBBBBBBB"))
        await repo.insert(
            make_referral(user.id, "REF-CCCCCCCCC", status=ReferralStatus.INSTALLED)
        )

        counts = await repo.count_by_status(user.id)

        assert counts == {ReferralStatus.PENDING: 2, ReferralStatus.INSTALLED: 1}


# =============================================================================
# Constraints
# =============================================================================


class TestConstraints:
    """Tests for uniqueness and referential integrity."""

    async def test_duplicate_code_rejected(self, session):
        """Two referrals cannot share a code."""
        user = await add_user(session)
        repo = ReferralRepository(session)
        await repo.insert(make_referral(user.id, "REF-AAAAAAAAA"))

        with pytest.raises(IntegrityError):
            await repo.insert(make_referral(user.id, "REF-AAAAAAAAA"))
        await session.rollback()

    async def test_duplicate_email_rejected(self, session):
        """Two users cannot share an email."""
        await add_user(session, "dup@example.com")

        with pytest.raises(IntegrityError):
            await UserRepository(session).insert(
                User(id=uuid4(), email="dup@example.com")
            )
        await session.rollback()

    async def test_unknown_referrer_rejected(self, session):
        """The referrer must exist."""
        with pytest.raises(IntegrityError):
            await ReferralRepository(session).insert(make_referral(uuid4()))
        await session.rollback()

    async def test_unknown_referee_rejected(self, session):
        """A set referee must exist."""
        user = await add_user(session)

        with pytest.raises(IntegrityError):
            await ReferralRepository(session).insert(
                make_referral(user.id, referee_user_id=uuid4())
            )
        await session.rollback()

    async def test_deleting_referee_clears_reference(self, session):
        """Removing a referee leaves the referral without one."""
        referrer = await add_user(session)
        referee = await add_user(session, "referee@example.com")
        referral = make_referral(referrer.id, referee_user_id=referee.id)
        await ReferralRepository(session).insert(referral)
        await session.commit()

        await session.execute(delete(User).where(User.id == referee.id))
        await session.commit()

        result = await session.execute(
            select(Referral.referee_user_id).where(Referral.id == referral.id)
        )
        assert result.scalar_one() is None

    async def test_deleting_referrer_blocked(self, session):
        """A referrer with referrals cannot be removed."""
        referrer = await add_user(session)
        await ReferralRepository(session).insert(make_referral(referrer.id))
        await session.commit()

        with pytest.raises(IntegrityError):
            await session.execute(delete(User).where(User.id == referrer.id))
        await session.rollback()


# =============================================================================
# Sessions
# =============================================================================


class TestSessionIsolation:
    """Tests for transaction isolation on the in-memory database."""

    async def test_rollback_keeps_other_sessions_work(self, engine):
        """A rollback in one session does not undo another session's writes."""
        factory = create_session_factory(engine)
        user_id = uuid4()

        async with factory() as first, factory() as second:
            first.add(User(id=user_id, email="kept@example.com"))
            await first.flush()
            await second.execute(select(1))
            await second.rollback()
            await first.commit()

        async with factory() as fresh:
            assert await UserRepository(fresh).find_by_id(user_id) is not None

    async def test_uncommitted_work_is_discarded(self, engine):
        """Rolled back writes never reach other sessions."""
        factory = create_session_factory(engine)
        user_id = uuid4()

        async with factory() as session:
            session.add(User(id=user_id))
            await session.flush()
            await session.rollback()

        async with factory() as fresh:
            assert await UserRepository(fresh).find_by_id(user_id) is None

    async def test_in_memory_engines_are_separate(self, engine):
        """Each in-memory engine gets its own database."""
        other = create_engine_for_url("sqlite://")
        await init_db(other)
        try:
            async with create_session_factory(engine)() as session:
                await UserRepository(session).insert(User(id=uuid4()))
                await session.commit()

            async with create_session_factory(other)() as session:
                assert await UserRepository(session).count() == 0
        finally:
            await other.dispose()


# =============================================================================
# Mock Data
# =============================================================================


class TestSeedMockData:
    """Tests for the development seed."""

    async def test_seeds_empty_store(self, session):
        """An empty store receives the mock users and referrals."""
        assert await seed_mock_data(session) is True

        # Two known users plus three referees
        assert await UserRepository(session).count() == 5
        assert await ReferralRepository(session).count() == 7

    async def test_skips_populated_store(self, session):
        """Seeding twice leaves the data untouched."""
        await seed_mock_data(session)

        assert await seed_mock_data(session) is False
        assert await ReferralRepository(session).count() == 7

    async def test_skips_when_users_exist(self, session):
        """Any existing user counts as a populated store."""
        await add_user(session)

        assert await seed_mock_data(session) is False
        assert await ReferralRepository(session).count() == 0

    async def test_seeded_statuses(self, session):
        """Known users get referrals in the documented statuses."""
        await seed_mock_data(session)
        repo = ReferralRepository(session)

        assert await repo.count_by_status(UUID(DEFAULT_MOCK_USER_ID)) == {
            ReferralStatus.PENDING: 2,
            ReferralStatus.INSTALLED: 1,
            ReferralStatus.COMPLETED: 1,
            ReferralStatus.CANCELLED: 1,
        }
        assert await repo.count_by_status(UUID(SECOND_MOCK_USER_ID)) == {
            ReferralStatus.PENDING: 1,
            ReferralStatus.INSTALLED: 1,
        }

    async def test_seeded_timestamps(self, session):
        """Transition timestamps match each seeded status."""
        await seed_mock_data(session, link_base_url="https://example.test/r")

        referrals = await ReferralRepository(session).list_by_referrer(
            UUID(DEFAULT_MOCK_USER_ID)
        )
        for referral in referrals:
            assert referral.shareable_link == (
                f"https://example.test/r/{referral.referral_code}"
            )
            if referral.status == ReferralStatus.COMPLETED:
                assert referral.referee_user_id is not None
                assert referral.installed_at == referral.created_at + timedelta(hours=2)
                assert referral.completed_at == referral.created_at + timedelta(days=1)
            elif referral.status == ReferralStatus.INSTALLED:
                assert referral.installed_at == referral.created_at + timedelta(hours=2)
                assert referral.completed_at is None
            else:
                assert referral.installed_at is None
                assert referral.completed_at is None
