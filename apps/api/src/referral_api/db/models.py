"""SQLAlchemy models for users and referrals."""

from datetime import datetime, timezone
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import DateTime, ForeignKey, Index, String, TypeDecorator, Uuid
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from referral_api.db.database import Base


def utcnow() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


class UTCDateTime(TypeDecorator):
    """Timezone-aware UTC timestamp on every backend.

    SQLite stores datetimes without an offset and hands them back naive.
    Values are normalised to UTC on the way in and tagged as UTC on the way
    out, so reads compare and serialize the same as freshly created values.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return _as_utc(value)

    def process_result_value(self, value, dialect):
        return _as_utc(value)


def _as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive values and convert aware ones to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# =============================================================================
# Enums
# =============================================================================


class ReferralStatus(str, Enum):
    """Referral lifecycle status."""

    PENDING = "pending"  # Link shared, nothing happened yet
    INSTALLED = "installed"  # Referee installed the app
    COMPLETED = "completed"  # Referee finished registration
    CANCELLED = "cancelled"  # Withdrawn outside this service

    @property
    def rank(self) -> int:
        """Ordinal position used by the forward-only transition guards."""
        return _STATUS_RANK[self]


_STATUS_RANK = {
    ReferralStatus.PENDING: 0,
    ReferralStatus.INSTALLED: 1,
    ReferralStatus.COMPLETED: 2,
    ReferralStatus.CANCELLED: 3,
}


# =============================================================================
# User Model
# =============================================================================


class User(Base):
    """A referrer or referee."""

    __tablename__ = "users"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    email: Mapped[str | None] = mapped_column(String(255), unique=True)
    name: Mapped[str | None] = mapped_column(String(255))

    # Relationships (never serialized)
    referrals_created: Mapped[list["Referral"]] = relationship(
        foreign_keys="[Referral.referrer_user_id]",
        back_populates="referrer",
        lazy="raise",
        passive_deletes=True,
    )
    referrals_received: Mapped[list["Referral"]] = relationship(
        foreign_keys="[Referral.referee_user_id]",
        back_populates="referee",
        lazy="raise",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r}>"


# =============================================================================
# Referral Model
# =============================================================================


class Referral(Base):
    """One user's invitation of another, tracked by a unique code."""

    __tablename__ = "referrals"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    referral_code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    referrer_user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False
    )
    referee_user_id: Mapped[UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL")
    )

    status: Mapped[ReferralStatus] = mapped_column(
        SAEnum(
            ReferralStatus,
            native_enum=False,
            length=20,
            values_callable=lambda enum: [member.value for member in enum],
        ),
        nullable=False,
        default=ReferralStatus.PENDING,
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utcnow
    )
    installed_at: Mapped[datetime | None] = mapped_column(UTCDateTime)
    completed_at: Mapped[datetime | None] = mapped_column(UTCDateTime)

    # Deep link built from the code
    shareable_link: Mapped[str] = mapped_column(String(500), nullable=False)

    # Relationships
    referrer: Mapped["User"] = relationship(
        foreign_keys=[referrer_user_id],
        back_populates="referrals_created",
        lazy="raise",
    )
    referee: Mapped["User | None"] = relationship(
        foreign_keys=[referee_user_id],
        back_populates="referrals_received",
        lazy="raise",
    )

    __table_args__ = (
        Index("ix_referrals_referrer_user_id", "referrer_user_id"),
        Index("ix_referrals_referee_user_id", "referee_user_id"),
        Index("ix_referrals_status", "status"),
    )

    @property
    def is_valid(self) -> bool:
        """A referral link stays usable unless it was cancelled."""
        return self.status != ReferralStatus.CANCELLED

    def __repr__(self) -> str:
        return f"<Referral code={self.referral_code} status={self.status.value}>"
