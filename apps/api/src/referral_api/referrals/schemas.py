"""Request/response models for the referral API.

JSON keys are camelCase; snake_case keys are accepted on input too.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, field_validator
from pydantic.alias_generators import to_camel

from referral_api.db.models import Referral, ReferralStatus


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# =============================================================================
# Requests
# =============================================================================


class CreateReferralRequest(CamelModel):
    """Request body for creating a referral."""

    referee_email: EmailStr | None = None

    @field_validator("referee_email", mode="before")
    @classmethod
    def blank_email_is_none(cls, value: object) -> object:
        """Treat an empty or whitespace-only email as absent."""
        if isinstance(value, str) and not value.strip():
            return None
        return value


class CompleteReferralRequest(CamelModel):
    """Request body for marking a referral completed."""

    referee_user_id: UUID


# =============================================================================
# Responses
# =============================================================================


class ReferralResponse(CamelModel):
    """Full referral as seen by its referrer."""

    id: UUID
    referral_code: str
    referrer_user_id: UUID
    referee_user_id: UUID | None = None
    status: ReferralStatus
    created_at: datetime
    updated_at: datetime
    installed_at: datetime | None = None
    completed_at: datetime | None = None
    shareable_link: str


class ReferralDetails(CamelModel):
    """Public projection of a referral, resolved from a shared code."""

    id: UUID
    referral_code: str
    referrer_user_id: UUID
    status: ReferralStatus
    created_at: datetime
    is_valid: bool

    @classmethod
    def from_referral(cls, referral: Referral) -> "ReferralDetails":
        return cls(
            id=referral.id,
            referral_code=referral.referral_code,
            referrer_user_id=referral.referrer_user_id,
            status=referral.status,
            created_at=referral.created_at,
            is_valid=referral.is_valid,
        )


class ReferralStats(CamelModel):
    """Per-status referral counts for one referrer."""

    total_referrals: int = 0
    pending_count: int = 0
    installed_count: int = 0
    completed_count: int = 0
    cancelled_count: int = 0


class MessageResponse(BaseModel):
    """Plain confirmation message."""

    message: str
