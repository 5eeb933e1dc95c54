"""Referral API routes.

Referrer-facing endpoints resolve the caller through the identity provider.
Code endpoints are public: they are hit by the referee's app when a shared
link is opened, installed, or registration completes.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from referral_api.auth.identity import get_current_user_id
from referral_api.db.database import get_db
from referral_api.referrals.exceptions import UserNotFoundError
from referral_api.referrals.schemas import (
    CompleteReferralRequest,
    CreateReferralRequest,
    MessageResponse,
    ReferralDetails,
    ReferralResponse,
    ReferralStats,
)
from referral_api.referrals.service import ReferralService

logger = logging.getLogger("referral-api")

router = APIRouter(prefix="/api/referrals", tags=["Referrals"])


def get_referral_service(db: AsyncSession = Depends(get_db)) -> ReferralService:
    """Dependency that provides a referral service bound to the request session."""
    return ReferralService(db)


# =============================================================================
# Referrer Routes
# =============================================================================


@router.get("", response_model=list[ReferralResponse])
async def list_referrals(
    user_id: UUID = Depends(get_current_user_id),
    service: ReferralService = Depends(get_referral_service),
):
    """List the caller's referrals, newest first."""
    referrals = await service.list_user_referrals(user_id)
    return [ReferralResponse.model_validate(referral) for referral in referrals]


@router.get("/stats", response_model=ReferralStats)
async def get_referral_stats(
    user_id: UUID = Depends(get_current_user_id),
    service: ReferralService = Depends(get_referral_service),
):
    """Get per-status referral counts for the caller."""
    return await service.get_referral_stats(user_id)


@router.get("/code/{code}", response_model=ReferralDetails)
async def get_referral_by_code(
    code: str,
    service: ReferralService = Depends(get_referral_service),
):
    """Resolve a shared referral code. Used for deep linking; no auth."""
    details = await service.get_referral_by_code(code)
    if details is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Referral code '{code}' not found.",
        )
    return details


@router.get("/{referral_id}", response_model=ReferralResponse)
async def get_referral(
    referral_id: str,
    user_id: UUID = Depends(get_current_user_id),
    service: ReferralService = Depends(get_referral_service),
):
    """Get a referral by ID."""
    try:
        parsed_id = UUID(referral_id)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid referral ID format.",
        ) from e

    referral = await service.get_referral_by_id(parsed_id)
    if referral is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Referral with ID '{referral_id}' not found or you don't have access to it.",
        )
    return ReferralResponse.model_validate(referral)


@router.post(
    "",
    response_model=ReferralResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_referral(
    request: CreateReferralRequest,
    response: Response,
    user_id: UUID = Depends(get_current_user_id),
    service: ReferralService = Depends(get_referral_service),
):
    """Create a referral for the caller, optionally addressed to an email."""
    try:
        referral = await service.create_referral(user_id, request)
    except UserNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        ) from e

    response.headers["Location"] = f"{router.prefix}/{referral.id}"
    return ReferralResponse.model_validate(referral)


# =============================================================================
# Referee Routes (public)
# =============================================================================


@router.post("/code/{code}/installed", response_model=MessageResponse)
async def mark_referral_installed(
    code: str,
    service: ReferralService = Depends(get_referral_service),
):
    """Mark a referral as installed when the referee installs the app."""
    if not await service.mark_referral_as_installed(code):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Referral code '{code}' not found or is invalid.",
        )
    return MessageResponse(message="Referral marked as installed successfully.")


@router.post("/code/{code}/completed", response_model=MessageResponse)
async def mark_referral_completed(
    code: str,
    request: CompleteReferralRequest,
    service: ReferralService = Depends(get_referral_service),
):
    """Mark a referral as completed when the referee finishes registration."""
    if request.referee_user_id.int == 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Referee user ID is required.",
        )

    try:
        completed = await service.mark_referral_as_completed(
            code, request.referee_user_id
        )
    except UserNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        ) from e

    if not completed:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Referral code '{code}' not found or is invalid.",
        )
    return MessageResponse(message="Referral marked as completed successfully.")
