"""Referral program module.

Provides referral creation, code resolution, status tracking, and stats.
"""

from referral_api.referrals.routes import router as referrals_router
from referral_api.referrals.service import ReferralService

__all__ = [
    "ReferralService",
    "referrals_router",
]
