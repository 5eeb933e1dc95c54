"""API package for referral tracking.

This FastAPI application handles:
- Referral creation (POST /api/referrals)
- Deep-link resolution (GET /api/referrals/code/{code})
- Install/completion tracking and per-user stats
"""

from referral_api.main import app

__all__ = ["app"]
