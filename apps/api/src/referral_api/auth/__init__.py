"""Authentication module.

Provides pluggable caller identity resolution with a mock header provider.
"""

from referral_api.auth.identity import (
    IdentityProvider,
    MockHeaderIdentityProvider,
    build_identity_provider,
    get_current_user_id,
    get_identity_provider,
)

__all__ = [
    "IdentityProvider",
    "MockHeaderIdentityProvider",
    "build_identity_provider",
    "get_current_user_id",
    "get_identity_provider",
]
