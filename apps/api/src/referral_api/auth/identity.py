"""Caller identity resolution.

The API asks an ``IdentityProvider`` who is calling. The shipped provider is
a development stand-in that trusts a user id header and, when allowed,
falls back to a well-known mock user. It performs no token validation and
is not a security boundary.
"""

from typing import Protocol
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status

from referral_api.config import settings


class IdentityProvider(Protocol):
    """Resolves the calling user from a request."""

    def resolve_caller(self, request: Request) -> UUID | None:
        """Return the caller's user id, or None if unauthenticated."""
        ...


class MockHeaderIdentityProvider:
    """Reads the caller's id from a request header.

    Args:
        header_name: Header carrying the user id (e.g. ``X-User-Id``).
        default_user_id: Substituted when the header is missing or not a
            UUID. ``None`` disables the fallback.
    """

    def __init__(self, header_name: str, default_user_id: UUID | None = None):
        self.header_name = header_name
        self.default_user_id = default_user_id

    def resolve_caller(self, request: Request) -> UUID | None:
        raw = request.headers.get(self.header_name)
        if raw:
            try:
                return UUID(raw.strip())
            except ValueError:
                pass
        return self.default_user_id


def build_identity_provider() -> IdentityProvider:
    """Create the provider described by the current settings."""
    return MockHeaderIdentityProvider(
        header_name=settings.user_id_header,
        default_user_id=settings.default_user_id if settings.allow_default_user else None,
    )


_provider = build_identity_provider()


def get_identity_provider() -> IdentityProvider:
    """FastAPI dependency returning the active identity provider.

    Override it with ``app.dependency_overrides`` to plug in another one.
    """
    return _provider


async def get_current_user_id(
    request: Request,
    provider: IdentityProvider = Depends(get_identity_provider),
) -> UUID:
    """FastAPI dependency to get the calling user's id.

    Usage:
        @router.get("/referrals")
        async def list_referrals(user_id: UUID = Depends(get_current_user_id)):
            ...

    Raises:
        HTTPException: 401 if no caller identity can be resolved.
    """
    user_id = provider.resolve_caller(request)
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User ID is required",
        )
    return user_id
