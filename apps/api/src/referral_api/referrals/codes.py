"""Referral code and shareable link generation."""

import secrets

CODE_PREFIX = "REF-"
CODE_LENGTH = 9

# Uppercase letters and digits without the look-alikes 0, O, 1, I
CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"


def generate_referral_code(length: int = CODE_LENGTH) -> str:
    """Generate a random, readable referral code such as ``REF-7KQ2MZP4X``."""
    return CODE_PREFIX + "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))


def build_shareable_link(base_url: str, referral_code: str) -> str:
    """Build the deep link a referrer shares for a code."""
    return f"{base_url.rstrip('/')}/{referral_code}"
