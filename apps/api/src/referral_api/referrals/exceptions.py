"""
Referral Service Domain Exceptions

Expected "not found" outcomes are returned as None/False, not raised.
"""


class ReferralServiceError(Exception):
    """Base exception for referral service errors"""
    pass


class UserNotFoundError(ReferralServiceError):
    """Raised when the referrer does not exist and auto-provisioning is off"""

    def __init__(self, user_id):
        self.user_id = user_id
        super().__init__(f"User '{user_id}' not found")


class ReferralCodeGenerationError(ReferralServiceError):
    """Raised when no free referral code was found within the attempt budget"""

    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(
            f"Could not generate a unique referral code after {attempts} attempts"
        )
