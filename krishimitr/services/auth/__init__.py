from krishimitr.services.auth.session_store import (
    ACCOUNTS_KEY,
    CURRENT_USER_KEY,
    DEMO_ACCOUNTS,
    PROFILES_KEY,
    SessionStore,
)
from krishimitr.services.auth.otp_service import OTP_KEY, OTPService

__all__ = [
    "ACCOUNTS_KEY",
    "CURRENT_USER_KEY",
    "DEMO_ACCOUNTS",
    "PROFILES_KEY",
    "SessionStore",
    "OTP_KEY",
    "OTPService",
]
