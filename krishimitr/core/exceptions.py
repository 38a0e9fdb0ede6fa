"""Custom exceptions for domain-specific errors"""

from typing import Any, Dict, Optional


class DomainException(Exception):
    """Base exception for all domain errors"""

    error_code = "DOMAIN_ERROR"

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None,
    ):
        self.message = message
        self.details = details or {}
        if error_code:
            self.error_code = error_code
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
        }


# Authentication Errors
class AuthenticationError(DomainException):
    """Raised when authentication fails"""

    error_code = "AUTHENTICATION_FAILED"


class InvalidCredentialsError(AuthenticationError):
    """Email/password pair does not match any account.

    The message is the same whether or not the email exists.
    """

    error_code = "INVALID_CREDENTIALS"

    def __init__(self, details: Optional[Dict[str, Any]] = None):
        super().__init__(message="Invalid email or password.", details=details)


class NoActiveSessionError(AuthenticationError):
    """Operation needs a signed-in user"""

    error_code = "NO_ACTIVE_SESSION"

    def __init__(self, details: Optional[Dict[str, Any]] = None):
        super().__init__(message="No user logged in.", details=details)


# Account Errors
class DuplicateAccountError(DomainException):
    """Raised when an account with the email already exists"""

    error_code = "DUPLICATE_ACCOUNT"

    def __init__(self, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message="Account already exists. Please try logging in instead.",
            details=details,
        )


# Validation Errors
class ValidationError(DomainException):
    """Raised when input validation fails"""

    error_code = "VALIDATION_FAILED"


class InvalidEmailError(ValidationError):
    """Email does not look like local@domain.tld"""

    error_code = "INVALID_EMAIL"

    def __init__(self, details: Optional[Dict[str, Any]] = None):
        super().__init__(message="Please enter a valid email address.", details=details)


class WeakPasswordError(ValidationError):
    """Password does not meet the minimum length"""

    error_code = "WEAK_PASSWORD"


class MissingFieldError(ValidationError):
    """Required payment detail fields were left empty"""

    error_code = "MISSING_FIELD"

    def __init__(self, fields: list, message: str = "Please fill all required fields"):
        self.fields = list(fields)
        super().__init__(message=message, details={"fields": self.fields})


class InvalidOtpError(ValidationError):
    """Entered one-time code does not match"""

    error_code = "INVALID_OTP"

    def __init__(self, details: Optional[Dict[str, Any]] = None):
        super().__init__(message="Please enter the correct OTP.", details=details)


class InvalidAmountError(ValidationError):
    """Payment amount must be positive"""

    error_code = "INVALID_AMOUNT"


# Workflow Errors
class InvalidTransitionError(DomainException):
    """Requested step change is not allowed from the current step"""

    error_code = "INVALID_TRANSITION"


# External Service Errors
class ExternalServiceError(DomainException):
    """Raised when external service call fails"""

    error_code = "EXTERNAL_SERVICE_ERROR"


class StorageUnavailableError(ExternalServiceError):
    """Durable storage could not be read or written"""

    error_code = "STORAGE_UNAVAILABLE"


class CheckoutUnavailableError(ExternalServiceError):
    """Hosted checkout widget failed to load"""

    error_code = "CHECKOUT_UNAVAILABLE"


class PaymentVerificationError(ExternalServiceError):
    """Gateway response signature did not verify"""

    error_code = "PAYMENT_VERIFICATION_FAILED"
