"""
Field checks for the simulated payment wizard.
Only the fields of the selected method are inspected.
"""

import hmac
from typing import List, Tuple

from krishimitr.domain.schemas import PaymentDetails, PaymentMethod

REQUIRED_FIELDS = {
    # Expiry is collected but not validated
    PaymentMethod.CARD: ("card_number", "cvv", "name"),
    PaymentMethod.UPI: ("upi_id",),
}

MISSING_FIELD_MESSAGES = {
    PaymentMethod.CARD: "Please fill all required fields",
    PaymentMethod.UPI: "Please enter your UPI ID",
}


def missing_payment_fields(method: PaymentMethod, details: PaymentDetails) -> List[str]:
    """Names of required fields that are empty or whitespace."""
    return [
        name
        for name in REQUIRED_FIELDS[method]
        if not (getattr(details, name) or "").strip()
    ]


def validate_payment_details(method: PaymentMethod, details: PaymentDetails) -> Tuple[bool, str | None]:
    """
    Returns:
        Tuple of (is_valid, error_message)
    """
    if missing_payment_fields(method, details):
        return False, MISSING_FIELD_MESSAGES[method]
    return True, None


def otp_matches(entered: str, expected: str) -> bool:
    return hmac.compare_digest((entered or "").encode("utf-8"), expected.encode("utf-8"))
