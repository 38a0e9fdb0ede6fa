import pytest

from krishimitr.domain.schemas import PaymentDetails, PaymentMethod
from krishimitr.utils.auth_validation import (
    format_phone_number,
    is_valid_phone,
    validate_email,
    validate_password,
)
from krishimitr.utils.passwords import hash_password, verify_legacy_password, verify_password
from krishimitr.utils.payment_validation import (
    missing_payment_fields,
    otp_matches,
    validate_payment_details,
)


class TestEmail:
    @pytest.mark.parametrize("email", ["farmer@demo.com", "a.b+c@farm.co.in", "x@y.z"])
    def test_valid(self, email):
        assert validate_email(email) == (True, None)

    @pytest.mark.parametrize("email", ["plainaddress", "a@b", "a b@c.com", "@farm.in", "a@@b.com"])
    def test_invalid(self, email):
        is_valid, message = validate_email(email)

        assert not is_valid
        assert message == "Please enter a valid email address."

    def test_empty(self):
        assert validate_email("") == (False, "Email is required")


class TestPassword:
    def test_length(self):
        assert validate_password("123456") == (True, None)
        assert not validate_password("12345")[0]
        assert validate_password("abcdefgh", min_length=10)[1] == "Password must be at least 10 characters"

    def test_hash_and_verify(self):
        encoded = hash_password("farmer123")

        assert encoded.startswith("$argon2")
        assert "farmer123" not in encoded
        assert verify_password("farmer123", encoded)
        assert not verify_password("farmer124", encoded)

    def test_hashes_are_salted(self):
        assert hash_password("same") != hash_password("same")

    @pytest.mark.parametrize(
        "encoded", ["", None, "plaintext", "pbkdf2_sha256$1000$abc$def", "$argon2id$garbage"]
    )
    def test_malformed_hash_is_rejected(self, encoded):
        assert not verify_password("farmer123", encoded)

    def test_legacy_comparison(self):
        assert verify_legacy_password("oldpass1", "oldpass1")
        assert not verify_legacy_password("oldpass1", "oldpass2")
        assert not verify_legacy_password("oldpass1", None)


class TestPhone:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("9876543210", "+919876543210"),
            ("98765 43210", "+919876543210"),
            ("91-9876543210", "+919876543210"),
            ("+91 98765 43210", "+919876543210"),
            ("12345", "12345"),
        ],
    )
    def test_format(self, raw, expected):
        assert format_phone_number(raw) == expected

    def test_is_valid_phone(self):
        assert is_valid_phone("+91-9876543210")
        assert not is_valid_phone("12345")
        assert not is_valid_phone("")


class TestPaymentDetails:
    def test_card_requires_number_cvv_and_name(self):
        details = PaymentDetails(card_number="4111111111111111", expiry_month="", cvv=" ")

        assert missing_payment_fields(PaymentMethod.CARD, details) == ["cvv", "name"]
        assert validate_payment_details(PaymentMethod.CARD, details) == (
            False,
            "Please fill all required fields",
        )

    def test_upi_requires_only_upi_id(self):
        assert missing_payment_fields(PaymentMethod.UPI, PaymentDetails(upi_id="farmer@upi")) == []
        assert validate_payment_details(PaymentMethod.UPI, PaymentDetails()) == (
            False,
            "Please enter your UPI ID",
        )

    def test_otp_matches_exactly(self):
        assert otp_matches("123456", "123456")
        assert not otp_matches(" 123456", "123456")
        assert not otp_matches("", "123456")
        assert not otp_matches(None, "123456")
