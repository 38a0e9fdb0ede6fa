import json

import pytest

from krishimitr.core.exceptions import InvalidEmailError
from krishimitr.domain.schemas import OTPChannel
from krishimitr.services.auth.otp_service import OTP_KEY, OTPService


@pytest.fixture
def otp_service(memory_store, test_settings, clock):
    return OTPService(memory_store, config=test_settings, clock=clock.time)


def test_generated_codes_are_six_digits():
    for _ in range(50):
        code = OTPService.generate_otp()
        assert len(code) == 6
        assert code.isdigit()
        assert code[0] != "0"


def test_send_and_verify_email_code(otp_service):
    code = otp_service.send_otp("farmer@demo.com", OTPChannel.EMAIL).unwrap()

    assert not otp_service.is_verified("farmer@demo.com")
    assert otp_service.verify_otp("farmer@demo.com", code)
    assert otp_service.is_verified("farmer@demo.com")


def test_wrong_code_is_rejected(otp_service):
    code = otp_service.send_otp("farmer@demo.com", "email").unwrap()
    wrong = "100000" if code != "100000" else "100001"

    assert not otp_service.verify_otp("farmer@demo.com", wrong)
    assert not otp_service.is_verified("farmer@demo.com")


def test_unknown_identifier_is_not_verified(otp_service):
    assert not otp_service.verify_otp("nobody@demo.com", "123456")
    assert not otp_service.is_verified("nobody@demo.com")


def test_expired_code_is_purged_on_verify(otp_service, memory_store, clock):
    code = otp_service.send_otp("farmer@demo.com", OTPChannel.EMAIL).unwrap()
    clock.advance(301)

    assert not otp_service.verify_otp("farmer@demo.com", code)
    assert json.loads(memory_store.get(OTP_KEY)) == {}


def test_verification_lapses_after_expiry(otp_service, clock):
    code = otp_service.send_otp("farmer@demo.com", OTPChannel.EMAIL).unwrap()
    otp_service.verify_otp("farmer@demo.com", code)

    clock.advance(301)

    assert not otp_service.is_verified("farmer@demo.com")


def test_resend_replaces_previous_code(otp_service, memory_store):
    otp_service.send_otp("farmer@demo.com", OTPChannel.EMAIL)
    second = otp_service.send_otp("farmer@demo.com", OTPChannel.EMAIL).unwrap()

    records = json.loads(memory_store.get(OTP_KEY))
    assert list(records) == ["farmer@demo.com"]
    assert records["farmer@demo.com"]["code"] == second


def test_phone_numbers_are_normalised(otp_service):
    code = otp_service.send_otp("98765 43210", OTPChannel.PHONE).unwrap()

    assert otp_service.verify_otp("+919876543210", code, channel=OTPChannel.PHONE)
    assert otp_service.is_verified("919876543210", channel=OTPChannel.PHONE)


def test_invalid_phone_is_rejected(otp_service):
    result = otp_service.send_otp("12345", OTPChannel.PHONE)

    assert result.error_code == "INVALID_PHONE"


def test_invalid_email_is_rejected(otp_service):
    result = otp_service.send_otp("not-an-email", OTPChannel.EMAIL)

    assert isinstance(result.error, InvalidEmailError)


def test_clear_expired_keeps_live_codes(otp_service, clock):
    otp_service.send_otp("old@farm.in", OTPChannel.EMAIL)
    clock.advance(200)
    otp_service.send_otp("new@farm.in", OTPChannel.EMAIL)
    clock.advance(200)

    assert otp_service.clear_expired_otps() == 1
    assert otp_service.clear_expired_otps() == 0
