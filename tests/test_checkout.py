import hashlib
import hmac
from unittest.mock import Mock

import pytest

from krishimitr.core.exceptions import CheckoutUnavailableError, PaymentVerificationError
from krishimitr.domain.schemas import Session, SessionUser
from krishimitr.services.payments.checkout import (
    HostedCheckout,
    build_checkout_options,
    to_minor_units,
    verify_payment_signature,
)


class RecordingLauncher:
    """Stands in for the hosted widget; keeps the callbacks it was given."""

    def __init__(self):
        self.options = None
        self.handler = None
        self.ondismiss = None

    def __call__(self, options, handler, ondismiss):
        self.options = options
        self.handler = handler
        self.ondismiss = ondismiss


def _sign(order_id, payment_id, secret):
    return hmac.new(secret.encode(), f"{order_id}|{payment_id}".encode(), hashlib.sha256).hexdigest()


@pytest.fixture
def payer():
    return Session(
        user=SessionUser(
            id="demo-farmer-1",
            email="farmer@demo.com",
            name="Demo Farmer",
            phone="+91-9876543210",
        )
    )


class TestBuildOptions:
    def test_amount_is_converted_to_paise(self, test_settings, payer):
        options = build_checkout_options(1440, "Rental for Tractor", payer, config=test_settings)

        assert options.amount == 144000
        assert options.currency == "INR"
        assert options.key == "rzp_test_key"
        assert options.name == "Krishi Mitr"
        assert options.theme.color == "#10b981"

    def test_prefill_comes_from_session(self, test_settings, payer):
        options = build_checkout_options(100, "Seeds", payer, config=test_settings)

        assert options.prefill.name == "Demo Farmer"
        assert options.prefill.email == "farmer@demo.com"
        assert options.prefill.contact == "+91-9876543210"

    def test_prefill_defaults_without_session(self, test_settings):
        options = build_checkout_options(100, "Seeds", config=test_settings)

        assert options.prefill.name == "Farmer"
        assert options.prefill.email == ""
        assert options.prefill.contact == "9999999999"

    def test_fractional_rupees_round_to_paise(self):
        assert to_minor_units(99.99) == 9999
        assert to_minor_units(0.1 + 0.2) == 30


class TestSignature:
    def test_valid_signature(self):
        signature = _sign("order_1", "pay_1", "secret")

        assert verify_payment_signature("order_1", "pay_1", signature, "secret")

    def test_tampered_payment_id(self):
        signature = _sign("order_1", "pay_1", "secret")

        assert not verify_payment_signature("order_1", "pay_2", signature, "secret")

    def test_missing_parts_fail(self):
        assert not verify_payment_signature("", "pay_1", "sig", "secret")
        assert not verify_payment_signature("order_1", "pay_1", "sig", "")


class TestHostedCheckout:
    def test_success_settles_once(self, test_settings, payer):
        launcher = RecordingLauncher()
        on_success, on_dismiss = Mock(), Mock()
        options = build_checkout_options(1440, "Rental for Tractor", payer, config=test_settings)

        handle = HostedCheckout(launcher, config=test_settings).open(options, on_success, on_dismiss).unwrap()

        assert launcher.options["amount"] == 144000
        assert "order_id" not in launcher.options

        launcher.handler({"razorpay_payment_id": "pay_123"})
        launcher.handler({"razorpay_payment_id": "pay_456"})
        launcher.ondismiss()

        on_success.assert_called_once()
        receipt = on_success.call_args.args[0]
        assert receipt.payment_id == "pay_123"
        assert receipt.amount == 1440
        assert receipt.item_name == "Rental for Tractor"
        assert handle.receipt == receipt
        on_dismiss.assert_not_called()

    def test_dismiss(self, test_settings):
        launcher = RecordingLauncher()
        on_success, on_dismiss = Mock(), Mock()
        options = build_checkout_options(50, "Fertiliser", config=test_settings)
        HostedCheckout(launcher, config=test_settings).open(options, on_success, on_dismiss)

        launcher.ondismiss()
        launcher.handler({"razorpay_payment_id": "late"})

        on_dismiss.assert_called_once_with()
        on_success.assert_not_called()

    def test_signed_order_is_verified(self, test_settings):
        launcher = RecordingLauncher()
        on_success = Mock()
        options = build_checkout_options(50, "Fertiliser", order_id="order_9", config=test_settings)
        HostedCheckout(launcher, config=test_settings).open(options, on_success, Mock())

        launcher.handler(
            {
                "razorpay_payment_id": "pay_9",
                "razorpay_order_id": "order_9",
                "razorpay_signature": _sign("order_9", "pay_9", "test-secret"),
            }
        )

        assert on_success.call_args.args[0].order_id == "order_9"

    def test_bad_signature_reports_failure(self, test_settings):
        launcher = RecordingLauncher()
        on_success, on_dismiss, on_failure = Mock(), Mock(), Mock()
        options = build_checkout_options(50, "Fertiliser", order_id="order_9", config=test_settings)
        HostedCheckout(launcher, config=test_settings).open(options, on_success, on_dismiss, on_failure)

        launcher.handler(
            {
                "razorpay_payment_id": "pay_9",
                "razorpay_order_id": "order_9",
                "razorpay_signature": "forged",
            }
        )

        on_success.assert_not_called()
        on_dismiss.assert_not_called()
        assert isinstance(on_failure.call_args.args[0], PaymentVerificationError)

    def test_launcher_failure_is_returned(self, test_settings):
        def broken_launcher(options, handler, ondismiss):
            raise RuntimeError("Failed to load checkout script")

        options = build_checkout_options(50, "Fertiliser", config=test_settings)

        result = HostedCheckout(broken_launcher, config=test_settings).open(options, Mock(), Mock())

        assert isinstance(result.error, CheckoutUnavailableError)

    def test_missing_key_is_unavailable(self, test_settings):
        config = test_settings.model_copy(update={"checkout_key_id": ""})
        launcher = RecordingLauncher()
        options = build_checkout_options(50, "Fertiliser", config=config)

        result = HostedCheckout(launcher, config=config).open(options, Mock(), Mock())

        assert result.error_code == "CHECKOUT_UNAVAILABLE"
        assert launcher.options is None
