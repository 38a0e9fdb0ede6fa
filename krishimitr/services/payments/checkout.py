"""
Hosted checkout (real payments).

The checkout widget itself is external: this module builds the options it
needs, hands them to a launcher, and turns the widget's success handler or
dismiss callback into exactly one caller notification.
"""

import hashlib
import hmac
from typing import Any, Callable, Dict, Optional

import structlog

from krishimitr.core.config import Settings, settings as default_settings
from krishimitr.core.exceptions import (
    CheckoutUnavailableError,
    DomainException,
    PaymentVerificationError,
)
from krishimitr.core.result import Result
from krishimitr.domain.schemas import (
    CheckoutOptions,
    CheckoutPrefill,
    CheckoutTheme,
    PaymentReceipt,
    Session,
)

logger = structlog.get_logger(__name__)

DEFAULT_PAYER_NAME = "Farmer"

# launcher(options, handler, ondismiss); raises if the widget cannot load
Launcher = Callable[[Dict[str, Any], Callable[[Dict[str, Any]], None], Callable[[], None]], None]


def to_minor_units(amount: float) -> int:
    """Rupees to paise."""
    return int(round(amount * 100))


def build_checkout_options(
    amount: float,
    description: str,
    session: Optional[Session] = None,
    order_id: Optional[str] = None,
    contact: Optional[str] = None,
    config: Optional[Settings] = None,
) -> CheckoutOptions:
    """
    Assemble the widget payload for a payment.

    Args:
        amount: Amount in rupees
        description: Line shown in the widget
        session: Active session used to prefill payer name/email
        order_id: Gateway order id when one was created server-side
        contact: Payer phone; falls back to the session phone, then the default
    """
    config = config or default_settings
    user = session.user if session else None

    return CheckoutOptions(
        key=config.checkout_key_id,
        amount=to_minor_units(amount),
        currency=config.checkout_currency,
        name=config.checkout_merchant_name,
        description=description,
        order_id=order_id,
        prefill=CheckoutPrefill(
            name=(user.name if user else None) or DEFAULT_PAYER_NAME,
            email=(user.email if user else None) or "",
            contact=contact or (user.phone if user else None) or config.checkout_default_contact,
        ),
        theme=CheckoutTheme(color=config.checkout_theme_color),
    )


def verify_payment_signature(order_id: str, payment_id: str, signature: str, secret: str) -> bool:
    """
    Verify the gateway signature: HMAC-SHA256 of "order_id|payment_id".

    Returns:
        True if the signature matches
    """
    if not (order_id and payment_id and signature and secret):
        return False
    expected = hmac.new(
        secret.encode("utf-8"),
        f"{order_id}|{payment_id}".encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()
    return hmac.compare_digest(expected, signature)


class CheckoutHandle:
    """One opened checkout. Settles at most once."""

    def __init__(
        self,
        options: CheckoutOptions,
        on_success: Callable[[PaymentReceipt], Any],
        on_dismiss: Callable[[], Any],
        on_failure: Optional[Callable[[DomainException], Any]],
        secret: str,
    ):
        self.options = options
        self.on_success = on_success
        self.on_dismiss = on_dismiss
        self.on_failure = on_failure
        self.secret = secret
        self.settled = False
        self.receipt: Optional[PaymentReceipt] = None

    def _settle(self) -> bool:
        if self.settled:
            logger.warning("checkout_callback_ignored", reason="already_settled")
            return False
        self.settled = True
        return True

    def handle_response(self, response: Dict[str, Any]):
        """Success handler passed to the widget."""
        if not self._settle():
            return

        receipt = PaymentReceipt(
            payment_id=response.get("razorpay_payment_id", ""),
            amount=self.options.amount / 100,
            item_name=self.options.description,
            order_id=response.get("razorpay_order_id"),
            signature=response.get("razorpay_signature"),
        )

        if self.secret and receipt.order_id:
            if not verify_payment_signature(
                receipt.order_id, receipt.payment_id, receipt.signature or "", self.secret
            ):
                logger.error("checkout_signature_invalid", order_id=receipt.order_id)
                error = PaymentVerificationError(
                    "Payment could not be verified", details={"order_id": receipt.order_id}
                )
                if self.on_failure is not None:
                    self.on_failure(error)
                else:
                    self.on_dismiss()
                return

        self.receipt = receipt
        logger.info(
            "checkout_payment_succeeded",
            payment_id=receipt.payment_id,
            amount=receipt.amount,
        )
        self.on_success(receipt)

    def handle_dismiss(self):
        """Dismiss callback passed to the widget."""
        if not self._settle():
            return
        logger.info("checkout_dismissed", amount=self.options.amount / 100)
        self.on_dismiss()


class HostedCheckout:
    def __init__(self, launcher: Launcher, config: Optional[Settings] = None):
        self.launcher = launcher
        self.config = config or default_settings

    def open(
        self,
        options: CheckoutOptions,
        on_success: Callable[[PaymentReceipt], Any],
        on_dismiss: Callable[[], Any],
        on_failure: Optional[Callable[[DomainException], Any]] = None,
    ) -> Result[CheckoutHandle]:
        """
        Hand options to the widget launcher.

        Returns:
            Result carrying the CheckoutHandle, or CheckoutUnavailableError
            when no key is configured or the launcher fails
        """
        if not options.key:
            return Result.failure(CheckoutUnavailableError("Checkout is not configured"))

        handle = CheckoutHandle(
            options,
            on_success=on_success,
            on_dismiss=on_dismiss,
            on_failure=on_failure,
            secret=self.config.checkout_key_secret,
        )

        payload = options.model_dump(exclude_none=True)
        try:
            self.launcher(payload, handle.handle_response, handle.handle_dismiss)
        except Exception as e:
            logger.error("checkout_launch_failed", error=str(e), error_type=type(e).__name__)
            return Result.failure(
                CheckoutUnavailableError("Failed to load checkout", details={"error": str(e)})
            )

        logger.info("checkout_opened", amount=options.amount, currency=options.currency)
        return Result.success(handle)
