from krishimitr.services.payments.payment_workflow import CancellationToken, PaymentWorkflow
from krishimitr.services.payments.checkout import (
    CheckoutHandle,
    HostedCheckout,
    build_checkout_options,
    to_minor_units,
    verify_payment_signature,
)

__all__ = [
    "CancellationToken",
    "PaymentWorkflow",
    "CheckoutHandle",
    "HostedCheckout",
    "build_checkout_options",
    "to_minor_units",
    "verify_payment_signature",
]
