"""
Simulated payment wizard state machine.

method -> details -> otp -> processing -> success

Rejected details and wrong codes loop back into the same step with an
error set. Only details -> method and otp -> details can go backwards.
"""

from typing import Optional

from statemachine import State
import structlog

from .base import FlowMachine
from krishimitr.domain.models import PaymentSession
from krishimitr.utils.payment_validation import (
    missing_payment_fields,
    otp_matches,
    validate_payment_details,
)

logger = structlog.get_logger(__name__)


class PaymentFlowMachine(FlowMachine):
    """
    State machine for one run of the payment wizard.

    Step values map to PaymentStep. Validation lives in the guards so the
    machine cannot be pushed forward with incomplete input.
    """

    method = State(initial=True, value="method")
    details = State(value="details")
    otp = State(value="otp")
    processing = State(value="processing")
    success = State(value="success", final=True)

    select_method = method.to(details)
    submit_details = (
        details.to(otp, cond="details_complete") |
        details.to(details, unless="details_complete")
    )
    submit_otp = (
        otp.to(processing, cond="otp_valid") |
        otp.to(otp, unless="otp_valid")
    )
    finish_processing = processing.to(success)
    go_back = details.to(method) | otp.to(details)

    def __init__(
        self,
        payment: Optional[PaymentSession] = None,
        expected_otp: str = "123456",
        **kwargs
    ):
        """
        Args:
            payment: Wizard data the guards read from
            expected_otp: Code accepted at the otp step
            **kwargs: Passed to FlowMachine (context, user_id, ...)
        """
        self.payment = payment or PaymentSession(amount=0, description="")
        self.expected_otp = expected_otp
        super().__init__(**kwargs)

    # Guards
    def details_complete(self) -> bool:
        if self.payment.method is None:
            return False
        return not missing_payment_fields(self.payment.method, self.payment.details)

    def otp_valid(self) -> bool:
        return otp_matches(self.payment.otp, self.expected_otp)

    # Actions
    def on_select_method(self):
        self.clear_error()

    def on_submit_details(self, source: State, target: State):
        if target.id == source.id:
            _, message = validate_payment_details(self.payment.method, self.payment.details)
            self.error_code = "MISSING_FIELD"
            self.error_message = message
            logger.info(
                "payment_details_rejected",
                method=self.payment.method.value if self.payment.method else None,
                missing=missing_payment_fields(self.payment.method, self.payment.details)
                if self.payment.method
                else [],
            )
        else:
            self.clear_error()

    def on_submit_otp(self, source: State, target: State):
        if target.id == source.id:
            self.error_code = "INVALID_OTP"
            self.error_message = "Please enter the correct OTP."
            logger.info("payment_otp_rejected", context_id=self.context.get("id"))
        else:
            self.clear_error()

    def on_go_back(self):
        self.clear_error()

    def on_enter_success(self):
        logger.info(
            "payment_simulation_succeeded",
            context_id=self.context.get("id"),
            method=self.payment.method.value if self.payment.method else None,
            amount=self.payment.amount,
        )
