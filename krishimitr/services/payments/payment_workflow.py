"""
Simulated payment wizard driven by PaymentFlowMachine.

Runs on an asyncio event loop. After a correct code the workflow moves to
processing, then to success after payment_processing_delay_seconds, then
fires on_success and resets after payment_success_delay_seconds. Both
delays are loop timers owned by a CancellationToken; closing the dialog
cancels the token and no transition happens afterwards.
"""

import asyncio
import uuid
from typing import Any, Callable, Dict, List, Optional, Union

import structlog
from pydantic import ValidationError as PydanticValidationError
from statemachine.exceptions import TransitionNotAllowed

from krishimitr.core.config import Settings, settings as default_settings
from krishimitr.core.exceptions import (
    InvalidAmountError,
    InvalidOtpError,
    InvalidTransitionError,
    MissingFieldError,
    ValidationError,
)
from krishimitr.core.result import Result
from krishimitr.domain.models import STEP_PROGRESS, PaymentSession
from krishimitr.domain.schemas import PaymentDetails, PaymentMethod, PaymentStep, Session
from krishimitr.state_machines.payment_flow import PaymentFlowMachine
from krishimitr.utils.payment_validation import missing_payment_fields, validate_payment_details

logger = structlog.get_logger(__name__)


class CancellationToken:
    """Lifetime of one wizard run. Timer callbacks no-op once cancelled."""

    def __init__(self):
        self.cancelled = False
        self._handles: List[asyncio.TimerHandle] = []

    def track(self, handle: asyncio.TimerHandle) -> asyncio.TimerHandle:
        self._handles.append(handle)
        return handle

    def cancel(self):
        self.cancelled = True
        for handle in self._handles:
            handle.cancel()
        self._handles.clear()


class PaymentWorkflow:
    """
    Host-facing API of the payment dialog.

    Usage:
        workflow = PaymentWorkflow(on_success=confirm_rental, on_close=hide_dialog)
        workflow.open(amount=1440, description="Tractor rental", payer=store.current_session())
        workflow.select_method("upi")
        workflow.submit_details({"upi_id": "farmer@upi"})
        workflow.submit_otp("123456")
    """

    def __init__(
        self,
        on_success: Callable[[], Any],
        on_close: Optional[Callable[[], Any]] = None,
        config: Optional[Settings] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        self.on_success = on_success
        self.on_close = on_close
        self.config = config or default_settings
        self._loop = loop
        self._payment: Optional[PaymentSession] = None
        self._machine: Optional[PaymentFlowMachine] = None
        self._token: Optional[CancellationToken] = None
        self._run_id: Optional[str] = None

    # Introspection
    @property
    def is_open(self) -> bool:
        return self._payment is not None

    @property
    def payment(self) -> Optional[PaymentSession]:
        return self._payment

    @property
    def step(self) -> Optional[PaymentStep]:
        return self._payment.step if self._payment else None

    @property
    def progress(self) -> int:
        return self._payment.progress if self._payment else 0

    def get_flow_info(self) -> Dict[str, Any]:
        if not self.is_open:
            return {"open": False, "step": None, "progress": 0, "allowed_events": []}
        info = self._machine.get_flow_info()
        info.update(
            {
                "open": True,
                "run_id": self._run_id,
                "step": self._payment.step.value,
                "progress": self._payment.progress,
                "method": self._payment.method.value if self._payment.method else None,
                "amount": self._payment.amount,
                "description": self._payment.description,
                "payer_name": self._payment.payer_name,
                "payer_email": self._payment.payer_email,
            }
        )
        return info

    # Internals
    def _not_open(self) -> Result[PaymentSession]:
        return Result.failure(InvalidTransitionError("Payment dialog is not open"))

    def _send(self, event: str) -> Optional[InvalidTransitionError]:
        try:
            self._machine.send(event)
        except TransitionNotAllowed:
            return InvalidTransitionError(
                f"Cannot {event.replace('_', ' ')} from step {self._payment.step.value}",
                details={"event": event, "step": self._payment.step.value},
            )
        self._sync()
        return None

    def _sync(self):
        step = PaymentStep(self._machine.state_id)
        self._payment.step = step
        self._payment.progress = STEP_PROGRESS[step]
        self._payment.error_code = self._machine.error_code
        self._payment.error_message = self._machine.error_message

    def _event_loop(self) -> Optional[asyncio.AbstractEventLoop]:
        if self._loop is not None:
            return self._loop
        try:
            return asyncio.get_running_loop()
        except RuntimeError:
            return None

    def _schedule(
        self,
        delay: float,
        callback: Callable[[CancellationToken], None],
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        loop = loop or self._event_loop()
        token = self._token
        token.track(loop.call_later(delay, callback, token))

    def _is_stale(self, token: CancellationToken) -> bool:
        return token.cancelled or token is not self._token

    def _dispose(self):
        if self._token is not None:
            self._token.cancel()
        self._token = None
        self._payment = None
        self._machine = None
        self._run_id = None

    def _notify_close(self):
        if self.on_close is not None:
            self.on_close()

    # Public operations
    def open(
        self,
        amount: float,
        description: str,
        payer: Optional[Session] = None,
    ) -> Result[PaymentSession]:
        """Start a fresh wizard run at the method step."""
        if self.is_open:
            return Result.failure(InvalidTransitionError("Payment dialog is already open"))

        if amount is None or amount <= 0:
            return Result.failure(
                InvalidAmountError("Payment amount must be positive", details={"amount": amount})
            )

        self._run_id = uuid.uuid4().hex
        self._token = CancellationToken()
        self._payment = PaymentSession(amount=amount, description=description, payer=payer)
        self._machine = PaymentFlowMachine(
            payment=self._payment,
            expected_otp=self.config.demo_otp_code,
            context={"id": self._run_id},
            user_id=payer.user.id if payer else None,
        )
        logger.info("payment_opened", run_id=self._run_id, amount=amount)
        return Result.success(self._payment)

    def select_method(self, method: Union[PaymentMethod, str]) -> Result[PaymentSession]:
        if not self.is_open:
            return self._not_open()

        try:
            method = PaymentMethod(method)
        except ValueError:
            return Result.failure(
                ValidationError(
                    "Unsupported payment method",
                    details={"method": str(method)},
                    error_code="UNSUPPORTED_METHOD",
                )
            )

        if self._payment.step != PaymentStep.METHOD:
            return Result.failure(
                InvalidTransitionError(
                    "Payment method can only be chosen at the method step",
                    details={"step": self._payment.step.value},
                )
            )

        self._payment.method = method
        error = self._send("select_method")
        if error:
            return Result.failure(error)
        return Result.success(self._payment)

    def update_details(self, **fields) -> Result[PaymentSession]:
        """Edit detail fields without submitting them."""
        if not self.is_open:
            return self._not_open()
        try:
            merged = {**self._payment.details.model_dump(), **fields}
            self._payment.details = PaymentDetails.model_validate(merged)
        except PydanticValidationError as e:
            fields = [".".join(str(part) for part in err["loc"]) for err in e.errors()]
            return Result.failure(ValidationError("Invalid payment details", details={"fields": fields}))
        return Result.success(self._payment)

    def submit_details(
        self, details: Optional[Union[PaymentDetails, Dict[str, Any]]] = None
    ) -> Result[PaymentSession]:
        """Move details -> otp when the selected method's fields are filled."""
        if not self.is_open:
            return self._not_open()

        if details is not None:
            if isinstance(details, PaymentDetails):
                self._payment.details = details
            else:
                result = self.update_details(**details)
                if not result.ok:
                    return result

        error = self._send("submit_details")
        if error:
            return Result.failure(error)

        if self._payment.step == PaymentStep.DETAILS:
            method = self._payment.method
            _, message = validate_payment_details(method, self._payment.details)
            return Result.failure(
                MissingFieldError(missing_payment_fields(method, self._payment.details), message=message)
            )
        return Result.success(self._payment)

    def submit_otp(self, code: str) -> Result[PaymentSession]:
        """
        Check the one-time code. A match starts processing and schedules
        the success step; any other value leaves the wizard at otp.
        """
        if not self.is_open:
            return self._not_open()

        self._payment.otp = code or ""

        # Timers need a loop; check before leaving otp
        loop = self._event_loop()
        if loop is None and self._machine.otp_valid():
            logger.error("payment_event_loop_missing", run_id=self._run_id)
            return Result.failure(
                InvalidTransitionError(
                    "Payment cannot be processed without a running event loop",
                    details={"step": self._payment.step.value},
                )
            )

        error = self._send("submit_otp")
        if error:
            return Result.failure(error)

        if self._payment.step == PaymentStep.OTP:
            return Result.failure(InvalidOtpError())

        self._schedule(self.config.payment_processing_delay_seconds, self._finish_processing, loop)
        return Result.success(self._payment)

    def _finish_processing(self, token: CancellationToken):
        if self._is_stale(token):
            return
        self._send("finish_processing")
        self._schedule(self.config.payment_success_delay_seconds, self._complete)

    def _complete(self, token: CancellationToken):
        if self._is_stale(token):
            return

        payment = self._payment
        run_id = self._run_id
        self._dispose()
        logger.info(
            "payment_completed",
            run_id=run_id,
            amount=payment.amount,
            method=payment.method.value if payment.method else None,
        )
        try:
            self.on_success()
        finally:
            self._notify_close()

    def go_back(self) -> Result[PaymentSession]:
        """details -> method or otp -> details."""
        if not self.is_open:
            return self._not_open()
        error = self._send("go_back")
        if error:
            return Result.failure(error)
        return Result.success(self._payment)

    def close(self) -> Result[None]:
        """Discard the run. Pending timers are cancelled; on_success never fires."""
        if not self.is_open:
            return Result.success(None)

        logger.info("payment_closed", run_id=self._run_id, step=self._payment.step.value)
        self._dispose()
        self._notify_close()
        return Result.success(None)
