"""
In-memory data models for the simulated payment wizard
"""

from dataclasses import dataclass, field
from typing import Optional

from krishimitr.domain.schemas import PaymentDetails, PaymentMethod, PaymentStep, Session

# Progress bar value shown for each wizard step
STEP_PROGRESS = {
    PaymentStep.METHOD: 25,
    PaymentStep.DETAILS: 50,
    PaymentStep.OTP: 75,
    PaymentStep.PROCESSING: 90,
    PaymentStep.SUCCESS: 100,
}


@dataclass
class PaymentSession:
    """State of one wizard run; discarded on close, cancel or completion"""

    amount: float
    description: str
    payer: Optional[Session] = None
    step: PaymentStep = PaymentStep.METHOD
    method: Optional[PaymentMethod] = None
    details: PaymentDetails = field(default_factory=PaymentDetails)
    otp: str = ""
    progress: int = 0
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    @property
    def payer_name(self) -> Optional[str]:
        return self.payer.user.name if self.payer else None

    @property
    def payer_email(self) -> Optional[str]:
        return self.payer.user.email if self.payer else None
