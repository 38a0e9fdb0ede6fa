from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class PaymentMethod(str, Enum):
    CARD = "card"
    UPI = "upi"


class PaymentStep(str, Enum):
    METHOD = "method"
    DETAILS = "details"
    OTP = "otp"
    PROCESSING = "processing"
    SUCCESS = "success"


class OTPChannel(str, Enum):
    EMAIL = "email"
    PHONE = "phone"


DEFAULT_LOCATION = "India"
DEFAULT_LANGUAGES = ["English", "Hindi"]
DEFAULT_NAME = "New User"


# Account & Session Schemas
class RegistrationMetadata(BaseModel):
    """Optional profile seed data supplied at sign-up"""

    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None
    phone: Optional[str] = None
    location: Optional[str] = None


class SessionUser(BaseModel):
    """Public account fields; never carries credentials"""

    id: str
    email: str
    name: str
    phone: Optional[str] = None
    location: Optional[str] = None


class Account(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    email: str
    password_hash: Optional[str] = Field(default=None, repr=False)
    # Plaintext written by older clients; upgraded to password_hash on first sign-in
    password: Optional[str] = Field(default=None, repr=False)
    name: str = DEFAULT_NAME
    phone: Optional[str] = None
    location: Optional[str] = None

    def public(self) -> SessionUser:
        return SessionUser(
            id=self.id,
            email=self.email,
            name=self.name,
            phone=self.phone,
            location=self.location,
        )


class Session(BaseModel):
    user: SessionUser


class Profile(BaseModel):
    id: str
    name: str
    phone: Optional[str] = None
    location: str = DEFAULT_LOCATION
    farm_size: Optional[float] = None
    soil_type: Optional[str] = None
    languages: List[str] = Field(default_factory=lambda: list(DEFAULT_LANGUAGES))
    avatar_url: Optional[str] = None
    verified: bool = True
    created_at: datetime
    updated_at: datetime


class ProfileUpdate(BaseModel):
    """Partial profile; only fields explicitly set are merged"""

    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = None
    phone: Optional[str] = None
    location: Optional[str] = None
    farm_size: Optional[float] = None
    soil_type: Optional[str] = None
    languages: Optional[List[str]] = None
    avatar_url: Optional[str] = None
    verified: Optional[bool] = None


# Payment Schemas
class PaymentDetails(BaseModel):
    card_number: str = Field(default="", repr=False)
    expiry_month: str = ""
    expiry_year: str = ""
    cvv: str = Field(default="", repr=False)
    name: str = ""
    upi_id: str = ""


class CheckoutPrefill(BaseModel):
    name: str
    email: str
    contact: str


class CheckoutTheme(BaseModel):
    color: str


class CheckoutOptions(BaseModel):
    """Payload handed to the hosted checkout widget"""

    key: str
    amount: int = Field(..., gt=0, description="Amount in minor units (paise)")
    currency: str
    name: str
    description: str
    order_id: Optional[str] = None
    prefill: CheckoutPrefill
    theme: CheckoutTheme


class PaymentReceipt(BaseModel):
    payment_id: str
    amount: float
    item_name: str
    order_id: Optional[str] = None
    signature: Optional[str] = None


# OTP Schemas
class OTPRecord(BaseModel):
    channel: OTPChannel
    identifier: str
    code: str = Field(repr=False)
    issued_at: float
    verified: bool = False
