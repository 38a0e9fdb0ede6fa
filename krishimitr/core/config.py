import os

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Application
    app_name: str = Field(default="Krishi Mitr")
    environment: str = Field(default="development")
    log_level: str = Field(default="INFO")

    # Durable storage (memory | file | redis)
    storage_backend: str = Field(default="file")
    storage_path: str = Field(default=".krishimitr")
    redis_url: str = Field(default="redis://localhost:6379")
    storage_key_prefix: str = Field(default="krishimitr:")

    # Accounts
    seed_demo_accounts: bool = Field(default=True)
    min_password_length: int = Field(default=6)

    # Simulated payment wizard
    demo_otp_code: str = Field(default="123456")
    payment_processing_delay_seconds: float = Field(default=3.0)
    payment_success_delay_seconds: float = Field(default=2.0)

    # One-time passcodes
    otp_expiry_seconds: int = Field(default=300)

    # Hosted checkout (real payments)
    checkout_key_id: str = Field(default="")
    checkout_key_secret: str = Field(default="")
    checkout_currency: str = Field(default="INR")
    checkout_merchant_name: str = Field(default="Krishi Mitr")
    checkout_theme_color: str = Field(default="#10b981")
    checkout_default_contact: str = Field(default="9999999999")

    @field_validator("storage_backend", mode="before")
    @classmethod
    def normalize_storage_backend(cls, v):
        if isinstance(v, str):
            v = v.strip().lower()
        if v not in ("memory", "file", "redis"):
            raise ValueError(f"Unsupported storage backend: {v}")
        return v

    @field_validator(
        "payment_processing_delay_seconds",
        "payment_success_delay_seconds",
        mode="after",
    )
    @classmethod
    def ensure_positive_delay(cls, v):
        if v <= 0:
            raise ValueError("Payment delays must be positive")
        return v

    @field_validator("min_password_length", "otp_expiry_seconds", mode="after")
    @classmethod
    def ensure_positive(cls, v):
        if v <= 0:
            raise ValueError("Value must be positive")
        return v

    @model_validator(mode="after")
    def validate_production_checkout_secret(self):
        """Ensure a checkout key id is never shipped to production without its secret"""
        if self.environment == "production" and self.checkout_key_id:
            env_secret = os.getenv("CHECKOUT_KEY_SECRET")
            if not env_secret:
                raise ValueError(
                    "CHECKOUT_KEY_SECRET must be explicitly set via environment variable "
                    "in production when CHECKOUT_KEY_ID is configured."
                )
        return self


settings = Settings()
