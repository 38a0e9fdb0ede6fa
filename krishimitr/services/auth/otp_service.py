"""
One-time passcodes for email and phone verification.

Delivery is simulated: send_otp hands the code back to the caller. Codes
expire after otp_expiry_seconds and are kept under the otp_verifications
storage key, one record per identifier.
"""

import json
import secrets
import time
from typing import Callable, Dict, Optional

import structlog
from pydantic import ValidationError as PydanticValidationError

from krishimitr.core.config import Settings, settings as default_settings
from krishimitr.core.exceptions import InvalidEmailError, StorageUnavailableError, ValidationError
from krishimitr.core.result import Result
from krishimitr.domain.schemas import OTPChannel, OTPRecord
from krishimitr.infrastructure.storage import KeyValueStore
from krishimitr.utils.auth_validation import format_phone_number, is_valid_phone, validate_email
from krishimitr.utils.payment_validation import otp_matches

logger = structlog.get_logger(__name__)

OTP_KEY = "otp_verifications"


class OTPService:
    def __init__(
        self,
        store: KeyValueStore,
        config: Optional[Settings] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.store = store
        self.config = config or default_settings
        self.clock = clock or time.time

    def _load(self) -> Dict[str, OTPRecord]:
        raw = self.store.get(OTP_KEY)
        if raw is None:
            return {}
        try:
            data = json.loads(raw)
            return {key: OTPRecord.model_validate(value) for key, value in data.items()}
        except (json.JSONDecodeError, PydanticValidationError, AttributeError) as e:
            logger.error("otp_records_invalid", error=str(e))
            raise StorageUnavailableError("Stored OTP records are invalid", details={"key": OTP_KEY}) from e

    def _save(self, records: Dict[str, OTPRecord]) -> None:
        self.store.set(
            OTP_KEY, json.dumps({key: record.model_dump(mode="json") for key, record in records.items()})
        )

    def _expired(self, record: OTPRecord) -> bool:
        return self.clock() - record.issued_at > self.config.otp_expiry_seconds

    @staticmethod
    def generate_otp() -> str:
        """Random 6-digit code, never starting with 0."""
        return str(100000 + secrets.randbelow(900000))

    @staticmethod
    def normalize_identifier(identifier: str, channel: OTPChannel) -> str:
        if channel == OTPChannel.PHONE:
            return format_phone_number(identifier)
        return identifier

    def send_otp(self, identifier: str, channel: OTPChannel) -> Result[str]:
        """
        Issue a fresh code for identifier, replacing any earlier one.

        Returns:
            Result carrying the code (delivery is simulated)
        """
        channel = OTPChannel(channel)
        if channel == OTPChannel.EMAIL:
            is_valid, _ = validate_email(identifier)
            if not is_valid:
                return Result.failure(InvalidEmailError())
        elif not is_valid_phone(identifier):
            return Result.failure(
                ValidationError("Please enter a valid phone number.", error_code="INVALID_PHONE")
            )

        key = self.normalize_identifier(identifier, channel)
        code = self.generate_otp()
        records = self._load()
        records[key] = OTPRecord(channel=channel, identifier=key, code=code, issued_at=self.clock())
        self._save(records)

        logger.info("otp_issued", channel=channel.value)
        return Result.success(code)

    def verify_otp(self, identifier: str, code: str, channel: OTPChannel = OTPChannel.EMAIL) -> bool:
        """Check code for identifier. Expired records are purged."""
        key = self.normalize_identifier(identifier, OTPChannel(channel))
        records = self._load()
        record = records.get(key)
        if record is None:
            return False

        if self._expired(record):
            del records[key]
            self._save(records)
            logger.info("otp_expired", channel=record.channel.value)
            return False

        if not otp_matches(code, record.code):
            logger.info("otp_mismatch", channel=record.channel.value)
            return False

        record.verified = True
        self._save(records)
        logger.info("otp_verified", channel=record.channel.value)
        return True

    def is_verified(self, identifier: str, channel: OTPChannel = OTPChannel.EMAIL) -> bool:
        key = self.normalize_identifier(identifier, OTPChannel(channel))
        record = self._load().get(key)
        if record is None or self._expired(record):
            return False
        return record.verified

    def clear_expired_otps(self) -> int:
        """Drop expired records and return how many were removed."""
        records = self._load()
        live = {key: record for key, record in records.items() if not self._expired(record)}
        removed = len(records) - len(live)
        if removed:
            self._save(live)
        return removed
