"""
Session store: accounts, the active session and per-account profiles.

Persisted state lives under three keys of a KeyValueStore:
- accounts: list of account records (password hashes, never plaintext)
- current_user: public fields of the signed-in account, or absent
- profiles: mapping of account id to profile record

Each operation re-reads the keys it touches, so two stores sharing a
backend see each other's writes. Concurrent writers are last-writer-wins.
"""

import json
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Union

import structlog
from pydantic import ValidationError as PydanticValidationError

from krishimitr.core.config import Settings, settings as default_settings
from krishimitr.core.exceptions import (
    DuplicateAccountError,
    InvalidCredentialsError,
    InvalidEmailError,
    NoActiveSessionError,
    StorageUnavailableError,
    ValidationError,
    WeakPasswordError,
)
from krishimitr.core.result import Result
from krishimitr.domain.schemas import (
    DEFAULT_LANGUAGES,
    DEFAULT_LOCATION,
    DEFAULT_NAME,
    Account,
    Profile,
    ProfileUpdate,
    RegistrationMetadata,
    Session,
    SessionUser,
)
from krishimitr.infrastructure.storage import KeyValueStore
from krishimitr.state_machines.session_flow import SessionFlowMachine
from krishimitr.utils.auth_validation import validate_email, validate_password
from krishimitr.utils.passwords import hash_password, verify_legacy_password, verify_password

logger = structlog.get_logger(__name__)

ACCOUNTS_KEY = "accounts"
CURRENT_USER_KEY = "current_user"
PROFILES_KEY = "profiles"

# Explicit None is ignored for these instead of blanking them
NON_NULLABLE_PROFILE_FIELDS = {"name", "location", "languages", "verified"}

DEMO_ACCOUNTS = [
    {
        "id": "demo-farmer-1",
        "email": "farmer@demo.com",
        "password": "farmer123",
        "name": "Demo Farmer",
        "phone": "+91-9876543210",
        "location": "Punjab, India",
    },
    {
        "id": "demo-admin-1",
        "email": "admin@demo.com",
        "password": "admin123",
        "name": "Demo Admin",
        "phone": "+91-9876543211",
        "location": "Delhi, India",
    },
]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_account_id() -> str:
    return f"user-{uuid.uuid4().hex}"


class SessionStore:
    """
    Owns accounts, the current session and profiles for one client.

    Expected failures (bad email, duplicate account, wrong password, no
    session) come back as failed Results. Storage failures raise
    StorageUnavailableError.
    """

    def __init__(
        self,
        store: KeyValueStore,
        config: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None,
        id_factory: Optional[Callable[[], str]] = None,
    ):
        self.store = store
        self.config = config or default_settings
        self.clock = clock or _utcnow
        self.id_factory = id_factory or _new_account_id
        self.flow = SessionFlowMachine(context={"id": "session"})
        self._session: Optional[Session] = None
        self._profile: Optional[Profile] = None
        # Throwaway hash so unknown emails cost the same as wrong passwords
        self._decoy_hash = hash_password("decoy-password")

        if self.config.seed_demo_accounts:
            self._seed_demo_accounts()
        self._rehydrate()

    # Storage helpers
    def _read_json(self, key: str, default: Any) -> Any:
        raw = self.store.get(key)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            logger.error("storage_value_corrupt", key=key, error=str(e))
            raise StorageUnavailableError(
                "Stored data is corrupt", details={"key": key}
            ) from e

    def _write_json(self, key: str, value: Any) -> None:
        self.store.set(key, json.dumps(value))

    def _load_accounts(self) -> List[Account]:
        records = self._read_json(ACCOUNTS_KEY, [])
        try:
            return [Account.model_validate(record) for record in records]
        except (PydanticValidationError, TypeError) as e:
            logger.error("account_records_invalid", error=str(e))
            raise StorageUnavailableError(
                "Stored accounts are invalid", details={"key": ACCOUNTS_KEY}
            ) from e

    def _save_accounts(self, accounts: List[Account]) -> None:
        self._write_json(
            ACCOUNTS_KEY, [account.model_dump(exclude_none=True) for account in accounts]
        )

    def _load_profiles(self) -> Dict[str, Any]:
        profiles = self._read_json(PROFILES_KEY, {})
        if not isinstance(profiles, dict):
            logger.error("profile_records_invalid", type=type(profiles).__name__)
            raise StorageUnavailableError(
                "Stored profiles are invalid", details={"key": PROFILES_KEY}
            )
        return profiles

    # Startup
    def _seed_demo_accounts(self):
        if self._read_json(ACCOUNTS_KEY, []):
            return

        accounts = [
            Account(
                id=demo["id"],
                email=demo["email"],
                password_hash=hash_password(demo["password"]),
                name=demo["name"],
                phone=demo["phone"],
                location=demo["location"],
            )
            for demo in DEMO_ACCOUNTS
        ]
        self._save_accounts(accounts)
        logger.info("demo_accounts_seeded", count=len(accounts))

    def _rehydrate(self):
        raw = self.store.get(CURRENT_USER_KEY)
        if raw is None:
            return

        try:
            user = SessionUser.model_validate_json(raw)
        except PydanticValidationError as e:
            logger.warning("saved_session_discarded", error_count=e.error_count())
            self.store.delete(CURRENT_USER_KEY)
            return

        self._session = Session(user=user)
        self.flow.sign_in(user_id=user.id)
        self._profile = self._load_or_create_profile(user.id)
        logger.info("session_rehydrated", user_id=user.id)

    # Profiles
    def _default_profile(self, account: Account) -> Profile:
        now = self.clock()
        return Profile(
            id=account.id,
            name=account.name,
            phone=account.phone or None,
            location=account.location or DEFAULT_LOCATION,
            languages=list(DEFAULT_LANGUAGES),
            verified=True,
            created_at=now,
            updated_at=now,
        )

    def _repair_profile(self, default: Profile, record: Dict[str, Any]) -> Profile:
        """Keep whatever fields of a partial record still validate on top of the defaults."""
        kept = {
            field: value
            for field, value in record.items()
            if field in Profile.model_fields
            and field != "id"
            and (value is not None or field not in NON_NULLABLE_PROFILE_FIELDS)
        }
        try:
            return Profile.model_validate({**default.model_dump(), **kept})
        except PydanticValidationError:
            return default

    def _load_or_create_profile(self, user_id: str) -> Optional[Profile]:
        """
        Return the stored profile, creating it from the account when absent.

        Records that no longer validate (partial writes from older clients)
        are rebuilt from the account defaults and saved back.
        """
        profiles = self._load_profiles()
        record = profiles.get(user_id)
        if record is not None:
            try:
                return Profile.model_validate(record)
            except PydanticValidationError as e:
                logger.warning("profile_record_invalid", user_id=user_id, error_count=e.error_count())

        account = next((a for a in self._load_accounts() if a.id == user_id), None)
        if account is None:
            logger.warning("profile_account_missing", user_id=user_id)
            return None

        profile = self._default_profile(account)
        if isinstance(record, dict):
            profile = self._repair_profile(profile, record)
        profiles[user_id] = profile.model_dump(mode="json")
        self._write_json(PROFILES_KEY, profiles)
        logger.info("profile_created" if record is None else "profile_repaired", user_id=user_id)
        return profile

    def _establish(self, account: Account) -> Session:
        user = account.public()
        session = Session(user=user)
        self._write_json(CURRENT_USER_KEY, user.model_dump())
        self._session = session
        self.flow.sign_in(user_id=user.id)
        self._profile = self._load_or_create_profile(user.id)
        return session

    # Public operations
    def register(
        self,
        email: str,
        password: str,
        metadata: Optional[Union[RegistrationMetadata, Dict[str, Any]]] = None,
    ) -> Result[Session]:
        """
        Create an account and sign it in.

        Args:
            email: Must look like local@domain.tld and be unused
            password: At least min_password_length characters
            metadata: Optional name/phone/location seed

        Returns:
            Result carrying the new Session, or DuplicateAccountError,
            InvalidEmailError, WeakPasswordError
        """
        if metadata is None:
            metadata = RegistrationMetadata()
        elif isinstance(metadata, dict):
            try:
                metadata = RegistrationMetadata.model_validate(metadata)
            except PydanticValidationError as e:
                fields = [".".join(str(part) for part in err["loc"]) for err in e.errors()]
                logger.info("registration_rejected", reason="invalid_metadata", fields=fields)
                return Result.failure(
                    ValidationError("Invalid registration metadata", details={"fields": fields})
                )

        accounts = self._load_accounts()
        if any(account.email == email for account in accounts):
            logger.info("registration_rejected", reason="duplicate_account")
            return Result.failure(DuplicateAccountError())

        is_valid, _ = validate_email(email)
        if not is_valid:
            logger.info("registration_rejected", reason="invalid_email")
            return Result.failure(InvalidEmailError())

        is_valid, error = validate_password(password, self.config.min_password_length)
        if not is_valid:
            logger.info("registration_rejected", reason="weak_password")
            return Result.failure(
                WeakPasswordError(error, details={"min_length": self.config.min_password_length})
            )

        account = Account(
            id=self.id_factory(),
            email=email,
            password_hash=hash_password(password),
            name=metadata.name or DEFAULT_NAME,
            phone=metadata.phone or None,
            location=metadata.location or DEFAULT_LOCATION,
        )
        accounts.append(account)
        self._save_accounts(accounts)

        session = self._establish(account)
        logger.info("account_registered", user_id=account.id)
        return Result.success(session)

    def authenticate(self, email: str, password: str) -> Result[Session]:
        """
        Sign in with an exact email/password match.

        Unknown email and wrong password both yield InvalidCredentialsError.
        """
        accounts = self._load_accounts()
        candidates = [account for account in accounts if account.email == email]

        if not candidates:
            verify_password(password, self._decoy_hash)
            logger.info("authentication_failed")
            return Result.failure(InvalidCredentialsError())

        for account in candidates:
            if account.password_hash:
                if verify_password(password, account.password_hash):
                    return self._authenticated(account)
            elif account.password is not None:
                if verify_legacy_password(password, account.password):
                    self._upgrade_legacy_password(accounts, account, password)
                    return self._authenticated(account)

        logger.info("authentication_failed")
        return Result.failure(InvalidCredentialsError())

    def _authenticated(self, account: Account) -> Result[Session]:
        session = self._establish(account)
        logger.info("authentication_succeeded", user_id=account.id)
        return Result.success(session)

    def _upgrade_legacy_password(self, accounts: List[Account], account: Account, password: str):
        account.password_hash = hash_password(password)
        account.password = None
        self._save_accounts(accounts)
        logger.info("legacy_password_upgraded", user_id=account.id)

    def sign_out(self) -> Result[None]:
        """Clear the active session from memory and storage. Always succeeds."""
        user_id = self._session.user.id if self._session else None
        self._session = None
        self._profile = None
        self.store.delete(CURRENT_USER_KEY)
        self.flow.sign_out()
        logger.info("signed_out", user_id=user_id)
        return Result.success(None)

    def update_profile(self, updates: Union[ProfileUpdate, Dict[str, Any]]) -> Result[Profile]:
        """
        Merge updates into the active account's profile.

        Only fields present in updates are written. updated_at never moves
        backwards.
        """
        if self._session is None:
            return Result.failure(NoActiveSessionError())

        if isinstance(updates, dict):
            try:
                updates = ProfileUpdate.model_validate(updates)
            except PydanticValidationError as e:
                fields = [".".join(str(part) for part in err["loc"]) for err in e.errors()]
                logger.info("profile_update_rejected", fields=fields)
                return Result.failure(
                    ValidationError("Invalid profile fields", details={"fields": fields})
                )

        user_id = self._session.user.id
        current = self._load_or_create_profile(user_id)
        if current is None:
            return Result.failure(NoActiveSessionError(details={"user_id": user_id}))
        profiles = self._load_profiles()

        changes = {
            field: value
            for field, value in updates.model_dump(exclude_unset=True).items()
            if value is not None or field not in NON_NULLABLE_PROFILE_FIELDS
        }
        now = self.clock()
        changes["updated_at"] = max(now, current.updated_at)
        updated = current.model_copy(update=changes)

        profiles[user_id] = updated.model_dump(mode="json")
        self._write_json(PROFILES_KEY, profiles)
        self._profile = updated
        logger.info("profile_updated", user_id=user_id, fields=sorted(changes))
        return Result.success(updated)

    def current_session(self) -> Optional[Session]:
        return self._session

    def current_profile(self) -> Optional[Profile]:
        return self._profile
