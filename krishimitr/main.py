"""
Wiring for host applications.

    store = create_session_store()
    workflow = create_payment_workflow(on_success=confirm_booking)
"""

from typing import Any, Callable, Optional

import structlog

from krishimitr.core.config import Settings, settings as default_settings
from krishimitr.core.logging_config import configure_logging
from krishimitr.infrastructure.storage import KeyValueStore, build_store
from krishimitr.services.auth.otp_service import OTPService
from krishimitr.services.auth.session_store import SessionStore
from krishimitr.services.payments.checkout import HostedCheckout, Launcher
from krishimitr.services.payments.payment_workflow import PaymentWorkflow

logger = structlog.get_logger(__name__)

_logging_configured = False


def bootstrap(config: Optional[Settings] = None) -> Settings:
    """Configure logging once and return the active settings."""
    global _logging_configured
    config = config or default_settings
    if not _logging_configured:
        configure_logging()
        _logging_configured = True
        logger.info("krishimitr_started", environment=config.environment, storage=config.storage_backend)
    return config


def create_session_store(
    config: Optional[Settings] = None, store: Optional[KeyValueStore] = None
) -> SessionStore:
    config = bootstrap(config)
    return SessionStore(store or build_store(config), config=config)


def create_otp_service(
    config: Optional[Settings] = None, store: Optional[KeyValueStore] = None
) -> OTPService:
    config = bootstrap(config)
    return OTPService(store or build_store(config), config=config)


def create_payment_workflow(
    on_success: Callable[[], Any],
    on_close: Optional[Callable[[], Any]] = None,
    config: Optional[Settings] = None,
) -> PaymentWorkflow:
    return PaymentWorkflow(on_success=on_success, on_close=on_close, config=bootstrap(config))


def create_hosted_checkout(launcher: Launcher, config: Optional[Settings] = None) -> HostedCheckout:
    return HostedCheckout(launcher, config=bootstrap(config))
