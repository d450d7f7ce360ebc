"""Observability module for Sentry integration."""

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from relay.config import SentryConfig

logger = logging.getLogger(__name__)

# sentry-sdk is an optional extra
try:
    import sentry_sdk
    from sentry_sdk.integrations.asyncio import AsyncioIntegration
    from sentry_sdk.integrations.logging import LoggingIntegration

    SENTRY_AVAILABLE = True
except ImportError:
    SENTRY_AVAILABLE = False


def init_sentry(config: "SentryConfig") -> bool:
    """Initialize Sentry if configured.

    Returns:
        True if Sentry was initialized, False otherwise.
    """
    if not SENTRY_AVAILABLE:
        logger.debug("Sentry SDK not installed, skipping initialization")
        return False

    if not config.dsn:
        logger.debug("Sentry DSN not configured, skipping initialization")
        return False

    sentry_sdk.init(
        dsn=config.dsn.get_secret_value(),
        environment=config.environment,
        release=config.release,
        traces_sample_rate=config.traces_sample_rate,
        send_default_pii=config.send_default_pii,
        debug=config.debug,
        integrations=[
            AsyncioIntegration(),
            LoggingIntegration(
                level=logging.INFO,  # Breadcrumbs
                event_level=logging.ERROR,
            ),
        ],
    )

    logger.info("sentry_initialized", extra={"sentry.environment": config.environment})
    return True
