"""Optional Sentry error tracking for script runs."""

import structlog

from azops import __version__
from azops.core.config import Settings
from azops.core.exceptions import ConfigurationError

logger = structlog.get_logger()


def init_error_tracking(settings: Settings) -> bool:
    """
    Initialize Sentry when a DSN is configured.

    Args:
        settings: Loaded settings

    Returns:
        True if Sentry was initialized, False otherwise

    Raises:
        ConfigurationError: If SENTRY_DSN is set but malformed
    """
    if not settings.SENTRY_DSN:
        logger.debug("error_tracking.disabled", reason="SENTRY_DSN not set")
        return False

    import sentry_sdk
    from sentry_sdk.utils import BadDsn

    try:
        sentry_sdk.init(
            dsn=settings.SENTRY_DSN,
            environment=settings.SENTRY_ENVIRONMENT,
            traces_sample_rate=settings.SENTRY_TRACES_SAMPLE_RATE,
            # Never attach user or tenant identifiers
            send_default_pii=False,
            release=f"azops@{__version__}",
            attach_stacktrace=True,
            max_breadcrumbs=50,
        )
    except BadDsn as e:
        raise ConfigurationError(f"SENTRY_DSN is not a valid Sentry DSN: {e}") from e

    logger.info("error_tracking.enabled", environment=settings.SENTRY_ENVIRONMENT)
    return True
