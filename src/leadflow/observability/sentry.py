"""Sentry SDK initialization with structlog-sentry bridge.

Failed plans and exhausted FSM retries are logged at ERROR level; with a DSN
configured those log events become Sentry issues through
``get_sentry_processor()``.
"""

from __future__ import annotations

import logging

import sentry_sdk
import structlog
from sentry_sdk.integrations.logging import LoggingIntegration
from structlog_sentry import SentryProcessor


def init_sentry(dsn: str, *, environment: str = "development") -> bool:
    """Initialize Sentry SDK with the given *dsn*.

    Args:
        dsn: Sentry DSN string.  Empty string disables Sentry.
        environment: Environment tag attached to every event.

    Returns:
        ``True`` if the SDK was initialized, ``False`` when disabled.
    """
    if not dsn:
        return False

    sentry_sdk.init(
        dsn=dsn,
        environment=environment,
        traces_sample_rate=0.1,
        send_default_pii=False,
        integrations=[
            # structlog-sentry reports errors; stdlib logging capture would duplicate them.
            LoggingIntegration(event_level=None, level=None),
        ],
    )
    return True


def get_sentry_processor() -> structlog.types.Processor:
    """Return a structlog processor that forwards ERROR events to Sentry.

    Insert this into the structlog processor chain after ``add_log_level``
    and before the renderer.
    """
    return SentryProcessor(event_level=logging.ERROR)
