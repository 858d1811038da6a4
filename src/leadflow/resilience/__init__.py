"""Resilience infrastructure for external API calls."""

from leadflow.resilience.retry import is_transient_error, resilient_api_call

__all__ = [
    "is_transient_error",
    "resilient_api_call",
]
