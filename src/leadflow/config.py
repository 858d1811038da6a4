"""Centralized, typed configuration using pydantic-settings.

Provides a single ``Settings`` class backed by ``.env`` file and environment
variables, a cached ``get_settings()`` accessor, and a ``validate_credentials()``
startup gate that enforces credential presence in production mode.

IMPORTANT: This module has ZERO imports from the ``leadflow`` package to
prevent circular imports.  Only stdlib, pydantic, pydantic_settings, and
structlog are used.
"""

from __future__ import annotations

import sys
from functools import lru_cache
from pathlib import Path

import structlog
from pydantic import SecretStr, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = structlog.get_logger()


class Settings(BaseSettings):
    """Application settings loaded from environment variables and ``.env`` file.

    ``SecretStr`` fields prevent accidental leaks in logs or error output.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # -- General ---------------------------------------------------------------
    production: bool = False
    api_port: int = 8000
    sentry_dsn: str = ""

    # -- Persistence -----------------------------------------------------------
    db_path: Path = Path("data/leadflow.db")
    receipt_lease_seconds: int = 300

    # -- Business profile ------------------------------------------------------
    business_name: str = "Green Thumb Landscaping"
    business_services: list[str] = ["Lawn Mowing", "Landscaping", "Tree Trimming"]
    service_area: str = "Local area"

    # -- Policy ----------------------------------------------------------------
    policy_path: Path | None = None
    policy_tier: str = "owner_operator"

    # -- LLM / Anthropic -------------------------------------------------------
    anthropic_api_key: SecretStr = SecretStr("")

    # -- Field service management ----------------------------------------------
    fsm_base_url: str = ""
    fsm_api_token: SecretStr = SecretStr("")
    fsm_timeout_seconds: float = 10.0
    fsm_max_attempts: int = 3

    # -- SMS gateway -----------------------------------------------------------
    sms_gateway_url: str = ""
    sms_gateway_token: SecretStr = SecretStr("")
    sms_from_number: str = ""


@lru_cache
def get_settings() -> Settings:
    """Return a cached ``Settings`` instance.

    Call ``get_settings.cache_clear()`` in tests to reset.

    Returns:
        The application ``Settings``.
    """
    try:
        return Settings()
    except ValidationError as exc:
        # Log only the structured errors list -- never the full exception
        # which may contain raw SecretStr values.
        logger.error("settings_validation_failed", errors=exc.errors())
        sys.exit(1)


def validate_credentials(settings: Settings) -> None:
    """Enforce credential presence at startup.

    In **production** mode the application exits with a clear error block if
    any required credential is missing.  In development each missing
    credential is logged as a warning and the agents fall back to their
    templated responses.

    Args:
        settings: The loaded application settings.
    """
    errors: list[str] = []

    if not settings.anthropic_api_key.get_secret_value():
        errors.append("ANTHROPIC_API_KEY is empty or not set")

    if settings.fsm_base_url and not settings.fsm_api_token.get_secret_value():
        errors.append("FSM_API_TOKEN is required when FSM_BASE_URL is set")

    if settings.sms_gateway_url and not settings.sms_gateway_token.get_secret_value():
        errors.append("SMS_GATEWAY_TOKEN is required when SMS_GATEWAY_URL is set")

    if settings.policy_path is not None and not settings.policy_path.exists():
        errors.append(f"Policy file not found: {settings.policy_path}")

    if not errors:
        logger.info("credential_validation_passed")
        return

    if settings.production:
        for err in errors:
            logger.error("credential_missing", detail=err)
        print("\n=== STARTUP FAILED ===", file=sys.stderr)
        print("Missing required configuration for production mode:", file=sys.stderr)
        for err in errors:
            print(f"  - {err}", file=sys.stderr)
        print("======================\n", file=sys.stderr)
        sys.exit(1)
    else:
        for err in errors:
            logger.warning("credential_missing_dev", detail=err)
