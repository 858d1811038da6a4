"""Application entry point serving the event intake and approval API.

Configures:
- **structlog** with JSON rendering (production) or colored console (development)
- **Sentry** error reporting through the structlog bridge when a DSN is set
- **Prometheus** HTTP and business metrics at ``/metrics``
- The orchestrator and its tool facade, backed by a single SQLite database
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

import structlog
import uvicorn
from fastapi import FastAPI

from leadflow.api import router as api_router
from leadflow.audit.logger import AuditLogger
from leadflow.audit.store import close_audit_db, init_audit_db
from leadflow.config import Settings, get_settings, validate_credentials
from leadflow.context.builder import BusinessProfile
from leadflow.engine.orchestrator import Orchestrator
from leadflow.health import register_health_routes
from leadflow.observability.metrics import setup_metrics
from leadflow.observability.middleware import SERVICE_NAME, RequestIdMiddleware
from leadflow.observability.sentry import get_sentry_processor, init_sentry
from leadflow.planning.policy import Policy, load_policy
from leadflow.store.repository import LeadflowStore
from leadflow.store.schema import init_store_tables
from leadflow.tools import (
    ApprovalLedger,
    CommsTool,
    FsmClient,
    FsmTool,
    HttpFsmClient,
    HttpSmsProvider,
    InMemoryFsm,
    LoggingSmsProvider,
    MetricsRecorder,
    SmsProvider,
    ToolFacade,
)

logger = structlog.get_logger()


def configure_logging(production: bool = False, sentry_enabled: bool = False) -> None:
    """Configure structlog for production (JSON) or development (console).

    Production mode (*production=True*): JSON rendering at INFO level.
    Development mode: colored console rendering at DEBUG level.

    Args:
        production: Enable production mode if ``True``.
        sentry_enabled: Forward ERROR events to Sentry if ``True``.
    """
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if sentry_enabled:
        shared_processors.append(get_sentry_processor())

    if production:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
        log_level = logging.INFO
    else:
        renderer = structlog.dev.ConsoleRenderer()
        log_level = logging.DEBUG

    structlog.configure(
        processors=[*shared_processors, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    structlog.contextvars.bind_contextvars(service=SERVICE_NAME)


def _build_policy(settings: Settings) -> Policy:
    if settings.policy_path is not None:
        return load_policy(settings.policy_path)
    return Policy.for_tier(settings.policy_tier)


def initialize_services(settings: Settings | None = None) -> dict[str, Any]:
    """Set up all shared services for the application.

    Opens the SQLite database (audit trail and orchestration tables share one
    file), selects the SMS provider and FSM client (HTTP when configured,
    logging/in-memory otherwise), creates the Anthropic client when an API
    key is available, loads the policy, and wires the orchestrator.

    Args:
        settings: Application settings.  If ``None``, ``get_settings()`` is used.

    Returns:
        A dict of initialized service instances keyed by name.
    """
    if settings is None:
        settings = get_settings()

    services: dict[str, Any] = {"_settings": settings}

    # a. Database: audit trail and orchestration tables on one connection
    db_path = settings.db_path
    if str(db_path) != ":memory:":
        db_path.parent.mkdir(parents=True, exist_ok=True)
    db_conn = init_audit_db(db_path)
    init_store_tables(db_conn)
    services["db_conn"] = db_conn

    db_lock = threading.RLock()
    store = LeadflowStore(db_conn, lock=db_lock)
    services["store"] = store
    audit_logger = AuditLogger(db_conn, lock=db_lock)
    services["audit_logger"] = audit_logger

    # b. Messaging provider
    sms_provider: SmsProvider
    if settings.sms_gateway_url:
        sms_provider = HttpSmsProvider(
            settings.sms_gateway_url,
            settings.sms_gateway_token.get_secret_value(),
            settings.sms_from_number,
        )
        logger.info("sms_gateway_enabled", url=settings.sms_gateway_url)
    else:
        sms_provider = LoggingSmsProvider()
        logger.info("sms_gateway_not_configured", provider="logging")
    services["sms_provider"] = sms_provider

    # c. FSM client
    fsm_client: FsmClient
    if settings.fsm_base_url:
        fsm_client = HttpFsmClient(
            settings.fsm_base_url,
            settings.fsm_api_token.get_secret_value(),
            timeout=settings.fsm_timeout_seconds,
            max_attempts=settings.fsm_max_attempts,
        )
        logger.info("fsm_client_enabled", url=settings.fsm_base_url)
    else:
        fsm_client = InMemoryFsm()
        logger.info("fsm_not_configured", client="in_memory")
    services["fsm_client"] = fsm_client

    # d. Anthropic client (if anthropic_api_key is set)
    anthropic_client = None
    api_key = settings.anthropic_api_key.get_secret_value()
    if api_key:
        from leadflow.agents.client import get_anthropic_client

        anthropic_client = get_anthropic_client(api_key)
        logger.info("anthropic_client_initialized")
    else:
        logger.info("anthropic_not_configured", fallback="templates")
    services["anthropic_client"] = anthropic_client

    # e. Tool facade and orchestrator
    tools = ToolFacade(
        comms=CommsTool(sms_provider, audit_logger),
        fsm=FsmTool(fsm_client, audit_logger),
        approvals=ApprovalLedger(store, audit_logger),
        audit=audit_logger,
        metrics=MetricsRecorder(),
    )
    services["tools"] = tools

    policy = _build_policy(settings)
    business = BusinessProfile(
        name=settings.business_name,
        services=tuple(settings.business_services),
        service_area=settings.service_area,
    )
    services["orchestrator"] = Orchestrator(
        store,
        tools,
        business,
        policy,
        anthropic_client,
        receipt_lease_seconds=settings.receipt_lease_seconds,
    )
    logger.info("services_initialized", policy_tier=policy.tier, policy_version=policy.version)
    return services


def close_services(services: dict[str, Any]) -> None:
    """Close HTTP clients and the database connection."""
    for name in ("sms_provider", "fsm_client"):
        client = services.get(name)
        close = getattr(client, "close", None)
        if close is not None:
            close()
    db_conn = services.get("db_conn")
    if db_conn is not None:
        close_audit_db(db_conn)
        logger.info("database_closed")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Lifespan context manager for FastAPI startup and shutdown.

    Args:
        app: The FastAPI application instance.

    Yields:
        Control to the application.
    """
    logger.info("application_starting")
    yield
    close_services(app.state.services)


def create_app(services: dict[str, Any], *, enable_metrics: bool = True) -> FastAPI:
    """Create the FastAPI app with the API router, health routes, and metrics.

    Args:
        services: The initialized services dict from ``initialize_services``.
        enable_metrics: Expose Prometheus metrics at ``/metrics``.

    Returns:
        The configured FastAPI application.
    """
    fastapi_app = FastAPI(title="Leadflow", lifespan=lifespan)
    fastapi_app.state.services = services
    fastapi_app.add_middleware(RequestIdMiddleware)
    fastapi_app.include_router(api_router)
    register_health_routes(fastapi_app)
    if enable_metrics:
        setup_metrics(fastapi_app)
    return fastapi_app


async def main() -> None:
    """Main entry point.

    1. Configure logging (and Sentry when a DSN is set)
    2. Validate credentials
    3. Initialize services
    4. Serve the API with uvicorn
    """
    settings = get_settings()
    sentry_enabled = init_sentry(
        settings.sentry_dsn,
        environment="production" if settings.production else "development",
    )
    configure_logging(production=settings.production, sentry_enabled=sentry_enabled)
    logger.info("application_starting", sentry=sentry_enabled)

    validate_credentials(settings)
    services = initialize_services(settings)
    fastapi_app = create_app(services)

    config = uvicorn.Config(fastapi_app, host="0.0.0.0", port=settings.api_port, log_level="info")
    server = uvicorn.Server(config)
    await server.serve()


def run() -> None:
    """Console-script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
