"""Agora API - Main Application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

from src.appeals.router import router as appeals_router
from src.appeals.service import AppealService
from src.appeals.store import AppealStore
from src.communities.roles import RoleCache
from src.communities.router import router as communities_router
from src.communities.service import CommunityService
from src.communities.store import MembershipStore
from src.config import Settings, get_settings
from src.core.database import init_async_cassandra, shutdown_async_cassandra
from src.core.errors import register_exception_handlers
from src.core.logging import configure_structlog, get_logger
from src.core.middleware import RequestContextMiddleware
from src.core.redis import close_redis, connect_redis
from src.core.transaction import transaction_factory
from src.health.router import router as health_router
from src.notifications.connections import ConnectionRegistry
from src.notifications.fanout import NotificationFanout
from src.notifications.router import router as notifications_router
from src.notifications.service import NotificationService
from src.notifications.websocket_router import router as notifications_ws_router
from src.reports.auto_ban import AutoBanEvaluator
from src.reports.ledger import ReportLedger
from src.reports.router import router as reports_router
from src.reports.service import ReportService


# Configure logging early (before creating logger)
settings = get_settings()
configure_structlog(settings, log_dir=Path(settings.log_dir))

logger = get_logger(__name__)


def build_services(app: FastAPI, session, redis_client, settings: Settings) -> None:
    """Wire stores and services onto ``app.state``.

    The connection registry is created before this runs so live sessions
    survive even when the database is unavailable.
    """
    keyspace = settings.cassandra_keyspace
    begin = transaction_factory(session)

    notification_service = NotificationService(
        session=session, keyspace=keyspace, redis=redis_client
    )
    fanout = NotificationFanout(notification_service, app.state.connection_registry)
    membership = MembershipStore(session=session, keyspace=keyspace)
    role_cache = RoleCache(
        membership, redis=redis_client, ttl_seconds=settings.role_cache_ttl_seconds
    )
    ledger = ReportLedger(session=session, keyspace=keyspace, transaction_factory=begin)
    evaluator = AutoBanEvaluator(
        membership,
        ledger,
        fanout,
        threshold=settings.moderation_auto_ban_threshold,
        window_days=settings.moderation_auto_ban_window_days,
        role_cache=role_cache,
    )

    app.state.notification_service = notification_service
    app.state.role_cache = role_cache
    app.state.community_service = CommunityService(
        membership, fanout, begin, role_cache=role_cache
    )
    app.state.report_service = ReportService(
        ledger,
        membership,
        evaluator,
        reason_max_length=settings.moderation_report_reason_max_length,
    )
    app.state.appeal_service = AppealService(
        AppealStore(session=session, keyspace=keyspace),
        membership,
        fanout,
        begin,
        role_cache=role_cache,
        description_max_length=settings.moderation_appeal_description_max_length,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings = get_settings()
    logger.info(
        "starting_application",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )

    app.state.connection_registry = ConnectionRegistry()

    # Redis is optional, the caches read through to Cassandra without it
    redis_client = await connect_redis(settings)

    # Initialize Cassandra (async)
    try:
        session = await init_async_cassandra()
        logger.info("cassandra_initialized")
        build_services(app, session, redis_client, settings)
        logger.info(
            "moderation_services_initialized",
            redis_enabled=redis_client is not None,
        )
    except Exception as e:
        logger.warning(
            "database_init_skipped",
            error=str(e),
            message="Running without database connection",
        )

    yield

    # Shutdown
    logger.info("shutting_down_application")
    await close_redis(redis_client)
    await shutdown_async_cassandra()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    # Starlette's debug mode would put stack traces in responses; the handlers
    # from register_exception_handlers log details and return safe messages.
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Community moderation and trust API",
        debug=False,
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
    )

    # Binds request_id before anything logs
    app.add_middleware(
        RequestContextMiddleware,
        log_requests=settings.log_requests,
        exclude_paths=settings.log_exclude_paths,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
        max_age=settings.cors_max_age,
    )

    register_exception_handlers(app)

    app.include_router(health_router)
    app.include_router(communities_router)
    app.include_router(reports_router)
    app.include_router(appeals_router)
    app.include_router(notifications_router)
    app.include_router(notifications_ws_router)  # WebSocket for real-time notifications

    @app.get("/", include_in_schema=False)
    async def root(request: Request) -> dict[str, str]:
        """Root endpoint."""
        return {
            "message": "Agora API",
            "version": settings.app_version,
            "docs": f"{request.url}docs",
        }

    return app


app = create_app()
