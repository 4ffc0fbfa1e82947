"""
FastAPI application entry point.

Run with:
    uvicorn backend.app.main:app --reload --port 5000

Or from the project root:
    python -m uvicorn backend.app.main:app --reload

Storage backend:
    DATABASE_URL unset → in-memory stores
    DATABASE_URL=postgresql+asyncpg://… or sqlite+aiosqlite:///… → SQLAlchemy stores
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# ── Core infrastructure ──
from backend.app.core.config import settings
from backend.app.core.database import Database
from backend.app.core.logging_config import setup_logging, get_logger
from backend.app.core.errors import register_error_handlers
from backend.app.core.middleware import RequestLoggingMiddleware
from backend.app.core.health import HealthStatus, run_health_check

# ── Services ──
from backend.app.alerts.alert_service import AlertService
from backend.app.ingestion.reconciler import AdvisoryFeed, WeatherReconciler
from backend.app.ingestion.scheduler import ReconcileScheduler
from backend.app.ingestion.weather_service import OpenWeatherClient
from backend.app.mesh.sos_service import SosService
from backend.app.risk.scanner import RiskClassifier, RiskScanService
from backend.app.storage.base import AlertStore, SosStore
from backend.app.storage.memory import InMemoryAlertStore, InMemorySosStore

# ── API routers ──
from backend.app.api.v1.alerts import router as alert_router
from backend.app.api.v1.scan import router as scan_router
from backend.app.api.v1.mesh import router as mesh_router
from backend.app.api.v1.weather import router as weather_router

# ── Initialise logging ──
setup_logging()
logger = get_logger(__name__)


def _build_stores(database: Optional[Database]) -> tuple:
    if database is None:
        return InMemoryAlertStore(), InMemorySosStore()
    from backend.app.storage.sql import SqlAlertStore, SqlSosStore
    return SqlAlertStore(database), SqlSosStore(database)


def create_app(
    *,
    alert_store: Optional[AlertStore] = None,
    sos_store: Optional[SosStore] = None,
    feed: Optional[AdvisoryFeed] = None,
    classifier: Optional[RiskClassifier] = None,
    database_url: Optional[str] = None,
    start_scheduler: Optional[bool] = None,
    manual_sync: Optional[bool] = None,
) -> FastAPI:
    """
    Build the application.

    Explicit stores / feed / classifier win over configuration, which is
    how the tests run the full API against in-memory fakes.
    """
    url = database_url if database_url is not None else settings.DATABASE_URL
    database = Database(url) if url and alert_store is None and sos_store is None else None
    default_alerts, default_sos = _build_stores(database)
    alert_store = alert_store or default_alerts
    sos_store = sos_store or default_sos

    owns_feed = feed is None
    feed = feed or OpenWeatherClient()
    reconciler = WeatherReconciler(alert_store, feed)
    scheduler = ReconcileScheduler(reconciler, settings.WEATHER_SYNC_INTERVAL_SECONDS)
    run_scheduler = settings.WEATHER_SYNC_ENABLED if start_scheduler is None else start_scheduler

    # ── Application lifespan (startup / shutdown) ──

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            "Starting %s v%s [%s] (store=%s)",
            settings.APP_NAME, settings.APP_VERSION, settings.ENVIRONMENT,
            type(alert_store).__name__,
        )
        if database is not None:
            await database.init()
        if run_scheduler:
            await scheduler.start()
        yield
        await scheduler.stop()
        if owns_feed and isinstance(feed, OpenWeatherClient):
            await feed.close()
        if database is not None:
            await database.close()
        logger.info("Shutting down %s", settings.APP_NAME)

    app = FastAPI(
        title=settings.APP_NAME,
        description=(
            "Disaster alert aggregation and relay. Accepts manual hazard "
            "alerts, image risk scans and offline mesh SOS messages, merges "
            "OpenWeather advisories for monitored localities every five "
            "minutes, and serves radius-filtered, newest-first alert views."
        ),
        version=settings.APP_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.state.alert_store = alert_store
    app.state.sos_store = sos_store
    app.state.reconciler = reconciler
    app.state.scheduler = scheduler
    app.state.manual_sync_enabled = (
        settings.WEATHER_MANUAL_SYNC_ENABLED if manual_sync is None else manual_sync
    )
    app.state.alert_service = AlertService(alert_store)
    app.state.scan_service = RiskScanService(alert_store, classifier)
    app.state.sos_service = SosService(sos_store)

    # ── Middleware stack (order matters — outermost first) ──

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS if not settings.CORS_ALLOW_ALL else ["*"],
        allow_credentials=not settings.CORS_ALLOW_ALL,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    # ── Error handlers ──
    register_error_handlers(app)

    # ── Register routers ──
    for router in (alert_router, scan_router, mesh_router, weather_router):
        app.include_router(router, prefix=settings.API_PREFIX)

    # ── Root & health endpoints ──

    @app.get("/", tags=["root"])
    async def root():
        return {
            "service": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "environment": settings.ENVIRONMENT,
            "modules": [
                "radius-filter",
                "manual-alerts",
                "ai-scan",
                "mesh-sos",
                "weather-sync",
            ],
            "docs": "/docs",
        }

    @app.get("/health", tags=["health"])
    async def health_check():
        """Deep health check of the store and weather feed."""
        report = await run_health_check(alert_store, sos_store, reconciler)
        return report.to_dict()

    @app.get("/health/live", tags=["health"])
    async def liveness():
        """Liveness check: is the process alive?"""
        return {"status": "alive"}

    @app.get("/health/ready", tags=["health"])
    async def readiness():
        """Readiness check: can we serve traffic?"""
        report = await run_health_check(alert_store, sos_store, reconciler)
        if report.status == HealthStatus.UNHEALTHY:
            return JSONResponse(status_code=503, content=report.to_dict())
        return report.to_dict()

    return app


app = create_app()
