"""FastAPI application entry point: middleware pipeline, API routes and the
two single-page frontends."""

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.gzip import GZipMiddleware

from realty_server.api import status
from realty_server.config import Settings, get_settings
from realty_server.database import build_engine, build_session_factory, connect_db
from realty_server.errors import install_error_handlers
from realty_server.frontend import FrontendConfig, FrontendDispatcher
from realty_server.middleware import (
    ApiErrorMiddleware,
    BodySizeLimitMiddleware,
    RateLimitMiddleware,
    RequestStatsMiddleware,
    SecurityHeadersMiddleware,
)
from realty_server.ratelimit import FixedWindowRateLimiter
from realty_server.routing import RouteTable, load_route_table, slash_redirect
from realty_server.stats import RequestStats
from realty_server.supervisor import TaskSupervisor
from realty_server.utils import is_api_path

logger = logging.getLogger(__name__)

CORS_METHODS = ["GET", "POST", "PUT", "DELETE", "OPTIONS", "HEAD"]
CORS_HEADERS = ["Content-Type", "Authorization", "X-Requested-With"]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown events."""
    settings: Settings = app.state.settings
    supervisor = TaskSupervisor(on_fatal=app.state.on_fatal)
    supervisor.install(asyncio.get_running_loop())
    app.state.supervisor = supervisor

    engine = build_engine(settings.DATABASE_URL)
    app.state.db_engine = engine
    app.state.session_factory = build_session_factory(engine)
    # Requests are served before the connection check finishes
    supervisor.spawn(connect_db(engine), name="connect-db")
    yield
    await supervisor.shutdown()
    await engine.dispose()


def ensure_temp_dir(path: str) -> Optional[Path]:
    """Create the scratch directory used by file exports."""
    temp_dir = Path(path)
    try:
        temp_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.warning(f"Could not create temp directory {temp_dir}: {e}")
        return None
    return temp_dir


def create_app(
    settings: Optional[Settings] = None,
    routes: Optional[RouteTable] = None,
    on_fatal=None,
) -> FastAPI:
    settings = settings or get_settings()
    if routes is None:
        routes = load_route_table(settings.ROUTE_MODULES_PACKAGE)

    app = FastAPI(
        title="Hybrid Realty API",
        description=(
            "REST API for the real-estate listing site: properties, users, "
            "forms, news, appointments, admin and lucky draw. Also serves the "
            "user and admin single-page apps."
        ),
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/api/docs",
        redoc_url=None,
        openapi_url="/api/openapi.json",
    )
    app.state.settings = settings
    app.state.on_fatal = on_fatal
    app.state.request_stats = RequestStats()
    app.state.routes = routes
    app.state.temp_dir = ensure_temp_dir(settings.TEMP_DIR)

    # Middleware, innermost first. GZip sits inside the streaming layers so
    # it sees whole bodies and can honour its size threshold.
    app.add_middleware(GZipMiddleware, minimum_size=1024)
    app.add_middleware(ApiErrorMiddleware, include_stack=settings.is_development)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=CORS_METHODS,
        allow_headers=CORS_HEADERS,
    )
    app.add_middleware(RequestStatsMiddleware, stats=app.state.request_stats, routes=routes)
    app.add_middleware(BodySizeLimitMiddleware, max_body_size=settings.MAX_BODY_SIZE)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        RateLimitMiddleware,
        limiter=FixedWindowRateLimiter(
            limit=settings.RATE_LIMIT_MAX_REQUESTS,
            window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
        ),
    )

    install_error_handlers(app)

    # API routes - registered before the frontend catch-all
    app.include_router(status.router)
    routes.mount(app)

    # Frontend SPA serving - must come after all API routes
    dispatcher = FrontendDispatcher(
        FrontendConfig(
            user_root=Path(settings.USER_DIST_DIR),
            admin_root=Path(settings.ADMIN_DIST_DIR),
            admin_prefix=settings.ADMIN_PATH_PREFIX,
        )
    )
    app.state.frontend = dispatcher

    @app.api_route(
        "/{full_path:path}",
        methods=["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        include_in_schema=False,
    )
    async def frontend(request: Request, full_path: str):
        path = request.scope["path"]
        if is_api_path(path):
            redirect = slash_redirect(app.router.routes, request.scope, exclude=frontend)
            if redirect is not None:
                return redirect
        return dispatcher.dispatch(request.method, path)

    return app
