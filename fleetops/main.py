import os
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from prometheus_fastapi_instrumentator import Instrumentator
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import Settings, settings as default_settings
from .db import Base, build_engine, build_session_factory
from .logging import setup_logging, RequestIdMiddleware, structlog
from .auth.router import router as auth_router
from .routes.break_requests import router as break_requests_router
from .routes.breakdown_reports import router as breakdown_reports_router
from .routes.reports import router as reports_router
from .routes.storm import router as storm_router
from .services.seed import seed_demo_data
from .storage.local_provider import LocalStorageProvider


def _error_response(status_code: int, message, headers=None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message}, headers=headers)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return _error_response(exc.status_code, exc.detail, getattr(exc, "headers", None))


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    loc = ".".join(str(p) for p in first.get("loc", ()) if p not in ("body", "query", "path"))
    message = f"{loc}: {first.get('msg')}" if loc else (first.get("msg") or "Invalid request")
    return _error_response(400, message)


async def unhandled_exception_handler(request: Request, exc: Exception):
    # Detail stays server-side
    structlog.get_logger().error(
        "unhandled_error",
        path=request.url.path,
        method=request.method,
        request_id=getattr(request.state, "request_id", None),
        exc_info=exc,
    )
    return _error_response(500, "Internal Server Error")


def create_app(app_settings: Optional[Settings] = None) -> FastAPI:
    setup_logging()
    app_settings = app_settings or default_settings
    app = FastAPI(title=app_settings.app_name)

    # Store, settings and uploads are built once here and shared through app.state
    engine = build_engine(app_settings.database_url)
    app.state.settings = app_settings
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)
    app.state.storage = LocalStorageProvider(app_settings.upload_dir, app_settings.cdn_base_url)

    # Middlewares
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    limiter = Limiter(key_func=get_remote_address, default_limits=[app_settings.rate_limit])
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    # Errors render as {"error": "..."}
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # Routers
    app.include_router(auth_router)
    app.include_router(break_requests_router)
    app.include_router(breakdown_reports_router)
    app.include_router(reports_router)
    app.include_router(storm_router)

    # Uploaded photos, when no CDN fronts them
    if not app_settings.cdn_base_url:
        app.mount("/uploads", StaticFiles(directory=app_settings.upload_dir, check_dir=False), name="uploads")

    # Metrics
    if app_settings.enable_metrics:
        Instrumentator().instrument(app).expose(app)

    @app.on_event("startup")
    def _startup():
        log = structlog.get_logger()
        # Ensure local SQLite directory exists
        if app_settings.database_url.startswith("sqlite:///./"):
            os.makedirs("var", exist_ok=True)
        if app_settings.auto_create_db:
            Base.metadata.create_all(bind=engine)
            log.info("startup_tables_verified", tables=sorted(Base.metadata.tables.keys()))
        if app_settings.seed_demo_data:
            db = app.state.session_factory()
            try:
                seed_demo_data(db)
            finally:
                db.close()
        log.info("startup_complete", app=app_settings.app_name, environment=app_settings.environment)

    @app.on_event("shutdown")
    def _shutdown():
        engine.dispose()

    return app


app = create_app()
