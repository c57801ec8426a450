from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from shortlinks.core.config import settings
from shortlinks.core.errors import ShortenerError
from shortlinks.core.hooks import HookRegistry, load_plugins
from shortlinks.core.logging_config import configure_logging
from shortlinks.db.Connection import database
from shortlinks.db.Models import models
from shortlinks.db.repository import ensure_installed
from shortlinks.api import shortener, admin

logger = configure_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Application '{settings.PROJECT_NAME}' starting up.")
    models.Base.metadata.create_all(bind=database.engine)
    db = database.SessionLocal()
    try:
        ensure_installed(db)
    finally:
        db.close()
    logger.info("Database models initialized/checked.")
    if settings.KEYWORD_CACHE_ENABLED:
        database.verify_redis_connection()
    yield
    logger.info("Shutting down gracefully...")
    database.close_connections()


API_PREFIX = "/api"


def route_keywords(*paths) -> frozenset:
    """First path segments of fixed routes; a keyword named like one could never be reached."""
    keywords = set()
    for path in paths:
        segment = (path or "").lstrip("/").split("/", 1)[0]
        if segment and "{" not in segment:
            keywords.add(segment)
    return frozenset(keywords)


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="Self-hosted URL shortener",
        lifespan=lifespan,
    )

    app.state.hooks = HookRegistry()
    load_plugins(app.state.hooks, settings.PLUGINS)

    @app.get("/health", tags=["health"])
    def health_check():
        return {"status": "healthy", "service": "shortlinks"}

    # readiness: database, plus Redis when the keyword cache uses it
    @app.get("/ready", tags=["health"])
    def readiness_check():
        details = database.readiness(check_redis=settings.KEYWORD_CACHE_ENABLED)
        ready = all(v == "ok" for v in details.values())
        return JSONResponse(status_code=200 if ready else 503, content={"ready": ready, "details": details})

    app.include_router(shortener.router, prefix=API_PREFIX)
    app.include_router(admin.router, prefix=f"{API_PREFIX}/v1")
    # catch-all /{keyword} goes last so it never shadows the routes above
    app.include_router(shortener.redirect_router)

    # included routers do not expose their paths through app.routes on newer FastAPI
    app.state.reserved_routes = route_keywords(
        API_PREFIX, "/health", "/ready", app.docs_url, app.redoc_url, app.openapi_url
    )

    @app.exception_handler(ShortenerError)
    async def shortener_exception_handler(request: Request, exc: ShortenerError):
        logger.warning(f"{exc.code} on {request.url.path}: {exc.message}")
        return JSONResponse(
            status_code=exc.status_code,
            content={"status": "fail", "code": exc.code, "message": exc.message, "status_code": exc.status_code},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    return app


app = create_app()
