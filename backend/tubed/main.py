"""FastAPI application factory.

Run with:
    uvicorn tubed.main:create_app --factory
"""
import logging
import time
from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from tubed import __version__
from tubed.config import Settings, settings as default_settings
from tubed.database import build_engine
from tubed.errors import StorageFailure, TubedError
from tubed.services.file_service import FileService
from tubed.services.file_storage import FileStorageService
from tubed.services.metadata_store import MetadataStore

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the app and the store/services it owns for the process lifetime."""
    settings = settings or default_settings
    configure_logging(settings.LOG_LEVEL)

    store = MetadataStore(build_engine(settings.DATABASE_URL))
    storage = FileStorageService(settings.STORAGE_ROOT, settings.PUBLIC_URL_PREFIX)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Create tables on startup, release the engine on shutdown."""
        await store.create_schema()
        if not settings.AUTH_CODE:
            logger.warning("AUTH_CODE is not configured; login is disabled")
        yield
        await store.dispose()

    app = FastAPI(
        title="Tubed API",
        version=__version__,
        description="Personal image and file hosting.",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.started_at = time.monotonic()
    app.state.store = store
    app.state.storage = storage
    app.state.file_service = FileService(store, storage)

    # CORS
    origins = [o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _register_exception_handlers(app)

    # Register routers
    from tubed.routes.auth import router as auth_router
    from tubed.routes.files import router as files_router
    from tubed.routes.upload import router as upload_router
    from tubed.routes.images import router as images_router, serve_image
    app.include_router(auth_router)
    app.include_router(files_router)
    app.include_router(upload_router)
    app.include_router(images_router)
    # Record urls are <url_prefix>/<storage name>
    app.add_api_route(
        f"{storage.url_prefix}/{{path:path}}",
        serve_image,
        methods=["GET"],
        tags=["images"],
    )

    @app.get("/api/health")
    async def health_check(request: Request):
        """Verify database connectivity, storage root and auth configuration."""
        health = {
            "status": "healthy",
            "version": __version__,
            "uptime": round(time.monotonic() - request.app.state.started_at, 3),
        }
        try:
            await store.ping()
            stats = await store.stats()
            health["database"] = {
                "status": "connected",
                "totalFiles": stats.total_files,
                "totalSize": stats.total_size,
                "categories": len(stats.categories),
            }
        except SQLAlchemyError as e:
            logger.error("Health check database failure: %s", e)
            health["database"] = {"status": "error"}
            health["status"] = "degraded"

        root_exists = storage.base_path.is_dir()
        health["storage"] = {"uploadsDirectory": {"exists": root_exists}}
        if not root_exists:
            health["status"] = "degraded"

        health["config"] = {"authConfigured": bool(settings.AUTH_CODE)}
        if not settings.AUTH_CODE:
            health["status"] = "degraded"
        return health

    return app


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(TubedError)
    async def handle_tubed_error(request: Request, exc: TubedError):
        if isinstance(exc, StorageFailure):
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.__cause__ or exc)
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        messages = []
        for err in exc.errors():
            location = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
            messages.append(f"{location}: {err.get('msg')}" if location else err.get("msg", ""))
        return JSONResponse(status_code=400, content={"error": "; ".join(messages) or "Invalid request"})
