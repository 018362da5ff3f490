"""
Main FastAPI Application
"""
from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from clientdesk.api.v1 import auth, clients, invoices, quotations, receipts, tickets, settings as settings_router, portal
from clientdesk.core.config import settings
from clientdesk.core.database import SessionLocal, engine, init_db
from clientdesk.core.exceptions import ClientDeskError
from clientdesk.core.rate_limit import RateLimitMiddleware
from clientdesk.services.password_cache import build_password_cache
from clientdesk.services.storage_service import FileStorage
from clientdesk.services.user_service import seed_admin

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    logger.info("Starting up...")
    init_db(bind=app.state.engine)

    config = app.state.settings
    if config.ADMIN_EMAIL and config.ADMIN_PASSWORD:
        db = app.state.session_factory()
        try:
            if seed_admin(db, config.ADMIN_EMAIL, config.ADMIN_PASSWORD, config.ADMIN_NAME):
                logger.info(f"Admin account {config.ADMIN_EMAIL} created")
        finally:
            db.close()

    logger.info("Database initialized")

    yield

    logger.info("Shutting down...")


def _error(status_code: int, message, headers=None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message}, headers=headers)


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path"))
    message = first.get("msg", "Invalid value")
    return f"{location}: {message}" if location else message


def register_exception_handlers(app: FastAPI):
    @app.exception_handler(ClientDeskError)
    async def clientdesk_error_handler(request: Request, exc: ClientDeskError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return _error(exc.status_code, exc.message)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return _error(exc.status_code, exc.detail, getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return _error(400, _validation_message(exc))

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return _error(500, "An unexpected error occurred")


def create_app(config=settings, bind=None, session_factory=None, password_cache=None) -> FastAPI:
    """
    Build the application. Each app owns its credential cache and file
    storage on ``app.state``; tests pass their own engine, sessions and cache.
    """
    app = FastAPI(
        title=config.APP_NAME,
        version=config.APP_VERSION,
        lifespan=lifespan
    )

    app.state.settings = config
    app.state.engine = bind or engine
    app.state.session_factory = session_factory or SessionLocal
    if password_cache is None:
        password_cache = build_password_cache(config, app.state.session_factory)
    app.state.password_cache = password_cache
    app.state.storage = FileStorage(config.UPLOAD_DIR)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if config.RATE_LIMIT_ENABLED:
        app.add_middleware(RateLimitMiddleware)

    register_exception_handlers(app)

    @app.get("/health")
    async def health_check():
        return {"status": "healthy", "version": config.APP_VERSION}

    app.include_router(auth.router, prefix="/api/v1")
    app.include_router(clients.router, prefix="/api/v1")
    app.include_router(invoices.router, prefix="/api/v1")
    app.include_router(quotations.router, prefix="/api/v1")
    app.include_router(receipts.router, prefix="/api/v1")
    app.include_router(tickets.router, prefix="/api/v1")
    app.include_router(settings_router.router, prefix="/api/v1")
    app.include_router(portal.router, prefix="/api/v1")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
