import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.gzip import GZipMiddleware

# .env must be loaded before settings are built
load_dotenv()

from . import __version__
from .application.clock import utc_now
from .config import settings
from .database import create_db_and_tables
from .exceptions import http_exception_handler
from .middleware import ErrorHandlingMiddleware, LoggingMiddleware, SecurityMiddleware
from .routers import ai_router, appointments_router
from .routers.deps import general_rate_limit


def configure_logging() -> None:
    logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL), format=settings.LOG_FORMAT)
    # Per-request access lines come from LoggingMiddleware
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    if not settings.DEBUG:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {settings.APP_NAME} v{__version__} (usage store: {settings.USAGE_STORE_BACKEND})")
    if not settings.GEMINI_API_KEY:
        logger.warning("GEMINI_API_KEY is not set; AI endpoints will answer 503")

    app.state.db_init_ok = True
    app.state.db_init_error = None
    try:
        create_db_and_tables()
    except Exception as e:
        # Keep serving; /health reports the failure
        app.state.db_init_ok = False
        app.state.db_init_error = str(e)
        logger.exception("Database initialization failed")
    yield
    logger.info(f"{settings.APP_NAME} stopped")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Appointment scheduling and metered AI advisory services",
    debug=settings.DEBUG,
    lifespan=lifespan,
    dependencies=[Depends(general_rate_limit)],
    docs_url="/docs" if settings.DOCS_ENABLED else None,
    redoc_url="/redoc" if settings.DOCS_ENABLED else None,
    openapi_url="/openapi.json" if settings.DOCS_ENABLED else None,
)

app.add_exception_handler(HTTPException, http_exception_handler)

# Starlette runs the last added middleware first
app.add_middleware(ErrorHandlingMiddleware)
app.add_middleware(SecurityMiddleware)
app.add_middleware(LoggingMiddleware)
app.add_middleware(GZipMiddleware, minimum_size=settings.GZIP_MIN_SIZE)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    allow_methods=settings.allowed_methods_list,
    allow_headers=settings.allowed_headers_list,
)

app.include_router(appointments_router.router)
app.include_router(ai_router.router)


@app.get("/health", tags=["Health"])
def health_check():
    db_ok = getattr(app.state, "db_init_ok", True)
    return {
        "status": "healthy" if db_ok else "degraded",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "timestamp": utc_now().isoformat(),
        "checks": {
            "database": "ok" if db_ok else getattr(app.state, "db_init_error", "error"),
            "ai_provider": "configured" if settings.GEMINI_API_KEY else "missing_api_key",
        },
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "sensidoc.main:app",
        host=settings.HOST,
        port=settings.PORT,
        workers=1,  # slot locks are per process
        log_level=settings.LOG_LEVEL.lower(),
    )
