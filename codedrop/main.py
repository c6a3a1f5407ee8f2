import os
import asyncio
from contextlib import asynccontextmanager
from logging.config import dictConfig
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import utils
from .cleanup import cleanup_expired
from .database import ReferenceStore
from .errors import BrokerError, InvalidFormat
from .routes.codes import CodeRouter
from .services import RegistrationService, ValidationService

# Configuration from environment variables
VERSION = "1.0.0"
DATABASE_PATH = Path(os.getenv("DATABASE_PATH", "/codedrop/data/codedrop.db"))
CODE_LENGTH = int(os.getenv("CODE_LENGTH", "6"))
MAX_RETRIES = int(os.getenv("MAX_RETRIES", "5"))
BURN_ON_READ = utils.parse_bool(os.getenv("BURN_ON_READ"), default=False)
CODE_TTL = utils.parse_time(os.getenv("CODE_TTL", "0"))
STORE_TIMEOUT = float(os.getenv("STORE_TIMEOUT", "5"))
CLEANUP_INTERVAL = utils.parse_time(os.getenv("CLEANUP_INTERVAL", "300"))
ALLOW_REVOKE = utils.parse_bool(os.getenv("ALLOW_REVOKE"), default=True)
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


def setup_logging(level: str = LOG_LEVEL) -> None:
    """Send ``codedrop.*`` records to stderr at ``level``."""
    dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "plain": {"format": "%(asctime)s %(levelname)s %(name)s: %(message)s"},
        },
        "handlers": {
            "console": {"class": "logging.StreamHandler", "formatter": "plain"},
        },
        "loggers": {
            "codedrop": {"level": level, "handlers": ["console"]},
        },
    })


async def broker_error_handler(request: Request, exc: BrokerError):
    return JSONResponse(status_code=exc.status_code, content={"error": True, "message": exc.message})


async def validation_error_handler(request: Request, exc: RequestValidationError):
    # A malformed /validate body is a bad code, not a schema error
    if request.url.path.rstrip("/").endswith("/validate"):
        return await broker_error_handler(request, InvalidFormat())
    return await request_validation_exception_handler(request, exc)


def create_app(
    database_path: Path = DATABASE_PATH,
    code_length: int = CODE_LENGTH,
    max_retries: int = MAX_RETRIES,
    burn_on_read: bool = BURN_ON_READ,
    ttl: int = CODE_TTL,
    store_timeout: float = STORE_TIMEOUT,
    cleanup_interval: int = CLEANUP_INTERVAL,
    allow_revoke: bool = ALLOW_REVOKE,
    log_level: str = LOG_LEVEL,
) -> FastAPI:
    setup_logging(log_level)

    store = ReferenceStore(database_path, timeout=store_timeout)
    registration = RegistrationService(store, code_length=code_length, max_retries=max_retries, ttl=ttl)
    validation = ValidationService(store, code_length=code_length, burn_on_read=burn_on_read)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Initialise the SQLite database
        await store.init()

        # Expired references only exist when a TTL is configured
        cleanup_task = None
        if ttl > 0:
            cleanup_task = asyncio.create_task(cleanup_expired(store, cleanup_interval))

        yield

        # Cancel cleanup task on shutdown
        if cleanup_task is not None:
            cleanup_task.cancel()
            try:
                await cleanup_task
            except asyncio.CancelledError:
                pass

    app = FastAPI(title="codedrop API", version=VERSION, lifespan=lifespan)
    app.add_middleware(CORSMiddleware, allow_origins=[], allow_credentials=False, allow_methods=["*"], allow_headers=["*"])
    app.add_exception_handler(BrokerError, broker_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.state.store = store

    # Initialize router with configuration
    code_router = CodeRouter(
        version=VERSION,
        store=store,
        registration=registration,
        validation=validation,
        allow_revoke=allow_revoke,
    )
    app.include_router(code_router.router)

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "ok", "version": VERSION}

    return app


app = create_app()
