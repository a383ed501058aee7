"""
LectureSnap Backend - FastAPI Application Factory
===================================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() builds the services from settings, parks them on
       app.state, registers middleware, exception handlers and routes.
Who:   uvicorn (uvicorn app.main:app) and the test suite.

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                      FastAPI App                         │
    │                                                          │
    │  Middleware: Request ID → Access Log → GZip → CORS       │
    │                                                          │
    │  Routes:                                                 │
    │   /api/capture/preview  /api/generate  /api/lectures...  │
    │   /api/files/{path}     /health                          │
    │                                                          │
    │  app.state:                                              │
    │   config  storage_service  note_generator                │
    │   lecture_service                                        │
    │                                                          │
    │  Exception Handlers:                                     │
    │   Validation→400  Auth→401  NotFound→404                 │
    │   Configuration/Generation→503  Storage/Persistence→500  │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging, configuration report, storage root creation
    Shutdown: dispose the database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from app import __version__
from app.config import Settings, settings
from app.database import dispose_engine
from app.exceptions import (
    AuthenticationError,
    ConfigurationError,
    DatabaseError,
    GenerationError,
    LectureSnapError,
    NotFoundError,
    PersistenceError,
    StorageError,
    ValidationError,
)
from app.middleware.logging import RequestLoggingMiddleware
from app.middleware.request_id import RequestIDMiddleware, request_id_var
from app.routes import capture, files, generate, health, lectures
from app.services.gemini_service import GeminiProvider
from app.services.generation_service import GenerationConfig, NoteGenerator
from app.services.image_service import ImageProcessor
from app.services.lecture_service import LectureService
from app.services.llm_base import ModelProvider
from app.services.storage_service import StorageService

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(level: str = "INFO") -> None:
    """
    Configure the root logger once, at startup.

    Format: 2024-06-10T09:15:02 [INFO] app.services.generation_service: ...
    """
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Third-party libraries that log every operation
    for noisy in ("uvicorn.access", "sqlalchemy.engine", "httpcore", "httpx", "PIL"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    config: Settings = app.state.config
    setup_logging(config.log_level)
    logger.info("=" * 60)
    logger.info("LectureSnap Backend %s starting up...", __version__)

    # A missing key is reported, not fatal: lectures stay readable and
    # generation answers with a configuration error
    try:
        config.validate_required_for_production()
    except ValueError as e:
        logger.error("Configuration error: %s", str(e))

    storage_root = Path(config.storage_root)
    storage_root.mkdir(parents=True, exist_ok=True)
    logger.info("Storage root: %s", storage_root.resolve())
    logger.info("Model fallback list: %s", ", ".join(config.gemini_models))
    logger.info("Server ready at http://%s:%d", config.backend_host, config.backend_port)
    logger.info("=" * 60)

    yield

    logger.info("LectureSnap Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def error_body(error: str, message: str, details: Optional[dict] = None) -> dict:
    body = {"error": error, "message": message, "request_id": request_id_var.get("")}
    if details:
        body["details"] = details
    return body


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map application exceptions to status codes and the ErrorResponse shape.

        ValidationError          → 400 validation_error
        RequestValidationError   → 400 validation_error
        AuthenticationError      → 401 authentication_error
        NotFoundError            → 404 not_found
        ConfigurationError       → 503 configuration_error / invalid_credentials
        GenerationError          → 503 generation_failed
        StorageError (+subtypes) → 500 storage_error     (message has guidance)
        PersistenceError (+subs) → 500 persistence_error (message has guidance)
        DatabaseError            → 500 server_error      (generic message)
        LectureSnapError         → 500 server_error
        Exception                → 500 internal_server_error

    5xx responses never carry exception context; it is logged instead.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        return JSONResponse(status_code=400, content=error_body("validation_error", exc.message, exc.context))

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
        logger.warning("[%s] Request validation failed: %s", request_id_var.get(""), message)
        return JSONResponse(
            status_code=400,
            content=error_body("validation_error", message, {"errors": len(errors)}),
        )

    @app.exception_handler(AuthenticationError)
    async def handle_authentication_error(request: Request, exc: AuthenticationError):
        return JSONResponse(status_code=401, content=error_body("authentication_error", exc.message))

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=404, content=error_body("not_found", exc.message))

    @app.exception_handler(ConfigurationError)
    async def handle_configuration_error(request: Request, exc: ConfigurationError):
        logger.error("[%s] Configuration error: %s", request_id_var.get(""), exc.message)
        return JSONResponse(status_code=503, content=error_body(exc.code, exc.message))

    @app.exception_handler(GenerationError)
    async def handle_generation_error(request: Request, exc: GenerationError):
        logger.error("[%s] Generation failed: %s | Context: %s", request_id_var.get(""), exc.message, exc.context)
        return JSONResponse(status_code=503, content=error_body(exc.code, exc.message))

    @app.exception_handler(StorageError)
    async def handle_storage_error(request: Request, exc: StorageError):
        logger.error("[%s] Storage error: %s | Context: %s", request_id_var.get(""), exc.message, exc.context)
        return JSONResponse(status_code=500, content=error_body("storage_error", exc.message))

    @app.exception_handler(PersistenceError)
    async def handle_persistence_error(request: Request, exc: PersistenceError):
        logger.error("[%s] Persistence error: %s | Context: %s", request_id_var.get(""), exc.message, exc.context)
        return JSONResponse(status_code=500, content=error_body("persistence_error", exc.message))

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        logger.error("[%s] Database error: %s | Context: %s", request_id_var.get(""), exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content=error_body("server_error", "An internal error occurred. Please try again later."),
        )

    @app.exception_handler(LectureSnapError)
    async def handle_application_error(request: Request, exc: LectureSnapError):
        logger.error("[%s] %s: %s", request_id_var.get(""), type(exc).__name__, exc.message)
        return JSONResponse(status_code=500, content=error_body("server_error", exc.message))

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error("[%s] Unexpected error: %s", request_id_var.get(""), str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content=error_body(
                "internal_server_error",
                "An unexpected error occurred. Please try again or contact support.",
            ),
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def build_services(app: FastAPI, config: Settings, provider: Optional[ModelProvider] = None) -> None:
    """Construct every service from explicit configuration and attach it to app.state."""
    processor = ImageProcessor(
        max_width=config.max_image_width,
        jpeg_quality=config.jpeg_quality,
        max_file_size=config.max_file_size,
    )
    storage = StorageService(config.storage_root, url_prefix=config.files_url_prefix)
    generator = NoteGenerator(
        GenerationConfig.from_settings(config),
        provider or GeminiProvider(config.gemini_api_key),
    )

    app.state.config = config
    app.state.storage_service = storage
    app.state.note_generator = generator
    app.state.lecture_service = LectureService(
        storage=storage,
        generator=generator,
        processor=processor,
        max_pages=config.max_pages,
    )


def create_app(config: Optional[Settings] = None, provider: Optional[ModelProvider] = None) -> FastAPI:
    """
    Args:
        config:   Settings to build services from (defaults to the env-loaded settings)
        provider: Model provider override; GeminiProvider when omitted
    """
    config = config or settings

    app = FastAPI(
        title="LectureSnap API",
        description=(
            "Turn photos of lecture whiteboards and slides into structured study notes "
            "and a multiple-choice quiz using Google Gemini."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    build_services(app, config, provider)

    # Last added runs first: RequestID → Logging → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Total-Count"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    app.include_router(capture.router)
    app.include_router(generate.router)
    app.include_router(lectures.router)
    app.include_router(files.router)
    app.include_router(health.router)

    return app


app = create_app()
