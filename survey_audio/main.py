"""
Survey audio FastAPI application (Clean Architecture).
Exposes the generation pipeline and the messaging push over HTTP.
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from survey_audio import __version__
from survey_audio.api.dependencies import get_dependency_container, validate_dependencies
from survey_audio.api.routes.audio import router as audio_router
from survey_audio.api.routes.healthcheck import router as healthcheck_router
from survey_audio.infrastructure.logging.log_config import get_logger


logger = get_logger("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    """
    validate_dependencies()
    container = get_dependency_container()
    settings = container.settings
    logger.info("Application started", extra={"extra_fields": {
        "environment": settings.environment,
        "version": __version__
    }})

    yield

    await container.notifier.drain(settings.notification_drain_seconds)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed payloads are a 400, same as missing identifiers."""
    return JSONResponse(
        status_code=400,
        content={
            "success": False,
            "error": "Invalid request payload",
            "error_code": "INVALID_REQUEST",
            "details": jsonable_encoder(exc.errors())
        }
    )


def create_app() -> FastAPI:
    """
    Create and configure FastAPI application with Clean Architecture.
    """
    app = FastAPI(
        title="Survey Audio API",
        version=__version__,
        description="Personalized diagnostic audio generation from survey responses",
        lifespan=lifespan
    )

    # CORS Middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    # Route registration
    app.include_router(healthcheck_router, prefix="/api")
    app.include_router(audio_router, prefix="/api")

    return app


app = create_app()
