"""
Picture Repair API Server

Application factory wiring the photo repair components together.

Run:
    cd backend
    uvicorn main:create_app --factory --port 3001
"""

import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from photo_repair import RepairPipeline, RepairSettings, router
from photo_repair.analysis_client import AnalysisClient, create_analysis_client
from photo_repair.errors import RepairError
from photo_repair.intake import TransientStore
from photo_repair.materializer import ArtifactStore, ResultMaterializer
from photo_repair.optimizer import ImageOptimizer
from photo_repair.routes_fastapi import (
    http_error_handler,
    repair_error_handler,
    request_validation_handler,
    unhandled_error_handler,
)

logger = logging.getLogger(__name__)


def _configure_logging():
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_app(
    settings: Optional[RepairSettings] = None,
    analysis_client: Optional[AnalysisClient] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Configuration; read from the environment when omitted
        analysis_client: Analysis client override (tests inject stubs here)
    """
    _configure_logging()
    settings = settings or RepairSettings.from_env()

    if analysis_client is None:
        if not settings.api_key:
            logger.error("[PhotoRepair] OPENROUTER_API_KEY is not set in environment variables")
            raise RuntimeError("OPENROUTER_API_KEY is not set")
        analysis_client = create_analysis_client(settings)

    transient_store = TransientStore(settings.upload_dir, settings.max_upload_bytes)
    artifact_store = ArtifactStore(settings.artifact_dir)
    pipeline = RepairPipeline(
        transient_store=transient_store,
        optimizer=ImageOptimizer(settings.optimize_max_dimension, settings.optimize_quality),
        analysis_client=analysis_client,
        materializer=ResultMaterializer(
            artifact_store,
            max_dimension=settings.output_max_dimension,
            quality=settings.output_quality,
            brightness=settings.brightness,
            saturation=settings.saturation,
        ),
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"[PhotoRepair] Environment: {settings.environment}")
        logger.info(f"[PhotoRepair] Analysis mode: {settings.analysis_mode} ({settings.resolved_model})")
        logger.info(f"[PhotoRepair] OpenRouter API: {'configured' if settings.api_key else 'missing'}")
        yield
        await analysis_client.close()
        logger.info("[PhotoRepair] Shut down")

    app = FastAPI(
        title="Picture Repair API",
        version=settings.version,
        description="AI-powered photo restoration service",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.pipeline = pipeline
    app.state.artifact_store = artifact_store

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )
    app.add_exception_handler(RepairError, repair_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
    app.include_router(router)
    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(create_app(), host="0.0.0.0", port=int(os.getenv("PORT", "3001")))