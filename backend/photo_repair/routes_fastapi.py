"""
Photo Repair API Routes

Provides endpoints for:
- Uploading and repairing an image
- Downloading processed images
- Health check and API information
"""

import logging
import traceback
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, File, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import RepairSettings
from .errors import RepairError, ValidationError
from .materializer import ArtifactStore
from .models import ErrorResponse, HealthResponse, InfoResponse, RepairResponse
from .pipeline import RepairPipeline

logger = logging.getLogger(__name__)

# ============================================
# Router
# ============================================

router = APIRouter(prefix="/api", tags=["Photo Repair"])


def _settings(request: Request) -> RepairSettings:
    return request.app.state.settings


def _pipeline(request: Request) -> RepairPipeline:
    return request.app.state.pipeline


def _artifact_store(request: Request) -> ArtifactStore:
    return request.app.state.artifact_store


# ============================================
# Error Handlers
# ============================================


def _error_response(settings: RepairSettings, status_code: int, body: dict, exc: Exception) -> JSONResponse:
    if not settings.is_production:
        body["details"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return JSONResponse(status_code=status_code, content=body)


async def repair_error_handler(request: Request, exc: RepairError) -> JSONResponse:
    """Map pipeline errors to {error, message} JSON."""
    return _error_response(_settings(request), exc.status_code, exc.to_dict(), exc)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed form fields are answered like any other invalid upload."""
    fields = ", ".join(".".join(str(part) for part in err.get("loc", ())) for err in exc.errors())
    error = ValidationError(f"Invalid request field(s): {fields or 'unknown'}. Please upload an image file")
    return _error_response(_settings(request), error.status_code, error.to_dict(), exc)


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Framework HTTP errors (unknown route, wrong method) in the same error shape."""
    if exc.status_code == 404:
        body = {"error": "Not found", "message": "The requested endpoint does not exist"}
    else:
        body = {"error": str(exc.detail), "message": str(exc.detail)}
    return JSONResponse(status_code=exc.status_code, content=body, headers=getattr(exc, "headers", None))


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"[PhotoRepair] Unhandled error: {exc}")
    body = {
        "error": "Internal server error",
        "message": "Something went wrong processing your request",
    }
    return _error_response(_settings(request), 500, body, exc)


# ============================================
# Endpoints
# ============================================


@router.post(
    "/repair",
    response_model=RepairResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid or missing image"},
        413: {"model": ErrorResponse, "description": "Image too large"},
        500: {"model": ErrorResponse, "description": "Processing or upstream failure"},
    },
)
async def repair_image(
    request: Request,
    image: Optional[UploadFile] = File(None, description="The photo to repair"),
):
    """
    Upload and repair an image.

    This endpoint:
    1. Validates and stores the upload transiently
    2. Optimizes it and sends it to the analysis service
    3. Enhances the result and stores it as an artifact
    4. Returns the artifact URL and the analysis text
    """
    if image is None or not image.filename:
        raise ValidationError("Please upload an image file")

    settings = _settings(request)
    # One byte past the limit is enough to detect oversized uploads.
    data = await image.read(settings.max_upload_bytes + 1)
    await image.close()

    result = await _pipeline(request).run(image.filename, image.content_type, data)
    return RepairResponse(**result.to_response())


@router.get(
    "/artifacts/{filename}",
    response_class=Response,
    responses={404: {"model": ErrorResponse, "description": "Artifact not found"}},
)
async def get_artifact(filename: str, request: Request):
    """Serve a processed image by filename."""
    data = _artifact_store(request).load(filename)
    return Response(
        content=data,
        media_type="image/jpeg",
        headers={"Cache-Control": "public, max-age=86400"},  # Browser cache 24h
    )


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request):
    """Health check endpoint."""
    settings = _settings(request)
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc).isoformat(),
        version=settings.version,
        environment=settings.environment,
        artifact_stats=_artifact_store(request).get_stats(),
    )


@router.get("/info", response_model=InfoResponse)
async def api_info(request: Request):
    """Static description of the API."""
    settings = _settings(request)
    return InfoResponse(
        name="Picture Repair API",
        description="AI-powered photo restoration service",
        version=settings.version,
        analysis_mode=settings.analysis_mode,
        endpoints={
            "POST /api/repair": "Upload and repair an image",
            "GET /api/artifacts/{filename}": "Download processed image",
            "GET /api/health": "Health check",
            "GET /api/info": "API information",
        },
        limits={
            "fileSize": f"{settings.max_upload_mb}MB",
            "files": "1",
        },
    )
