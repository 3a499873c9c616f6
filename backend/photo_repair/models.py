"""
Photo Repair Models

Pydantic models for the API responses.
"""

from typing import Dict, Optional

from pydantic import BaseModel, Field


class RepairResponse(BaseModel):
    """Response model for a successful repair"""
    success: bool = True
    processedImageUrl: str = Field(..., description="Retrieval URL of the processed image")
    analysis: str = Field("", description="Restoration analysis returned by the AI service")
    originalFilename: str
    processedFilename: str


class ErrorResponse(BaseModel):
    """Error body returned for every failed request"""
    error: str
    message: str
    details: Optional[str] = Field(None, description="Traceback, outside production only")


class ArtifactStats(BaseModel):
    total_artifacts: int
    total_size_bytes: int
    total_size_mb: float


class HealthResponse(BaseModel):
    status: str
    timestamp: str
    version: str
    environment: str
    artifact_stats: ArtifactStats


class InfoResponse(BaseModel):
    name: str
    description: str
    version: str
    analysis_mode: str
    endpoints: Dict[str, str]
    limits: Dict[str, str]
