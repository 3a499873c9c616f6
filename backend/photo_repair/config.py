"""
Photo Repair Configuration

Settings are read from the environment once, at application start, and the
resulting object is passed to the components that need it.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional


DEFAULT_MODELS = {
    "describe": "anthropic/claude-3-sonnet",
    "edit": "openai/gpt-4o",
}

ANALYSIS_MODES = tuple(DEFAULT_MODELS)


def _split_csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class RepairSettings:
    """Runtime configuration for the repair service."""
    # External analysis service (OpenRouter, OpenAI-compatible)
    api_key: Optional[str] = None
    api_base_url: str = "https://openrouter.ai/api/v1"
    site_url: str = "http://localhost:3001"
    app_title: str = "Picture Repair App - AI Photo Restoration"
    analysis_mode: str = "describe"     # describe | edit
    model: Optional[str] = None         # None -> default for the mode
    request_timeout: float = 60.0       # Seconds

    # Storage
    upload_dir: Path = Path("./uploads")
    artifact_dir: Path = Path("./processed")
    max_upload_mb: int = 10

    # Image parameters
    optimize_max_dimension: int = 1024
    optimize_quality: int = 85
    output_max_dimension: int = 2048
    output_quality: int = 95
    brightness: float = 1.1
    saturation: float = 1.2

    # Service
    environment: str = "development"
    version: str = "1.0.0"
    cors_origins: List[str] = field(
        default_factory=lambda: ["http://localhost:5173", "http://localhost:3000"]
    )

    def __post_init__(self):
        if self.analysis_mode not in ANALYSIS_MODES:
            raise ValueError(
                f"Invalid analysis mode: {self.analysis_mode}. Use: {', '.join(ANALYSIS_MODES)}"
            )
        self.upload_dir = Path(self.upload_dir)
        self.artifact_dir = Path(self.artifact_dir)

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_mb * 1024 * 1024

    @property
    def resolved_model(self) -> str:
        return self.model or DEFAULT_MODELS[self.analysis_mode]

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @classmethod
    def from_env(cls) -> "RepairSettings":
        """Build settings from environment variables."""
        cors = os.getenv("CORS_ORIGINS")
        return cls(
            api_key=os.getenv("OPENROUTER_API_KEY"),
            api_base_url=os.getenv("OPENROUTER_BASE_URL", "https://openrouter.ai/api/v1"),
            site_url=os.getenv("SITE_URL", "http://localhost:3001"),
            app_title=os.getenv("APP_TITLE", "Picture Repair App - AI Photo Restoration"),
            analysis_mode=os.getenv("ANALYSIS_MODE", "describe").lower(),
            model=os.getenv("OPENROUTER_MODEL") or None,
            request_timeout=float(os.getenv("OPENROUTER_TIMEOUT_SECONDS", "60")),
            upload_dir=Path(os.getenv("UPLOAD_DIR", "./uploads")),
            artifact_dir=Path(os.getenv("PROCESSED_DIR", "./processed")),
            max_upload_mb=int(os.getenv("MAX_UPLOAD_MB", "10")),
            environment=os.getenv("APP_ENV", "development"),
            cors_origins=_split_csv(cors) if cors else [
                "http://localhost:5173",
                "http://localhost:3000",
            ],
        )
