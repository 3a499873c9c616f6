"""
Photo Repair Errors

Error taxonomy for the repair pipeline. Every error carries the HTTP status
and short title used by the API layer when it renders the JSON error body.
"""

from typing import Optional


class RepairError(Exception):
    """Base class for all pipeline errors."""
    status_code: int = 500
    error: str = "Image processing failed"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.error, "message": self.message}


class ValidationError(RepairError):
    """Bad, missing or unsupported upload. User-correctable."""
    status_code = 400
    error = "Invalid image upload"


class PayloadTooLargeError(ValidationError):
    """Upload exceeds the configured size limit."""
    status_code = 413
    error = "File too large"


class ProcessingError(RepairError):
    """Local decode/encode/write failure."""
    status_code = 500
    error = "Image processing failed"


class ExternalServiceError(RepairError):
    """
    The external analysis service failed.

    Covers non-2xx responses, malformed bodies, timeouts and network errors.
    `upstream_status` is the HTTP status reported by the upstream API, or a
    gateway status (502/504) when no response was received.
    """
    status_code = 500
    error = "AI processing failed"

    def __init__(self, upstream_status: Optional[int], message: str):
        self.upstream_status = upstream_status
        status_text = upstream_status if upstream_status is not None else "n/a"
        super().__init__(f"Upstream status {status_text}: {message}")


class NotFoundError(RepairError):
    """Artifact lookup miss."""
    status_code = 404
    error = "Image not found"
