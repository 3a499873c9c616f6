"""
Photo Repair Module

Relays uploaded photos to a hosted AI service for restoration analysis and
returns a locally enhanced copy.

Features:
- Upload validation with transient storage and guaranteed cleanup
- Payload optimization before transmission
- Describe-and-advise or edit-and-return analysis variants
- Durable artifact store served by filename
"""

from .routes_fastapi import router
from .config import RepairSettings
from .pipeline import RepairPipeline, RepairResult

__all__ = ["router", "RepairSettings", "RepairPipeline", "RepairResult"]
