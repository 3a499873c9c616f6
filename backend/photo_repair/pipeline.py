"""
Repair Pipeline

Runs one upload through intake, optimization, external analysis and
materialization. The transient input is held in a scoped resource so it is
removed exactly once, whichever way the run ends.

    RECEIVED -> VALIDATED -> OPTIMIZED -> ANALYZED -> MATERIALIZED -> RESPONDED
    (any stage) -> FAILED
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from .analysis_client import AnalysisClient
from .errors import RepairError
from .intake import TransientStore
from .materializer import ProcessedArtifact, ResultMaterializer
from .optimizer import ImageOptimizer

logger = logging.getLogger(__name__)


class PipelineStage(str, Enum):
    """Stages of a single repair run"""
    RECEIVED = "received"
    VALIDATED = "validated"
    OPTIMIZED = "optimized"
    ANALYZED = "analyzed"
    MATERIALIZED = "materialized"
    RESPONDED = "responded"
    FAILED = "failed"


@dataclass
class RepairResult:
    """Successful outcome of a repair run."""
    artifact: ProcessedArtifact
    analysis: str
    original_filename: str

    def to_response(self) -> Dict[str, Any]:
        return {
            "success": True,
            "processedImageUrl": self.artifact.url,
            "analysis": self.analysis,
            "originalFilename": self.original_filename,
            "processedFilename": self.artifact.filename,
        }


class RepairPipeline:
    """
    Orchestrates a repair request.

    Usage:
        pipeline = RepairPipeline(store, optimizer, client, materializer)
        result = await pipeline.run("photo.jpg", "image/jpeg", data)
    """

    def __init__(
        self,
        transient_store: TransientStore,
        optimizer: ImageOptimizer,
        analysis_client: AnalysisClient,
        materializer: ResultMaterializer,
    ):
        self.transient_store = transient_store
        self.optimizer = optimizer
        self.analysis_client = analysis_client
        self.materializer = materializer

    async def run(
        self,
        original_filename: str,
        content_type: Optional[str],
        data: bytes,
    ) -> RepairResult:
        """
        Process one upload end to end.

        Raises:
            RepairError: any stage failed; the transient input is already removed.
        """
        stage = PipelineStage.RECEIVED
        logger.info(f"[RepairPipeline] Processing image: {original_filename}")

        try:
            async with self.transient_store.hold(original_filename, content_type, data) as image:
                stage = PipelineStage.VALIDATED

                payload = await asyncio.to_thread(self.optimizer.optimize, image.path)
                stage = PipelineStage.OPTIMIZED

                outcome = await self.analysis_client.analyze(payload)
                stage = PipelineStage.ANALYZED

                artifact = await asyncio.to_thread(self.materializer.materialize, image, outcome)
                stage = PipelineStage.MATERIALIZED
        except RepairError as e:
            logger.error(f"[RepairPipeline] Failed after stage {stage.value}: {e.message}")
            raise
        except Exception:
            logger.exception(f"[RepairPipeline] Unexpected failure after stage {stage.value}")
            raise

        logger.info(f"[RepairPipeline] Completed ({PipelineStage.RESPONDED.value}): {artifact.filename}")
        return RepairResult(
            artifact=artifact,
            analysis=artifact.analysis,
            original_filename=original_filename,
        )
