"""Document processing pipeline."""

from app.services.pipeline.metrics import CostModel
from app.services.pipeline.orchestrator import PipelineOrchestrator

__all__ = ["CostModel", "PipelineOrchestrator"]
