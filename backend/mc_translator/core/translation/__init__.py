"""Translation package.

Architecture:
- models/: Data models (TranslationUnit, Batch, PromptBundle, RunReport, etc.)
- pipeline/: Pipeline components (TokenProtector, TranslationDispatcher, etc.)
- orchestrator.py: PipelineCoordinator running the pipeline over an input tree
"""

from typing import TYPE_CHECKING

# Re-export models for convenience
from .models import (
    # Unit models
    UnitContext,
    TranslationUnit,
    TokenSpan,
    MaskedUnit,
    # Batch models
    Batch,
    TranslationResult,
    BatchState,
    BatchOutcome,
    # Prompt models
    Message,
    PromptBundle,
    # Response models
    TokenUsage,
    LLMResponse,
    # Report models
    AssetStatus,
    AssetOutcome,
    RunReport,
)

# Pipeline and coordinator import the LLM gateway, which imports these
# models; load them lazily to keep the import graph acyclic.
if TYPE_CHECKING:
    from .orchestrator import PipelineCoordinator


def get_coordinator():
    """Get the PipelineCoordinator class."""
    from .orchestrator import PipelineCoordinator
    return PipelineCoordinator


__all__ = [
    # Models
    "UnitContext",
    "TranslationUnit",
    "TokenSpan",
    "MaskedUnit",
    "Batch",
    "TranslationResult",
    "BatchState",
    "BatchOutcome",
    "Message",
    "PromptBundle",
    "TokenUsage",
    "LLMResponse",
    "AssetStatus",
    "AssetOutcome",
    "RunReport",
    # Coordinator getter
    "get_coordinator",
]
