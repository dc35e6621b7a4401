"""Translation pipeline data models.

Structured models that form the contracts between pipeline components.
"""

from .unit import UnitContext, TranslationUnit, TokenSpan, MaskedUnit
from .batch import Batch, TranslationResult, BatchState, BatchOutcome
from .prompt import Message, PromptBundle
from .response import TokenUsage, LLMResponse
from .report import AssetStatus, AssetOutcome, RunReport

__all__ = [
    # Unit models
    "UnitContext",
    "TranslationUnit",
    "TokenSpan",
    "MaskedUnit",
    # Batch models
    "Batch",
    "TranslationResult",
    "BatchState",
    "BatchOutcome",
    # Prompt models
    "Message",
    "PromptBundle",
    # Response models
    "TokenUsage",
    "LLMResponse",
    # Report models
    "AssetStatus",
    "AssetOutcome",
    "RunReport",
]
