"""Batch and dispatch result models."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .unit import MaskedUnit


class Batch(BaseModel):
    """Ordered group of masked units from a single document.

    Response position N maps to request position N.
    """

    model_config = ConfigDict(frozen=True)

    document_id: str
    module_id: str = Field(default="unknown_mod")
    batch_index: int = Field(..., ge=0)
    units: tuple[MaskedUnit, ...]

    def __len__(self) -> int:
        return len(self.units)

    def source_texts(self) -> list[str]:
        """Masked strings in request order."""
        return [u.masked_text for u in self.units]


class TranslationResult(BaseModel):
    """Model output for one unit, still masked."""

    model_config = ConfigDict(frozen=True)

    unit_id: str
    translated_text: str


class BatchState(str, Enum):
    """Per-batch retry state machine."""

    PENDING = "pending"
    IN_FLIGHT = "in_flight"
    TRANSIENT_FAILURE = "transient_failure"
    SUCCEEDED = "succeeded"  # terminal
    PERMANENT_FAILURE = "permanent_failure"  # terminal
    CANCELLED = "cancelled"  # terminal


class BatchOutcome(BaseModel):
    """Terminal record of one dispatched batch."""

    batch_index: int
    state: BatchState
    attempts: int = 0
    error: Optional[str] = None
    results: list[TranslationResult] = Field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.state == BatchState.SUCCEEDED
