"""Run report models.

One AssetOutcome per discovered asset; the RunReport aggregates them for
the caller. The run never collapses to a single pass/fail boolean.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class AssetStatus(str, Enum):
    TRANSLATED = "translated"
    SKIPPED = "skipped"
    FAILED = "failed"
    CANCELLED = "cancelled"


class AssetOutcome(BaseModel):
    """Result of processing one asset."""

    asset: str = Field(..., description="Asset path relative to the input root")
    status: AssetStatus
    reason: Optional[str] = None
    documents_written: int = 0
    units_translated: int = 0
    units_reused: int = 0
    untranslated_ids: List[str] = Field(default_factory=list)

    @property
    def units_untranslated(self) -> int:
        return len(self.untranslated_ids)


class RunReport(BaseModel):
    """Per-asset outcomes of one pipeline run."""

    outcomes: List[AssetOutcome] = Field(default_factory=list)
    cancelled: bool = False

    def by_status(self, status: AssetStatus) -> List[AssetOutcome]:
        return [o for o in self.outcomes if o.status == status]

    @property
    def translated(self) -> List[AssetOutcome]:
        return self.by_status(AssetStatus.TRANSLATED)

    @property
    def skipped(self) -> List[AssetOutcome]:
        return self.by_status(AssetStatus.SKIPPED)

    @property
    def failed(self) -> List[AssetOutcome]:
        return self.by_status(AssetStatus.FAILED)

    def summary(self) -> str:
        """Human-readable summary with failure reasons."""
        lines = [
            f"Translated: {len(self.translated)}, "
            f"skipped: {len(self.skipped)}, "
            f"failed: {len(self.failed)}, "
            f"cancelled: {len(self.by_status(AssetStatus.CANCELLED))}"
        ]
        for outcome in self.outcomes:
            line = f"  [{outcome.status.value}] {outcome.asset}"
            if outcome.status == AssetStatus.TRANSLATED:
                line += (
                    f" ({outcome.units_translated} translated, "
                    f"{outcome.units_reused} reused, "
                    f"{outcome.units_untranslated} untranslated)"
                )
            if outcome.reason:
                line += f": {outcome.reason}"
            lines.append(line)
        return "\n".join(lines)
