"""Translation unit models.

This module defines the flat units that format adapters extract from
source documents, and their masked form sent to the model.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class UnitContext(BaseModel):
    """Where a unit came from."""

    model_config = ConfigDict(frozen=True)

    document_id: str = Field(..., description="Source document identifier")
    module_id: Optional[str] = Field(
        default=None, description="Mod/resource-pack identifier used in prompts"
    )


class TranslationUnit(BaseModel):
    """One translatable leaf string with a stable identifying path."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Stable key within one document")
    source_text: str = Field(..., description="Text to translate")
    context: Optional[UnitContext] = Field(default=None)


class TokenSpan(BaseModel):
    """A protected substring and the marker that replaced it."""

    model_config = ConfigDict(frozen=True)

    marker: str
    original: str


class MaskedUnit(BaseModel):
    """Unit with protected tokens replaced by sequential markers."""

    model_config = ConfigDict(frozen=True)

    unit: TranslationUnit
    masked_text: str
    token_map: tuple[TokenSpan, ...] = ()

    @property
    def id(self) -> str:
        return self.unit.id
