"""Base format adapter.

Every asset kind implements the same capability pair: extract ordered
translation units from a raw document, and rebuild a structurally identical
document from an id -> text mapping.
"""

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from pathlib import PurePath, PurePosixPath
from typing import Mapping, Optional, Sequence

from ..exceptions import IncompleteMappingError
from ..translation.models.unit import TranslationUnit, UnitContext

logger = logging.getLogger(__name__)

UNKNOWN_MODULE = "unknown_mod"


class AssetKind(str, Enum):
    """Closed set of supported asset kinds."""

    LANG = "lang"
    JSON = "json"
    JAR = "jar"
    QUEST = "quest"


class FormatAdapter(ABC):
    """Extraction/rebuild capability pair for one document format."""

    kind: AssetKind
    # Whether previous output ids count as accepted records
    supports_incremental: bool = True

    @abstractmethod
    def extract(
        self, raw: str, document_id: str, module_id: Optional[str] = None
    ) -> list[TranslationUnit]:
        """Extract units in document order.

        Raises:
            MalformedAssetError: if the document cannot be parsed
        """

    @abstractmethod
    def rebuild(self, raw: str, mapping: Mapping[str, str], strict: bool = False) -> str:
        """Serialize the document with translated leaf values.

        Missing ids fall back to the source text unless strict is set.

        Raises:
            MalformedAssetError: if the document cannot be parsed
            IncompleteMappingError: strict mode and ids are missing
        """

    def read_records(self, raw: str, document_id: str = "records") -> dict[str, str]:
        """Read a document of this format as an id -> text record store."""
        return {u.id: u.source_text for u in self.extract(raw, document_id)}

    @staticmethod
    def _context(document_id: str, module_id: Optional[str]) -> UnitContext:
        return UnitContext(document_id=document_id, module_id=module_id)

    @staticmethod
    def _check_complete(ids: Sequence[str], mapping: Mapping[str, str], strict: bool) -> None:
        if not strict:
            return
        missing = [i for i in dict.fromkeys(ids) if i not in mapping]
        if missing:
            raise IncompleteMappingError(missing)


@dataclass(frozen=True)
class OutputDocument:
    """Serialized document ready to be written under the output root."""

    relative_path: PurePosixPath
    content: str


@dataclass(frozen=True)
class SourceDocument:
    """One translatable document located inside an asset."""

    document_id: str
    module_id: str
    adapter: FormatAdapter
    raw: str
    output_relpath: PurePosixPath
    baseline_raw: Optional[str] = None

    def extract(self) -> list[TranslationUnit]:
        return self.adapter.extract(self.raw, self.document_id, self.module_id)

    def render(self, mapping: Mapping[str, str], strict: bool = False) -> OutputDocument:
        return OutputDocument(
            relative_path=self.output_relpath,
            content=self.adapter.rebuild(self.raw, mapping, strict=strict),
        )

    def baseline_records(self) -> dict[str, str]:
        if not self.baseline_raw:
            return {}
        return self.adapter.read_records(self.baseline_raw, f"{self.document_id}#baseline")


def target_filename(name: str, source_lang: str, target_lang: str) -> str:
    """Output file name for a source language file.

    en_us.json -> zh_cn.json; names without the source language get a
    target-language prefix.
    """
    pattern = re.compile(re.escape(source_lang), re.IGNORECASE)
    if pattern.search(name):
        return pattern.sub(target_lang, name)
    return f"{target_lang.lower()}_{name}"


def extract_module_id(path: PurePath) -> str:
    """Module id from a language file path.

    Uses the directory above ``lang``; data-pack style paths fall back to
    the directory above ``data``.
    """
    parts = path.parts
    for anchor in ("lang", "data"):
        if anchor in parts:
            idx = parts.index(anchor)
            if idx > 0:
                return parts[idx - 1]
            break
    logger.warning(f"Could not determine module id for {path}")
    return UNKNOWN_MODULE


def lang_output_path(module_id: str, name: str, source_lang: str, target_lang: str) -> PurePosixPath:
    """assets/<module>/lang/<target file> under the output root."""
    return PurePosixPath("assets", module_id, "lang", target_filename(name, source_lang, target_lang))
