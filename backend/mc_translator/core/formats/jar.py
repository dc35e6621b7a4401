"""Container-packaged mods (``.jar``).

The archive is only read: each ``assets/<module>/lang/<source_lang>.json``
(or legacy ``.lang``) entry becomes one document whose output is a
companion file under ``assets/<module>/lang/`` in the output tree. A bundled
``<target_lang>`` entry in the same directory serves as the baseline.
"""

import logging
import re
import zipfile
from pathlib import Path
from typing import Optional

from ...config import TranslatorSettings
from ..exceptions import MalformedAssetError
from .base import FormatAdapter, SourceDocument, lang_output_path
from .json_lang import JsonLangFormat
from .lang import LangFormat

logger = logging.getLogger(__name__)

_LANG_ENTRY = re.compile(r"(?:^|/)assets/([^/]+)/lang/([^/]+)$")

_FORMATS: dict[str, FormatAdapter] = {
    ".json": JsonLangFormat(),
    ".lang": LangFormat(),
}


def _decode(data: bytes, source: str) -> str:
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise MalformedAssetError(source, f"not valid UTF-8: {e}") from e


class JarContainer:
    """Read-only view of a mod archive as a key -> bytes store."""

    def __init__(self, path: Path, display_name: Optional[str] = None):
        self.path = path
        self.display_name = display_name or path.name

    def entries(self) -> dict[str, bytes]:
        """Language entries of the archive."""
        try:
            with zipfile.ZipFile(self.path) as archive:
                return {
                    name: archive.read(name)
                    for name in archive.namelist()
                    if _LANG_ENTRY.search(name)
                }
        except (zipfile.BadZipFile, OSError) as e:
            raise MalformedAssetError(self.display_name, f"cannot open archive: {e}") from e

    def documents(self, settings: TranslatorSettings) -> list[SourceDocument]:
        """One document per module language file in the source language."""
        entries = self.entries()
        # Legacy mods ship en_US.lang next to zh_CN.lang
        by_lower_name = {name.lower(): name for name in entries}
        source_lang = settings.source_lang.lower()
        target_lang = settings.target_lang.lower()

        documents: list[SourceDocument] = []
        for name, data in entries.items():
            match = _LANG_ENTRY.search(name)
            module_id, filename = match.group(1), match.group(2)
            stem, dot, suffix = filename.rpartition(".")
            adapter = _FORMATS.get(f"{dot}{suffix}".lower())
            if adapter is None or stem.lower() != source_lang:
                continue

            baseline_name = name[: -len(filename)] + f"{target_lang}{dot}{suffix}"
            baseline_key = by_lower_name.get(baseline_name.lower())
            baseline = entries[baseline_key] if baseline_key else None
            document_id = f"{self.display_name}!{name}"
            logger.info(f"[Jar] Found language file {name} (ModID: {module_id})")

            documents.append(
                SourceDocument(
                    document_id=document_id,
                    module_id=module_id,
                    adapter=adapter,
                    raw=_decode(data, document_id),
                    output_relpath=lang_output_path(
                        module_id, filename, settings.source_lang, settings.target_lang
                    ),
                    baseline_raw=_decode(baseline, f"{document_id}#baseline") if baseline else None,
                )
            )
        return documents
