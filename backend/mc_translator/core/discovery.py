"""Asset discovery and classification.

Recognized layouts, case-sensitive and relative to the input root:

    mods/*.jar
    assets/*/lang/en_us.json, assets/*/lang/en_us.lang
    resources/*/lang/en_us.json
    kubejs/assets/*/lang/*.json
    config/ftbquests/**/*.snbt
"""

import logging
import re
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Optional

from ..config import TranslatorSettings
from .exceptions import MalformedAssetError
from .formats import (
    AssetKind,
    JarContainer,
    JsonLangFormat,
    LangFormat,
    QuestFormat,
    SourceDocument,
    extract_module_id,
    lang_output_path,
    target_filename,
)

logger = logging.getLogger(__name__)

DISCOVERY_PATTERNS: tuple[tuple[AssetKind, re.Pattern], ...] = (
    (AssetKind.JAR, re.compile(r"mods/[^/]+\.jar")),
    (AssetKind.JSON, re.compile(r"assets/[^/]+/lang/en_us\.json")),
    (AssetKind.LANG, re.compile(r"assets/[^/]+/lang/en_us\.lang")),
    (AssetKind.JSON, re.compile(r"resources/[^/]+/lang/en_us\.json")),
    (AssetKind.JSON, re.compile(r"kubejs/assets/[^/]+/lang/[^/]+\.json")),
    (AssetKind.QUEST, re.compile(r"config/ftbquests/(?:.+/)?[^/]+\.snbt")),
)

EXTENSION_KINDS = {
    ".jar": AssetKind.JAR,
    ".json": AssetKind.JSON,
    ".lang": AssetKind.LANG,
    ".snbt": AssetKind.QUEST,
}

_LANG_FORMAT = LangFormat()
_JSON_FORMAT = JsonLangFormat()
_QUEST_FORMAT = QuestFormat()


@dataclass(frozen=True)
class Asset:
    """A discovered source asset."""

    path: Path
    relative: PurePosixPath
    kind: AssetKind

    def __str__(self) -> str:
        return str(self.relative)


def _is_source_quest_locale(relative: PurePosixPath, settings: TranslatorSettings) -> bool:
    """Quest locale files (quests/lang/<locale>.snbt or quests/lang/<locale>/...)
    are sources only for the source language; other chapters always are.
    """
    parts = relative.parts
    if "lang" not in parts[:-1]:
        return True
    locale = parts[parts.index("lang") + 1]
    if locale == relative.name:
        locale = relative.stem
    return locale.lower() == settings.source_lang.lower()


def classify(relative: PurePosixPath, settings: TranslatorSettings) -> Optional[AssetKind]:
    """Match a root-relative path against the known layouts."""
    text = relative.as_posix()
    for kind, pattern in DISCOVERY_PATTERNS:
        if pattern.fullmatch(text):
            # kubejs lang folders also hold the translated file itself
            if text.startswith("kubejs/") and relative.name.lower() == f"{settings.target_lang.lower()}.json":
                return None
            if kind == AssetKind.QUEST and not _is_source_quest_locale(relative, settings):
                return None
            return kind
    return None


def discover(settings: TranslatorSettings) -> list[Asset]:
    """List translatable assets under settings.input_path.

    A single file is classified by its extension.
    """
    root = Path(settings.input_path)
    if root.is_file():
        kind = EXTENSION_KINDS.get(root.suffix.lower())
        if kind is None:
            logger.warning(f"[Discovery] Unsupported file type: {root}")
            return []
        return [Asset(path=root, relative=PurePosixPath(root.name), kind=kind)]
    if not root.is_dir():
        raise FileNotFoundError(f"Input path does not exist: {root}")

    output_root = Path(settings.output_path).resolve()
    assets: list[Asset] = []
    for path in sorted(root.rglob("*")):
        if not path.is_file():
            continue
        if path.resolve().is_relative_to(output_root):
            continue
        relative = PurePosixPath(path.relative_to(root).as_posix())
        kind = classify(relative, settings)
        if kind is not None:
            assets.append(Asset(path=path, relative=relative, kind=kind))

    logger.info(f"[Discovery] Found {len(assets)} assets under {root}")
    return assets


def _read_text(path: Path, source: str) -> str:
    try:
        return path.read_text(encoding="utf-8-sig")
    except UnicodeDecodeError as e:
        raise MalformedAssetError(source, f"not valid UTF-8: {e}") from e
    except OSError as e:
        raise MalformedAssetError(source, f"cannot read file: {e}") from e


def _find_sibling(path: Path, name: str) -> Optional[Path]:
    """File next to path whose name matches case-insensitively, excluding path itself."""
    wanted = name.lower()
    for candidate in sorted(path.parent.iterdir()):
        if candidate != path and candidate.is_file() and candidate.name.lower() == wanted:
            return candidate
    return None


def load_documents(asset: Asset, settings: TranslatorSettings) -> list[SourceDocument]:
    """Open an asset and return its translatable documents.

    Raises:
        MalformedAssetError: if the asset cannot be read
    """
    document_id = str(asset.relative)

    if asset.kind == AssetKind.JAR:
        return JarContainer(asset.path, document_id).documents(settings)

    raw = _read_text(asset.path, document_id)

    if asset.kind == AssetKind.QUEST:
        name = asset.relative.name
        if settings.source_lang.lower() in name.lower():
            name = target_filename(name, settings.source_lang, settings.target_lang)
        return [
            SourceDocument(
                document_id=document_id,
                module_id=f"Quest_{asset.path.stem}",
                adapter=_QUEST_FORMAT,
                raw=raw,
                output_relpath=asset.relative.with_name(name),
            )
        ]

    adapter = _LANG_FORMAT if asset.kind == AssetKind.LANG else _JSON_FORMAT
    module_id = extract_module_id(asset.relative)
    baseline_path = _find_sibling(
        asset.path, target_filename(asset.path.name, settings.source_lang, settings.target_lang)
    )
    baseline_raw = _read_text(baseline_path, str(baseline_path)) if baseline_path else None

    return [
        SourceDocument(
            document_id=document_id,
            module_id=module_id,
            adapter=adapter,
            raw=raw,
            output_relpath=lang_output_path(
                module_id, asset.path.name, settings.source_lang, settings.target_lang
            ),
            baseline_raw=baseline_raw,
        )
    ]
