"""Format adapters for the supported asset kinds."""

from .base import (
    UNKNOWN_MODULE,
    AssetKind,
    FormatAdapter,
    OutputDocument,
    SourceDocument,
    extract_module_id,
    lang_output_path,
    target_filename,
)
from .lang import LangFormat
from .json_lang import JsonLangFormat, sanitize_json_content
from .snbt import QuestFormat, SnbtScanner
from .jar import JarContainer

__all__ = [
    "UNKNOWN_MODULE",
    "AssetKind",
    "FormatAdapter",
    "OutputDocument",
    "SourceDocument",
    "extract_module_id",
    "lang_output_path",
    "target_filename",
    "LangFormat",
    "JsonLangFormat",
    "sanitize_json_content",
    "QuestFormat",
    "SnbtScanner",
    "JarContainer",
]
