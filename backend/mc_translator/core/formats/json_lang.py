"""Nested JSON language maps.

Each non-blank leaf string is a unit addressed by its key path. Top-level
keys are used as-is (``item.cart``); nested levels are joined with ``/``,
escaping ``~`` and ``/`` in keys as ``~0`` and ``~1``; list items are
addressed by index.
"""

import json
from typing import Any, Iterator, Mapping, Optional

from ..exceptions import MalformedAssetError
from ..translation.models.unit import TranslationUnit
from .base import AssetKind, FormatAdapter


def sanitize_json_content(content: str) -> str:
    """Repair common hand-editing damage in mod language files.

    - strips a leading BOM
    - drops ``//`` and ``#`` line comments outside strings
    - escapes raw newlines and tabs inside strings, drops other control chars
    - turns a backslash followed by a raw newline into ``\\n``
    """
    if content.startswith("\ufeff"):
        content = content[1:]

    out: list[str] = []
    in_string = False
    escape = False
    i = 0
    n = len(content)
    while i < n:
        c = content[i]
        if not in_string:
            if (c == "/" and i + 1 < n and content[i + 1] == "/") or c == "#":
                while i < n and content[i] not in "\r\n":
                    i += 1
                continue
            if c == '"':
                in_string = True
            out.append(c)
        elif escape:
            escape = False
            if c == "\n":
                out.append("n")
            elif c != "\r":
                out.append(c)
        elif c == "\\":
            escape = True
            out.append(c)
        elif c == '"':
            in_string = False
            out.append(c)
        elif c == "\n":
            out.append("\\n")
        elif c == "\t":
            out.append("\\t")
        elif c == "\r" or ord(c) < 0x20 or 0x7F <= ord(c) <= 0x9F:
            pass
        else:
            out.append(c)
        i += 1
    return "".join(out)


def _escape_key(key: str) -> str:
    return key.replace("~", "~0").replace("/", "~1")


def _join(prefix: Optional[str], part: str) -> str:
    return part if prefix is None else f"{prefix}/{part}"


class JsonLangFormat(FormatAdapter):
    """Language map stored as (possibly nested) JSON."""

    kind = AssetKind.JSON

    def parse(self, raw: str, document_id: str = "json") -> dict[str, Any]:
        try:
            data = json.loads(sanitize_json_content(raw))
        except json.JSONDecodeError as e:
            raise MalformedAssetError(document_id, f"invalid JSON: {e}") from e
        if not isinstance(data, dict):
            raise MalformedAssetError(
                document_id, f"root must be an object, got {type(data).__name__}"
            )
        return data

    def _leaves(self, node: Any, prefix: Optional[str] = None) -> Iterator[tuple[str, str]]:
        if isinstance(node, dict):
            for key, value in node.items():
                yield from self._leaves(value, _join(prefix, _escape_key(key)))
        elif isinstance(node, list):
            for index, value in enumerate(node):
                yield from self._leaves(value, _join(prefix, str(index)))
        elif isinstance(node, str) and node.strip() and prefix is not None:
            yield prefix, node

    def _replace(self, node: Any, mapping: Mapping[str, str], prefix: Optional[str] = None) -> Any:
        if isinstance(node, dict):
            return {
                key: self._replace(value, mapping, _join(prefix, _escape_key(key)))
                for key, value in node.items()
            }
        if isinstance(node, list):
            return [
                self._replace(value, mapping, _join(prefix, str(index)))
                for index, value in enumerate(node)
            ]
        if isinstance(node, str) and node.strip() and prefix in mapping:
            return mapping[prefix]
        return node

    def extract(
        self, raw: str, document_id: str, module_id: Optional[str] = None
    ) -> list[TranslationUnit]:
        context = self._context(document_id, module_id)
        return [
            TranslationUnit(id=unit_id, source_text=text, context=context)
            for unit_id, text in self._leaves(self.parse(raw, document_id))
        ]

    def rebuild(self, raw: str, mapping: Mapping[str, str], strict: bool = False) -> str:
        data = self.parse(raw)
        self._check_complete([unit_id for unit_id, _ in self._leaves(data)], mapping, strict)
        return json.dumps(self._replace(data, mapping), indent=2, ensure_ascii=False)
