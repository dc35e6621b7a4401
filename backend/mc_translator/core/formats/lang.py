"""Legacy flat key-value language files (``key=value`` per line)."""

from dataclasses import dataclass
from typing import Iterator, Mapping, Optional

from ..translation.models.unit import TranslationUnit
from .base import AssetKind, FormatAdapter

BOM = "\ufeff"


@dataclass(frozen=True)
class _Entry:
    key: str  # verbatim text before '='
    lead: str  # whitespace between '=' and the value
    value: str
    trail: str  # whitespace after the value
    ending: str  # line terminator

    @property
    def id(self) -> str:
        return self.key.strip()


def _split_lines(raw: str) -> tuple[str, list[str]]:
    bom = BOM if raw.startswith(BOM) else ""
    return bom, raw[len(bom):].splitlines(keepends=True)


def _parse_line(line: str) -> Optional[_Entry]:
    body = line.rstrip("\r\n")
    ending = line[len(body):]
    stripped = body.strip()
    if not stripped or stripped.startswith("#") or "=" not in body:
        return None
    key, _, rest = body.partition("=")
    value = rest.strip()
    if not key.strip() or not value:
        return None
    lead = rest[: len(rest) - len(rest.lstrip())]
    trail = rest[len(rest.rstrip()):]
    return _Entry(key=key, lead=lead, value=value, trail=trail, ending=ending)


def escape_lang_value(text: str) -> str:
    """Keep a value on one line."""
    return text.replace("\r\n", "\\n").replace("\n", "\\n").replace("\r", "")


class LangFormat(FormatAdapter):
    """One unit per ``key=value`` line; every other line passes through."""

    kind = AssetKind.LANG

    def _entries(self, raw: str) -> Iterator[_Entry]:
        _, lines = _split_lines(raw)
        for line in lines:
            entry = _parse_line(line)
            if entry is not None:
                yield entry

    def extract(
        self, raw: str, document_id: str, module_id: Optional[str] = None
    ) -> list[TranslationUnit]:
        context = self._context(document_id, module_id)
        return [
            TranslationUnit(id=e.id, source_text=e.value, context=context)
            for e in self._entries(raw)
        ]

    def rebuild(self, raw: str, mapping: Mapping[str, str], strict: bool = False) -> str:
        self._check_complete([e.id for e in self._entries(raw)], mapping, strict)

        bom, lines = _split_lines(raw)
        out = [bom]
        for line in lines:
            entry = _parse_line(line)
            if entry is None or entry.id not in mapping:
                out.append(line)
                continue
            out.append(
                f"{entry.key}={entry.lead}{escape_lang_value(mapping[entry.id])}"
                f"{entry.trail}{entry.ending}"
            )
        return "".join(out)
