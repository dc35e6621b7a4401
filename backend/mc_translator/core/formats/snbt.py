"""FTB Quests SNBT documents.

A small structural scanner walks compounds, lists and scalars and records
the exact character span of every string value. Only strings under
``title``, ``subtitle`` and ``description`` keys (a string, or a list of
strings) become units, addressed by their structural path such as
``quests[2].tasks[0].title``. Rebuild splices translations into the
original text at the recorded spans, so every other byte is untouched.
"""

import re
from dataclasses import dataclass
from typing import Mapping, Optional

from ..exceptions import MalformedAssetError
from ..translation.models.unit import TranslationUnit
from .base import AssetKind, FormatAdapter

# Last dot-segment of a key; also covers lang/en_us.snbt keys like
# "quest.0A1B.quest_desc".
TRANSLATABLE_KEYS = frozenset(
    {"title", "subtitle", "description", "quest_subtitle", "quest_desc", "chapter_subtitle"}
)

_BARE = re.compile(r"[^\s,:;\[\]{}\"']+")
_ARRAY_PREFIX = re.compile(r"[BIL]\s*;")


@dataclass(frozen=True)
class StringSpan:
    """A quoted string value: path, inner span and raw (escaped) content."""

    path: str
    start: int
    end: int
    quote: str
    text: str


def _is_translatable_key(key: Optional[str]) -> bool:
    return key is not None and key.rsplit(".", 1)[-1] in TRANSLATABLE_KEYS


class SnbtScanner:
    """Recursive-descent scanner over SNBT text."""

    def __init__(self, text: str, source: str = "snbt"):
        self.text = text
        self.source = source
        self.pos = 0
        self.spans: list[StringSpan] = []

    def _error(self, message: str) -> MalformedAssetError:
        line = self.text.count("\n", 0, self.pos) + 1
        return MalformedAssetError(self.source, f"{message} at line {line}")

    def _skip_separators(self) -> None:
        while self.pos < len(self.text) and (
            self.text[self.pos].isspace() or self.text[self.pos] == ","
        ):
            self.pos += 1

    def _peek(self) -> str:
        self._skip_separators()
        if self.pos >= len(self.text):
            raise self._error("unexpected end of document")
        return self.text[self.pos]

    def scan(self) -> list[StringSpan]:
        self._skip_separators()
        if self.pos >= len(self.text):
            raise self._error("empty document")
        self._value(path="", key=None, in_translatable_list=False)
        self._skip_separators()
        if self.pos < len(self.text):
            raise self._error(f"unexpected trailing content {self.text[self.pos]!r}")
        return self.spans

    def _value(self, path: str, key: Optional[str], in_translatable_list: bool) -> None:
        c = self._peek()
        if c == "{":
            self._compound(path)
        elif c == "[":
            self._list(path, key)
        elif c in "\"'":
            start, end, quote = self._string()
            if _is_translatable_key(key) or in_translatable_list:
                text = self.text[start:end]
                if any(ch.isalpha() for ch in text):
                    self.spans.append(StringSpan(path, start, end, quote, text))
        else:
            self._bare()

    def _string(self) -> tuple[int, int, str]:
        quote = self.text[self.pos]
        self.pos += 1
        start = self.pos
        while self.pos < len(self.text):
            c = self.text[self.pos]
            if c == "\\":
                self.pos += 2
                continue
            if c == quote:
                end = self.pos
                self.pos += 1
                return start, end, quote
            self.pos += 1
        raise self._error("unterminated string")

    def _bare(self) -> str:
        match = _BARE.match(self.text, self.pos)
        if not match:
            raise self._error(f"unexpected character {self.text[self.pos]!r}")
        self.pos = match.end()
        return match.group(0)

    def _key(self) -> str:
        c = self._peek()
        if c in "\"'":
            start, end, _ = self._string()
            return self.text[start:end]
        return self._bare()

    def _compound(self, path: str) -> None:
        self.pos += 1  # {
        while True:
            if self._peek() == "}":
                self.pos += 1
                return
            key = self._key()
            if self._peek() != ":":
                raise self._error(f"expected ':' after key {key!r}")
            self.pos += 1
            child = f"{path}.{key}" if path else key
            self._value(child, key, in_translatable_list=False)

    def _list(self, path: str, key: Optional[str]) -> None:
        self.pos += 1  # [
        self._skip_separators()
        prefix = _ARRAY_PREFIX.match(self.text, self.pos)
        if prefix:
            self.pos = prefix.end()
        translatable = _is_translatable_key(key)
        index = 0
        while True:
            if self._peek() == "]":
                self.pos += 1
                return
            self._value(f"{path}[{index}]", None, in_translatable_list=translatable)
            index += 1


def escape_snbt_string(text: str, quote: str) -> str:
    """Escape a translation for insertion between the given quotes."""
    text = text.replace("\r\n", "\\n").replace("\n", "\\n").replace("\r", "")
    return re.sub(r"(?<!\\)" + re.escape(quote), "\\\\" + quote, text)


class QuestFormat(FormatAdapter):
    """Quest-tree documents; only title/subtitle/description are translated."""

    kind = AssetKind.QUEST
    supports_incremental = False

    def scan(self, raw: str, document_id: str = "snbt") -> list[StringSpan]:
        return SnbtScanner(raw, document_id).scan()

    def extract(
        self, raw: str, document_id: str, module_id: Optional[str] = None
    ) -> list[TranslationUnit]:
        context = self._context(document_id, module_id)
        return [
            TranslationUnit(id=span.path, source_text=span.text, context=context)
            for span in self.scan(raw, document_id)
        ]

    def rebuild(self, raw: str, mapping: Mapping[str, str], strict: bool = False) -> str:
        spans = self.scan(raw)
        self._check_complete([s.path for s in spans], mapping, strict)

        out = raw
        for span in sorted(spans, key=lambda s: s.start, reverse=True):
            translated = mapping.get(span.path)
            if translated is None or not translated.strip():
                continue
            out = out[: span.start] + escape_snbt_string(translated, span.quote) + out[span.end:]
        return out
