"""Protected-token masking.

Formatting codes, placeholders and newline escapes must survive the round
trip through the model untouched. Before dispatch every protected substring
is replaced by a sequential marker ([P0], [P1], ...); after dispatch the
markers are swapped back. Both directions are pure functions of their input.
"""

import re
from typing import Iterable, Optional, Sequence

from ....config import TranslatorSettings
from ...exceptions import TokenMismatchError
from ..models.unit import MaskedUnit, TokenSpan, TranslationUnit

MARKER_TEMPLATE = "[P{index}]"
MARKER_PATTERN = re.compile(r"\[P(\d+)\]")

# Ordered: earlier rules win when two match at the same position.
DEFAULT_RULES: tuple[str, ...] = (
    # Marker look-alikes already present in the source
    r"\[P\d+\]",
    # Formatting codes: §a, &l, ...
    r"[§&][0-9a-fk-orA-FK-OR]",
    # printf style: %s, %d, %1$s, %.2f, %%
    r"%(?:\d+\$)?[-+#0]*\d*(?:\.\d+)?[sdfxXoeEgGcbh%]",
    # Brace placeholders: {0}, {@pagebreak}, {image:...}
    r"\{[^{}\n]*\}",
    # Newline escapes and raw line breaks
    r"\\n|\r?\n",
)


class TokenProtector:
    """Masks and restores protected substrings."""

    def __init__(
        self,
        extra_patterns: Optional[Sequence[str]] = None,
        terms: Optional[Iterable[str]] = None,
    ):
        """Build the combined rule set.

        Args:
            extra_patterns: user-declared regular expressions to protect
            terms: user-declared glossary terms, matched literally
        """
        rules = list(DEFAULT_RULES)
        rules.extend(extra_patterns or ())
        # Longer terms first so overlapping terms prefer the longest match
        literal_terms = sorted({t for t in (terms or ()) if t}, key=len, reverse=True)
        rules.extend(re.escape(t) for t in literal_terms)
        self._pattern = re.compile("|".join(f"(?:{rule})" for rule in rules))

    @classmethod
    def from_settings(cls, settings: TranslatorSettings) -> "TokenProtector":
        return cls(settings.protected_patterns, settings.protected_terms)

    def mask_text(self, text: str) -> tuple[str, tuple[TokenSpan, ...]]:
        """Replace every protected substring with a sequential marker."""
        spans: list[TokenSpan] = []

        def _replace(match: re.Match) -> str:
            original = match.group(0)
            if not original:
                return original
            marker = MARKER_TEMPLATE.format(index=len(spans))
            spans.append(TokenSpan(marker=marker, original=original))
            return marker

        masked = self._pattern.sub(_replace, text)
        return masked, tuple(spans)

    def mask(self, unit: TranslationUnit) -> MaskedUnit:
        masked, token_map = self.mask_text(unit.source_text)
        return MaskedUnit(unit=unit, masked_text=masked, token_map=token_map)

    @staticmethod
    def unmask(text: str, token_map: Sequence[TokenSpan]) -> str:
        """Swap markers back to their original substrings.

        Raises:
            TokenMismatchError: markers missing, duplicated, extra or reordered
        """
        found = [int(m.group(1)) for m in MARKER_PATTERN.finditer(text)]
        if found != list(range(len(token_map))):
            raise TokenMismatchError(len(token_map), found)
        if not token_map:
            return text

        return MARKER_PATTERN.sub(lambda m: token_map[int(m.group(1))].original, text)
