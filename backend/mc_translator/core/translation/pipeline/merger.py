"""Incremental merge.

Splits freshly extracted units into those that already have an accepted
translation and those that still need one, and reassembles the final
id -> text mapping after dispatch. Accepted entries are never sent to the
network and never overwritten; entries whose id vanished from the source
are dropped.
"""

from dataclasses import dataclass, field
from typing import Mapping, Optional, Sequence

from ..models.unit import TranslationUnit


@dataclass(frozen=True)
class Partition:
    """Result of splitting candidates against accepted records."""

    already_translated: dict[str, str] = field(default_factory=dict)
    pending: list[TranslationUnit] = field(default_factory=list)

    @property
    def pending_ids(self) -> set[str]:
        return {u.id for u in self.pending}


class IncrementalMerger:
    """Partition and merge against an accepted-translation record store."""

    @staticmethod
    def partition(
        units: Sequence[TranslationUnit], accepted: Mapping[str, str]
    ) -> Partition:
        already: dict[str, str] = {}
        pending: list[TranslationUnit] = []
        for unit in units:
            if unit.id in accepted:
                already[unit.id] = accepted[unit.id]
            else:
                pending.append(unit)
        return Partition(already_translated=already, pending=pending)

    @staticmethod
    def merge(partition: Partition, newly_translated: Mapping[str, str]) -> dict[str, str]:
        """accepted ∪ newly_translated, limited to ids still in the source."""
        merged = dict(partition.already_translated)
        for unit in partition.pending:
            if unit.id in newly_translated:
                merged[unit.id] = newly_translated[unit.id]
        return merged


def build_accepted(
    existing: Optional[Mapping[str, str]] = None,
    baseline: Optional[Mapping[str, str]] = None,
    fallbacks: Optional[Mapping[str, str]] = None,
) -> dict[str, str]:
    """Combine record sources into one accepted mapping.

    Existing output wins over the bundled baseline. ``fallbacks`` maps ids
    that a previous run wrote with their source text (because translation
    failed) to that source text; such entries are not accepted translations
    unless they have since been edited.
    """
    fallbacks = fallbacks or {}
    accepted = dict(baseline or {})
    for unit_id, text in (existing or {}).items():
        if fallbacks.get(unit_id) != text:
            accepted[unit_id] = text
    return accepted


def baseline_unchanged(
    previous_output: Mapping[str, str],
    snapshot: Mapping[str, str],
    units: Sequence[TranslationUnit],
) -> dict[str, str]:
    """Previous translations whose source text is unchanged since the snapshot.

    Used for documents without incremental merge: a unit is reused only when
    its current source text equals the source text recorded when the
    previous output was written.
    """
    reusable: dict[str, str] = {}
    for unit in units:
        if unit.id in previous_output and snapshot.get(unit.id) == unit.source_text:
            reusable[unit.id] = previous_output[unit.id]
    return reusable
