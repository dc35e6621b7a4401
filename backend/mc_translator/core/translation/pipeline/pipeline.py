"""Per-document translation pipeline.

Coordinates the flow for one source document:
Units -> Merger.partition -> Protector.mask -> Batcher -> Dispatcher
      -> Protector.unmask -> Merger.merge
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Mapping, Optional, Sequence

from ....config import TranslatorSettings
from ...exceptions import TokenMismatchError
from ..models.batch import BatchOutcome, BatchState
from ..models.unit import MaskedUnit, TranslationUnit
from .batcher import split
from .dispatcher import TranslationDispatcher
from .merger import IncrementalMerger
from .protector import MARKER_PATTERN, TokenProtector

logger = logging.getLogger(__name__)


def has_text(unit: MaskedUnit) -> bool:
    """False when the masked text is only markers and whitespace."""
    return bool(MARKER_PATTERN.sub("", unit.masked_text).strip())


@dataclass
class DocumentResult:
    """Outcome of translating one document."""

    mapping: dict[str, str] = field(default_factory=dict)
    translated_ids: list[str] = field(default_factory=list)
    reused_ids: list[str] = field(default_factory=list)
    untranslated_ids: list[str] = field(default_factory=list)
    batch_outcomes: list[BatchOutcome] = field(default_factory=list)
    cancelled: bool = False


class TranslationPipeline:
    """Translates the units of one document.

    Results are reassembled by unit id, never by batch completion order.
    """

    def __init__(
        self,
        settings: TranslatorSettings,
        dispatcher: TranslationDispatcher,
        protector: Optional[TokenProtector] = None,
        merger: Optional[IncrementalMerger] = None,
    ):
        self.settings = settings
        self.dispatcher = dispatcher
        self.protector = protector or TokenProtector.from_settings(settings)
        self.merger = merger or IncrementalMerger()

    async def translate(
        self,
        document_id: str,
        module_id: str,
        units: Sequence[TranslationUnit],
        accepted: Optional[Mapping[str, str]] = None,
    ) -> DocumentResult:
        """Translate every unit without an accepted record.

        Args:
            document_id: Identifier of the source document
            module_id: Module identifier for the prompt
            units: Units extracted from the document
            accepted: Accepted translations (incremental mode / baseline)

        Returns:
            DocumentResult with the merged mapping and per-unit status
        """
        partition = self.merger.partition(units, accepted or {})
        result = DocumentResult(reused_ids=list(partition.already_translated))

        if partition.already_translated:
            logger.info(
                f"[Pipeline] [{module_id}] {len(partition.already_translated)} units "
                f"already translated, {len(partition.pending)} pending"
            )

        masked: dict[str, MaskedUnit] = {}
        passthrough: dict[str, str] = {}
        for unit in partition.pending:
            masked_unit = self.protector.mask(unit)
            if has_text(masked_unit):
                masked[unit.id] = masked_unit
            else:
                passthrough[unit.id] = unit.source_text
        if passthrough:
            logger.info(
                f"[Pipeline] [{module_id}] {len(passthrough)} units hold no text, kept as is"
            )
            result.reused_ids.extend(passthrough)

        batches = split(
            list(masked.values()), self.settings.batch_size, document_id, module_id
        )
        for batch in batches:
            logger.info(
                f"[Pipeline] [{module_id}] prepared batch {batch.batch_index + 1}/"
                f"{len(batches)} ({len(batch)} items)"
            )

        outcomes = await asyncio.gather(*(self.dispatcher.run_batch(b) for b in batches))
        result.batch_outcomes = list(outcomes)

        newly_translated: dict[str, str] = {}
        for batch, outcome in zip(batches, outcomes):
            if outcome.state == BatchState.CANCELLED:
                result.cancelled = True
            if not outcome.succeeded:
                result.untranslated_ids.extend(u.id for u in batch.units)
                continue
            for item in outcome.results:
                unit = masked[item.unit_id]
                try:
                    newly_translated[item.unit_id] = self.protector.unmask(
                        item.translated_text, unit.token_map
                    )
                except TokenMismatchError as e:
                    logger.warning(
                        f"[Pipeline] [{module_id}] rejected translation of "
                        f"'{item.unit_id}': {e}"
                    )
                    result.untranslated_ids.append(item.unit_id)

        if self.dispatcher.cancel_event.is_set():
            result.cancelled = True

        result.translated_ids = list(newly_translated)
        result.mapping = self.merger.merge(partition, {**passthrough, **newly_translated})
        return result
