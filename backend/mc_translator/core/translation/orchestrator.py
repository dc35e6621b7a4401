"""Pipeline Coordinator - Runs discovery and translation over an input tree."""

import asyncio
import logging
from pathlib import Path, PurePosixPath
from typing import Optional, Sequence

from ...config import TranslatorSettings
from ..discovery import Asset, discover, load_documents
from ..exceptions import IncompleteMappingError, MalformedAssetError, OutputCollisionError
from ..formats import AssetKind, SourceDocument
from ..llm.gateway import LLMGateway, LiteLLMGateway
from ..output_storage import OutputStorage
from .models import AssetOutcome, AssetStatus, RunReport, TranslationUnit
from .pipeline import (
    TranslationDispatcher,
    TranslationPipeline,
    baseline_unchanged,
    build_accepted,
)
from .pipeline.dispatcher import SleepFunc

logger = logging.getLogger(__name__)


class PipelineCoordinator:
    """Coordinates translation of every discovered asset.

    One task per asset, admitted by the file gate; every batch request is
    admitted by the network gate shared across all assets. A failing asset
    is reported and never halts the run.
    """

    def __init__(
        self,
        settings: TranslatorSettings,
        gateway: Optional[LLMGateway] = None,
        *,
        incremental: bool = False,
        cancel_event: Optional[asyncio.Event] = None,
        sleep: Optional[SleepFunc] = None,
    ):
        """Initialize the coordinator.

        Args:
            settings: Immutable run settings
            gateway: LLM transport; built from settings when omitted
            incremental: Only translate units without an accepted record
            cancel_event: Run-level cancellation signal
            sleep: Backoff sleep override, mainly for tests
        """
        self.settings = settings
        self.gateway = gateway or LiteLLMGateway.from_settings(settings)
        self.incremental = incremental
        self.cancel_event = cancel_event or asyncio.Event()
        self.storage = OutputStorage(Path(settings.output_path))
        self._sleep = sleep
        # output path -> document id of the first document that claimed it
        self._claims: dict[PurePosixPath, str] = {}

        logger.info(
            f"[Coordinator] Initialized: input={settings.input_path}, "
            f"output={settings.output_path}, model={self.gateway.model}, "
            f"incremental={incremental}"
        )

    def cancel(self) -> None:
        """Stop admitting assets and batch attempts; in-flight calls finish."""
        logger.info("[Coordinator] Cancellation requested")
        self.cancel_event.set()

    def discover(self) -> list[Asset]:
        return discover(self.settings)

    async def run(self, assets: Optional[Sequence[Asset]] = None) -> RunReport:
        """Translate all assets and return one outcome per asset."""
        if assets is None:
            assets = self.discover()

        file_gate = asyncio.Semaphore(self.settings.file_semaphore)
        network_gate = asyncio.Semaphore(self.settings.max_network_concurrency)
        dispatcher = TranslationDispatcher(
            self.gateway,
            self.settings,
            network_gate,
            cancel_event=self.cancel_event,
            sleep=self._sleep,
        )
        pipeline = TranslationPipeline(self.settings, dispatcher)
        self._claims = {}

        outcomes = await asyncio.gather(
            *(self._guarded(asset, file_gate, pipeline) for asset in assets)
        )
        report = RunReport(outcomes=list(outcomes), cancelled=self.cancel_event.is_set())

        if any(o.documents_written for o in report.outcomes):
            self.storage.write_pack_meta()

        logger.info(f"[Coordinator] Run finished. {report.summary().splitlines()[0]}")
        return report

    async def _guarded(
        self, asset: Asset, file_gate: asyncio.Semaphore, pipeline: TranslationPipeline
    ) -> AssetOutcome:
        if self.cancel_event.is_set():
            return AssetOutcome(asset=str(asset), status=AssetStatus.CANCELLED, reason="run cancelled")

        async with file_gate:
            if self.cancel_event.is_set():
                return AssetOutcome(
                    asset=str(asset), status=AssetStatus.CANCELLED, reason="run cancelled"
                )
            logger.info(f"[Coordinator] Processing {asset} ({asset.kind.value})")
            try:
                return await self._process_asset(asset, pipeline)
            except MalformedAssetError as e:
                logger.warning(f"[Coordinator] Skipping malformed asset: {e}")
                return AssetOutcome(asset=str(asset), status=AssetStatus.FAILED, reason=str(e))
            except Exception as e:
                logger.exception(f"[Coordinator] Unexpected error processing {asset}")
                return AssetOutcome(
                    asset=str(asset),
                    status=AssetStatus.FAILED,
                    reason=f"{type(e).__name__}: {e}",
                )

    async def _process_asset(self, asset: Asset, pipeline: TranslationPipeline) -> AssetOutcome:
        outcome = AssetOutcome(asset=str(asset), status=AssetStatus.SKIPPED)

        if asset.kind == AssetKind.QUEST and self.settings.skip_quest:
            outcome.reason = "quest translation disabled"
            return outcome

        documents = load_documents(asset, self.settings)
        if not documents:
            outcome.reason = f"no {self.settings.source_lang} language files"
            return outcome

        skipped: list[str] = []
        failures: list[str] = []
        for document in documents:
            if self.cancel_event.is_set():
                outcome.status = AssetStatus.CANCELLED
                outcome.reason = "run cancelled"
                return outcome
            try:
                status, reason = await self._process_document(document, pipeline, outcome)
            except (MalformedAssetError, IncompleteMappingError, OutputCollisionError) as e:
                logger.warning(f"[Coordinator] {document.document_id}: {e}")
                failures.append(f"{document.document_id}: {e}")
                continue
            if status == AssetStatus.CANCELLED:
                outcome.status = AssetStatus.CANCELLED
                outcome.reason = reason
                return outcome
            if status == AssetStatus.SKIPPED and reason:
                skipped.append(reason)

        if outcome.documents_written:
            outcome.status = AssetStatus.TRANSLATED
            if failures:
                outcome.reason = "; ".join(failures)
        elif failures:
            outcome.status = AssetStatus.FAILED
            outcome.reason = "; ".join(failures)
        else:
            outcome.reason = "; ".join(dict.fromkeys(skipped)) or None
        return outcome

    async def _process_document(
        self,
        document: SourceDocument,
        pipeline: TranslationPipeline,
        outcome: AssetOutcome,
    ) -> tuple[AssetStatus, Optional[str]]:
        """Translate and write one document, updating the asset outcome.

        Raises:
            MalformedAssetError: source or output cannot be parsed
            IncompleteMappingError: strict rebuild and units are missing
            OutputCollisionError: an earlier document already owns the output path
        """
        units = document.extract()
        if not units:
            return AssetStatus.SKIPPED, "no translatable text"

        relpath = document.output_relpath
        owner = self._claims.setdefault(relpath, document.document_id)
        if owner != document.document_id:
            raise OutputCollisionError(str(relpath), owner)

        if self.settings.skip_existing and not self.incremental and self.storage.exists(relpath):
            logger.info(f"[Coordinator] Output exists, skipping {relpath}")
            return AssetStatus.SKIPPED, "output exists"
        existing_raw = self.storage.read_text(relpath)

        fallbacks = self.storage.read_untranslated(relpath)
        accepted = self._accepted(document, units, existing_raw, fallbacks)

        result = await pipeline.translate(
            document.document_id, document.module_id, units, accepted
        )
        if result.cancelled:
            logger.info(f"[Coordinator] Translation of {document.document_id} interrupted, not written")
            return AssetStatus.CANCELLED, "run cancelled"

        rendered = document.render(result.mapping, strict=self.settings.strict_rebuild)

        source_texts = {u.id: u.source_text for u in units}
        untranslated = {i: source_texts[i] for i in result.untranslated_ids}
        outcome.units_translated += len(result.translated_ids)
        outcome.units_reused += len(result.reused_ids)
        outcome.untranslated_ids.extend(result.untranslated_ids)

        if rendered.content == existing_raw:
            logger.info(f"[Coordinator] {relpath} is up to date")
            self.storage.write_untranslated(relpath, untranslated)
            return AssetStatus.SKIPPED, "up to date"

        path = self.storage.write_atomic(rendered.relative_path, rendered.content)
        self.storage.write_untranslated(relpath, untranslated)
        if not document.adapter.supports_incremental:
            self.storage.write_snapshot(relpath, source_texts)

        outcome.documents_written += 1
        logger.info(
            f"[Coordinator] Wrote {path} ({len(result.translated_ids)} translated, "
            f"{len(result.reused_ids)} reused, {len(result.untranslated_ids)} untranslated)"
        )
        return AssetStatus.TRANSLATED, None

    def _accepted(
        self,
        document: SourceDocument,
        units: Sequence[TranslationUnit],
        existing_raw: Optional[str],
        fallbacks: dict[str, str],
    ) -> dict[str, str]:
        """Accepted translations for a document."""
        adapter = document.adapter
        if not adapter.supports_incremental:
            # Reuse previous output only where the source text is unchanged
            if existing_raw is None:
                return {}
            previous = self._read_records(document, existing_raw, "previous output")
            previous = {k: v for k, v in previous.items() if fallbacks.get(k) != v}
            return baseline_unchanged(previous, self.storage.read_snapshot(document.output_relpath), units)

        if not self.incremental:
            return {}

        existing = (
            self._read_records(document, existing_raw, "previous output")
            if existing_raw is not None
            else {}
        )
        try:
            baseline = document.baseline_records()
        except MalformedAssetError as e:
            logger.warning(f"[Coordinator] Ignoring bundled translation: {e}")
            baseline = {}
        return build_accepted(existing, baseline, fallbacks)

    @staticmethod
    def _read_records(document: SourceDocument, raw: str, label: str) -> dict[str, str]:
        try:
            return document.adapter.read_records(raw, str(document.output_relpath))
        except MalformedAssetError as e:
            logger.warning(f"[Coordinator] Ignoring unreadable {label}: {e}")
            return {}
