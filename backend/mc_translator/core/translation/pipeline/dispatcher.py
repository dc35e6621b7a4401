"""Translation dispatcher.

Sends one batch per request under the global network gate and drives the
per-batch retry state machine:

    Pending -> InFlight -> Succeeded
                        -> TransientFailure -> InFlight ...
                        -> PermanentFailure

Transient failures (ResponseShapeError, timeouts, connection errors, 5xx,
429) are retried up to max_retries times with exponential backoff starting
at retry_delay. Anything else fails the batch immediately.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from ....config import TranslatorSettings
from ...exceptions import (
    BatchFailedError,
    DispatchCancelledError,
    DispatchError,
    ResponseShapeError,
    TransientDispatchError,
)
from ...llm.gateway import LLMGateway, classify_error
from ..models.batch import Batch, BatchOutcome, BatchState, TranslationResult
from .output_processor import OutputProcessor
from .prompt_engine import PromptEngine

logger = logging.getLogger(__name__)

SleepFunc = Callable[[float], Awaitable[None]]


def is_transient(exc: BaseException) -> bool:
    """Whether a failed attempt may be retried."""
    return isinstance(exc, (TransientDispatchError, ResponseShapeError))


class TranslationDispatcher:
    """Issues batch requests with bounded concurrency and retry/backoff."""

    def __init__(
        self,
        gateway: LLMGateway,
        settings: TranslatorSettings,
        network_gate: asyncio.Semaphore,
        cancel_event: Optional[asyncio.Event] = None,
        sleep: Optional[SleepFunc] = None,
    ):
        """Initialize the dispatcher.

        Args:
            gateway: LLM transport
            settings: Immutable run settings
            network_gate: Global semaphore shared by every asset task
            cancel_event: Run-level cancellation signal
            sleep: Backoff sleep; defaults to a sleep that wakes on cancellation
        """
        self.gateway = gateway
        self.settings = settings
        self.network_gate = network_gate
        self.cancel_event = cancel_event or asyncio.Event()
        self.prompt_engine = PromptEngine(settings)
        self.output_processor = OutputProcessor()
        self._sleep = sleep or self._cancellable_sleep
        self._backoff = wait_exponential(multiplier=settings.retry_delay, exp_base=2)

    async def _cancellable_sleep(self, delay: float) -> None:
        try:
            await asyncio.wait_for(self.cancel_event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            pass

    def _wait(self, retry_state: RetryCallState) -> float:
        delay = self._backoff(retry_state)
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        retry_after = getattr(exc, "retry_after", None)
        if retry_after is not None:
            delay = max(delay, retry_after)
        return delay

    def _check_cancelled(self, batch: Batch) -> None:
        if self.cancel_event.is_set():
            raise DispatchCancelledError(
                f"Run cancelled before sending batch {batch.batch_index} "
                f"of {batch.document_id}"
            )

    async def _attempt(self, batch: Batch) -> list[TranslationResult]:
        bundle = self.prompt_engine.build(batch)
        try:
            response = await asyncio.wait_for(
                self.gateway.call(bundle), timeout=self.settings.timeout
            )
        except DispatchError:
            raise
        except Exception as e:
            raise classify_error(e) from e
        return self.output_processor.process(response, batch)

    async def dispatch(
        self, batch: Batch, outcome: Optional[BatchOutcome] = None
    ) -> list[TranslationResult]:
        """Send one batch, retrying transient failures.

        Args:
            batch: Batch to translate
            outcome: Optional record updated with state transitions

        Returns:
            One result per unit, in request order

        Raises:
            DispatchCancelledError: run cancelled before an attempt started
            BatchFailedError: retries exhausted or permanent failure
        """
        outcome = outcome or BatchOutcome(batch_index=batch.batch_index, state=BatchState.PENDING)
        tag = f"[Dispatcher] [{batch.module_id}] batch {batch.batch_index + 1}"

        def _before_sleep(retry_state: RetryCallState) -> None:
            outcome.state = BatchState.TRANSIENT_FAILURE
            exc = retry_state.outcome.exception()
            logger.warning(
                f"{tag} attempt {retry_state.attempt_number}/"
                f"{self.settings.max_retries + 1} failed: {exc}; retrying in "
                f"{retry_state.next_action.sleep:.1f}s"
            )

        self._check_cancelled(batch)
        async with self.network_gate:
            self._check_cancelled(batch)
            retrying = AsyncRetrying(
                stop=stop_after_attempt(self.settings.max_retries + 1),
                wait=self._wait,
                retry=retry_if_exception(is_transient),
                before_sleep=_before_sleep,
                sleep=self._sleep,
                reraise=True,
            )
            try:
                async for attempt in retrying:
                    with attempt:
                        self._check_cancelled(batch)
                        outcome.attempts = attempt.retry_state.attempt_number
                        outcome.state = BatchState.IN_FLIGHT
                        logger.debug(f"{tag} attempt {outcome.attempts} ({len(batch)} items)")
                        results = await self._attempt(batch)
            except DispatchCancelledError:
                raise
            except DispatchError as e:
                raise BatchFailedError(batch.batch_index, outcome.attempts, e) from e

        outcome.state = BatchState.SUCCEEDED
        return results

    async def run_batch(self, batch: Batch) -> BatchOutcome:
        """Dispatch a batch and record its terminal state instead of raising."""
        outcome = BatchOutcome(batch_index=batch.batch_index, state=BatchState.PENDING)
        try:
            outcome.results = await self.dispatch(batch, outcome)
        except DispatchCancelledError as e:
            outcome.state = BatchState.CANCELLED
            outcome.error = str(e)
            logger.info(f"[Dispatcher] {e}")
        except BatchFailedError as e:
            outcome.state = BatchState.PERMANENT_FAILURE
            outcome.error = str(e.cause)
            logger.error(
                f"[Dispatcher] [{batch.module_id}] batch {batch.batch_index + 1} of "
                f"{batch.document_id} failed, {len(batch)} units left untranslated: {e}"
            )
        return outcome
