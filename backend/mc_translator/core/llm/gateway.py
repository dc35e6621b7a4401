"""Chat completion transport for batch translation.

The dispatcher only depends on the LLMGateway contract; LiteLLMGateway
reaches any OpenAI-compatible endpoint through LiteLLM. Transport errors
are mapped onto TransientDispatchError or PermanentDispatchError here.
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Mapping, Optional

from litellm import acompletion
from litellm.exceptions import APIConnectionError, Timeout

from ...config import TranslatorSettings
from ..exceptions import DispatchError, PermanentDispatchError, TransientDispatchError
from ..translation.models.prompt import PromptBundle
from ..translation.models.response import LLMResponse, TokenUsage

logger = logging.getLogger(__name__)


class LLMGateway(ABC):
    """Sends one PromptBundle and returns the raw reply."""

    @property
    @abstractmethod
    def provider(self) -> str:
        """LiteLLM provider prefix."""

    @property
    @abstractmethod
    def model(self) -> str:
        """Model name as configured."""

    @abstractmethod
    async def call(self, bundle: PromptBundle) -> LLMResponse:
        """Send one batch request.

        Raises:
            TransientDispatchError: timeouts, connection errors, 5xx, 429
            PermanentDispatchError: any other failure
        """

    async def health_check(self) -> bool:
        """Check if the provider is available."""
        return True


def _parse_retry_after(headers: Optional[Mapping[str, Any]]) -> Optional[float]:
    if not headers:
        return None
    value = headers.get("retry-after") or headers.get("Retry-After")
    if value is None:
        return None
    try:
        return max(0.0, float(value))
    except (TypeError, ValueError):
        return None


def classify_error(exc: BaseException) -> DispatchError:
    """Map a transport exception onto the dispatch error taxonomy."""
    if isinstance(exc, DispatchError):
        return exc
    if isinstance(exc, (Timeout, asyncio.TimeoutError)):
        return TransientDispatchError(f"Request timed out: {exc}")
    if isinstance(exc, APIConnectionError):
        return TransientDispatchError(f"Connection error: {exc}")

    status = getattr(exc, "status_code", None)
    if status == 429:
        response = getattr(exc, "response", None)
        retry_after = _parse_retry_after(getattr(response, "headers", None))
        if retry_after is None:
            retry_after = _parse_retry_after(
                getattr(exc, "litellm_response_headers", None)
            )
        return TransientDispatchError(
            f"Rate limited (HTTP 429): {exc}", status_code=429, retry_after=retry_after
        )
    if isinstance(status, int) and status >= 500:
        return TransientDispatchError(f"Server error (HTTP {status}): {exc}", status_code=status)
    if isinstance(status, int) and 400 <= status < 500:
        return PermanentDispatchError(f"API error (HTTP {status}): {exc}", status_code=status)
    return PermanentDispatchError(f"Unexpected LLM error: {exc}")


class LiteLLMGateway(LLMGateway):
    """Gateway for OpenAI-compatible chat endpoints using LiteLLM."""

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: Optional[str] = None,
        provider_name: str = "openai",
        timeout: float = 60.0,
    ):
        """Set up the endpoint.

        Args:
            api_key: Bearer token for the endpoint
            model: Model identifier
            base_url: Endpoint base URL (OpenAI-compatible)
            provider_name: LiteLLM provider prefix
            timeout: Per-request timeout in seconds
        """
        self._api_key = api_key
        self._model = model
        self._base_url = base_url.rstrip("/") if base_url else None
        self._provider = provider_name
        self._timeout = timeout

        if model.startswith(f"{provider_name}/"):
            self._litellm_model = model
        else:
            self._litellm_model = f"{provider_name}/{model}"

        logger.info(
            f"[LLM Gateway] Initialized: provider={provider_name}, model={model}, "
            f"litellm_model={self._litellm_model}, base_url={self._base_url}"
        )

    @classmethod
    def from_settings(cls, settings: TranslatorSettings) -> "LiteLLMGateway":
        return cls(
            api_key=settings.api_key,
            model=settings.model,
            base_url=settings.base_url,
            provider_name=settings.provider,
            timeout=settings.timeout,
        )

    @property
    def provider(self) -> str:
        return self._provider

    @property
    def model(self) -> str:
        return self._model

    def _build_kwargs(self, bundle: PromptBundle) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "model": self._litellm_model,
            "messages": bundle.to_openai_format(),
            "temperature": bundle.temperature,
            "api_key": self._api_key,
            "timeout": self._timeout,
            # Retries are owned by the dispatcher
            "max_retries": 0,
        }
        if self._base_url:
            kwargs["api_base"] = self._base_url
        return kwargs

    async def call(self, bundle: PromptBundle) -> LLMResponse:
        """Send one batch request through litellm.acompletion."""
        start_time = time.time()

        logger.debug(
            f"[LLM Gateway] Calling LiteLLM: model={self._litellm_model}, "
            f"module={bundle.module_id}, items={bundle.expected_items}"
        )

        try:
            response = await acompletion(**self._build_kwargs(bundle))
        except Exception as e:
            raise classify_error(e) from e

        latency_ms = int((time.time() - start_time) * 1000)
        usage = getattr(response, "usage", None)
        choice = response.choices[0]

        return LLMResponse(
            content=choice.message.content or "",
            provider=self._provider,
            model=self._model,
            usage=TokenUsage(
                prompt_tokens=usage.prompt_tokens if usage else 0,
                completion_tokens=usage.completion_tokens if usage else 0,
            ),
            latency_ms=latency_ms,
            finish_reason=getattr(choice, "finish_reason", None),
        )

    async def health_check(self) -> bool:
        """Send a minimal request to verify the key and endpoint."""
        try:
            await acompletion(
                model=self._litellm_model,
                messages=[{"role": "user", "content": "Hi"}],
                max_tokens=5,
                api_key=self._api_key,
                api_base=self._base_url,
                timeout=self._timeout,
                max_retries=0,
            )
            return True
        except Exception as e:
            logger.warning(f"[LLM Gateway] Health check failed for {self._model}: {e}")
            return False
