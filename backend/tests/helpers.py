"""Shared test doubles."""

import json
from typing import Callable, Optional, Sequence, Union

from mc_translator.config import TranslatorSettings
from mc_translator.core.llm.gateway import LLMGateway
from mc_translator.core.translation.models import LLMResponse, PromptBundle

Reply = Union[str, BaseException]


def make_settings(**overrides) -> TranslatorSettings:
    """Settings isolated from .env files, with fast retries."""
    values = {"api_key": "test-key", "retry_delay": 0.0, "max_retries": 2}
    values.update(overrides)
    return TranslatorSettings(_env_file=None, **values)


def prefix_translator(prefix: str = "ZH:") -> Callable[[PromptBundle], str]:
    """Reply with every input string prefixed, markers untouched."""

    def _translate(bundle: PromptBundle) -> str:
        texts = bundle.payload()
        return json.dumps([f"{prefix}{t}" for t in texts], ensure_ascii=False)

    return _translate


class FakeGateway(LLMGateway):
    """In-memory gateway.

    Scripted replies are consumed first; afterwards the handler answers.
    A reply that is an exception is raised instead of returned.
    """

    def __init__(
        self,
        replies: Optional[Sequence[Reply]] = None,
        handler: Optional[Callable[[PromptBundle], Reply]] = None,
    ):
        self.replies = list(replies or [])
        self.handler = handler or prefix_translator()
        self.calls: list[PromptBundle] = []

    @property
    def provider(self) -> str:
        return "fake"

    @property
    def model(self) -> str:
        return "fake-model"

    def sent_texts(self) -> list[str]:
        """Every masked string sent so far, in call order."""
        return [t for bundle in self.calls for t in bundle.payload()]

    async def call(self, bundle: PromptBundle) -> LLMResponse:
        self.calls.append(bundle)
        reply = self.replies.pop(0) if self.replies else self.handler(bundle)
        if isinstance(reply, BaseException):
            raise reply
        return LLMResponse(content=reply, provider=self.provider, model=self.model)


class RecordingSleep:
    """Backoff sleep that returns immediately and records the delays."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
