import asyncio
import unittest
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

from mc_translator.core.exceptions import (
    PermanentDispatchError,
    ResponseShapeError,
    TransientDispatchError,
)
from mc_translator.core.llm import LiteLLMGateway, classify_error
from mc_translator.core.translation.models import Message, PromptBundle

from tests.helpers import make_settings


class _HTTPError(Exception):
    def __init__(self, status_code, headers=None):
        super().__init__(f"HTTP {status_code}")
        self.status_code = status_code
        self.response = SimpleNamespace(headers=headers or {})


def _bundle() -> PromptBundle:
    return PromptBundle(
        messages=[Message(role="system", content="sys"), Message(role="user", content='["Cart"]')],
        expected_items=1,
    )


class ClassifyErrorTests(unittest.TestCase):

    def test_status_codes(self) -> None:
        self.assertIsInstance(classify_error(_HTTPError(500)), TransientDispatchError)
        self.assertIsInstance(classify_error(_HTTPError(429)), TransientDispatchError)
        self.assertIsInstance(classify_error(_HTTPError(404)), PermanentDispatchError)
        self.assertIsInstance(classify_error(ValueError("boom")), PermanentDispatchError)

    def test_timeouts_are_transient(self) -> None:
        self.assertIsInstance(classify_error(asyncio.TimeoutError()), TransientDispatchError)

    def test_rate_limit_carries_retry_after(self) -> None:
        error = classify_error(_HTTPError(429, {"retry-after": "7"}))

        self.assertEqual(error.status_code, 429)
        self.assertEqual(error.retry_after, 7.0)

    def test_dispatch_errors_pass_through(self) -> None:
        error = ResponseShapeError("bad")

        self.assertIs(classify_error(error), error)


class LiteLLMGatewayTests(unittest.IsolatedAsyncioTestCase):

    def test_from_settings_prefixes_provider(self) -> None:
        gateway = LiteLLMGateway.from_settings(
            make_settings(model="qwen-plus", base_url="https://example.com/v1/")
        )

        kwargs = gateway._build_kwargs(_bundle())

        self.assertEqual(kwargs["model"], "openai/qwen-plus")
        self.assertEqual(kwargs["api_base"], "https://example.com/v1")
        self.assertEqual(kwargs["max_retries"], 0)
        self.assertEqual(gateway.model, "qwen-plus")

    def test_prefixed_model_is_kept(self) -> None:
        gateway = LiteLLMGateway(api_key="k", model="openai/gpt-4o")

        self.assertEqual(gateway._build_kwargs(_bundle())["model"], "openai/gpt-4o")

    async def test_call_returns_response(self) -> None:
        reply = SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content='["车"]'))],
            usage=SimpleNamespace(prompt_tokens=3, completion_tokens=2, total_tokens=5),
        )
        gateway = LiteLLMGateway(api_key="k", model="gpt-4o-mini")

        with patch("mc_translator.core.llm.gateway.acompletion", AsyncMock(return_value=reply)) as mock:
            response = await gateway.call(_bundle())

        self.assertEqual(response.content, '["车"]')
        self.assertEqual(response.usage.total_tokens, 5)
        self.assertEqual(mock.await_args.kwargs["messages"][1]["content"], '["Cart"]')

    async def test_call_classifies_transport_errors(self) -> None:
        gateway = LiteLLMGateway(api_key="k", model="gpt-4o-mini")

        with patch(
            "mc_translator.core.llm.gateway.acompletion",
            AsyncMock(side_effect=_HTTPError(503)),
        ):
            with self.assertRaises(TransientDispatchError) as ctx:
                await gateway.call(_bundle())
        self.assertEqual(ctx.exception.status_code, 503)


if __name__ == "__main__":
    unittest.main()
