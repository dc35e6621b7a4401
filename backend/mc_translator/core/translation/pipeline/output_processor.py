"""Output processor for batch responses.

Parses the raw model reply strictly: it must be a bare JSON array of
strings with exactly one item per request string. Any deviation is a
ResponseShapeError, which the dispatcher retries as a transient failure.
"""

import json

from ...exceptions import ResponseShapeError
from ..models.batch import Batch, TranslationResult
from ..models.response import LLMResponse


class OutputProcessor:
    """Turns an LLMResponse into ordered per-unit results."""

    def process(self, response: LLMResponse, batch: Batch) -> list[TranslationResult]:
        try:
            items = self.parse_array(response.content, expected=len(batch))
        except ResponseShapeError as e:
            if response.truncated:
                raise ResponseShapeError(f"{e} (reply cut off at the token limit)") from e
            raise
        return [
            TranslationResult(unit_id=unit.id, translated_text=text)
            for unit, text in zip(batch.units, items)
        ]

    @staticmethod
    def parse_array(content: str, expected: int) -> list[str]:
        """Parse content as a JSON string array of the expected length.

        Raises:
            ResponseShapeError: on any deviation from the contract
        """
        stripped = content.strip()
        if not stripped:
            raise ResponseShapeError("Empty response content")
        if stripped.startswith("```"):
            raise ResponseShapeError("Response is wrapped in a Markdown code fence")

        try:
            data = json.loads(stripped)
        except json.JSONDecodeError as e:
            raise ResponseShapeError(f"Response is not valid JSON: {e}") from e

        if not isinstance(data, list):
            raise ResponseShapeError(
                f"Expected a JSON array, got {type(data).__name__}"
            )
        if len(data) != expected:
            raise ResponseShapeError(
                f"Expected {expected} items, got {len(data)}"
            )
        for index, item in enumerate(data):
            if not isinstance(item, str):
                raise ResponseShapeError(
                    f"Item {index} is {type(item).__name__}, expected string"
                )
        return data
