"""Prompt rendering for batch requests."""

import json

from ....config import TranslatorSettings
from ..models.batch import Batch
from ..models.prompt import Message, PromptBundle


class PromptEngine:
    """Builds the system/user message pair for one batch.

    The system prompt is the configured template with {MOD_ID},
    {SOURCE_LANG} and {TARGET_LANG} substituted; the user message is the
    JSON array of masked source strings.
    """

    def __init__(self, settings: TranslatorSettings):
        self.settings = settings

    def build(self, batch: Batch) -> PromptBundle:
        texts = batch.source_texts()
        return PromptBundle(
            messages=[
                Message(role="system", content=self.settings.render_prompt(batch.module_id)),
                Message(role="user", content=json.dumps(texts, ensure_ascii=False)),
            ],
            temperature=self.settings.temperature,
            expected_items=len(texts),
            module_id=batch.module_id,
        )
