"""Chat request models handed to the LLM gateway."""

import json
from typing import Literal, Optional

from pydantic import BaseModel, Field

Role = Literal["system", "user", "assistant"]


class Message(BaseModel):
    """One chat message."""

    role: Role
    content: str


class PromptBundle(BaseModel):
    """Request for one batch: the rendered system prompt and the JSON payload."""

    messages: list[Message]
    temperature: float = Field(default=0.1, ge=0.0, le=2.0)
    # Strings in the user payload; the reply must contain as many
    expected_items: int = Field(default=0, ge=0)
    module_id: Optional[str] = None

    def _first(self, role: Role) -> Optional[str]:
        return next((m.content for m in self.messages if m.role == role), None)

    @property
    def system_prompt(self) -> Optional[str]:
        return self._first("system")

    @property
    def user_prompt(self) -> Optional[str]:
        return self._first("user")

    def payload(self) -> list[str]:
        """Decoded source strings of the user message."""
        return json.loads(self.user_prompt or "[]")

    def to_openai_format(self) -> list[dict[str, str]]:
        return [m.model_dump() for m in self.messages]
