"""Chat completion reply models."""

from typing import Optional

from pydantic import BaseModel, Field


class TokenUsage(BaseModel):
    """Token counts reported by the endpoint."""

    prompt_tokens: int = 0
    completion_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens


class LLMResponse(BaseModel):
    """Raw reply for one batch request, before shape validation."""

    content: str
    provider: str
    model: str
    usage: TokenUsage = Field(default_factory=TokenUsage)
    finish_reason: Optional[str] = None
    latency_ms: int = 0

    @property
    def truncated(self) -> bool:
        """Reply stopped at the token limit; the JSON array is likely cut off."""
        return self.finish_reason == "length"
