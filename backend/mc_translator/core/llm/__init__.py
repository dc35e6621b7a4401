"""LLM integration package.

This package provides the gateway used by the dispatcher to reach an
OpenAI-compatible chat completion endpoint.
"""

from .gateway import LLMGateway, LiteLLMGateway, classify_error

__all__ = [
    "LLMGateway",
    "LiteLLMGateway",
    "classify_error",
]
