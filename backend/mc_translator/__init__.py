"""MC Translator - LLM translation of Minecraft mod, resource and quest text."""

__version__ = "0.1.0"
