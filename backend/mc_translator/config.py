"""Application configuration."""

from pathlib import Path
from typing import Any, Optional

from pydantic import Field
from pydantic_settings import (
    BaseSettings,
    JsonConfigSettingsSource,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

DEFAULT_CONFIG_FILE = Path("./MC_Translator/config.json")

DEFAULT_PROMPT = (
    "You are a localization expert for Minecraft mods. Current mod ID: [{MOD_ID}].\n"
    "I will send a JSON array of strings written in {SOURCE_LANG}.\n"
    "Translate every item into {TARGET_LANG} and reply with a JSON array of strings.\n"
    "Rules:\n"
    "1. Keep the order: item N of the output corresponds to item N of the input.\n"
    "2. Keep the length: the output must contain exactly as many items as the input.\n"
    "3. Keep every marker such as [P0], [P1] exactly as written and in the same order.\n"
    "4. Reply with the bare JSON array only, without Markdown code fences."
)


class _JsonConfigSource(JsonConfigSettingsSource):
    """JSON config file; the top level must be an object."""

    def _read_file(self, file_path: Path) -> dict[str, Any]:
        data = super()._read_file(file_path)
        if not isinstance(data, dict):
            raise ValueError(f"Config file {file_path} must contain a JSON object")
        return data


class TranslatorSettings(BaseSettings):
    """Translator settings loaded from arguments, a JSON file or the environment."""

    # JSON file read below the init arguments; missing files are skipped
    config_file: Optional[Path] = None

    # Endpoint
    api_key: str = ""
    base_url: str = "https://api.openai.com/v1"
    provider: str = "openai"
    model: str = "gpt-3.5-turbo"
    temperature: float = Field(default=0.1, ge=0.0, le=2.0)

    # Paths
    input_path: str = ""
    output_path: str = "./MC_Translator/output_cn"
    check_path: str = "./MC_Translator/output_cn"  # reserved, not read anywhere

    # Languages
    source_lang: str = "en_us"
    target_lang: str = "zh_cn"

    # Batching and retries
    batch_size: int = Field(default=200, gt=0)
    timeout: float = Field(default=60.0, gt=0)
    max_retries: int = Field(default=5, ge=0)
    retry_delay: float = Field(default=10.0, ge=0)

    # Concurrency
    file_semaphore: int = Field(default=5, gt=0)
    max_network_concurrency: int = Field(default=10, gt=0)

    # Behaviour
    skip_existing: bool = True
    skip_quest: bool = False
    strict_rebuild: bool = False  # raise instead of falling back to source text

    # Protection
    protected_patterns: list[str] = Field(default_factory=list)
    protected_terms: list[str] = Field(default_factory=list)

    prompt: str = DEFAULT_PROMPT

    model_config = SettingsConfigDict(
        env_prefix="MCT_",
        env_file=".env",
        env_file_encoding="utf-8",
        json_file=DEFAULT_CONFIG_FILE,
        json_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Arguments first, then the JSON config file, then the environment."""
        config_file = init_settings.init_kwargs.get("config_file")
        if config_file:
            json_settings = _JsonConfigSource(settings_cls, json_file=config_file)
        else:
            json_settings = _JsonConfigSource(settings_cls)
        return init_settings, json_settings, env_settings, dotenv_settings, file_secret_settings

    @classmethod
    def load(
        cls, config_file: Optional[Path] = None, **overrides: Any
    ) -> "TranslatorSettings":
        """Load settings from a JSON config file, with keyword overrides on top.

        A missing file is not an error; defaults and the environment apply.
        """
        values = {k: v for k, v in overrides.items() if v is not None}
        return cls(config_file=config_file or DEFAULT_CONFIG_FILE, **values)

    def render_prompt(self, module_id: str) -> str:
        """Substitute module and language tokens into the prompt template."""
        return (
            self.prompt.replace("{MOD_ID}", module_id)
            .replace("{SOURCE_LANG}", self.source_lang)
            .replace("{TARGET_LANG}", self.target_lang)
        )
