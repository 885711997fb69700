"""Configuration loading.

Settings are loaded in priority order (highest first):
  1. Environment variables  (CODESCAN__SERVER__PORT=3001)
  2. codescan.yaml          (searched in cwd, then platform config dir)
  3. Hardcoded defaults

Backend credentials are read from the conventional GROQ_API_KEY and
ANTHROPIC_API_KEY variables rather than the prefixed form.

The config file is optional; all fields have sensible defaults.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import platformdirs
from pydantic import AliasChoices, BaseModel, Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

DEFAULT_URL_TEMPLATE = (
    "https://qpp.cms.gov/docs/QPP_quality_measure_specifications/CQM-Measures/"
    "{year}_Measure_{measure_id}_MIPSCQM.pdf"
)


def _find_config_file() -> str | None:
    """Return the path of the first codescan.yaml found, or None."""
    candidates = [
        Path("codescan.yaml"),
        Path(platformdirs.user_config_dir("codescan")) / "codescan.yaml",
    ]
    for path in candidates:
        if path.exists():
            return str(path)
    return None


class ServerSettings(BaseModel):
    host: str = "0.0.0.0"
    port: int = 3001


class FetcherSettings(BaseModel):
    timeout_seconds: float = 30.0


class ExtractorSettings(BaseModel):
    min_chars: int = 100
    display_chars: int = 15_000


class MeasureSettings(BaseModel):
    url_template: str = DEFAULT_URL_TEMPLATE
    section_max_chars: int = 1000


class CacheSettings(BaseModel):
    ttl_hours: int = 24 * 7


class BackendSettings(BaseModel):
    groq_url: str = "https://api.groq.com/openai/v1/chat/completions"
    groq_model: str = "llama-3.3-70b-versatile"
    anthropic_url: str = "https://api.anthropic.com/v1/messages"
    anthropic_model: str = "claude-sonnet-4-20250514"
    anthropic_version: str = "2023-06-01"
    default_max_tokens: int = 4000
    temperature: float = 0.1


class LoggingSettings(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["json", "text"] = "json"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Double-underscore separates nesting: CODESCAN__SERVER__PORT=9090
        env_prefix="CODESCAN__",
        env_nested_delimiter="__",
        yaml_file=_find_config_file(),
        yaml_file_encoding="utf-8",
        populate_by_name=True,
    )

    server: ServerSettings = ServerSettings()
    fetcher: FetcherSettings = FetcherSettings()
    extractor: ExtractorSettings = ExtractorSettings()
    measures: MeasureSettings = MeasureSettings()
    cache: CacheSettings = CacheSettings()
    backends: BackendSettings = BackendSettings()
    logging: LoggingSettings = LoggingSettings()

    groq_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("groq_api_key", "GROQ_API_KEY"),
    )
    anthropic_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("anthropic_api_key", "ANTHROPIC_API_KEY"),
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
        **kwargs: Any,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,  # Constructor args (highest priority)
            env_settings,  # Environment variables
            YamlConfigSettingsSource(settings_cls),  # YAML file
            # dotenv and file secrets intentionally excluded
        )
