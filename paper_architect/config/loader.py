"""Load configuration from YAML and environment variables. No hardcoded secrets."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from paper_architect.models.types import ProviderConfig

# Default config lives next to this module
_DEFAULT_CONFIG_PATH = Path(__file__).parent / "default.yaml"


class ProviderPreset(BaseModel):
    name: str
    base_url: str
    model: str


PROVIDER_PRESETS: list[ProviderPreset] = [
    ProviderPreset(name="OpenAI GPT-4o", base_url="https://api.openai.com/v1", model="gpt-4o"),
    ProviderPreset(name="DeepSeek", base_url="https://api.deepseek.com/v1", model="deepseek-chat"),
    ProviderPreset(
        name="Google Gemini",
        base_url="https://generativelanguage.googleapis.com",
        model="gemini-1.5-pro",
    ),
]


def find_preset(name: str) -> ProviderPreset | None:
    wanted = name.strip().lower()
    for preset in PROVIDER_PRESETS:
        if preset.name.lower() == wanted or preset.name.lower().split()[0] == wanted:
            return preset
    return None


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    result = dict(base)
    for k, v in override.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


class ProviderSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="LLM_", extra="ignore")
    api_key: str = Field(default="", repr=False)
    base_url: str = "https://api.openai.com/v1"
    model: str = "gpt-4o"

    def to_provider_config(self) -> ProviderConfig:
        return ProviderConfig(api_key=self.api_key, base_url=self.base_url, model=self.model)


class GenerationSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="GENERATION_", extra="ignore")
    max_tokens: int = 8192
    timeout_seconds: float = 300.0


class StorageSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="REDIS_", extra="ignore")
    url: str = "redis://localhost:6379/0"


class LoggingSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="LOG_", extra="ignore")
    level: str = "INFO"
    use_json: bool = False


class Config(BaseSettings):
    """Application config: YAML + env. Secrets from env only."""

    model_config = SettingsConfigDict(env_nested_delimiter="__", extra="ignore")

    provider: ProviderSettings = Field(default_factory=ProviderSettings)
    generation: GenerationSettings = Field(default_factory=GenerationSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @classmethod
    def load(cls, config_path: str | Path | None = None) -> "Config":
        path = Path(config_path) if config_path else _DEFAULT_CONFIG_PATH
        yaml_data = _load_yaml(path)
        env_prefix = os.getenv("PAPER_ARCHITECT_ENV", "")
        if env_prefix:
            yaml_data = _deep_merge(yaml_data, _load_yaml(Path(f"config/{env_prefix}.yaml")))
        for env_name, field_name in (
            ("LLM_API_KEY", "api_key"),
            ("LLM_BASE_URL", "base_url"),
            ("LLM_MODEL", "model"),
        ):
            value = os.getenv(env_name, "").strip()
            if value:
                yaml_data.setdefault("provider", {})[field_name] = value
        redis_url = os.getenv("REDIS_URL")
        if redis_url:
            yaml_data.setdefault("storage", {})["url"] = redis_url
        level = os.getenv("LOG_LEVEL")
        if level:
            yaml_data.setdefault("logging", {})["level"] = level
        use_json = os.getenv("LOG_JSON", "")
        if use_json:
            yaml_data.setdefault("logging", {})["use_json"] = use_json.lower() in ("1", "true", "yes")
        return cls(**yaml_data)


def get_config(config_path: str | Path | None = None) -> Config:
    return Config.load(config_path)
