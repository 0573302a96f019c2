# src/config/settings.py — v1
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for endpoint, cache, context and logging settings.
Every variable is read with the TABAUTOCOMPLETE_ prefix
(e.g. TABAUTOCOMPLETE_MODEL_NAME=qwen2.5-coder:7b).
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_PROMPT_TEMPLATE = (
    "You are an expert ${language} programmer. Complete the code at the "
    "cursor position marked with <CURSOR>. Return ONLY the code to insert, without "
    "explanations, comments about the change or Markdown formatting, and do not "
    "repeat code that already exists in the context.\n\n"
    "Context:\n```\n${prefix}\n```\n\n"
    "Completion:"
)


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="TABAUTOCOMPLETE_",
        extra="ignore",
    )

    # === Endpoint ===
    provider: Literal["ollama", "deepseek", "openai"] = "ollama"
    api_base_url: str = "http://localhost:11434"
    api_key: str = ""
    model_name: str = "qwen2.5-coder:1.5b"
    temperature: float = 0.3
    max_tokens: int = 300
    request_timeout_s: float = 30.0
    transport_max_retries: int = 0

    # === Context & prompt ===
    enabled: bool = True
    max_context_lines: int = 100
    max_prompt_chars: int = 2000
    prompt_template: str = DEFAULT_PROMPT_TEMPLATE
    include_related_snippets: bool = True
    related_snippets: int = 3

    # === Cache ===
    cache_enabled: bool = True
    cache_backend: Literal["json", "sqlite", "redis", "memory"] = "json"
    cache_root: Path = Path("~/.tabautocomplete/cache")
    cache_namespace: str = "tabAutocompleteCache"
    cache_redis_url: str = ""
    max_snippets: int = 1000
    retention_period_hours: int = 24

    # === File types ===
    enabled_file_types: str = (
        ".js,.ts,.jsx,.tsx,.py,.java,.c,.cpp,.cs,.go,.rs,.php,.rb,.html,.css,.md,*"
    )
    disabled_file_types: str = ".txt,.log,.json,.yml,.yaml"

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "text"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 5

    # --- Validators ---

    @field_validator("temperature")
    @classmethod
    def validate_temperature(cls, v: float) -> float:
        if not 0.0 <= v <= 2.0:
            raise ValueError("temperature must be between 0 and 2")
        return v

    @field_validator("max_tokens", "max_snippets", "retention_period_hours", "max_context_lines")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("value must be >= 1")
        return v

    @field_validator("api_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if self.cache_backend == "redis" and not self.cache_redis_url:
            errors.append("CACHE_BACKEND=redis requires CACHE_REDIS_URL")

        if self.provider in ("deepseek", "openai") and not self.api_key:
            errors.append(f"PROVIDER={self.provider} requires API_KEY")

        if "${prefix}" not in self.prompt_template:
            errors.append("PROMPT_TEMPLATE must contain the ${prefix} placeholder")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def enabled_file_types_list(self) -> list[str]:
        """Parse comma-separated enabled file types."""
        return [t.strip() for t in self.enabled_file_types.split(",") if t.strip()]

    @property
    def disabled_file_types_list(self) -> list[str]:
        """Parse comma-separated disabled file types."""
        return [t.strip() for t in self.disabled_file_types.split(",") if t.strip()]


@dataclass(frozen=True)
class GenerationConfig:
    """Per-request model parameters and cache switch."""

    model_name: str
    temperature: float = 0.3
    max_tokens: int = 300
    cache_enabled: bool = True

    @classmethod
    def from_settings(cls, settings: Settings) -> GenerationConfig:
        return cls(
            model_name=settings.model_name,
            temperature=settings.temperature,
            max_tokens=settings.max_tokens,
            cache_enabled=settings.cache_enabled,
        )


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or per-session config).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
