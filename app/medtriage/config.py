"""Runtime settings for the triage service."""

from __future__ import annotations

import os
from dataclasses import dataclass, field


def _as_bool(value: str | None, *, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _as_float(value: str | None, *, default: float) -> float:
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _as_int(value: str | None, *, default: int) -> int:
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _as_list(value: str | None, *, default: tuple[str, ...]) -> tuple[str, ...]:
    if not value:
        return default
    items = tuple(item.strip() for item in value.split(",") if item.strip())
    return items or default


def _first_env(*names: str) -> str | None:
    for name in names:
        value = os.getenv(name)
        if value:
            return value
    return None


@dataclass(frozen=True)
class Settings:
    app_name: str = field(default_factory=lambda: os.getenv("MEDTRIAGE_APP_NAME", "medtriage-api"))

    # Completion service credentials and model selection.
    api_key: str | None = field(
        default_factory=lambda: _first_env(
            "OPENAI_API_KEY",
            "MEDTRIAGE_API_KEY",
        )
    )
    model: str = field(default_factory=lambda: os.getenv("MEDTRIAGE_MODEL", "gpt-4o-mini"))
    completions_base_url: str = field(
        default_factory=lambda: os.getenv("MEDTRIAGE_COMPLETIONS_BASE_URL", "https://api.openai.com/v1")
    )
    max_output_tokens: int = field(
        default_factory=lambda: _as_int(os.getenv("MEDTRIAGE_MAX_OUTPUT_TOKENS"), default=1000)
    )
    temperature: float = field(
        default_factory=lambda: _as_float(os.getenv("MEDTRIAGE_TEMPERATURE"), default=0.7)
    )

    # Total budget for one model invocation, retries included.
    request_timeout_sec: float = field(
        default_factory=lambda: _as_float(os.getenv("MEDTRIAGE_REQUEST_TIMEOUT_SEC"), default=30.0)
    )
    max_retries: int = field(default_factory=lambda: _as_int(os.getenv("MEDTRIAGE_MAX_RETRIES"), default=2))
    retry_backoff_sec: float = field(
        default_factory=lambda: _as_float(os.getenv("MEDTRIAGE_RETRY_BACKOFF_SEC"), default=0.5)
    )

    emergency_number: str = field(default_factory=lambda: os.getenv("MEDTRIAGE_EMERGENCY_NUMBER", "911"))
    demo_mode: bool = field(
        default_factory=lambda: _as_bool(_first_env("MEDTRIAGE_DEMO_MODE", "DEMO_MODE"), default=False)
    )

    log_level: str = field(default_factory=lambda: os.getenv("MEDTRIAGE_LOG_LEVEL", "INFO"))
    cors_origins: tuple[str, ...] = field(
        default_factory=lambda: _as_list(os.getenv("MEDTRIAGE_CORS_ORIGINS"), default=("*",))
    )

    @property
    def credentials_configured(self) -> bool:
        return bool(self.api_key and self.api_key.strip())


def get_settings() -> Settings:
    return Settings()
