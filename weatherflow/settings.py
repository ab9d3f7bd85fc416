"""Environment driven settings for the weather data layer."""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from .errors import ConfigurationError

DEFAULT_PROVIDER = "open-meteo"


def env(name: str, default: Optional[str] = None, environ: Optional[Mapping[str, str]] = None) -> str:
    """Fetch environment variables while allowing explicit defaults."""

    source = os.environ if environ is None else environ
    value = source.get(name, default)
    if value is None:
        raise ConfigurationError(f"Environment variable {name} is required")
    return value


def _number(name: str, raw: str, cast):
    try:
        return cast(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from exc


@dataclass(frozen=True)
class Settings:
    provider: str = DEFAULT_PROVIDER
    api_key: Optional[str] = None
    http_timeout: float = 10.0
    max_retries: int = 1
    snapshot_dir: Optional[Path] = None
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        provider = env("WEATHERFLOW_PROVIDER", DEFAULT_PROVIDER, environ).strip().lower()
        api_key = env("WEATHERFLOW_API_KEY", "", environ) or None
        if provider == "openweather":
            api_key = env("WEATHERFLOW_API_KEY", None, environ)
        snapshot_dir = env("WEATHERFLOW_SNAPSHOT_DIR", "", environ)
        return cls(
            provider=provider,
            api_key=api_key,
            http_timeout=_number("WEATHERFLOW_HTTP_TIMEOUT", env("WEATHERFLOW_HTTP_TIMEOUT", "10", environ), float),
            max_retries=_number("WEATHERFLOW_MAX_RETRIES", env("WEATHERFLOW_MAX_RETRIES", "1", environ), int),
            snapshot_dir=Path(snapshot_dir).expanduser() if snapshot_dir else None,
            log_level=env("WEATHERFLOW_LOG_LEVEL", "INFO", environ).upper(),
        )


__all__ = ["Settings", "env", "DEFAULT_PROVIDER"]
