"""Application settings from defaults, config.yaml, .env and environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Dict, Tuple

import yaml
from dotenv import load_dotenv

DEFAULT_CORS_ORIGINS: Tuple[str, ...] = (
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:3000",
    "http://127.0.0.1:3000",
)


@dataclass(frozen=True)
class Settings:
    env: str = "dev"
    log_level: str = "INFO"
    cors_origins: Tuple[str, ...] = DEFAULT_CORS_ORIGINS
    max_payload_bytes: int = 1024 * 1024
    storage_path: str = "data/investment_tracker.json"
    default_inflation_percent: float = 2.5


def _deep_get(d: Dict[str, Any], path: str, default=None):
    cur = d
    for part in path.split("."):
        if not isinstance(cur, dict) or part not in cur:
            return default
        cur = cur[part]
    return cur


def _parse_origins(value: Any) -> Tuple[str, ...]:
    if isinstance(value, str):
        items = value.split(",")
    else:
        items = list(value)
    return tuple(item.strip() for item in items if str(item).strip())


def load_settings(config_path: str = "config.yaml") -> Settings:
    """
    Loads config.yaml + overrides from .env/environment variables.
    """
    load_dotenv()

    cfg: Dict[str, Any] = {}
    if os.path.exists(config_path):
        with open(config_path, "r", encoding="utf-8") as f:
            cfg = yaml.safe_load(f) or {}

    # Empty env vars count as "not set".
    def _env_or_cfg(key: str, cfg_path: str, default):
        v = os.getenv(key)
        if v is None or v.strip() == "":
            return _deep_get(cfg, cfg_path, default)
        return v.strip()

    defaults = Settings()

    return Settings(
        env=_env_or_cfg("APP_ENV", "app.env", defaults.env),
        log_level=str(_env_or_cfg("LOG_LEVEL", "app.log_level", defaults.log_level)).upper(),
        cors_origins=_parse_origins(
            _env_or_cfg("CORS_ORIGINS", "api.cors_origins", defaults.cors_origins)
        ),
        max_payload_bytes=int(
            _env_or_cfg("MAX_PAYLOAD_BYTES", "api.max_payload_bytes", defaults.max_payload_bytes)
        ),
        storage_path=_env_or_cfg("STORAGE_PATH", "storage.path", defaults.storage_path),
        default_inflation_percent=float(
            _env_or_cfg(
                "DEFAULT_INFLATION_PERCENT",
                "inflation.default_percent",
                defaults.default_inflation_percent,
            )
        ),
    )
