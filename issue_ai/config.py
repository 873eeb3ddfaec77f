from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

import yaml
from dotenv import load_dotenv

load_dotenv()

DEFAULT_CONFIG_PATH = Path("config/issue_builder.yaml")


def _parse_bool(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


def _parse_int(value: Any, default: int) -> int:
    try:
        return int(value) if value is not None else default
    except ValueError:
        return default


def _parse_float(value: Any, default: float) -> float:
    try:
        return float(value) if value is not None else default
    except ValueError:
        return default


@dataclass
class Settings:
    ollama_host: str
    chat_model: str
    keep_alive: str
    api_key: str | None
    request_timeout: float
    categorization_enabled: bool
    log_level: str = "INFO"
    max_workers: int = 2


def load_file_config(path: Path | None = None) -> Dict[str, Any]:
    """Read optional YAML overrides; a missing file means no overrides."""

    path = path or Path(os.getenv("ISSUE_BUILDER_CONFIG", str(DEFAULT_CONFIG_PATH)))
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping at the top level.")
    return data


def load_settings(path: Path | None = None) -> Settings:
    """Environment variables win over the YAML file, which wins over defaults."""

    file_cfg = load_file_config(path)

    def pick(env_name: str, key: str, default: Any) -> Any:
        env_value = os.getenv(env_name)
        if env_value is not None:
            return env_value
        return file_cfg.get(key, default)

    return Settings(
        ollama_host=str(pick("OLLAMA_HOST", "ollama_host", "http://localhost:11434")),
        chat_model=str(pick("CHAT_MODEL", "chat_model", "llama3")),
        keep_alive=str(pick("KEEP_ALIVE", "keep_alive", "5m")),
        api_key=pick("OLLAMA_API_KEY", "api_key", None) or None,
        request_timeout=_parse_float(pick("REQUEST_TIMEOUT", "request_timeout", None), 120.0),
        categorization_enabled=_parse_bool(pick("CATEGORIZATION_ENABLED", "categorization_enabled", None), True),
        log_level=str(pick("LOG_LEVEL", "log_level", "INFO")).upper(),
        max_workers=_parse_int(pick("MAX_WORKERS", "max_workers", None), 2),
    )
