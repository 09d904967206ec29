from __future__ import annotations

import copy
import logging
import os
import sys
from typing import Any

import yaml
from dotenv import load_dotenv

from .validator import validate_config, ConfigValidationError


DEFAULT_CONFIG_FILE = "config.yaml"
CONFIG_ENV_VAR = "CONFIG_PATH"

DEFAULTS: dict[str, Any] = {
    "prefix": "!",
    "auto_save_interval": 60,
    "data_file": "chad_memory.json",
    "engage_chance": 0.1,
    "search_api_key": "",
    "openrouter": {
        "base_url": "https://openrouter.ai/api/v1",
        "model": "openai/gpt-4o-mini",
        "system_prompt": "You are Chad, a direct and concise member of this Discord server.",
        "temperature": 0.7,
        "max_tokens": 1024,
        "max_messages_in_context": 20,
    },
    "rate_limit": {
        "max_requests": 10,
        "window": 60,
        "mute_time": 60,
    },
    "permissions": {
        "admin_ids": [],
    },
}

# config key path -> environment variable used when the key is empty
SECRET_ENV_VARS = {
    ("bot_token",): "DISCORD_TOKEN",
    ("openrouter", "api_key"): "OPENROUTER_API_KEY",
    ("search_api_key",): "BRAVE_API_KEY",
}


def get_config_path() -> str:
    """
    Resolve the config path, preferring an explicit environment override.
    """
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return env_path
    return DEFAULT_CONFIG_FILE


def _merge(defaults: dict[str, Any], data: dict[str, Any]) -> dict[str, Any]:
    merged = copy.deepcopy(defaults)
    for key, value in data.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _apply_env_secrets(cfg: dict[str, Any]) -> None:
    for path, env_var in SECRET_ENV_VARS.items():
        *parents, leaf = path
        section = cfg
        for p in parents:
            section = section.setdefault(p, {})
            if not isinstance(section, dict):
                break
        else:
            if not section.get(leaf) and os.environ.get(env_var):
                section[leaf] = os.environ[env_var]


def _load_raw_config(path: str | None = None) -> dict[str, Any]:
    cfg_path = path or get_config_path()
    try:
        with open(cfg_path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logging.error("Config file not found: %s", cfg_path)
        sys.exit(1)
    except yaml.YAMLError as e:
        logging.error("YAML parsing error in %s: %s", cfg_path, e)
        sys.exit(1)

    if not isinstance(data, dict):
        logging.error("Config root must be a mapping, got %s", type(data).__name__)
        sys.exit(1)

    return data


def build_config(data: dict[str, Any]) -> dict[str, Any]:
    """Fill in defaults and secrets from the environment (.env is honoured)."""
    load_dotenv()
    cfg = _merge(DEFAULTS, data)
    _apply_env_secrets(cfg)
    return cfg


def get_config(path: str | None = None) -> dict[str, Any]:
    """
    Public helper for loading configuration.

    - Respects CONFIG_PATH if set.
    - Fills defaults and pulls missing credentials from the environment.
    - Exits with error code 1 if validation fails (missing credentials included).
    """
    cfg_path = path or get_config_path()
    cfg = build_config(_load_raw_config(cfg_path))

    try:
        validate_config(cfg, cfg_path)
    except ConfigValidationError:
        sys.exit(1)

    return cfg
