"""
YAML configuration validator for config.yaml.

Validates structure, required credentials, and common misconfigurations.
"""

from __future__ import annotations

import logging
from typing import Any


logger = logging.getLogger(__name__)


class ConfigValidationError(Exception):
    """Raised when config validation fails."""
    pass


def _is_positive_number(value: Any, integer: bool = False) -> bool:
    if isinstance(value, bool):
        return False
    if integer:
        return isinstance(value, int) and value > 0
    return isinstance(value, (int, float)) and value > 0


def validate_config(cfg: dict[str, Any], config_path: str = "config.yaml") -> None:
    """
    Comprehensive validation of config.yaml structure and content.

    Expects defaults to be merged in already (see loader.build_config).
    Raises ConfigValidationError if validation fails.
    Logs detailed error messages before raising.

    Args:
        cfg: The loaded config dictionary
        config_path: Path to config file (for error messages)

    Raises:
        ConfigValidationError: If validation fails
    """
    errors = []
    warnings = []

    # ── Check root structure ────────────────────────────────────────────────
    if not isinstance(cfg, dict):
        errors.append(f"Config root must be a mapping, got {type(cfg).__name__}")
        cfg = {}

    # ── Credentials ─────────────────────────────────────────────────────────
    if not cfg.get("bot_token"):
        errors.append("Discord token is not set ('bot_token' or DISCORD_TOKEN)")

    # ── Top-level scalars ───────────────────────────────────────────────────
    prefix = cfg.get("prefix")
    if not isinstance(prefix, str) or not prefix:
        errors.append(f"'prefix' must be a non-empty string, got {prefix!r}")

    if not _is_positive_number(cfg.get("auto_save_interval")):
        errors.append(
            f"'auto_save_interval' must be a positive number of seconds, "
            f"got {cfg.get('auto_save_interval')!r}"
        )

    if not isinstance(cfg.get("data_file"), str) or not cfg.get("data_file"):
        errors.append("'data_file' must be a non-empty string")

    chance = cfg.get("engage_chance")
    if isinstance(chance, bool) or not isinstance(chance, (int, float)) or not 0 <= chance <= 1:
        errors.append(f"'engage_chance' must be a number between 0 and 1, got {chance!r}")

    if not cfg.get("search_api_key"):
        warnings.append("No search API key ('search_api_key' or BRAVE_API_KEY): !factcheck and web_search are disabled")

    # ── Validate openrouter section ─────────────────────────────────────────
    llm = cfg.get("openrouter")
    if not isinstance(llm, dict):
        errors.append(f"'openrouter' must be a mapping, got {type(llm).__name__}")
    else:
        if not llm.get("api_key"):
            errors.append("OpenRouter key is not set ('openrouter.api_key' or OPENROUTER_API_KEY)")
        if not isinstance(llm.get("model"), str) or not llm.get("model"):
            errors.append("'openrouter.model' must be a non-empty string")
        temperature = llm.get("temperature")
        if isinstance(temperature, bool) or not isinstance(temperature, (int, float)) or not 0 <= temperature <= 2:
            errors.append(f"'openrouter.temperature' must be between 0 and 2, got {temperature!r}")
        for key in ("max_tokens", "max_messages_in_context"):
            if not _is_positive_number(llm.get(key), integer=True):
                errors.append(f"'openrouter.{key}' must be a positive integer, got {llm.get(key)!r}")
        if not isinstance(llm.get("system_prompt", ""), str):
            errors.append("'openrouter.system_prompt' must be a string")

    # ── Validate rate_limit section ─────────────────────────────────────────
    rate = cfg.get("rate_limit")
    if not isinstance(rate, dict):
        errors.append(f"'rate_limit' must be a mapping, got {type(rate).__name__}")
    else:
        if not _is_positive_number(rate.get("max_requests"), integer=True):
            errors.append(
                f"'rate_limit.max_requests' must be a positive integer, got {rate.get('max_requests')!r}"
            )
        for key in ("window", "mute_time"):
            if not _is_positive_number(rate.get(key)):
                errors.append(f"'rate_limit.{key}' must be a positive number of seconds, got {rate.get(key)!r}")

    # ── Validate permissions section ───────────────────────────────────────
    if "permissions" in cfg:
        perms = cfg["permissions"]
        if not isinstance(perms, dict):
            errors.append(
                f"'permissions' must be a mapping, got {type(perms).__name__}"
            )
        elif "admin_ids" in perms and not isinstance(perms["admin_ids"], list):
            errors.append(
                f"'permissions.admin_ids' must be a list, got {type(perms['admin_ids']).__name__}"
            )

    # ── Log warnings ────────────────────────────────────────────────────────
    for warning in warnings:
        logger.warning("Config warning: %s", warning)

    # ── Log errors and exit if any ──────────────────────────────────────────
    if errors:
        logger.error("=" * 70)
        logger.error("CONFIG VALIDATION FAILED (%s)", config_path)
        logger.error("=" * 70)
        for i, error in enumerate(errors, 1):
            logger.error("[%d] %s", i, error)
        logger.error("=" * 70)
        logger.error("Please fix the errors above and restart the bot.")
        logger.error("=" * 70)
        raise ConfigValidationError(f"Config validation failed with {len(errors)} error(s)")
