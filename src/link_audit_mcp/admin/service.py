"""Admin service layer for configuration and stats management."""

from __future__ import annotations

import logging
import os
from typing import Any

from link_audit_mcp.metrics import get_metrics

logger = logging.getLogger(__name__)

DEFAULT_SITE_DOMAIN = "adventure-life.com"
DEFAULT_LINK_CONCURRENCY = 5
DEFAULT_BATCH_CONCURRENCY = 2
DEFAULT_PAGE_TIMEOUT = 15
DEFAULT_PAGE_MAX_RETRIES = 2
MAX_BATCH_URLS = 20

_DEFAULTS: dict[str, Any] = {
    "site_domain": DEFAULT_SITE_DOMAIN,
    "link_concurrency": DEFAULT_LINK_CONCURRENCY,
    "batch_concurrency": DEFAULT_BATCH_CONCURRENCY,
    "page_timeout": DEFAULT_PAGE_TIMEOUT,
    "page_max_retries": DEFAULT_PAGE_MAX_RETRIES,
    "max_batch_urls": MAX_BATCH_URLS,
}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning(f"Ignoring non-integer {name}={value!r}, using {default}")
        return default


# Runtime configuration overrides (not persisted)
_runtime_config: dict[str, Any] = {
    "site_domain": os.getenv("SITE_DOMAIN") or DEFAULT_SITE_DOMAIN,
    "link_concurrency": _env_int("LINK_CONCURRENCY", DEFAULT_LINK_CONCURRENCY),
    "batch_concurrency": _env_int("BATCH_CONCURRENCY", DEFAULT_BATCH_CONCURRENCY),
    "page_timeout": _env_int("PAGE_TIMEOUT", DEFAULT_PAGE_TIMEOUT),
    "page_max_retries": _env_int("PAGE_MAX_RETRIES", DEFAULT_PAGE_MAX_RETRIES),
    "max_batch_urls": MAX_BATCH_URLS,
}


def get_config(key: str, default: Any = None) -> Any:
    """Get a configuration value with runtime override support.

    Args:
        key: Configuration key
        default: Default value if key not found

    Returns:
        Configuration value or default
    """
    return _runtime_config.get(key, default)


def get_stats() -> dict[str, Any]:
    """Get server statistics and metrics.

    Returns:
        Dictionary with request metrics and the link gate's counters
    """
    from link_audit_mcp.scheduler import get_link_gate

    stats = get_metrics().to_dict()
    stats["link_gate"] = get_link_gate().stats()
    return stats


def get_current_config() -> dict[str, Any]:
    """Get current runtime configuration.

    Returns:
        Dictionary with current config, defaults, and note
    """
    return {
        "config": _runtime_config,
        "defaults": dict(_DEFAULTS),
        "note": "Changes are not persisted and will reset on server restart",
    }


def update_config(config_updates: dict[str, Any]) -> dict[str, Any]:
    """Update runtime configuration.

    Unknown keys, read-only keys and values of the wrong type or range are
    ignored and listed under "rejected".

    Args:
        config_updates: Dictionary of config key-value pairs to update

    Returns:
        Dictionary with status, message, updated keys, and current config
    """
    updated = []
    rejected = []

    for key, value in config_updates.items():
        # bool is an int subclass but never a valid count
        is_int = isinstance(value, int) and not isinstance(value, bool)

        if key in ("link_concurrency", "batch_concurrency") and is_int and 1 <= value <= 50:
            _runtime_config[key] = value
            updated.append(key)
        elif key == "page_timeout" and is_int and value > 0:
            _runtime_config[key] = value
            updated.append(key)
        elif key == "page_max_retries" and is_int and value >= 0:
            _runtime_config[key] = value
            updated.append(key)
        elif key == "site_domain" and isinstance(value, str) and value.strip():
            _runtime_config[key] = value.strip().lower()
            updated.append(key)
        else:
            rejected.append(key)

    if "link_concurrency" in updated:
        from link_audit_mcp.scheduler import get_link_gate

        get_link_gate().resize(_runtime_config["link_concurrency"])

    if updated:
        logger.info(f"Runtime config updated: {', '.join(updated)}")

    return {
        "status": "success",
        "message": f"Updated {len(updated)} config value(s)",
        "updated": updated,
        "rejected": rejected,
        "current_config": _runtime_config,
    }


def reset_config() -> None:
    """Restore every config value to its default."""
    _runtime_config.clear()
    _runtime_config.update(_DEFAULTS)
