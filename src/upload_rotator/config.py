# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Configuration loading for the upload pipeline.

Settings come from a JSON config file (same shape the bot has always used)
with environment variables layered on top. A .env file is loaded by the
application entry point before this module is consulted.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .constants import (
    DEFAULT_MAX_RETRY,
    DEFAULT_POLL_INTERVAL_SECONDS,
    DEFAULT_POLL_TIMEOUT_SECONDS,
    DEFAULT_QUOTA_CACHE_SECONDS,
    DEFAULT_RECONCILE_AFTER,
    DEFAULT_RETRY_BACKOFF_SECONDS,
)
from .types import Credential, sort_credentials

lib_logger = logging.getLogger("upload_rotator")

DEFAULT_CONFIG_PATH = "config.json"


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class UploaderSettings:
    """Everything the pipeline needs to run, already validated."""

    group_id: int
    credentials: Tuple[Credential, ...]
    max_retry: int = DEFAULT_MAX_RETRY
    poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS
    poll_timeout: Optional[float] = DEFAULT_POLL_TIMEOUT_SECONDS
    retry_backoff: float = DEFAULT_RETRY_BACKOFF_SECONDS
    quota_cache_seconds: float = DEFAULT_QUOTA_CACHE_SECONDS
    reconcile_after: int = DEFAULT_RECONCILE_AFTER
    raw: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)


def read_config_file(path: Optional[str] = None) -> Dict[str, Any]:
    """
    Read the JSON config file.

    A missing file is not an error: environment variables alone can
    configure the pipeline.
    """
    config_path = Path(path or os.getenv("UPLOADER_CONFIG") or DEFAULT_CONFIG_PATH)
    if not config_path.exists():
        lib_logger.info(f"Config file {config_path} not found, using environment only")
        return {}
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        raise ConfigError(f"Could not read config file {config_path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {config_path} must contain a JSON object")
    return data


def _int_value(raw: Any, name: str, problems: List[str]) -> Optional[int]:
    if raw is None or raw == "":
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        problems.append(f"{name} must be an integer, got {raw!r}")
        return None


def _float_value(raw: Any, name: str, problems: List[str]) -> Optional[float]:
    if raw is None or raw == "":
        return None
    try:
        return float(raw)
    except (TypeError, ValueError):
        problems.append(f"{name} must be a number, got {raw!r}")
        return None


def _credentials_from_config(
    entries: Any, problems: List[str]
) -> List[Credential]:
    if entries is None:
        return []
    if not isinstance(entries, list):
        problems.append("roblox.api_keys must be a list")
        return []

    credentials = []
    for index, entry in enumerate(entries):
        if not isinstance(entry, dict) or not entry.get("key"):
            problems.append(f"roblox.api_keys[{index}] is missing 'key'")
            continue
        priority = _int_value(
            entry.get("priority", index + 1),
            f"roblox.api_keys[{index}].priority",
            problems,
        )
        credentials.append(
            Credential(
                key=str(entry["key"]),
                name=str(entry.get("name") or f"key-{index + 1}"),
                priority=priority if priority is not None else index + 1,
            )
        )
    return credentials


def _credentials_from_env(env: Mapping[str, str]) -> List[Credential]:
    """
    Collect ROBLOX_API_KEY and ROBLOX_API_KEY_<N> variables.

    The numeric suffix doubles as the priority; the bare variable is
    priority 0.
    """
    credentials = []
    for name, value in env.items():
        if not value:
            continue
        if name == "ROBLOX_API_KEY":
            credentials.append(Credential(key=value, name="env-key", priority=0))
            continue
        if not name.startswith("ROBLOX_API_KEY_"):
            continue
        suffix = name[len("ROBLOX_API_KEY_"):]
        if not suffix.isdigit():
            continue
        credentials.append(
            Credential(key=value, name=f"env-key-{suffix}", priority=int(suffix))
        )
    return credentials


def load_settings(
    path: Optional[str] = None,
    env: Optional[Mapping[str, str]] = None,
    data: Optional[Dict[str, Any]] = None,
) -> UploaderSettings:
    """
    Build UploaderSettings from the config file and environment.

    Raises:
        ConfigError: listing every problem found, not just the first
    """
    env = os.environ if env is None else env
    data = read_config_file(path) if data is None else data
    problems: List[str] = []

    roblox = data.get("roblox") or {}
    settings = data.get("settings") or {}

    group_id = _int_value(
        env.get("ROBLOX_GROUP_ID") or roblox.get("group_id"), "group_id", problems
    )
    if group_id is None and not any("group_id" in p for p in problems):
        problems.append("ROBLOX_GROUP_ID / roblox.group_id is required")

    credentials = _credentials_from_config(roblox.get("api_keys"), problems)
    credentials.extend(_credentials_from_env(env))
    if not credentials:
        problems.append("At least one API key is required (roblox.api_keys or ROBLOX_API_KEY)")

    max_retry = _int_value(
        env.get("MAX_RETRY_PER_UPLOAD") or settings.get("max_retry_per_upload"),
        "max_retry_per_upload",
        problems,
    )
    # 0 means "use the default", as in older config files
    if max_retry is not None and max_retry < 0:
        problems.append("max_retry_per_upload cannot be negative")

    poll_ms = _float_value(
        env.get("POLLING_INTERVAL_MS") or settings.get("polling_interval_ms"),
        "polling_interval_ms",
        problems,
    )
    if poll_ms is not None and poll_ms < 0:
        problems.append("polling_interval_ms cannot be negative")

    cache_days = _float_value(
        env.get("QUOTA_CACHE_DAYS") or settings.get("quota_cache_days"),
        "quota_cache_days",
        problems,
    )
    poll_timeout = _float_value(
        env.get("POLL_TIMEOUT_SECONDS") or settings.get("poll_timeout_seconds"),
        "poll_timeout_seconds",
        problems,
    )
    reconcile_after = _int_value(
        env.get("QUOTA_RECONCILE_AFTER") or settings.get("quota_reconcile_after"),
        "quota_reconcile_after",
        problems,
    )

    if problems:
        raise ConfigError("Invalid uploader configuration: " + "; ".join(problems))

    return UploaderSettings(
        group_id=group_id,
        credentials=tuple(sort_credentials(credentials)),
        max_retry=max_retry or DEFAULT_MAX_RETRY,
        poll_interval=(
            poll_ms / 1000 if poll_ms is not None else DEFAULT_POLL_INTERVAL_SECONDS
        ),
        # 0 or negative disables the poll deadline
        poll_timeout=(
            DEFAULT_POLL_TIMEOUT_SECONDS
            if poll_timeout is None
            else (poll_timeout if poll_timeout > 0 else None)
        ),
        quota_cache_seconds=(
            cache_days * 24 * 60 * 60
            if cache_days is not None
            else DEFAULT_QUOTA_CACHE_SECONDS
        ),
        reconcile_after=(
            reconcile_after if reconcile_after is not None else DEFAULT_RECONCILE_AFTER
        ),
        raw=data,
    )
