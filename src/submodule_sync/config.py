"""Load run defaults from .submodule-sync.yaml."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from pathlib import Path

import yaml

from submodule_sync.context import DEFAULT_CONCURRENCY

logger = logging.getLogger(__name__)

DEFAULT_BRANCH = "main"
DEFAULT_STASH_MESSAGE = "auto-stash before submodule-sync"


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    initial_delay: float = 1.0
    backoff_multiplier: float = 2.0
    max_delay: float = 10.0

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after the given 1-based failed attempt."""
        delay = self.initial_delay * (self.backoff_multiplier ** (attempt - 1))
        return min(delay, self.max_delay)


@dataclass(frozen=True)
class SyncConfig:
    default_branch: str = DEFAULT_BRANCH
    concurrency: int = DEFAULT_CONCURRENCY
    git_timeout: float = 30.0
    skip_invalid: bool = True
    stash_message: str = DEFAULT_STASH_MESSAGE
    retry: RetryPolicy = field(default_factory=RetryPolicy)


_SCALAR_KEYS = {
    "default_branch": str,
    "concurrency": int,
    "git_timeout": (int, float),
    "skip_invalid": bool,
    "stash_message": str,
}

_RETRY_KEYS = {
    "max_attempts": int,
    "initial_delay": (int, float),
    "backoff_multiplier": (int, float),
    "max_delay": (int, float),
}


def _check_type(key: str, value, expected, source: Path) -> None:
    # bool is an int subclass; reject it for numeric keys
    if isinstance(value, bool) and expected is not bool:
        raise ValueError(f"{source}: '{key}' must be a number, got {value!r}")
    if not isinstance(value, expected):
        raise ValueError(f"{source}: '{key}' has the wrong type: {value!r}")


def parse_config(data: dict, source: Path) -> SyncConfig:
    """Build a SyncConfig from a parsed YAML mapping.

    Unknown keys are ignored. Values of the wrong type raise ValueError.
    """
    values = {}
    for key, expected in _SCALAR_KEYS.items():
        if key in data and data[key] is not None:
            _check_type(key, data[key], expected, source)
            values[key] = data[key]

    if "concurrency" in values and values["concurrency"] < 1:
        raise ValueError(f"{source}: 'concurrency' must be at least 1")
    if "git_timeout" in values:
        values["git_timeout"] = float(values["git_timeout"])

    retry_data = data.get("retry") or {}
    if not isinstance(retry_data, dict):
        raise ValueError(f"{source}: 'retry' must be a mapping")
    retry_values = {}
    for key, expected in _RETRY_KEYS.items():
        if key in retry_data and retry_data[key] is not None:
            _check_type(f"retry.{key}", retry_data[key], expected, source)
            retry_values[key] = retry_data[key]
    if retry_values.get("max_attempts", 1) < 1:
        raise ValueError(f"{source}: 'retry.max_attempts' must be at least 1")

    return SyncConfig(retry=RetryPolicy(**retry_values), **values)


def load_config(path: Path | str) -> SyncConfig:
    """Read a YAML config file.

    Args:
        path: Path to the config file. A missing file yields defaults.

    Returns:
        Parsed SyncConfig.

    Raises:
        ValueError: If the document is not a mapping or a value is mistyped.
        yaml.YAMLError: If the YAML is malformed.
    """
    config_file = Path(path)
    if not config_file.is_file():
        logger.debug("No config file at %s, using defaults", config_file)
        return SyncConfig()

    with open(config_file) as f:
        data = yaml.safe_load(f)

    if data is None:
        return SyncConfig()
    if not isinstance(data, dict):
        raise ValueError(f"Config at {config_file} is not a YAML mapping")

    logger.debug("Loaded config from %s", config_file)
    return parse_config(data, config_file)


def with_overrides(config: SyncConfig, **overrides) -> SyncConfig:
    """Return a copy with every non-None override applied."""
    changes = {k: v for k, v in overrides.items() if v is not None}
    return replace(config, **changes) if changes else config
