"""Configuration path resolution.

Uses environment variables when available, falls back to conventional
defaults relative to the superproject root.

Environment variables:
    SUBMODULE_SYNC_CONFIG: explicit config file path
        (default: <repo>/.submodule-sync.yaml)
    SUBMODULE_SYNC_REPO: superproject root when not given on the command line
"""

from __future__ import annotations

import os
from pathlib import Path

CONFIG_FILENAME = ".submodule-sync.yaml"
GITMODULES_FILENAME = ".gitmodules"


def config_path(repository_root: Path, explicit: Path | str | None = None) -> Path:
    """Return the config file to read (which may not exist)."""
    if explicit:
        return Path(explicit).expanduser()
    env = os.environ.get("SUBMODULE_SYNC_CONFIG")
    if env:
        return Path(env).expanduser()
    return repository_root / CONFIG_FILENAME


def repository_hint(explicit: Path | str | None = None) -> Path:
    """Return the directory to start looking for the superproject from."""
    if explicit:
        return Path(explicit).expanduser().resolve()
    env = os.environ.get("SUBMODULE_SYNC_REPO")
    if env:
        return Path(env).expanduser().resolve()
    return Path.cwd()


def gitmodules_path(repository_root: Path) -> Path:
    return repository_root / GITMODULES_FILENAME
