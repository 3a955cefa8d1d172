"""Turn a manifest entry into an update plan."""

from __future__ import annotations

import logging
import os
from dataclasses import replace
from pathlib import Path

from submodule_sync.config import DEFAULT_BRANCH
from submodule_sync.context import ExecutionContext
from submodule_sync.errors import SyncError
from submodule_sync.git.client import GitClient
from submodule_sync.models import Submodule, UpdatePlan
from submodule_sync.submodules.branches import resolve_branch

logger = logging.getLogger(__name__)


def to_relative(root: Path, path: Path | str) -> str:
    """Express path relative to root with forward slashes.

    Absolute paths outside root come back as ``../...``.
    """
    candidate = Path(path)
    if candidate.is_absolute():
        rel = os.path.relpath(candidate, root)
    else:
        rel = os.path.normpath(candidate)
    return Path(rel).as_posix()


def to_absolute(root: Path, rel_path: str) -> Path:
    return Path(os.path.normpath(root / rel_path))


class SubmodulePathResolver:
    """Per-run memo of normalized and absolute submodule paths.

    Keyed by the path as written in the manifest; discard after the run.
    """

    def __init__(self, root: Path) -> None:
        self.root = root
        self._cache: dict[str, tuple[Submodule, Path]] = {}

    def resolve(self, submodule: Submodule) -> tuple[Submodule, Path]:
        """Return the submodule with a normalized path, plus its absolute path."""
        cached = self._cache.get(submodule.path)
        if cached is None:
            rel = to_relative(self.root, submodule.path)
            normalized = submodule if rel == submodule.path else replace(submodule, path=rel)
            cached = (normalized, to_absolute(self.root, rel))
            self._cache[submodule.path] = cached
            self._cache.setdefault(rel, cached)
        return cached

    def absolute(self, submodule: Submodule) -> Path:
        return self.resolve(submodule)[1]


async def prepare_update_plan(
    submodule: Submodule,
    context: ExecutionContext,
    client: GitClient,
    *,
    paths: SubmodulePathResolver | None = None,
    default_branch: str = DEFAULT_BRANCH,
) -> UpdatePlan:
    """Build the plan for one submodule.

    The repository is valid when the submodule directory is the top of its
    own working tree; otherwise it needs initialization. The current HEAD is
    read only for valid repositories, and a failed read leaves it unset.
    """
    paths = paths or SubmodulePathResolver(context.repository_root)
    normalized, absolute = paths.resolve(submodule)

    try:
        is_valid = absolute.is_dir() and await client.is_repository(absolute)
    except (SyncError, OSError) as error:
        logger.warning("Cannot check repository at %s: %s", absolute, error)
        is_valid = False

    branch = await resolve_branch(normalized, absolute, client, default_branch)

    current_sha = None
    if is_valid:
        try:
            current_sha = await client.rev_parse(absolute, "HEAD")
        except (SyncError, OSError) as error:
            logger.warning("Cannot read HEAD of %s: %s", normalized.path, error)

    return UpdatePlan(
        submodule=normalized,
        branch=branch,
        current_sha=current_sha,
        needs_init=not is_valid,
        is_repository_valid=is_valid,
    )
