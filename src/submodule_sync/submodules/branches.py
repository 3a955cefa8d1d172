"""Decide which branch a submodule tracks."""

from __future__ import annotations

import logging
from pathlib import Path

from submodule_sync.config import DEFAULT_BRANCH
from submodule_sync.errors import SyncError
from submodule_sync.git.client import GitClient
from submodule_sync.models import (
    BRANCH_DETECTED,
    BRANCH_EXPLICIT,
    BRANCH_FALLBACK,
    BranchResolution,
    Submodule,
)

logger = logging.getLogger(__name__)


async def resolve_branch(
    submodule: Submodule,
    submodule_path: Path,
    client: GitClient,
    default_branch: str = DEFAULT_BRANCH,
) -> BranchResolution:
    """Resolve the branch for a submodule.

    Priority: the ``branch`` key in .gitmodules, then the branch checked
    out in the submodule, then ``default_branch``. Never raises; detection
    problems are logged and fall through to the default.

    Args:
        submodule: Manifest entry.
        submodule_path: Absolute path of the submodule working tree.
        client: Git client.
        default_branch: Fallback branch name.

    Returns:
        BranchResolution naming the branch and where it came from.
    """
    if submodule.branch and submodule.branch.strip():
        return BranchResolution(
            branch=submodule.branch,
            source=BRANCH_EXPLICIT,
            details="Explicit branch configured in .gitmodules",
        )

    try:
        if await client.is_repository(submodule_path):
            branch = await client.current_branch(submodule_path)
            if branch:
                return BranchResolution(
                    branch=branch,
                    source=BRANCH_DETECTED,
                    details="Detected from current submodule repository state",
                )
            logger.warning("Submodule %s has a detached HEAD; using '%s'", submodule.path, default_branch)
    except (SyncError, OSError) as error:
        logger.warning("Cannot detect branch for %s: %s", submodule.path, error)

    return BranchResolution(
        branch=default_branch,
        source=BRANCH_FALLBACK,
        details=f"No explicit branch configured, using '{default_branch}' as default",
    )
