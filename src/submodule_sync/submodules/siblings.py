"""Find a developer's local checkout of a submodule's repository.

Developers usually keep working clones next to the superproject::

    ~/src/app/            <- superproject
    ~/src/app/libs/core   <- submodule
    ~/src/core/           <- sibling checkout, possibly with unpushed commits

A sibling is looked up by the repository name from the submodule URL and,
failing that, by the submodule directory name.
"""

from __future__ import annotations

import logging
from pathlib import Path

from submodule_sync.errors import SyncError, ValidationError
from submodule_sync.git.cache import RepositoryCache
from submodule_sync.git.client import GitClient
from submodule_sync.git.urls import extract_repo_name
from submodule_sync.models import SiblingRepository

logger = logging.getLogger(__name__)


def candidate_names(submodule_path: Path, remote_url: str | None) -> list[str]:
    """Return sibling directory names to check, most specific first."""
    names: list[str] = []
    if remote_url:
        try:
            names.append(extract_repo_name(remote_url))
        except ValidationError as error:
            logger.debug("Ignoring URL for sibling lookup: %s", error)
    basename = Path(submodule_path).name
    if basename and basename not in names:
        names.append(basename)
    return names


async def _is_valid_repository(path: Path, client: GitClient, cache: RepositoryCache | None) -> bool:
    if cache is not None and cache.has(path):
        return bool(cache.get(path))
    try:
        valid = await client.is_repository(path)
    except (SyncError, OSError) as error:
        logger.debug("Cannot inspect %s: %s", path, error)
        valid = False
    if cache is not None:
        cache.set(path, valid)
    return valid


async def find_sibling_repository(
    *,
    submodule_path: Path,
    remote_url: str | None,
    branch: str,
    client: GitClient,
    cache: RepositoryCache | None = None,
    search_root: Path | None = None,
) -> SiblingRepository | None:
    """Locate a valid sibling checkout and the SHA of its branch.

    Args:
        submodule_path: Absolute path of the submodule.
        remote_url: URL from .gitmodules, used for the repository name.
        branch: Branch whose tip to read in the sibling.
        client: Git client.
        cache: Validity cache shared across one run.
        search_root: Directory holding sibling checkouts. Defaults to the
            parent of the submodule's parent directory.

    Returns:
        The first valid candidate (``commit_sha`` None when the branch is
        missing there), or None when no candidate is a repository.
    """
    submodule_path = Path(submodule_path)
    root = Path(search_root) if search_root else submodule_path.parent.parent

    for name in candidate_names(submodule_path, remote_url):
        candidate = root / name
        if candidate.resolve() == submodule_path.resolve():
            continue
        if not await _is_valid_repository(candidate, client, cache):
            continue

        try:
            sha = await client.rev_parse(candidate, branch)
        except (SyncError, OSError) as error:
            logger.warning("Cannot resolve %s in sibling %s: %s", branch, candidate, error)
            sha = None

        logger.debug(
            "Found sibling repository %s (%s @ %s)", candidate, branch, sha or "missing",
            extra={"event": "sibling.found", "path": str(candidate)},
        )
        return SiblingRepository(path=candidate, name=name, is_valid=True, commit_sha=sha)

    return None
