"""Bring commits from a sibling checkout into a submodule.

A commit that exists only in the developer's adjacent clone is unknown to
the submodule until fetched. The fetch goes through a throwaway remote that
is always removed afterwards.
"""

from __future__ import annotations

import logging
from pathlib import Path

from submodule_sync.errors import SyncError
from submodule_sync.git.client import GitClient

logger = logging.getLogger(__name__)

TEMP_REMOTE_NAME = "submodule-sync-local-sibling"


async def fetch_from_local_sibling(
    client: GitClient,
    submodule_path: Path,
    sibling_path: Path,
    sha: str,
) -> bool:
    """Fetch the sibling's branches into the submodule and verify sha arrived.

    Args:
        client: Git client.
        submodule_path: Absolute path of the submodule working tree.
        sibling_path: Absolute path of the sibling checkout.
        sha: Commit that must be present afterwards.

    Returns:
        True if the commit is now available in the submodule.

    Raises:
        GitOperationError: If the remote cannot be added or fetched.
    """
    remote_url = Path(sibling_path).resolve().as_uri()
    refspec = f"+refs/heads/*:refs/remotes/{TEMP_REMOTE_NAME}/*"

    # Stale remote from an interrupted run.
    try:
        await client.remove_remote(submodule_path, TEMP_REMOTE_NAME)
    except SyncError:
        logger.debug("No stale '%s' remote in %s", TEMP_REMOTE_NAME, submodule_path)

    await client.add_remote(submodule_path, TEMP_REMOTE_NAME, remote_url)
    try:
        logger.info("Fetching %s from local sibling %s", sha[:8], sibling_path)
        await client.fetch(submodule_path, TEMP_REMOTE_NAME, refspec)
        available = await client.has_commit(submodule_path, sha)
        if not available:
            logger.warning("Commit %s still missing after fetching from %s", sha[:8], sibling_path)
        return available
    finally:
        try:
            await client.remove_remote(submodule_path, TEMP_REMOTE_NAME)
        except SyncError as error:
            logger.warning(
                "Could not remove temporary remote '%s' from %s: %s",
                TEMP_REMOTE_NAME, submodule_path, error,
            )
