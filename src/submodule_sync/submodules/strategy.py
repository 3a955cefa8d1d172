"""Choose which commit a submodule should point at.

The rules, in order:

1. ``force_remote`` wins outright: the remote SHA if there is one, else
   no update.
2. With both a local sibling SHA and a remote SHA, ancestry decides:

   - remote is an ancestor of local: take local (it has everything remote has)
   - local is an ancestor of remote: take remote (local is just behind)
   - neither: take local (it has unpushed work)
   - ancestry cannot be determined: take remote

3. With one source, take it.
4. With none, no update.
"""

from __future__ import annotations

import logging

from submodule_sync.models import SOURCE_LOCAL, SOURCE_REMOTE, CommitSelection
from submodule_sync.submodules.ancestry import AncestryChecker

logger = logging.getLogger(__name__)

REASON_FORCED = "forced by --force-remote flag"
REASON_LOCAL_CONTAINS_REMOTE = "local contains all remote changes"
REASON_LOCAL_BEHIND = "local is behind remote"
REASON_DIVERGED = "local has unpushed changes"
REASON_ONLY_LOCAL = "only local source available"
REASON_ONLY_REMOTE = "only remote source available"


def _present(sha: str | None) -> bool:
    return bool(sha)


async def select_commit(
    local_sha: str | None,
    remote_sha: str | None,
    *,
    force_remote: bool,
    ancestry_checker: AncestryChecker,
) -> CommitSelection | None:
    """Pick the target commit from a local sibling SHA and a remote SHA.

    Args:
        local_sha: Branch tip in the adjacent local checkout, if any.
        remote_sha: ``origin/<branch>`` tip, if any.
        force_remote: Ignore the local source entirely.
        ancestry_checker: Bound to a repository holding both commits.

    Returns:
        The selection, or None when there is nothing to move to.
    """
    if force_remote:
        if _present(remote_sha):
            return CommitSelection(sha=remote_sha, source=SOURCE_REMOTE, reason=REASON_FORCED)
        return None

    if _present(local_sha) and _present(remote_sha):
        if local_sha == remote_sha:
            return CommitSelection(sha=local_sha, source=SOURCE_LOCAL, reason=REASON_LOCAL_CONTAINS_REMOTE)

        remote_in_local = await ancestry_checker.is_ancestor(remote_sha, local_sha)
        if remote_in_local.inconclusive:
            return CommitSelection(
                sha=remote_sha,
                source=SOURCE_REMOTE,
                reason=f"ancestry check failed: {remote_in_local.error}",
            )
        if remote_in_local.is_ancestor:
            return CommitSelection(sha=local_sha, source=SOURCE_LOCAL, reason=REASON_LOCAL_CONTAINS_REMOTE)

        local_in_remote = await ancestry_checker.is_ancestor(local_sha, remote_sha)
        if local_in_remote.inconclusive:
            return CommitSelection(
                sha=remote_sha,
                source=SOURCE_REMOTE,
                reason=f"ancestry check failed: {local_in_remote.error}",
            )
        if local_in_remote.is_ancestor:
            return CommitSelection(sha=remote_sha, source=SOURCE_REMOTE, reason=REASON_LOCAL_BEHIND)

        logger.info("Local %s and remote %s have diverged; keeping local", local_sha[:8], remote_sha[:8])
        return CommitSelection(sha=local_sha, source=SOURCE_LOCAL, reason=REASON_DIVERGED)

    if _present(local_sha):
        return CommitSelection(sha=local_sha, source=SOURCE_LOCAL, reason=REASON_ONLY_LOCAL)
    if _present(remote_sha):
        return CommitSelection(sha=remote_sha, source=SOURCE_REMOTE, reason=REASON_ONLY_REMOTE)
    return None
