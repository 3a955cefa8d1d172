"""Record submodule pointer moves as superproject commits."""

from __future__ import annotations

import logging

from submodule_sync.context import ExecutionContext
from submodule_sync.git.client import GitClient
from submodule_sync.models import GitlinkResult, Submodule
from submodule_sync.sha import short_sha
from submodule_sync.submodules.planner import to_absolute

logger = logging.getLogger(__name__)


def format_gitlink_message(path: str, branch: str, sha: str) -> str:
    """Return e.g. ``chore(submodule): bump libs/core to main @ 01234567``."""
    return f"chore(submodule): bump {path} to {branch} @ {short_sha(sha)}"


class GitlinkCommitter:
    def __init__(self, client: GitClient, context: ExecutionContext) -> None:
        self.client = client
        self.context = context

    async def has_gitlink_changes(self, submodule: Submodule) -> bool:
        """Return True if the submodule HEAD differs from the pointer in HEAD."""
        root = self.context.repository_root
        recorded = await self.client.ls_tree(root, "HEAD", submodule.path)
        checked_out = await self.client.rev_parse(to_absolute(root, submodule.path), "HEAD")
        return recorded != checked_out

    async def commit(self, *, submodule: Submodule, target_sha: str, branch: str) -> GitlinkResult:
        """Stage and commit the pointer for one submodule.

        Dry runs and ``no_commit`` runs return ``executed=False`` with the
        message that would have been used. A pointer that did not move is
        not committed.
        """
        message = format_gitlink_message(submodule.path, branch, target_sha)
        root = self.context.repository_root

        if self.context.dry_run:
            logger.info("[dry-run] would commit: %s", message)
            return GitlinkResult(executed=False, message=message)

        if not await self.has_gitlink_changes(submodule):
            logger.info("%s: pointer unchanged, nothing to commit", submodule.path)
            return GitlinkResult(executed=False, message=message)

        await self.client.add(root, submodule.path)
        if self.context.no_commit:
            logger.info("Staged %s (commit skipped)", submodule.path)
            return GitlinkResult(executed=False, message=message)

        commit_sha = await self.client.commit(root, message)
        logger.info("Committed %s", message, extra={"event": "gitlink.committed", "sha": commit_sha})
        return GitlinkResult(executed=True, message=message, commit_sha=commit_sha)
