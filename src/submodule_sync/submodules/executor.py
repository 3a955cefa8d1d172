"""Apply an update plan to one submodule.

Each plan moves through Prepared -> CommitSelected -> Applied, Skipped or
Failed. ``execute`` never raises: anything that goes wrong for one
submodule becomes a failed result so the others still run.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import replace
from pathlib import Path

from submodule_sync.asyncio_utils import retry
from submodule_sync.config import RetryPolicy
from submodule_sync.context import ExecutionContext
from submodule_sync.errors import GitOperationError, NetworkError, SyncError
from submodule_sync.git.cache import RepositoryCache
from submodule_sync.git.client import GitClient
from submodule_sync.models import SOURCE_LOCAL, CommitSelection, UpdatePlan, UpdateResult
from submodule_sync.submodules.ancestry import AncestryChecker
from submodule_sync.submodules.local_fetch import fetch_from_local_sibling
from submodule_sync.submodules.planner import SubmodulePathResolver
from submodule_sync.submodules.siblings import find_sibling_repository
from submodule_sync.submodules.strategy import select_commit

logger = logging.getLogger(__name__)

_PATH_SYMPTOMS = ("does not exist", "no such file", "pathspec", "not a git repository")


def is_retryable(error: Exception) -> bool:
    return isinstance(error, NetworkError) and error.retryable


def _prepare_error(path: str, error: SyncError) -> SyncError:
    """Wrap a preparation failure with suggestions for its kind."""
    text = str(error).lower()
    if any(symptom in text for symptom in _PATH_SYMPTOMS):
        suggestions = [
            f"Check that '{path}' exists and matches the path in .gitmodules",
            f"Run 'git submodule update --init -- {path}'",
        ]
    else:
        suggestions = [
            f"Check the [submodule] entry for '{path}' in .gitmodules",
            f"Run 'git submodule sync -- {path}' to refresh the remote URL",
            "Verify the configured branch exists on the remote",
        ]
    return GitOperationError(
        f"Failed to prepare submodule {path}: {error.message}",
        suggestions=suggestions,
        details=error.details,
    )


class SubmoduleExecutor:
    """Runs plans against the working tree using one shared client."""

    def __init__(
        self,
        client: GitClient,
        context: ExecutionContext,
        *,
        paths: SubmodulePathResolver | None = None,
        cache: RepositoryCache | None = None,
        retry_policy: RetryPolicy | None = None,
        superproject_lock: asyncio.Lock | None = None,
        clock=time.monotonic,
    ) -> None:
        self.client = client
        self.context = context
        self.paths = paths or SubmodulePathResolver(context.repository_root)
        self.cache = cache if cache is not None else RepositoryCache()
        self.retry_policy = retry_policy or RetryPolicy()
        # "git submodule init/update/sync" all write the superproject .git/config.
        self.superproject_lock = superproject_lock or asyncio.Lock()
        self._clock = clock

    async def execute(self, plan: UpdatePlan) -> UpdateResult:
        started = self._clock()
        submodule = plan.submodule
        branch = plan.branch.branch
        path = self.paths.absolute(submodule)

        try:
            await self._prepare(plan, path)

            selection = await self._select(plan, path)
            if selection is None:
                logger.info("%s: no commit to move to", submodule.path)
                return UpdateResult.skipped(submodule, None, started, self._clock(), branch)

            if plan.current_sha == selection.sha:
                logger.info("%s: already at %s", submodule.path, selection.sha[:8])
                return UpdateResult.skipped(submodule, selection, started, self._clock(), branch)

            await self._apply(plan, path, selection)
        except Exception as error:
            logger.error(
                "%s: update failed: %s", submodule.path, error,
                exc_info=not isinstance(error, SyncError),
                extra={"event": "submodule.failed", "submodule": submodule.path},
            )
            return UpdateResult.failed(submodule, error, started, self._clock(), branch)

        logger.info(
            "%s: %s %s (%s)",
            submodule.path,
            "would update to" if self.context.dry_run else "updated to",
            selection.sha[:8],
            selection.reason,
            extra={"event": "submodule.updated", "submodule": submodule.path},
        )
        return UpdateResult.updated(submodule, selection, started, self._clock(), branch)

    async def _prepare(self, plan: UpdatePlan, path: Path) -> None:
        rel = plan.submodule.path
        root = self.context.repository_root
        if self.context.dry_run:
            if plan.needs_init:
                logger.info("[dry-run] would initialize %s", rel)
            logger.info("[dry-run] would sync and fetch %s", rel)
            return

        try:
            async with self.superproject_lock:
                if plan.needs_init:
                    logger.info("Initializing submodule %s", rel)
                    await self.client.submodule(root, "init", rel)
                    await self.client.submodule(root, "update", rel)
                await self.client.submodule(root, "sync", rel)
            if plan.needs_init:
                self.cache.invalidate(path)
            await retry(
                lambda: self.client.fetch(path),
                self.retry_policy,
                should_retry=is_retryable,
                description=f"fetch {rel}",
            )
        except NetworkError:
            raise
        except SyncError as error:
            raise _prepare_error(rel, error) from error

    async def _select(self, plan: UpdatePlan, path: Path) -> CommitSelection | None:
        submodule = plan.submodule
        branch = plan.branch.branch
        # Uninitialized submodules have no objects to inspect in a dry run.
        ready = plan.is_repository_valid or not self.context.dry_run

        remote_sha = await self.client.rev_parse(path, f"origin/{branch}") if ready else None

        sibling = None
        local_sha = None
        if not self.context.force_remote and submodule.url:
            sibling = await find_sibling_repository(
                submodule_path=path,
                remote_url=submodule.url,
                branch=branch,
                client=self.client,
                cache=self.cache,
                search_root=self.context.repository_root.parent,
            )
            if sibling is not None:
                local_sha = sibling.commit_sha

        ancestry_cwd = path
        if sibling is not None and local_sha:
            if not ready or not await self._ensure_local_commit(path, sibling.path, local_sha):
                ancestry_cwd = sibling.path

        selection = await select_commit(
            local_sha,
            remote_sha,
            force_remote=self.context.force_remote,
            ancestry_checker=AncestryChecker(self.client, ancestry_cwd),
        )
        if selection is not None and selection.source == SOURCE_LOCAL and sibling is not None:
            selection = replace(selection, local_path=sibling.path)
        return selection

    async def _ensure_local_commit(self, path: Path, sibling_path: Path, sha: str) -> bool:
        """Make sure the sibling's commit exists in the submodule."""
        if await self.client.has_commit(path, sha):
            return True
        if self.context.dry_run:
            logger.info("[dry-run] would fetch %s from %s", sha[:8], sibling_path)
            return False
        try:
            return await fetch_from_local_sibling(self.client, path, sibling_path, sha)
        except SyncError as error:
            logger.warning("Fetch from local sibling %s failed: %s", sibling_path, error)
            return False

    async def _apply(self, plan: UpdatePlan, path: Path, selection: CommitSelection) -> None:
        branch = plan.branch.branch
        if self.context.dry_run:
            logger.info("[dry-run] would check out %s at %s", branch, selection.sha[:8])
            return

        try:
            await self.client.checkout(path, branch)
            await self.client.merge_ff_only(path, selection.sha)
            head = await self.client.rev_parse(path, "HEAD")
            if head == selection.sha:
                return
            logger.info("%s: %s is not at %s after merge", plan.submodule.path, branch, selection.sha[:8])
        except SyncError as error:
            logger.info("%s: fast-forward of %s failed (%s)", plan.submodule.path, branch, error.message)

        await self.client.checkout(path, selection.sha, detach=True)
