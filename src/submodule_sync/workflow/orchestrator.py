"""Run the whole pull-with-submodules workflow.

Stages, in order: stash local changes, ``pull --rebase`` the superproject,
plan and update every declared submodule, commit moved submodule pointers,
and finally restore the stash. Stage failures are collected into
``WorkflowResult.errors``; only a failed stash restore is raised, because
the user's uncommitted work is then sitting in the stash.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from submodule_sync.asyncio_utils import retry, run_bounded, run_sequential
from submodule_sync.config import SyncConfig
from submodule_sync.context import ExecutionContext
from submodule_sync.errors import GitOperationError, NetworkError, StashRestoreError, SyncError
from submodule_sync.git.cache import RepositoryCache
from submodule_sync.git.client import GitClient
from submodule_sync.git.gitmodules import read_gitmodules
from submodule_sync.models import (
    PULL_DRY_RUN,
    PULL_UPDATED,
    STATUS_UPDATED,
    GitlinkResult,
    ProcessingSummary,
    PullResult,
    StashResult,
    Submodule,
    UpdateResult,
    WorkflowResult,
)
from submodule_sync.paths import gitmodules_path
from submodule_sync.submodules.executor import SubmoduleExecutor, is_retryable
from submodule_sync.submodules.planner import SubmodulePathResolver, prepare_update_plan
from submodule_sync.workflow.gitlink import GitlinkCommitter
from submodule_sync.workflow.stash import StashManager

logger = logging.getLogger(__name__)

PROGRESS_START = "start"
PROGRESS_FINISH = "finish"

ProgressSink = Callable[[str, Submodule, "UpdateResult | None"], None]


@dataclass
class _RunState:
    started: float
    stash: StashResult | None = None
    pull: PullResult | None = None
    summary: ProcessingSummary = field(
        default_factory=lambda: ProcessingSummary(0, 0, 0, 0, 0.0),
    )
    gitlinks: list[GitlinkResult] = field(default_factory=list)
    errors: list[Exception] = field(default_factory=list)

    def result(self, finished: float) -> WorkflowResult:
        return WorkflowResult(
            stash=self.stash,
            main_repository_updated=self.pull is not None and self.pull.status == PULL_UPDATED,
            pull=self.pull,
            submodules=self.summary,
            gitlink_commits=tuple(self.gitlinks),
            duration=finished - self.started,
            errors=tuple(self.errors),
        )


def _pull_error(error: GitOperationError) -> GitOperationError:
    if isinstance(error, NetworkError):
        return error
    stderr = str(error.details.get("stderr", "")).lower()
    if "conflict" in stderr or "could not apply" in stderr:
        return GitOperationError(
            "Rebase conflicts detected during pull",
            suggestions=[
                "Resolve the conflicts, then run 'git rebase --continue'",
                "Or run 'git rebase --abort' to return to the previous state",
            ],
            details=error.details,
        )
    return GitOperationError(
        f"Failed to pull main repository: {error.message}",
        suggestions=[
            "Check your network connection and remote access",
            "Run 'git pull --rebase' manually to see the full error",
        ],
        details=error.details,
    )


class Orchestrator:
    """Drives one run for a single superproject."""

    def __init__(
        self,
        client: GitClient,
        context: ExecutionContext,
        config: SyncConfig | None = None,
        progress: ProgressSink | None = None,
        clock=time.monotonic,
    ) -> None:
        self.client = client
        self.context = context
        self.config = config or SyncConfig()
        self.progress = progress
        self._clock = clock

    async def run(self) -> WorkflowResult:
        """Run every stage and return what happened.

        Raises:
            StashRestoreError: If the auto-stash could not be restored. The
                partial result is attached as ``workflow_result``.
        """
        state = _RunState(started=self._clock())
        stash_manager = StashManager(self.client, self.context.repository_root, self.context.dry_run)

        try:
            await self._run_stages(state, stash_manager)
        finally:
            if state.stash is not None and state.stash.created:
                await self._restore_stash(state, stash_manager)

        result = state.result(self._clock())
        logger.info(
            "Run finished: %d updated, %d skipped, %d failed, %d error(s)",
            result.submodules.updated, result.submodules.skipped,
            result.submodules.failed, len(result.errors),
            extra={"event": "workflow.finished", "success": result.success},
        )
        return result

    async def _run_stages(self, state: _RunState, stash_manager: StashManager) -> None:
        try:
            state.stash = await stash_manager.create(self.config.stash_message)
        except SyncError as error:
            logger.error("Could not stash local changes: %s", error.message)
            state.errors.append(error)

        pulled = False
        if state.errors:
            logger.warning("Skipping pull: local changes were not stashed")
        else:
            try:
                state.pull = await self._pull()
                pulled = True
            except GitOperationError as error:
                logger.error("%s", error.message)
                state.errors.append(error)

        try:
            state.summary = await self.process_submodules()
        except SyncError as error:
            logger.error("Could not process submodules: %s", error.message)
            state.errors.append(error)

        if self.context.no_commit:
            return
        if not pulled:
            logger.warning("Skipping submodule pointer commits: the superproject pull did not complete")
            return
        await self._commit_gitlinks(state)

    async def _pull(self) -> PullResult:
        root = self.context.repository_root
        if self.context.dry_run:
            logger.info("[dry-run] would run 'git pull --rebase' in %s", root)
            return PullResult(status=PULL_DRY_RUN)
        try:
            return await retry(
                lambda: self.client.pull_rebase(root),
                self.config.retry,
                should_retry=is_retryable,
                description="pull main repository",
            )
        except GitOperationError as error:
            raise _pull_error(error) from error

    async def process_submodules(self) -> ProcessingSummary:
        """Plan and execute every declared submodule.

        Raises:
            ManifestError: If .gitmodules cannot be read or parsed.
        """
        started = self._clock()
        root = self.context.repository_root
        submodules = read_gitmodules(gitmodules_path(root), skip_invalid=self.config.skip_invalid)
        if not submodules:
            logger.info("No submodules declared in %s", root)
            return ProcessingSummary.from_results([], self._clock() - started)

        paths = SubmodulePathResolver(root)
        executor = SubmoduleExecutor(
            self.client,
            self.context,
            paths=paths,
            cache=RepositoryCache(),
            retry_policy=self.config.retry,
            superproject_lock=asyncio.Lock(),
            clock=self._clock,
        )
        factories = [
            lambda submodule=submodule: self._process_one(submodule, paths, executor)
            for submodule in submodules
        ]

        def on_error(index: int, error: Exception) -> UpdateResult:
            now = self._clock()
            result = UpdateResult.failed(submodules[index], error, now, now)
            self._emit(PROGRESS_FINISH, submodules[index], result)
            return result

        if self.context.parallel:
            logger.info("Processing %d submodule(s), up to %d at a time", len(submodules), self.context.concurrency)
            results = await run_bounded(factories, self.context.concurrency, on_error)
        else:
            results = await run_sequential(factories, on_error)

        return ProcessingSummary.from_results(results, self._clock() - started)

    async def _process_one(
        self,
        submodule: Submodule,
        paths: SubmodulePathResolver,
        executor: SubmoduleExecutor,
    ) -> UpdateResult:
        self._emit(PROGRESS_START, submodule, None)
        plan = await prepare_update_plan(
            submodule,
            self.context,
            self.client,
            paths=paths,
            default_branch=self.config.default_branch,
        )
        result = await executor.execute(plan)
        self._emit(PROGRESS_FINISH, result.submodule, result)
        return result

    def _emit(self, event: str, submodule: Submodule, result: UpdateResult | None) -> None:
        if self.progress is not None:
            self.progress(event, submodule, result)

    async def _commit_gitlinks(self, state: _RunState) -> None:
        committer = GitlinkCommitter(self.client, self.context)
        for result in state.summary.results:
            if result.status != STATUS_UPDATED or result.selection is None:
                continue
            try:
                gitlink = await committer.commit(
                    submodule=result.submodule,
                    target_sha=result.selection.sha,
                    branch=result.branch or self.config.default_branch,
                )
            except SyncError as error:
                logger.error("Could not commit pointer for %s: %s", result.submodule.path, error.message)
                state.errors.append(error)
                continue
            state.gitlinks.append(gitlink)

    async def _restore_stash(self, state: _RunState, stash_manager: StashManager) -> None:
        try:
            await stash_manager.restore(state.stash.stash_ref)
        except StashRestoreError as error:
            logger.error(
                "IMPORTANT: failed to restore your stashed changes (%s). "
                "Recover them with 'git stash apply %s'.",
                error.message, state.stash.stash_ref,
                extra={"event": "stash.restore_failed", "stash_ref": state.stash.stash_ref},
            )
            error.workflow_result = state.result(self._clock())
            raise
