"""Immutable records passed between the synchronization stages."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from submodule_sync.errors import ValidationError
from submodule_sync.sha import is_valid_sha

BRANCH_EXPLICIT = "explicit"
BRANCH_DETECTED = "detected"
BRANCH_FALLBACK = "fallback"

SOURCE_LOCAL = "local"
SOURCE_REMOTE = "remote"

STATUS_UPDATED = "updated"
STATUS_UP_TO_DATE = "up-to-date"
STATUS_SKIPPED = "skipped"
STATUS_FAILED = "failed"

PULL_UPDATED = "updated"
PULL_UP_TO_DATE = "up-to-date"
PULL_DRY_RUN = "dry-run"


@dataclass(frozen=True)
class Submodule:
    """A submodule entry declared in .gitmodules."""

    name: str
    path: str
    url: str | None = None
    branch: str | None = None


@dataclass(frozen=True)
class BranchResolution:
    branch: str
    source: str
    details: str


@dataclass(frozen=True)
class CommitSelection:
    """The commit a submodule should point at, and why."""

    sha: str
    source: str
    reason: str
    local_path: Path | None = None

    def __post_init__(self) -> None:
        if not is_valid_sha(self.sha):
            raise ValidationError(
                f"CommitSelection requires a 7-40 character hex SHA, got {self.sha!r}",
                suggestions=["Resolve the ref with 'git rev-parse' before selecting it"],
            )
        if self.source not in (SOURCE_LOCAL, SOURCE_REMOTE):
            raise ValidationError(f"Unknown commit source: {self.source!r}")


@dataclass(frozen=True)
class UpdatePlan:
    submodule: Submodule
    branch: BranchResolution
    current_sha: str | None
    needs_init: bool
    is_repository_valid: bool

    def __post_init__(self) -> None:
        if self.current_sha is not None and not self.is_repository_valid:
            raise ValidationError(
                f"Plan for {self.submodule.path} has a current SHA but no valid repository",
            )


@dataclass(frozen=True)
class UpdateResult:
    """Outcome of processing one submodule."""

    submodule: Submodule
    selection: CommitSelection | None
    status: str
    duration: float
    error: Exception | None = None
    branch: str | None = None

    def __post_init__(self) -> None:
        if self.status == STATUS_FAILED and (self.error is None or self.selection is not None):
            raise ValidationError(
                f"Failed result for {self.submodule.path} must carry an error and no selection",
            )

    @classmethod
    def updated(
        cls,
        submodule: Submodule,
        selection: CommitSelection,
        started: float,
        finished: float,
        branch: str | None = None,
    ) -> UpdateResult:
        return cls(submodule, selection, STATUS_UPDATED, finished - started, branch=branch)

    @classmethod
    def skipped(
        cls,
        submodule: Submodule,
        selection: CommitSelection | None,
        started: float,
        finished: float,
        branch: str | None = None,
    ) -> UpdateResult:
        return cls(submodule, selection, STATUS_SKIPPED, finished - started, branch=branch)

    @classmethod
    def failed(
        cls,
        submodule: Submodule,
        error: Exception,
        started: float,
        finished: float,
        branch: str | None = None,
    ) -> UpdateResult:
        return cls(submodule, None, STATUS_FAILED, finished - started, error=error, branch=branch)


@dataclass(frozen=True)
class SiblingRepository:
    path: Path
    name: str
    is_valid: bool
    commit_sha: str | None = None


@dataclass(frozen=True)
class WorkingTreeStatus:
    clean: bool
    modified_count: int = 0
    untracked_count: int = 0
    modified_paths: tuple[str, ...] = ()


@dataclass(frozen=True)
class StashResult:
    """Result of an auto-stash attempt. created=False means nothing to stash."""

    stash_ref: str
    created: bool
    message: str


@dataclass(frozen=True)
class GitlinkResult:
    executed: bool
    message: str
    commit_sha: str | None = None


@dataclass(frozen=True)
class PullResult:
    status: str
    summary: str = ""


@dataclass(frozen=True)
class ProcessingSummary:
    total: int
    updated: int
    skipped: int
    failed: int
    duration: float
    results: tuple[UpdateResult, ...] = ()

    @classmethod
    def from_results(cls, results: list[UpdateResult], duration: float) -> ProcessingSummary:
        """Aggregate results; up-to-date results count as skipped."""
        updated = sum(1 for r in results if r.status == STATUS_UPDATED)
        failed = sum(1 for r in results if r.status == STATUS_FAILED)
        return cls(
            total=len(results),
            updated=updated,
            skipped=len(results) - updated - failed,
            failed=failed,
            duration=duration,
            results=tuple(results),
        )


@dataclass(frozen=True)
class WorkflowResult:
    """Everything that happened during one run."""

    stash: StashResult | None
    main_repository_updated: bool
    pull: PullResult | None
    submodules: ProcessingSummary
    gitlink_commits: tuple[GitlinkResult, ...] = ()
    duration: float = 0.0
    errors: tuple[Exception, ...] = field(default_factory=tuple)

    @property
    def success(self) -> bool:
        return not self.errors and self.submodules.failed == 0
