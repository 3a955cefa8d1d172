"""Execution context built once per run from CLI arguments."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from submodule_sync.errors import ValidationError

DEFAULT_CONCURRENCY = 4


@dataclass(frozen=True)
class ExecutionContext:
    """Flags that govern one run.

    Passed explicitly to every stage; never stored in module state.
    """

    repository_root: Path
    dry_run: bool = False
    no_commit: bool = False
    force_remote: bool = False
    parallel: bool = False
    verbose: bool = False
    concurrency: int = DEFAULT_CONCURRENCY

    def __post_init__(self) -> None:
        if not Path(self.repository_root).is_absolute():
            raise ValidationError(
                f"Repository root must be an absolute path: {self.repository_root}",
                suggestions=["Pass an absolute path or run from inside the repository"],
            )
        if self.concurrency < 1:
            raise ValidationError(
                f"Concurrency must be at least 1, got {self.concurrency}",
                suggestions=["Use --concurrency 1 for sequential processing"],
            )


def create_context(
    repository_root: Path | str,
    *,
    dry_run: bool = False,
    no_commit: bool = False,
    force_remote: bool = False,
    parallel: bool = False,
    verbose: bool = False,
    concurrency: int = DEFAULT_CONCURRENCY,
) -> ExecutionContext:
    """Build an ExecutionContext, normalizing the root path.

    Args:
        repository_root: Absolute path to the superproject working tree.

    Returns:
        A frozen ExecutionContext.

    Raises:
        ValidationError: If the root is relative or concurrency < 1.
    """
    return ExecutionContext(
        repository_root=Path(repository_root),
        dry_run=dry_run,
        no_commit=no_commit,
        force_remote=force_remote,
        parallel=parallel,
        verbose=verbose,
        concurrency=concurrency,
    )
