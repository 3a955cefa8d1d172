"""Commit ancestry checks via ``git merge-base --is-ancestor``."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from submodule_sync.errors import SyncError
from submodule_sync.git.client import GitClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AncestryCheckResult:
    """Outcome of one ancestry query.

    ``error`` is set when git could not decide; ``is_ancestor`` is then
    False but must not be read as a definite negative.
    """

    is_ancestor: bool
    details: str
    error: str | None = None

    @property
    def inconclusive(self) -> bool:
        return self.error is not None


class AncestryChecker:
    """Answers ancestry questions within one repository."""

    def __init__(self, client: GitClient, cwd: Path) -> None:
        self.client = client
        self.cwd = cwd

    async def is_ancestor(self, ancestor: str, descendant: str) -> AncestryCheckResult:
        try:
            result = await self.client.is_ancestor(self.cwd, ancestor, descendant)
        except (SyncError, OSError) as error:
            logger.debug("Ancestry check %s..%s failed in %s: %s", ancestor, descendant, self.cwd, error)
            return AncestryCheckResult(
                is_ancestor=False,
                details=f"Ancestry check failed: {error}",
                error=str(error),
            )
        if result:
            return AncestryCheckResult(True, f"{ancestor} is an ancestor of {descendant}")
        return AncestryCheckResult(False, f"{ancestor} is not an ancestor of {descendant}")
