"""Auto-stash of uncommitted changes around a pull."""

from __future__ import annotations

import logging
import re
from pathlib import Path

from submodule_sync.errors import GitOperationError, StashRestoreError, ValidationError
from submodule_sync.git.client import GitClient
from submodule_sync.models import StashResult, WorkingTreeStatus

logger = logging.getLogger(__name__)

STASH_REF_PATTERN = re.compile(r"^(stash@\{\d+\}|[a-f0-9]{7,40})$")
LATEST_STASH = "stash@{0}"


def validate_stash_ref(ref: str) -> str:
    """Return ref if it names a stash entry or commit, else raise ValidationError."""
    if not ref or not STASH_REF_PATTERN.match(ref):
        raise ValidationError(
            f"Invalid stash reference: {ref!r}",
            suggestions=[
                "Use a reference like stash@{0}",
                "Run 'git stash list' to see available stashes",
            ],
        )
    return ref


class StashManager:
    """Create and restore the auto-stash for one repository."""

    def __init__(self, client: GitClient, repository_root: Path, dry_run: bool = False) -> None:
        self.client = client
        self.repository_root = repository_root
        self.dry_run = dry_run

    async def status(self) -> WorkingTreeStatus:
        return await self.client.status(self.repository_root)

    async def create(self, message: str) -> StashResult:
        """Stash uncommitted changes if there are any.

        The entry is identified by its commit SHA, so a later restore pops
        exactly this entry even if other stashes are pushed meanwhile.

        Args:
            message: Stash description; must not be blank.

        Returns:
            StashResult with ``created=False`` when the tree is clean or git
            saved nothing (changes only inside submodules).

        Raises:
            ValidationError: If the message is blank.
            GitOperationError: If ``git stash push`` fails.
        """
        if not message or not message.strip():
            raise ValidationError(
                "Stash message cannot be empty",
                suggestions=["Set stash_message in .submodule-sync.yaml"],
            )

        status = await self.status()
        if status.clean:
            return StashResult(stash_ref="", created=False, message="No changes to stash")

        summary = f"{status.modified_count} modified, {status.untracked_count} untracked"
        if self.dry_run:
            logger.info("[dry-run] would stash %s file(s)", summary)
            return StashResult(stash_ref=LATEST_STASH, created=True, message=f"[dry-run] {message}")

        try:
            before = await self._latest_entry()
            await self.client.stash_push(self.repository_root, message)
            after = await self._latest_entry()
        except GitOperationError as error:
            raise GitOperationError(
                f"Failed to stash local changes: {error.message}",
                suggestions=[
                    "Commit or discard your changes and run again",
                    "Run 'git stash push' manually to see the full error",
                ],
                details=error.details,
            ) from error

        if after is None or after == before:
            logger.info("git saved no stash for %s; the changes are inside submodules", summary)
            return StashResult(stash_ref="", created=False, message="No local changes to save")

        logger.info("Stashed %s as %s", summary, after[:8], extra={"event": "stash.created"})
        return StashResult(stash_ref=after, created=True, message=message)

    async def restore(self, stash_ref: str) -> None:
        """Pop the given stash back onto the working tree.

        ``stash_ref`` is either ``stash@{n}`` or the commit SHA recorded by
        ``create``; a SHA is matched against the current stash list.

        Raises:
            ValidationError: If stash_ref is malformed.
            StashRestoreError: If the entry is gone or ``git stash pop``
                fails; the stash is kept.
        """
        validate_stash_ref(stash_ref)
        if self.dry_run:
            logger.info("[dry-run] would restore %s", stash_ref)
            return

        try:
            entry = await self._locate(stash_ref)
        except GitOperationError as error:
            raise _restore_error(stash_ref, error) from error
        if entry is None:
            raise _missing_stash_error(stash_ref, {})

        try:
            await self.client.stash_pop(self.repository_root, entry)
        except GitOperationError as error:
            raise _restore_error(stash_ref, error) from error

        logger.info("Restored %s", stash_ref, extra={"event": "stash.restored"})

    async def _latest_entry(self) -> str | None:
        entries = await self.client.stash_list(self.repository_root)
        return entries[0] if entries else None

    async def _locate(self, stash_ref: str) -> str | None:
        """Return the ``stash@{n}`` entry for stash_ref, or None if it is gone."""
        if stash_ref.startswith("stash@{"):
            return stash_ref
        wanted = stash_ref.lower()
        for index, sha in enumerate(await self.client.stash_list(self.repository_root)):
            if sha.lower().startswith(wanted):
                return f"stash@{{{index}}}"
        return None


def _missing_stash_error(stash_ref: str, details: dict) -> StashRestoreError:
    return StashRestoreError(
        f"Stash {stash_ref} no longer exists",
        stash_ref=stash_ref,
        suggestions=[
            "Run 'git stash list' to find your changes",
            "Check 'git fsck --unreachable | grep commit' for dropped stashes",
        ],
        details=details,
    )


def _restore_error(stash_ref: str, error: GitOperationError) -> StashRestoreError:
    text = f"{error.message} {error.details.get('stderr', '')}".lower()
    if "conflict" in text or "merge" in text:
        return StashRestoreError(
            f"Conflicts while restoring {stash_ref}; your changes are still in the stash",
            stash_ref=stash_ref,
            suggestions=[
                "Resolve conflicts manually, then run 'git stash drop' to remove the stash",
                f"Or discard the partial restore and run 'git stash apply {stash_ref}' later",
                "Commit current changes before restoring the stash",
            ],
            details=error.details,
        )
    if "not a valid reference" in text or "no stash entries" in text:
        return _missing_stash_error(stash_ref, error.details)
    return StashRestoreError(
        f"Failed to restore {stash_ref}: {error.message}",
        stash_ref=stash_ref,
        suggestions=[
            f"Run 'git stash apply {stash_ref}' to restore your changes manually",
            "Run 'git stash list' to confirm the stash is still there",
        ],
        details=error.details,
    )
