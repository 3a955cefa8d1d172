"""Git command port and the subprocess-backed adapter.

Every stage talks to git through ``GitClient`` so that tests can swap in an
in-memory implementation. ``ShellGitClient`` runs the real ``git`` binary
with ``asyncio.create_subprocess_exec`` and turns failures into classified
``GitOperationError`` / ``NetworkError`` instances.
"""

from __future__ import annotations

import asyncio
import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from submodule_sync.errors import (
    NETWORK_AUTH,
    NETWORK_CONNECTION,
    NETWORK_DNS,
    NETWORK_TIMEOUT,
    GitOperationError,
    NetworkError,
    network_suggestions,
)
from submodule_sync.models import (
    PULL_UP_TO_DATE,
    PULL_UPDATED,
    PullResult,
    WorkingTreeStatus,
)
from submodule_sync.sha import as_git_sha

logger = logging.getLogger(__name__)

# Subcommands that talk to a remote; their failures may be network failures.
_NETWORK_SUBCOMMANDS = {"fetch", "pull", "clone", "ls-remote", "push", "submodule"}

# Checked in order: auth first, since ssh auth failures also print
# "Could not read from remote repository".
_NETWORK_PATTERNS = [
    ("authentication failed", NETWORK_AUTH),
    ("permission denied (publickey", NETWORK_AUTH),
    ("could not read username", NETWORK_AUTH),
    ("could not resolve host", NETWORK_DNS),
    ("name or service not known", NETWORK_DNS),
    ("temporary failure in name resolution", NETWORK_DNS),
    ("timed out", NETWORK_TIMEOUT),
    ("connection refused", NETWORK_CONNECTION),
    ("connection reset", NETWORK_CONNECTION),
    ("network is unreachable", NETWORK_CONNECTION),
    ("early eof", NETWORK_CONNECTION),
    ("unable to access", NETWORK_CONNECTION),
    ("could not read from remote repository", NETWORK_CONNECTION),
]


@dataclass(frozen=True)
class GitCommandResult:
    args: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def classify_git_failure(
    args: Sequence[str],
    cwd: Path,
    returncode: int,
    stderr: str,
) -> GitOperationError:
    """Build the error for a failed git command.

    Failures of remote-facing subcommands whose stderr matches a known
    network symptom become ``NetworkError`` with a kind; everything else is
    a plain ``GitOperationError``.
    """
    command = "git " + " ".join(args)
    details = {
        "command": command,
        "cwd": str(cwd),
        "returncode": returncode,
        "stderr": stderr.strip(),
    }
    lowered = stderr.lower()
    if args and args[0] in _NETWORK_SUBCOMMANDS:
        for pattern, kind in _NETWORK_PATTERNS:
            if pattern in lowered:
                return NetworkError(
                    f"Network failure during '{command}': {stderr.strip() or 'no output'}",
                    kind=kind,
                    suggestions=network_suggestions(kind),
                    details=details,
                )
    return GitOperationError(
        f"Git command failed ({returncode}): {command}\n{stderr.strip() or 'No command output'}",
        suggestions=[
            f"Run '{command}' in {cwd} to see the full error",
            "Check 'git status' for an in-progress operation",
        ],
        details=details,
    )


def parse_porcelain_status(output: str) -> WorkingTreeStatus:
    """Count modified and untracked entries in ``git status --porcelain``."""
    modified: list[str] = []
    untracked = 0
    for line in output.splitlines():
        if not line.strip():
            continue
        if line.startswith("??"):
            untracked += 1
            continue
        modified.append(line[3:].strip())
    return WorkingTreeStatus(
        clean=not modified and untracked == 0,
        modified_count=len(modified),
        untracked_count=untracked,
        modified_paths=tuple(modified),
    )


class GitClient(ABC):
    """Git operations used by the synchronization stages."""

    @abstractmethod
    async def show_toplevel(self, path: Path) -> Path | None:
        """Return the working-tree root containing path, or None."""
        raise NotImplementedError

    @abstractmethod
    async def is_repository(self, path: Path) -> bool:
        """Return True if path is itself the root of a git working tree."""
        raise NotImplementedError

    @abstractmethod
    async def current_branch(self, path: Path) -> str | None:
        """Return the checked-out branch name, or None when HEAD is detached."""
        raise NotImplementedError

    @abstractmethod
    async def rev_parse(self, path: Path, ref: str) -> str | None:
        """Resolve ref to a commit SHA, or None if it does not exist."""
        raise NotImplementedError

    @abstractmethod
    async def is_ancestor(self, path: Path, ancestor: str, descendant: str) -> bool:
        """Return whether ancestor is reachable from descendant.

        Raises GitOperationError when git cannot decide (unknown objects).
        """
        raise NotImplementedError

    @abstractmethod
    async def has_commit(self, path: Path, sha: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    async def status(self, path: Path) -> WorkingTreeStatus:
        raise NotImplementedError

    @abstractmethod
    async def stash_push(self, path: Path, message: str) -> None:
        """Stash tracked and untracked changes.

        Git exits 0 without saving an entry when the only differences are
        inside submodules.
        """
        raise NotImplementedError

    @abstractmethod
    async def stash_pop(self, path: Path, ref: str) -> None:
        raise NotImplementedError

    @abstractmethod
    async def stash_list(self, path: Path) -> list[str]:
        """Return the commit SHA of every stash entry, newest first."""
        raise NotImplementedError

    @abstractmethod
    async def pull_rebase(self, path: Path) -> PullResult:
        raise NotImplementedError

    @abstractmethod
    async def fetch(self, path: Path, remote: str = "origin", refspec: str | None = None) -> None:
        raise NotImplementedError

    @abstractmethod
    async def submodule(self, root: Path, action: str, rel_path: str) -> None:
        """Run ``git submodule <action>`` (init, update or sync) for one path."""
        raise NotImplementedError

    @abstractmethod
    async def checkout(self, path: Path, ref: str, detach: bool = False) -> None:
        raise NotImplementedError

    @abstractmethod
    async def merge_ff_only(self, path: Path, sha: str) -> None:
        raise NotImplementedError

    @abstractmethod
    async def add(self, path: Path, pathspec: str) -> None:
        raise NotImplementedError

    @abstractmethod
    async def commit(self, path: Path, message: str) -> str:
        """Commit the index and return the new commit SHA."""
        raise NotImplementedError

    @abstractmethod
    async def ls_tree(self, path: Path, treeish: str, pathspec: str) -> str | None:
        """Return the object SHA recorded for pathspec in treeish, or None."""
        raise NotImplementedError

    @abstractmethod
    async def add_remote(self, path: Path, name: str, url: str) -> None:
        raise NotImplementedError

    @abstractmethod
    async def remove_remote(self, path: Path, name: str) -> None:
        raise NotImplementedError


class ShellGitClient(GitClient):
    """GitClient backed by the ``git`` executable."""

    def __init__(self, *, git_executable: str = "git", timeout_seconds: float = 30.0) -> None:
        self._git_executable = git_executable
        self._timeout_seconds = timeout_seconds
        self._env = {**os.environ, "GIT_TERMINAL_PROMPT": "0"}

    async def _run_git_allow_fail(self, args: Sequence[str], cwd: Path) -> GitCommandResult:
        """Run git and return the result whatever the exit code."""
        if not Path(cwd).is_dir():
            raise GitOperationError(
                f"Directory does not exist: {cwd}",
                suggestions=[
                    "Check the submodule path in .gitmodules",
                    "Run 'git submodule update --init' to create it",
                ],
                details={"cwd": str(cwd)},
            )

        command = [self._git_executable, *args]
        logger.debug("git %s (in %s)", " ".join(args), cwd)
        try:
            proc = await asyncio.create_subprocess_exec(
                *command,
                cwd=str(cwd),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=self._env,
            )
        except FileNotFoundError as error:
            raise GitOperationError(
                f"Git executable '{self._git_executable}' was not found in PATH",
                suggestions=["Install git", "Add git to your PATH"],
            ) from error

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), self._timeout_seconds)
        except asyncio.TimeoutError as error:
            proc.kill()
            await proc.wait()
            message = f"Git command timed out after {self._timeout_seconds}s: {' '.join(command)}"
            details = {"command": " ".join(command), "cwd": str(cwd)}
            if args and args[0] in _NETWORK_SUBCOMMANDS:
                raise NetworkError(
                    message,
                    kind=NETWORK_TIMEOUT,
                    suggestions=network_suggestions(NETWORK_TIMEOUT),
                    details=details,
                ) from error
            raise GitOperationError(
                message,
                suggestions=["Increase git_timeout in .submodule-sync.yaml"],
                details=details,
            ) from error

        return GitCommandResult(
            args=tuple(args),
            returncode=proc.returncode,
            stdout=stdout.decode(errors="replace"),
            stderr=stderr.decode(errors="replace"),
        )

    async def _run_git(self, args: Sequence[str], cwd: Path) -> GitCommandResult:
        """Run git, raising a classified error on non-zero exit."""
        result = await self._run_git_allow_fail(args, cwd)
        if not result.ok:
            error = classify_git_failure(args, cwd, result.returncode, result.stderr)
            logger.debug(
                "git command failed",
                extra={
                    "event": "git.command.error",
                    "command": error.details.get("command"),
                    "cwd": str(cwd),
                    "return_code": result.returncode,
                },
            )
            raise error
        return result

    async def show_toplevel(self, path: Path) -> Path | None:
        if not path.is_dir():
            return None
        result = await self._run_git_allow_fail(["rev-parse", "--show-toplevel"], path)
        if not result.ok:
            return None
        return Path(result.stdout.strip())

    async def is_repository(self, path: Path) -> bool:
        # Must be the top level: an uninitialized submodule directory
        # resolves to the superproject work tree.
        toplevel = await self.show_toplevel(path)
        if toplevel is None:
            return False
        return toplevel.resolve() == path.resolve()

    async def current_branch(self, path: Path) -> str | None:
        result = await self._run_git(["rev-parse", "--abbrev-ref", "HEAD"], path)
        branch = result.stdout.strip()
        if not branch or branch == "HEAD":
            return None
        return branch

    async def rev_parse(self, path: Path, ref: str) -> str | None:
        result = await self._run_git_allow_fail(
            ["rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}"], path,
        )
        if not result.ok:
            return None
        return as_git_sha(result.stdout, context=ref)

    async def is_ancestor(self, path: Path, ancestor: str, descendant: str) -> bool:
        args = ["merge-base", "--is-ancestor", ancestor, descendant]
        result = await self._run_git_allow_fail(args, path)
        if result.returncode == 0:
            return True
        if result.returncode == 1:
            return False
        raise classify_git_failure(args, path, result.returncode, result.stderr)

    async def has_commit(self, path: Path, sha: str) -> bool:
        result = await self._run_git_allow_fail(["cat-file", "-t", sha], path)
        return result.ok and result.stdout.strip() == "commit"

    async def status(self, path: Path) -> WorkingTreeStatus:
        result = await self._run_git(["status", "--porcelain"], path)
        return parse_porcelain_status(result.stdout)

    async def stash_push(self, path: Path, message: str) -> None:
        await self._run_git(["stash", "push", "--include-untracked", "-m", message], path)

    async def stash_pop(self, path: Path, ref: str) -> None:
        await self._run_git(["stash", "pop", ref], path)

    async def stash_list(self, path: Path) -> list[str]:
        result = await self._run_git(["stash", "list", "--format=%H"], path)
        return [line.strip() for line in result.stdout.splitlines() if line.strip()]

    async def pull_rebase(self, path: Path) -> PullResult:
        before = await self.rev_parse(path, "HEAD")
        result = await self._run_git(["pull", "--rebase"], path)
        after = await self.rev_parse(path, "HEAD")
        status = PULL_UP_TO_DATE if before == after else PULL_UPDATED
        return PullResult(status=status, summary=result.stdout.strip())

    async def fetch(self, path: Path, remote: str = "origin", refspec: str | None = None) -> None:
        args = ["fetch", remote]
        if refspec:
            args.append(refspec)
        await self._run_git(args, path)

    async def submodule(self, root: Path, action: str, rel_path: str) -> None:
        args = ["submodule", action]
        if action == "update":
            args.append("--init")
        await self._run_git([*args, "--", rel_path], root)

    async def checkout(self, path: Path, ref: str, detach: bool = False) -> None:
        args = ["checkout", "--detach", ref] if detach else ["checkout", ref]
        await self._run_git(args, path)

    async def merge_ff_only(self, path: Path, sha: str) -> None:
        await self._run_git(["merge", "--ff-only", sha], path)

    async def add(self, path: Path, pathspec: str) -> None:
        await self._run_git(["add", "--", pathspec], path)

    async def commit(self, path: Path, message: str) -> str:
        await self._run_git(["commit", "-m", message], path)
        sha = await self.rev_parse(path, "HEAD")
        if sha is None:
            raise GitOperationError(
                "Commit succeeded but HEAD cannot be resolved",
                suggestions=["Run 'git log -1' to inspect the repository"],
            )
        return sha

    async def ls_tree(self, path: Path, treeish: str, pathspec: str) -> str | None:
        result = await self._run_git_allow_fail(["ls-tree", treeish, "--", pathspec], path)
        if not result.ok or not result.stdout.strip():
            return None
        # "<mode> <type> <sha>\t<path>"
        meta = result.stdout.splitlines()[0].split("\t", 1)[0].split()
        return meta[2] if len(meta) == 3 else None

    async def add_remote(self, path: Path, name: str, url: str) -> None:
        await self._run_git(["remote", "add", name, url], path)

    async def remove_remote(self, path: Path, name: str) -> None:
        await self._run_git(["remote", "remove", name], path)
