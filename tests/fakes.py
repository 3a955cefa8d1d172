"""In-memory GitClient used by the unit tests."""

from __future__ import annotations

import hashlib
import os
import re
from pathlib import Path

from submodule_sync.errors import GitOperationError
from submodule_sync.git.client import GitClient
from submodule_sync.models import PULL_UP_TO_DATE, PullResult, WorkingTreeStatus


def make_sha(label: str) -> str:
    """Deterministic 40-character SHA for a readable label."""
    return hashlib.sha1(label.encode()).hexdigest()


def _key(path: Path | str) -> str:
    return os.path.normpath(str(Path(path).resolve()))


class CommitGraph:
    """Commits and their ancestors, shared by every fake repository."""

    def __init__(self) -> None:
        self.ancestors: dict[str, set[str]] = {}

    def add(self, label: str, parent: str | None = None) -> str:
        sha = make_sha(label)
        inherited = set()
        if parent is not None:
            inherited = {parent} | self.ancestors.get(parent, set())
        self.ancestors[sha] = inherited
        return sha

    def is_ancestor(self, ancestor: str, descendant: str) -> bool:
        return ancestor == descendant or ancestor in self.ancestors.get(descendant, set())


class FakeRepo:
    def __init__(self, path: Path, head: str | None = None, branch: str | None = "main") -> None:
        self.path = path
        self.head = head
        self.branch = branch
        self.refs: dict[str, str] = {}
        self.objects: set[str] = set()
        self.status = WorkingTreeStatus(clean=True)
        self.stashes: list[tuple[str, str]] = []
        self.stashable = True
        self._stash_count = 0
        self.remotes: dict[str, str] = {}
        self.tree: dict[str, str] = {}
        self.index: dict[str, str] = {}
        self.commit_messages: list[str] = []
        if head is not None:
            self.objects.add(head)
            if branch:
                self.refs[branch] = head

    def know(self, *shas: str) -> None:
        self.objects.update(shas)

    def add_stash(self, message: str) -> str:
        """Push a (sha, message) stash entry and return its SHA."""
        self._stash_count += 1
        sha = make_sha(f"stash:{self.path}:{self._stash_count}:{message}")
        self.stashes.insert(0, (sha, message))
        return sha

    @property
    def stash_messages(self) -> list[str]:
        return [message for _, message in self.stashes]


class FakeGitClient(GitClient):
    """Records calls and simulates just enough git for the workflow."""

    def __init__(self, graph: CommitGraph | None = None) -> None:
        self.graph = graph or CommitGraph()
        self.repos: dict[str, FakeRepo] = {}
        self.calls: list[tuple] = []
        self.pending_repos: dict[str, FakeRepo] = {}
        self.pull_result = PullResult(status=PULL_UP_TO_DATE)
        self._failures: dict[tuple[str, str | None], list] = {}

    # -- test setup -------------------------------------------------------

    def add_repo(self, path: Path, head: str | None = None, branch: str | None = "main") -> FakeRepo:
        path = Path(path)
        path.mkdir(parents=True, exist_ok=True)
        repo = FakeRepo(path, head=head, branch=branch)
        self.repos[_key(path)] = repo
        return repo

    def add_uninitialized(self, path: Path, head: str | None = None, branch: str | None = "main") -> FakeRepo:
        """Repository that appears once ``git submodule update`` runs."""
        repo = FakeRepo(Path(path), head=head, branch=branch)
        self.pending_repos[_key(path)] = repo
        return repo

    def fail(self, method: str, error: Exception, path: Path | None = None, times: int | None = 1) -> None:
        """Make ``method`` raise ``error``; ``times=None`` means every call."""
        key = (method, _key(path) if path is not None else None)
        self._failures.setdefault(key, []).append([error, times])

    def called(self, method: str) -> list[tuple]:
        return [call for call in self.calls if call[0] == method]

    # -- helpers ----------------------------------------------------------

    def _record(self, method: str, path: Path, *args) -> None:
        self.calls.append((method, _key(path), *args))
        for key in ((method, _key(path)), (method, None)):
            entries = self._failures.get(key)
            if not entries:
                continue
            error, times = entries[0]
            if times is not None:
                entries[0][1] -= 1
                if entries[0][1] <= 0:
                    entries.pop(0)
            raise error

    def _repo(self, path: Path) -> FakeRepo:
        repo = self.repos.get(_key(path))
        if repo is None:
            raise GitOperationError(
                f"fatal: not a git repository: {path}",
                details={"stderr": "fatal: not a git repository", "cwd": str(path)},
            )
        return repo

    # -- GitClient --------------------------------------------------------

    async def show_toplevel(self, path: Path) -> Path | None:
        self._record("show_toplevel", path)
        return Path(path) if _key(path) in self.repos else None

    async def is_repository(self, path: Path) -> bool:
        self._record("is_repository", path)
        return _key(path) in self.repos

    async def current_branch(self, path: Path) -> str | None:
        self._record("current_branch", path)
        return self._repo(path).branch

    async def rev_parse(self, path: Path, ref: str) -> str | None:
        self._record("rev_parse", path, ref)
        repo = self._repo(path)
        if ref == "HEAD":
            return repo.head
        if ref in repo.refs:
            return repo.refs[ref]
        if ref in repo.objects:
            return ref
        return None

    async def is_ancestor(self, path: Path, ancestor: str, descendant: str) -> bool:
        self._record("is_ancestor", path, ancestor, descendant)
        repo = self._repo(path)
        missing = [sha for sha in (ancestor, descendant) if sha not in repo.objects]
        if missing:
            raise GitOperationError(
                f"fatal: Not a valid commit name {missing[0]}",
                details={"returncode": 128},
            )
        return self.graph.is_ancestor(ancestor, descendant)

    async def has_commit(self, path: Path, sha: str) -> bool:
        self._record("has_commit", path, sha)
        return sha in self._repo(path).objects

    async def status(self, path: Path) -> WorkingTreeStatus:
        self._record("status", path)
        return self._repo(path).status

    async def stash_push(self, path: Path, message: str) -> None:
        self._record("stash_push", path, message)
        repo = self._repo(path)
        # Like git, save nothing when the only changes are inside submodules.
        if repo.stashable:
            repo.add_stash(message)
            repo.status = WorkingTreeStatus(clean=True)

    async def stash_pop(self, path: Path, ref: str) -> None:
        self._record("stash_pop", path, ref)
        repo = self._repo(path)
        match = re.fullmatch(r"stash@\{(\d+)\}", ref)
        if match is None or int(match.group(1)) >= len(repo.stashes):
            raise GitOperationError(
                f"error: {ref} is not a valid reference",
                details={"stderr": f"error: {ref} is not a valid reference"},
            )
        repo.stashes.pop(int(match.group(1)))

    async def stash_list(self, path: Path) -> list[str]:
        self._record("stash_list", path)
        return [sha for sha, _ in self._repo(path).stashes]

    async def pull_rebase(self, path: Path) -> PullResult:
        self._record("pull_rebase", path)
        self._repo(path)
        return self.pull_result

    async def fetch(self, path: Path, remote: str = "origin", refspec: str | None = None) -> None:
        self._record("fetch", path, remote, refspec)
        repo = self._repo(path)
        url = repo.remotes.get(remote)
        if url and url.startswith("file://"):
            source = self._repo(Path(url[len("file://"):]))
            repo.know(*source.objects)
            for name, sha in source.refs.items():
                if "/" not in name:
                    repo.refs[f"{remote}/{name}"] = sha

    async def submodule(self, root: Path, action: str, rel_path: str) -> None:
        self._record("submodule", root, action, rel_path)
        if action == "update":
            target = _key(Path(root) / rel_path)
            pending = self.pending_repos.pop(target, None)
            if pending is not None:
                pending.path.mkdir(parents=True, exist_ok=True)
                self.repos[target] = pending

    async def checkout(self, path: Path, ref: str, detach: bool = False) -> None:
        self._record("checkout", path, ref, detach)
        repo = self._repo(path)
        if detach:
            if ref not in repo.objects:
                raise GitOperationError(f"fatal: reference is not a tree: {ref}")
            repo.head, repo.branch = ref, None
            return
        sha = repo.refs.get(ref) or repo.refs.get(f"origin/{ref}")
        if sha is None:
            raise GitOperationError(f"error: pathspec '{ref}' did not match any file(s) known to git")
        repo.refs.setdefault(ref, sha)
        repo.head, repo.branch = repo.refs[ref], ref

    async def merge_ff_only(self, path: Path, sha: str) -> None:
        self._record("merge_ff_only", path, sha)
        repo = self._repo(path)
        if sha not in repo.objects:
            raise GitOperationError(f"merge: {sha} - not something we can merge")
        if self.graph.is_ancestor(sha, repo.head):
            return
        if not self.graph.is_ancestor(repo.head, sha):
            raise GitOperationError("fatal: Not possible to fast-forward, aborting.")
        repo.head = sha
        if repo.branch:
            repo.refs[repo.branch] = sha

    async def add(self, path: Path, pathspec: str) -> None:
        self._record("add", path, pathspec)
        repo = self._repo(path)
        submodule = self.repos.get(_key(Path(path) / pathspec))
        if submodule is not None and submodule.head:
            repo.index[pathspec] = submodule.head

    async def commit(self, path: Path, message: str) -> str:
        self._record("commit", path, message)
        repo = self._repo(path)
        if not repo.index:
            raise GitOperationError("nothing to commit, working tree clean")
        repo.tree.update(repo.index)
        repo.index.clear()
        repo.commit_messages.append(message)
        sha = self.graph.add(f"{path}:{len(repo.commit_messages)}:{message}", parent=repo.head)
        repo.know(sha)
        repo.head = sha
        return sha

    async def ls_tree(self, path: Path, treeish: str, pathspec: str) -> str | None:
        self._record("ls_tree", path, treeish, pathspec)
        return self._repo(path).tree.get(pathspec)

    async def add_remote(self, path: Path, name: str, url: str) -> None:
        self._record("add_remote", path, name, url)
        repo = self._repo(path)
        if name in repo.remotes:
            raise GitOperationError(f"error: remote {name} already exists.")
        repo.remotes[name] = url

    async def remove_remote(self, path: Path, name: str) -> None:
        self._record("remove_remote", path, name)
        repo = self._repo(path)
        if name not in repo.remotes:
            raise GitOperationError(f"error: No such remote: '{name}'")
        del repo.remotes[name]
