"""Shared test fixtures for submodule-sync."""

import os
import shutil
import subprocess
from pathlib import Path

import pytest

from fakes import CommitGraph, FakeGitClient


@pytest.fixture
def graph():
    return CommitGraph()


@pytest.fixture
def git(graph):
    return FakeGitClient(graph)


@pytest.fixture
def workspace(tmp_path):
    """Directory holding the superproject and any sibling checkouts."""
    ws = tmp_path / "ws"
    ws.mkdir()
    return ws


@pytest.fixture
def superproject(workspace):
    root = workspace / "app"
    root.mkdir()
    return root


@pytest.fixture
def write_gitmodules():
    """Return a function writing .gitmodules entries into a root directory."""

    def _write(root: Path, entries: list[dict]) -> None:
        lines = []
        for entry in entries:
            lines.append(f'[submodule "{entry["name"]}"]')
            for key in ("path", "url", "branch"):
                if key in entry:
                    lines.append(f"\t{key} = {entry[key]}")
        (root / ".gitmodules").write_text("\n".join(lines) + "\n")

    return _write


@pytest.fixture
def run_git(tmp_path, monkeypatch):
    """Return a function running real git with a fixed identity.

    The identity is also exported so ShellGitClient commits work.
    """
    if shutil.which("git") is None:
        pytest.skip("git is not installed")

    identity = {
        "GIT_AUTHOR_NAME": "test", "GIT_AUTHOR_EMAIL": "t@t",
        "GIT_COMMITTER_NAME": "test", "GIT_COMMITTER_EMAIL": "t@t",
        "HOME": str(tmp_path),
        "GIT_CONFIG_NOSYSTEM": "1",
    }
    for key, value in identity.items():
        monkeypatch.setenv(key, value)
    env = {**os.environ, **identity}

    def _run(args: list[str], cwd: Path) -> str:
        result = subprocess.run(
            ["git", *args], cwd=cwd, env=env, capture_output=True, text=True, check=True,
        )
        return result.stdout.strip()

    return _run
