"""Git module: command port, shell adapter and .gitmodules parsing."""

from submodule_sync.git.urls import extract_repo_name
from submodule_sync.git.cache import RepositoryCache
from submodule_sync.git.gitmodules import parse_gitmodules, read_gitmodules
from submodule_sync.git.client import GitClient, ShellGitClient

__all__ = [
    "extract_repo_name",
    "RepositoryCache",
    "parse_gitmodules",
    "read_gitmodules",
    "GitClient",
    "ShellGitClient",
]
