"""Submodules module: branch resolution, commit selection, planning, execution."""

from submodule_sync.submodules.ancestry import AncestryChecker, AncestryCheckResult
from submodule_sync.submodules.branches import resolve_branch
from submodule_sync.submodules.strategy import select_commit
from submodule_sync.submodules.siblings import find_sibling_repository
from submodule_sync.submodules.planner import SubmodulePathResolver, prepare_update_plan
from submodule_sync.submodules.executor import SubmoduleExecutor

__all__ = [
    "AncestryChecker",
    "AncestryCheckResult",
    "resolve_branch",
    "select_commit",
    "find_sibling_repository",
    "SubmodulePathResolver",
    "prepare_update_plan",
    "SubmoduleExecutor",
]
