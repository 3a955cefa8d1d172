"""Workflow module: stash handling, pointer commits and the run orchestrator."""

from submodule_sync.workflow.stash import StashManager, validate_stash_ref
from submodule_sync.workflow.gitlink import GitlinkCommitter, format_gitlink_message
from submodule_sync.workflow.orchestrator import Orchestrator

__all__ = [
    "StashManager",
    "validate_stash_ref",
    "GitlinkCommitter",
    "format_gitlink_message",
    "Orchestrator",
]
