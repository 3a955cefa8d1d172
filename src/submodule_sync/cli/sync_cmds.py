"""CLI handler for the sync workflow."""

from __future__ import annotations

import argparse
import asyncio
import sys

import yaml

from submodule_sync.config import load_config, with_overrides
from submodule_sync.context import create_context
from submodule_sync.errors import StashRestoreError, SyncError
from submodule_sync.git.client import ShellGitClient
from submodule_sync.logging_utils import configure_logging
from submodule_sync.models import STATUS_FAILED, Submodule, UpdateResult, WorkflowResult
from submodule_sync.paths import config_path, repository_hint
from submodule_sync.workflow.orchestrator import PROGRESS_FINISH, Orchestrator


def print_progress(event: str, submodule: Submodule, result: UpdateResult | None) -> None:
    if event != PROGRESS_FINISH or result is None:
        return
    if result.status == STATUS_FAILED:
        print(f"  [failed]  {submodule.path}: {result.error}")
    elif result.selection is not None:
        print(
            f"  [{result.status}] {submodule.path} -> {result.selection.sha[:8]} "
            f"({result.selection.source}: {result.selection.reason})"
        )
    else:
        print(f"  [{result.status}] {submodule.path}")


def print_error(error: SyncError) -> None:
    print(f"  ERROR: {error.message}", file=sys.stderr)
    for suggestion in error.suggestions:
        print(f"    - {suggestion}", file=sys.stderr)


def print_summary(result: WorkflowResult, dry_run: bool) -> None:
    prefix = "[DRY RUN] " if dry_run else ""
    summary = result.submodules
    if result.stash is not None and result.stash.created:
        print(f"  {prefix}Stashed local changes ({result.stash.stash_ref})")
    if result.pull is not None:
        print(f"  {prefix}Main repository: {result.pull.status}")
    print(
        f"\n  {prefix}Submodules: {summary.total} total, {summary.updated} updated, "
        f"{summary.skipped} skipped, {summary.failed} failed ({summary.duration:.1f}s)"
    )
    for gitlink in result.gitlink_commits:
        marker = gitlink.commit_sha[:8] if gitlink.commit_sha else "not committed"
        print(f"    {gitlink.message} [{marker}]")
    for error in result.errors:
        if isinstance(error, SyncError):
            print_error(error)
        else:
            print(f"  ERROR: {error}", file=sys.stderr)


async def _sync(args: argparse.Namespace) -> int:
    locator = ShellGitClient()
    root = await locator.show_toplevel(repository_hint(args.repo))
    if root is None:
        print("  ERROR: not inside a git repository (use --repo)", file=sys.stderr)
        return 1

    try:
        config = load_config(config_path(root, args.config))
    except (ValueError, yaml.YAMLError) as error:
        print(f"  ERROR: invalid config: {error}", file=sys.stderr)
        return 1
    config = with_overrides(config, concurrency=args.concurrency)

    try:
        context = create_context(
            root,
            dry_run=args.dry_run,
            no_commit=args.no_commit,
            force_remote=args.force_remote,
            parallel=args.parallel,
            verbose=args.verbose,
            concurrency=config.concurrency,
        )
    except SyncError as error:
        print_error(error)
        return 1

    client = ShellGitClient(timeout_seconds=config.git_timeout)
    orchestrator = Orchestrator(client, context, config, progress=print_progress)
    try:
        result = await orchestrator.run()
    except StashRestoreError as error:
        if error.workflow_result is not None:
            print_summary(error.workflow_result, args.dry_run)
        print_error(error)
        return 1

    print_summary(result, args.dry_run)
    return 0 if result.success else 1


def cmd_sync(args: argparse.Namespace) -> int:
    configure_logging(
        "DEBUG" if args.verbose else "WARNING",
        json_output=args.log_format == "json",
    )
    return asyncio.run(_sync(args))
