"""Tests for the submodule-sync CLI.

Covers:
- Parser construction, flags and defaults
- --help and --version
- Exit codes for bad repositories, bad config and interrupts
- A dry run against a real repository
"""

import argparse
import logging
from unittest.mock import patch

import pytest

from submodule_sync.cli import EXIT_INTERRUPTED, build_parser, main


@pytest.fixture(autouse=True)
def _restore_package_logger(monkeypatch):
    monkeypatch.delenv("SUBMODULE_SYNC_CONFIG", raising=False)
    monkeypatch.delenv("SUBMODULE_SYNC_REPO", raising=False)
    logger = logging.getLogger("submodule_sync")
    handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate


# ── Parser construction ──────────────────────────────────────────


class TestParserConstruction:
    def test_build_parser_returns_parser(self):
        assert isinstance(build_parser(), argparse.ArgumentParser)

    def test_defaults(self):
        args = build_parser().parse_args([])
        assert not args.dry_run
        assert not args.no_commit
        assert not args.force_remote
        assert not args.parallel
        assert not args.verbose
        assert args.concurrency is None
        assert args.config is None
        assert args.repo is None
        assert args.log_format == "text"

    def test_short_flags(self):
        args = build_parser().parse_args(["-d", "-n", "-r", "-p", "-v"])
        assert args.dry_run and args.no_commit and args.force_remote
        assert args.parallel and args.verbose

    def test_long_flags(self):
        args = build_parser().parse_args([
            "--dry-run", "--parallel", "--concurrency", "8",
            "--config", "/tmp/c.yaml", "--repo", "/tmp/r", "--log-format", "json",
        ])
        assert args.dry_run
        assert args.concurrency == 8
        assert args.config == "/tmp/c.yaml"
        assert args.repo == "/tmp/r"
        assert args.log_format == "json"


# ── Help output ──────────────────────────────────────────────────


class TestHelpOutput:
    @pytest.mark.parametrize("cmd", [["--help"], ["--version"]])
    def test_exits_zero(self, cmd, capsys):
        with pytest.raises(SystemExit) as exc_info:
            build_parser().parse_args(cmd)
        assert exc_info.value.code == 0
        assert "submodule-sync" in capsys.readouterr().out

    def test_unknown_log_format_rejected(self):
        with pytest.raises(SystemExit) as exc_info:
            build_parser().parse_args(["--log-format", "xml"])
        assert exc_info.value.code == 2


# ── Exit codes ───────────────────────────────────────────────────


class TestExitCodes:
    def test_interrupt_returns_130(self, capsys):
        with patch("submodule_sync.cli.cmd_sync", side_effect=KeyboardInterrupt):
            rc = main([])
        assert rc == EXIT_INTERRUPTED == 130
        assert "Interrupted" in capsys.readouterr().err

    def test_missing_repository(self, tmp_path, capsys):
        rc = main(["--repo", str(tmp_path / "missing")])
        assert rc == 1
        assert "not inside a git repository" in capsys.readouterr().err

    def test_directory_outside_any_repository(self, tmp_path, monkeypatch, run_git, capsys):
        plain = tmp_path / "plain"
        plain.mkdir()
        monkeypatch.setenv("GIT_CEILING_DIRECTORIES", str(tmp_path))
        rc = main(["--repo", str(plain)])
        assert rc == 1
        assert "not inside a git repository" in capsys.readouterr().err


@pytest.fixture
def real_repo(tmp_path, run_git):
    repo = tmp_path / "repo"
    repo.mkdir()
    run_git(["init", "-b", "main"], repo)
    (repo / "README.md").write_text("hello\n")
    run_git(["add", "."], repo)
    run_git(["commit", "-m", "init"], repo)
    return repo


class TestSyncCommand:
    def test_dry_run_without_submodules(self, real_repo, capsys):
        rc = main(["--repo", str(real_repo), "--dry-run"])
        out = capsys.readouterr().out
        assert rc == 0
        assert "[DRY RUN] Submodules: 0 total" in out

    def test_invalid_config_file(self, real_repo, capsys):
        (real_repo / ".submodule-sync.yaml").write_text("- not\n- a mapping\n")
        rc = main(["--repo", str(real_repo), "--dry-run"])
        assert rc == 1
        assert "invalid config" in capsys.readouterr().err

    def test_explicit_config_path(self, real_repo, tmp_path, capsys):
        config = tmp_path / "sync.yaml"
        config.write_text("concurrency: [1]\n")
        rc = main(["--repo", str(real_repo), "--config", str(config), "--dry-run"])
        assert rc == 1
        assert "invalid config" in capsys.readouterr().err

    def test_zero_concurrency_rejected(self, real_repo, capsys):
        rc = main(["--repo", str(real_repo), "--dry-run", "--concurrency", "0"])
        assert rc == 1
        assert "ERROR" in capsys.readouterr().err
