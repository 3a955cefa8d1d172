"""Tests for SHA validation, URL name extraction and .gitmodules parsing."""

import pytest

from submodule_sync.errors import ManifestError, ValidationError


# ── SHA helpers ──────────────────────────────────────────────────


class TestSha:
    @pytest.mark.parametrize("value", ["abc1234", "ABCDEF0", "a" * 40, "0123456789abcdef"])
    def test_valid_shas(self, value):
        from submodule_sync.sha import is_valid_sha

        assert is_valid_sha(value)

    @pytest.mark.parametrize("value", [None, "", "abc123", "g" * 10, "a" * 41, "main"])
    def test_invalid_shas(self, value):
        from submodule_sync.sha import is_valid_sha

        assert not is_valid_sha(value)

    def test_as_git_sha_strips_whitespace(self):
        from submodule_sync.sha import as_git_sha

        assert as_git_sha("  abcdef1\n") == "abcdef1"

    def test_as_git_sha_rejects_garbage_with_suggestions(self):
        from submodule_sync.sha import as_git_sha

        with pytest.raises(ValidationError) as exc_info:
            as_git_sha("not-a-sha", context="origin/main")
        assert "origin/main" in exc_info.value.message
        assert exc_info.value.suggestions

    def test_short_sha(self):
        from submodule_sync.sha import short_sha

        assert short_sha("0123456789abcdef") == "01234567"


# ── Repository names from URLs ───────────────────────────────────


class TestExtractRepoName:
    @pytest.mark.parametrize("url, expected", [
        ("https://github.com/org/core.git", "core"),
        ("https://github.com/org/core", "core"),
        ("https://github.com/org/core/", "core"),
        ("git@github.com:org/core.git", "core"),
        ("git@host:core.git", "core"),
        ("../core", "core"),
        ("/srv/git/core.git", "core"),
        ("  https://example.com/a/b/widgets.git  ", "widgets"),
    ])
    def test_url_forms(self, url, expected):
        from submodule_sync.git.urls import extract_repo_name

        assert extract_repo_name(url) == expected

    @pytest.mark.parametrize("url", ["", "   "])
    def test_empty_url_raises(self, url):
        from submodule_sync.git.urls import extract_repo_name

        with pytest.raises(ValidationError, match="cannot be empty"):
            extract_repo_name(url)

    def test_git_suffix_only_raises(self):
        from submodule_sync.git.urls import extract_repo_name

        with pytest.raises(ValidationError, match="Cannot extract repository name"):
            extract_repo_name("https://example.com/.git")


# ── .gitmodules ──────────────────────────────────────────────────


GITMODULES = """\
# shared libraries
[submodule "core"]
\tpath = libs/core
\turl = git@github.com:org/core.git
\tbranch = develop

; second entry
[submodule "ui"]
    path=libs/ui
    url = https://github.com/org/ui.git
    update = rebase
"""


class TestParseGitmodules:
    def test_parses_entries_in_order(self):
        from submodule_sync.git.gitmodules import parse_gitmodules

        subs = parse_gitmodules(GITMODULES)
        assert [s.name for s in subs] == ["core", "ui"]
        assert subs[0].path == "libs/core"
        assert subs[0].url == "git@github.com:org/core.git"
        assert subs[0].branch == "develop"
        assert subs[1].path == "libs/ui"
        assert subs[1].branch is None

    def test_empty_text(self):
        from submodule_sync.git.gitmodules import parse_gitmodules

        assert parse_gitmodules("") == []

    def test_incomplete_entry_skipped_by_default(self):
        from submodule_sync.git.gitmodules import parse_gitmodules

        text = '[submodule "broken"]\n\tpath = libs/broken\n' + GITMODULES
        subs = parse_gitmodules(text)
        assert [s.name for s in subs] == ["core", "ui"]

    def test_incomplete_entry_raises_when_strict(self):
        from submodule_sync.git.gitmodules import parse_gitmodules

        text = GITMODULES + '[submodule "broken"]\n\turl = https://x/broken.git\n'
        with pytest.raises(ManifestError, match="Missing required fields for submodule 'broken'"):
            parse_gitmodules(text, skip_invalid=False)

    def test_other_sections_ignored(self):
        from submodule_sync.git.gitmodules import parse_gitmodules

        text = '[core]\n\tpath = nope\n' + GITMODULES
        assert len(parse_gitmodules(text)) == 2

    def test_missing_file_means_no_submodules(self, tmp_path):
        from submodule_sync.git.gitmodules import read_gitmodules

        assert read_gitmodules(tmp_path / ".gitmodules") == []

    def test_read_file(self, tmp_path):
        from submodule_sync.git.gitmodules import read_gitmodules

        (tmp_path / ".gitmodules").write_text(GITMODULES)
        assert len(read_gitmodules(tmp_path / ".gitmodules")) == 2
