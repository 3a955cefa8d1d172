"""Parse the .gitmodules manifest."""

import logging
import re
from pathlib import Path

from submodule_sync.errors import ManifestError
from submodule_sync.models import Submodule

logger = logging.getLogger(__name__)

_SECTION_RE = re.compile(r'^\[submodule\s+"([^"]+)"\]$')
_OTHER_SECTION_RE = re.compile(r"^\[.*\]$")
_KEY_VALUE_RE = re.compile(r"^(\w+)\s*=\s*(.*)$")
_KNOWN_KEYS = ("path", "url", "branch")


def _finish(name: str, fields: dict, skip_invalid: bool, out: list[Submodule]) -> None:
    missing = [key for key in ("path", "url") if not fields.get(key)]
    if missing:
        if not skip_invalid:
            raise ManifestError(
                f"Missing required fields for submodule '{name}': {', '.join(missing)}",
                suggestions=[
                    f"Add the missing {' and '.join(missing)} to the [submodule \"{name}\"] section",
                    "Run 'git submodule sync' after editing .gitmodules",
                ],
                details={"submodule": name, "missing": missing},
            )
        logger.warning("Skipping submodule '%s': missing %s", name, ", ".join(missing))
        return
    out.append(Submodule(
        name=name,
        path=fields["path"],
        url=fields["url"],
        branch=fields.get("branch"),
    ))


def parse_gitmodules(text: str, skip_invalid: bool = True) -> list[Submodule]:
    """Parse .gitmodules content into Submodule records.

    Args:
        text: File content.
        skip_invalid: Drop entries missing path or url instead of raising.

    Returns:
        Submodules in declaration order.

    Raises:
        ManifestError: If an entry is incomplete and skip_invalid is False.
    """
    submodules: list[Submodule] = []
    current: str | None = None
    fields: dict[str, str] = {}

    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith(("#", ";")):
            continue

        section = _SECTION_RE.match(line)
        if section:
            if current is not None:
                _finish(current, fields, skip_invalid, submodules)
            current, fields = section.group(1), {}
            continue

        if _OTHER_SECTION_RE.match(line):
            if current is not None:
                _finish(current, fields, skip_invalid, submodules)
            current, fields = None, {}
            continue

        kv = _KEY_VALUE_RE.match(line)
        if kv and current is not None:
            key, value = kv.group(1), kv.group(2).strip()
            if key in _KNOWN_KEYS:
                fields[key] = value

    if current is not None:
        _finish(current, fields, skip_invalid, submodules)

    return submodules


def read_gitmodules(path: Path, skip_invalid: bool = True) -> list[Submodule]:
    """Read and parse a .gitmodules file. A missing file means no submodules."""
    if not path.is_file():
        return []
    try:
        text = path.read_text()
    except OSError as error:
        raise ManifestError(
            f"Cannot read {path}: {error}",
            suggestions=[
                "Check file permissions on .gitmodules",
                "Run 'git status' to confirm the repository is healthy",
            ],
        ) from error
    return parse_gitmodules(text, skip_invalid=skip_invalid)
