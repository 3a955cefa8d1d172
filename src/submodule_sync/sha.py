"""Commit SHA validation helpers."""

import re

from submodule_sync.errors import ValidationError

SHA_PATTERN = re.compile(r"^[a-f0-9]{7,40}$", re.IGNORECASE)
SHORT_SHA_LENGTH = 8


def is_valid_sha(value: str | None) -> bool:
    """Return True if value looks like an abbreviated or full commit SHA."""
    return bool(value) and SHA_PATTERN.match(value) is not None


def as_git_sha(value: str | None, context: str = "commit") -> str:
    """Validate and normalize a SHA string.

    Args:
        value: Raw output from git (may carry whitespace).
        context: What the SHA refers to, used in the error message.

    Returns:
        The stripped SHA.

    Raises:
        ValidationError: If the value is not 7-40 hexadecimal characters.
    """
    candidate = (value or "").strip()
    if not is_valid_sha(candidate):
        raise ValidationError(
            f"Invalid {context} SHA: {candidate!r}",
            suggestions=[
                "Expected 7-40 hexadecimal characters",
                "Check that the ref exists with 'git rev-parse <ref>'",
            ],
            details={"value": candidate, "context": context},
        )
    return candidate


def short_sha(sha: str) -> str:
    return sha[:SHORT_SHA_LENGTH]
