"""Repository name extraction from remote URLs."""

from submodule_sync.errors import ValidationError


def extract_repo_name(url: str) -> str:
    """Extract the repository name from a remote URL.

    Handles HTTPS (``https://host/org/repo.git``), SSH shorthand
    (``git@host:org/repo.git``) and plain local paths (``../repo``).

    Args:
        url: Remote URL as written in .gitmodules.

    Returns:
        The last path segment with any ``.git`` suffix removed.

    Raises:
        ValidationError: If the URL is empty or has no usable name.
    """
    cleaned = (url or "").strip()
    if not cleaned:
        raise ValidationError(
            "Repository URL cannot be empty",
            suggestions=[
                "Check the url entry for this submodule in .gitmodules",
                "Run 'git submodule sync' after fixing the URL",
            ],
        )

    cleaned = cleaned.rstrip("/")
    cut = max(cleaned.rfind("/"), cleaned.rfind(":"))
    name = cleaned[cut + 1:]
    if name.endswith(".git"):
        name = name[: -len(".git")]

    if not name:
        raise ValidationError(
            f"Cannot extract repository name from URL: {url}",
            suggestions=[
                "Use a URL ending in the repository name, e.g. https://github.com/org/repo.git",
                "Check the url entry for this submodule in .gitmodules",
            ],
            details={"url": url},
        )
    return name
