"""Error taxonomy for submodule synchronization.

Every error carries a human-readable message plus a short list of recovery
suggestions that the CLI prints verbatim. Network failures are classified
so that call sites can decide whether a retry is worthwhile.
"""

from __future__ import annotations

from typing import Any

NETWORK_DNS = "dns"
NETWORK_TIMEOUT = "timeout"
NETWORK_CONNECTION = "connection"
NETWORK_AUTH = "auth"
NETWORK_UNKNOWN = "unknown"


class SyncError(Exception):
    """Base class for all submodule-sync errors."""

    code = "SYNC_ERROR"

    def __init__(
        self,
        message: str,
        *,
        suggestions: list[str] | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.suggestions = list(suggestions or [])
        self.details = dict(details or {})

    def to_dict(self) -> dict[str, Any]:
        """Serialize the error for structured logs and JSON output."""
        data: dict[str, Any] = {
            "code": self.code,
            "message": self.message,
            "suggestions": self.suggestions,
            "details": self.details,
        }
        if self.__cause__ is not None:
            data["cause"] = str(self.__cause__)
        return data


class GitOperationError(SyncError):
    """A git subcommand failed or produced unusable output."""

    code = "GIT_OPERATION"


class NetworkError(GitOperationError):
    """A git subcommand failed while talking to a remote."""

    code = "NETWORK"

    def __init__(
        self,
        message: str,
        *,
        kind: str = NETWORK_UNKNOWN,
        suggestions: list[str] | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, suggestions=suggestions, details=details)
        self.kind = kind

    @property
    def retryable(self) -> bool:
        # Auth failures are never retried.
        return self.kind != NETWORK_AUTH

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["kind"] = self.kind
        data["retryable"] = self.retryable
        return data


class ValidationError(SyncError, ValueError):
    """Input failed validation (SHA format, stash reference, URL, config)."""

    code = "VALIDATION"


class ManifestError(ValidationError):
    """The .gitmodules manifest could not be parsed."""

    code = "MANIFEST"


class StashRestoreError(GitOperationError):
    """Restoring the auto-stash failed; user changes are still in the stash.

    Carries the partial workflow result so callers can still report what
    happened to the submodules before the restore failed.
    """

    code = "STASH_RESTORE"

    def __init__(
        self,
        message: str,
        *,
        stash_ref: str = "",
        suggestions: list[str] | None = None,
        details: dict[str, Any] | None = None,
        workflow_result: Any = None,
    ) -> None:
        super().__init__(message, suggestions=suggestions, details=details)
        self.stash_ref = stash_ref
        self.workflow_result = workflow_result


def network_suggestions(kind: str) -> list[str]:
    """Return recovery suggestions appropriate for a network failure kind."""
    if kind == NETWORK_AUTH:
        return [
            "Check your git credentials or SSH key",
            "Verify you have access to the remote repository",
            "Run 'git fetch' manually to see the full authentication error",
        ]
    if kind == NETWORK_DNS:
        return [
            "Check the remote URL for typos",
            "Check your DNS settings and network connectivity",
        ]
    if kind == NETWORK_TIMEOUT:
        return [
            "Retry when the network is less congested",
            "Increase git_timeout in .submodule-sync.yaml",
        ]
    return [
        "Check your network connectivity",
        "Verify the remote repository is reachable",
        "Run again once the remote is available",
    ]
