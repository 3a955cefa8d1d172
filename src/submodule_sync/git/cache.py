"""Per-run cache of repository validity checks."""

from pathlib import Path


class RepositoryCache:
    """Map absolute path -> whether it is a valid git repository.

    Scoped to one orchestrator run. Single-threaded asyncio means no locking;
    concurrent lookups of the same path may both miss, which is harmless.
    """

    def __init__(self) -> None:
        self._entries: dict[str, bool] = {}

    @staticmethod
    def _key(path: Path | str) -> str:
        return str(Path(path))

    def get(self, path: Path | str) -> bool | None:
        return self._entries.get(self._key(path))

    def has(self, path: Path | str) -> bool:
        return self._key(path) in self._entries

    def set(self, path: Path | str, is_valid: bool) -> None:
        self._entries[self._key(path)] = is_valid

    def invalidate(self, path: Path | str) -> None:
        self._entries.pop(self._key(path), None)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
