import logging
from typing import Any, Protocol

log = logging.getLogger(__name__)


class ExpiringStore(Protocol):
    """Key/value table whose entries carry an absolute expiry time."""

    def get(self, key: str, now: float) -> Any | None: ...

    def set(self, key: str, value: Any, expires_at: float) -> None: ...

    def delete(self, key: str) -> None: ...

    def sweep(self, now: float) -> int: ...


class MemoryStore:
    """In-process ExpiringStore. Only safe to share within one event loop."""

    def __init__(self) -> None:
        self._entries: dict[str, tuple[Any, float]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str, now: float) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if now > expires_at:
            del self._entries[key]
            return None
        return value

    def set(self, key: str, value: Any, expires_at: float) -> None:
        self._entries[key] = (value, expires_at)

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def sweep(self, now: float) -> int:
        expired = [k for k, (_v, expires_at) in self._entries.items() if now > expires_at]
        for key in expired:
            del self._entries[key]
        if expired:
            log.debug("Swept %d expired entries", len(expired))
        return len(expired)
