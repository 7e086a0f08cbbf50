"""Storage backends and the factory that picks one from config."""

from shiftboard.storage.base import StorageBackend
from shiftboard.storage.memory import MemoryBackend
from shiftboard.storage.sql import SqlBackend

BACKENDS = {
    "memory": MemoryBackend,
    "sql": SqlBackend,
}


def create_backend(kind: str, bcrypt_rounds: int = 12) -> StorageBackend:
    """Instantiate the backend named by ``STORAGE_BACKEND``."""
    try:
        backend_cls = BACKENDS[kind]
    except KeyError:
        raise ValueError(
            f"Unknown storage backend {kind!r}; expected one of {sorted(BACKENDS)}"
        ) from None
    return backend_cls(bcrypt_rounds=bcrypt_rounds)


__all__ = ["BACKENDS", "MemoryBackend", "SqlBackend", "StorageBackend", "create_backend"]
