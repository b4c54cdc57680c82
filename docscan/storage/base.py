from abc import ABC, abstractmethod

from docscan.core.config import get_settings


class StorageBackend(ABC):
    """Blob area addressed by storage key. Implementations raise FileNotFoundError for missing keys
    and let OSError (or the backend's own errors) propagate for I/O faults."""

    @abstractmethod
    async def put(self, key: str, body: bytes, content_type: str | None = None) -> str:
        """Store bytes under key; return path or URI."""
        ...

    @abstractmethod
    async def get(self, key: str) -> bytes:
        """Retrieve bytes stored under key."""
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Delete the blob if present."""
        ...


def get_storage() -> StorageBackend:
    settings = get_settings()
    if settings.storage_backend == "gcs":
        from docscan.storage.gcs import GCSStorage
        return GCSStorage()
    from docscan.storage.local import LocalStorage
    return LocalStorage()
