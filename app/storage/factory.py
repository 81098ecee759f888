from pathlib import Path

from app.config.settings import Settings
from app.storage.base import BaseStorage
from app.storage.exceptions import UnsupportedStorageBackendError
from app.storage.local_storage import LocalStorage


class StorageFactory:
    """Creates storage backends based on settings."""

    BACKENDS = ("local",)

    @classmethod
    def create(cls, settings: Settings) -> BaseStorage:
        backend = settings.storage_backend.lower()
        if backend == "local":
            return LocalStorage(
                files_root=Path(settings.files_root),
                public_url=settings.public_files_url,
            )
        raise UnsupportedStorageBackendError(
            f"Unknown storage backend '{settings.storage_backend}'. "
            f"Choose from: {', '.join(cls.BACKENDS)}"
        )
