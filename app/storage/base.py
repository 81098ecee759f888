from abc import ABC, abstractmethod
from dataclasses import dataclass

from app.ocr.models import DocumentType


@dataclass(frozen=True)
class StoredFile:
    key: str
    url: str


class BaseStorage(ABC):
    """Abstract interface for the store holding uploaded receipt documents."""

    @abstractmethod
    def upload(
        self,
        data: bytes,
        owner_id: str,
        document_type: DocumentType,
        file_name: str | None = None,
    ) -> StoredFile:
        """Store ``data`` and return its key and public url."""

    @abstractmethod
    def load(self, key: str) -> bytes:
        """Read stored bytes.

        Raises:
            StoredFileNotFoundError: if nothing is stored under ``key``.
        """

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Remove a stored file. Returns False if it was already gone."""
