import uuid
from pathlib import Path, PurePosixPath

from app.ocr.models import DocumentType
from app.storage.base import BaseStorage, StoredFile
from app.storage.exceptions import StorageError, StoredFileNotFoundError

_DEFAULT_EXTENSIONS = {
    DocumentType.RECEIPT_IMAGE: ".jpg",
    DocumentType.INVOICE_PDF: ".pdf",
    DocumentType.INVOICE_HTML: ".html",
}

_IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp", ".heic", ".heif"}


def document_file_path(files_root: Path, key: str) -> Path:
    """Build path to a stored file: {files_root}/{owner_id}/{uuid}{ext}"""
    return files_root / PurePosixPath(key)


class LocalStorage(BaseStorage):
    """Stores documents on the local filesystem under ``files_root``."""

    FILES_ROOT = Path("/app/files")

    def __init__(self, files_root: Path | None = None, public_url: str = "/files") -> None:
        self._files_root = files_root if files_root is not None else self.FILES_ROOT
        self._public_url = public_url.rstrip("/")

    def upload(
        self,
        data: bytes,
        owner_id: str,
        document_type: DocumentType,
        file_name: str | None = None,
    ) -> StoredFile:
        key = f"{owner_id}/{uuid.uuid4()}{_extension(document_type, file_name)}"
        path = self._resolve_path(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as exc:
            raise StorageError(f"Could not write {path}: {exc}") from exc
        return StoredFile(key=key, url=f"{self._public_url}/{key}")

    def load(self, key: str) -> bytes:
        path = self._resolve_path(key)
        if not path.exists():
            raise StoredFileNotFoundError(f"File not found: {path}")
        return path.read_bytes()

    def delete(self, key: str) -> bool:
        path = self._resolve_path(key)
        if not path.exists():
            return False
        path.unlink()
        return True

    def _resolve_path(self, key: str) -> Path:
        if ".." in PurePosixPath(key).parts or PurePosixPath(key).is_absolute():
            raise StorageError(f"Invalid storage key: {key}")
        return document_file_path(self._files_root, key)


def _extension(document_type: DocumentType, file_name: str | None) -> str:
    default = _DEFAULT_EXTENSIONS[DocumentType(document_type)]
    if not file_name:
        return default
    suffix = PurePosixPath(file_name).suffix.lower()
    if DocumentType(document_type) == DocumentType.RECEIPT_IMAGE and suffix in _IMAGE_EXTENSIONS:
        return suffix
    if DocumentType(document_type) == DocumentType.INVOICE_HTML and suffix == ".htm":
        return suffix
    return default
