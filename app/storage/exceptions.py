class StorageError(Exception):
    """Base exception for all storage-related errors."""


class StoredFileNotFoundError(StorageError):
    """Raised when a storage key does not resolve to a file."""


class UnsupportedStorageBackendError(StorageError):
    """Raised when settings name a storage backend that does not exist."""
