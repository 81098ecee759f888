class ProcessorError(Exception):
    """Base exception for all processor-related errors."""


class ReceiptNotFoundError(ProcessorError):
    """Raised when a job's receipt no longer exists in the database."""


class OcrFailedError(ProcessorError):
    """Raised when no OCR provider produced a usable result."""

    def __init__(self, error: str | None) -> None:
        super().__init__(f"OCR failed: {error or 'unknown error'}")


class JobTimeoutError(ProcessorError):
    """Raised when a job runs past its deadline."""
