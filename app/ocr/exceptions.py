class OcrError(Exception):
    """Base exception for OCR provider errors."""


class OcrDocumentError(OcrError):
    """Raised when the document itself cannot be read (corrupt image, empty PDF)."""


class UnsupportedDocumentTypeError(OcrError):
    """Raised when no provider supports the requested document type."""


class ProviderUnavailableError(OcrError):
    """Raised when the requested provider is not registered or not configured."""


class OcrInfrastructureError(OcrError):
    """Raised on network, timeout or authentication failures of a provider."""
