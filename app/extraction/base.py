from abc import ABC, abstractmethod


class BaseTextExtractor(ABC):
    """Contract for document-to-text adapters (PDF engines, HTML)."""

    @abstractmethod
    def extract(self, document_bytes: bytes) -> str:
        """Extract plain text, one visual line per text line.

        Raises:
            TextExtractionError: if the document cannot be read.
        """
