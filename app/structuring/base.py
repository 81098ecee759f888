from abc import ABC, abstractmethod

from app.ocr.models import ReceiptData


class BaseReceiptStructurer(ABC):
    """Contract for turning raw receipt text into ReceiptData."""

    @abstractmethod
    def structure(self, text: str) -> ReceiptData:
        """Structure OCR or invoice text.

        Raises:
            StructuringError: on invalid model output.
            StructuringNetworkError: on provider failures.
        """
