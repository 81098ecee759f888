from typing import ClassVar

from app.ocr.base import BaseOcrProvider
from app.ocr.exceptions import OcrDocumentError
from app.ocr.image_reader import TesseractImageReader
from app.ocr.models import DocumentType, ReceiptData
from app.ocr.text_parser import parse_receipt_text


class TesseractOcrProvider(BaseOcrProvider):
    """Local OCR for receipt photos: tesseract text plus heuristic parsing."""

    name: ClassVar[str] = "tesseract"
    supported_types: ClassVar[frozenset[DocumentType]] = frozenset(
        {DocumentType.RECEIPT_IMAGE}
    )

    ITEM_CONFIDENCE = 0.6

    def __init__(self, reader: TesseractImageReader) -> None:
        self._reader = reader

    def is_available(self) -> bool:
        return self._reader.is_available()

    def _extract(self, data: bytes, document_type: DocumentType) -> ReceiptData:
        text = self._reader.read(data)
        if not text.strip():
            raise OcrDocumentError("No text found in image")
        return parse_receipt_text(text, item_confidence=self.ITEM_CONFIDENCE)
