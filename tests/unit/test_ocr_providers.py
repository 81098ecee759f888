import io
from unittest.mock import MagicMock, patch

import pytest
import pytesseract
from PIL import Image

from app.extraction.base import BaseTextExtractor
from app.extraction.exceptions import TextExtractionError
from app.ocr.exceptions import OcrDocumentError, OcrInfrastructureError
from app.ocr.image_reader import TesseractImageReader
from app.ocr.invoice_text_provider import InvoiceTextProvider
from app.ocr.llm_provider import LlmOcrProvider
from app.ocr.models import DocumentType, ReceiptData
from app.ocr.tesseract_provider import TesseractOcrProvider
from app.structuring.base import BaseReceiptStructurer
from app.structuring.exceptions import StructuringNetworkError, StructuringValidationError

RECEIPT_TEXT = """CARREFOUR MARKET
LAIT DEMI ECREME 1L      1,29
BAGUETTE TRADITION       1,50
TOTAL TTC                2,79
14/03/2025 18:42
"""

INVOICE_TEXT = """Auchan Drive
Facture N° FA-2025-0042
3263859672014 Lait entier bio 1L 1,45 €
Total : 1,45 €
"""


def _png_bytes() -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (40, 20), "white").save(buffer, format="PNG")
    return buffer.getvalue()


def _make_reader() -> TesseractImageReader:
    return TesseractImageReader(tesseract_cmd="tesseract", lang="fra+eng", timeout_seconds=5)


class TestTesseractImageReader:
    @patch("app.ocr.image_reader.pytesseract.image_to_string")
    def test_reads_text_from_prepared_image(self, mock_ocr: MagicMock) -> None:
        mock_ocr.return_value = RECEIPT_TEXT

        text = _make_reader().read(_png_bytes())

        assert text == RECEIPT_TEXT
        image = mock_ocr.call_args.args[0]
        assert image.mode == "L"
        assert image.size == (80, 60)
        assert mock_ocr.call_args.kwargs["lang"] == "fra+eng"
        assert mock_ocr.call_args.kwargs["timeout"] == 5

    def test_garbage_bytes_are_a_document_error(self) -> None:
        with pytest.raises(OcrDocumentError, match="Unreadable image"):
            _make_reader().read(b"not an image")

    @patch("app.ocr.image_reader.pytesseract.image_to_string")
    def test_missing_binary_is_infrastructure_error(self, mock_ocr: MagicMock) -> None:
        mock_ocr.side_effect = pytesseract.TesseractNotFoundError()

        with pytest.raises(OcrInfrastructureError, match="not found"):
            _make_reader().read(_png_bytes())

    @patch("app.ocr.image_reader.pytesseract.image_to_string")
    def test_timeout_is_infrastructure_error(self, mock_ocr: MagicMock) -> None:
        mock_ocr.side_effect = RuntimeError("Tesseract process timeout")

        with pytest.raises(OcrInfrastructureError, match="timed out"):
            _make_reader().read(_png_bytes())

    @patch("app.ocr.image_reader.shutil.which")
    def test_availability_follows_binary(self, mock_which: MagicMock) -> None:
        mock_which.return_value = None
        assert _make_reader().is_available() is False

        mock_which.return_value = "/usr/bin/tesseract"
        assert _make_reader().is_available() is True


class TestTesseractOcrProvider:
    def test_parses_receipt_text(self) -> None:
        reader = MagicMock(spec=TesseractImageReader)
        reader.read.return_value = RECEIPT_TEXT

        result = TesseractOcrProvider(reader).process_document(b"img", DocumentType.RECEIPT_IMAGE)

        assert result.success is True
        assert result.provider_name == "tesseract"
        assert result.data is not None
        assert result.data.merchant_name == "CARREFOUR MARKET"
        assert [item.total_price for item in result.data.line_items] == [1.29, 1.50]
        assert all(item.confidence == 0.6 for item in result.data.line_items)

    def test_blank_text_is_unsuccessful(self) -> None:
        reader = MagicMock(spec=TesseractImageReader)
        reader.read.return_value = "   \n"

        result = TesseractOcrProvider(reader).process_document(b"img", DocumentType.RECEIPT_IMAGE)

        assert result.success is False
        assert result.error == "No text found in image"

    def test_does_not_read_invoices(self) -> None:
        reader = MagicMock(spec=TesseractImageReader)

        result = TesseractOcrProvider(reader).process_document(b"%PDF", DocumentType.INVOICE_PDF)

        assert result.success is False
        reader.read.assert_not_called()


class TestInvoiceTextProvider:
    def _make_provider(self, text: str = INVOICE_TEXT) -> tuple[InvoiceTextProvider, MagicMock]:
        extractor = MagicMock(spec=BaseTextExtractor)
        extractor.extract.return_value = text
        return InvoiceTextProvider({DocumentType.INVOICE_PDF: extractor}), extractor

    def test_parses_invoice_text(self) -> None:
        provider, extractor = self._make_provider()

        result = provider.process_document(b"%PDF", DocumentType.INVOICE_PDF)

        extractor.extract.assert_called_once_with(b"%PDF")
        assert result.data is not None
        assert result.data.invoice_number == "FA-2025-0042"
        assert result.data.line_items[0].product_code == "3263859672014"
        assert result.data.line_items[0].confidence == 0.8

    def test_supports_only_configured_types(self) -> None:
        provider, _extractor = self._make_provider()

        assert provider.supports_document_type(DocumentType.INVOICE_PDF)
        assert not provider.supports_document_type(DocumentType.INVOICE_HTML)
        assert not provider.supports_document_type(DocumentType.RECEIPT_IMAGE)

    def test_extraction_error_is_unsuccessful(self) -> None:
        provider, extractor = self._make_provider()
        extractor.extract.side_effect = TextExtractionError("encrypted")

        result = provider.process_document(b"%PDF", DocumentType.INVOICE_PDF)

        assert result.success is False
        assert result.error == "encrypted"

    def test_empty_text_is_unsuccessful(self) -> None:
        provider, _extractor = self._make_provider(text="")

        result = provider.process_document(b"%PDF", DocumentType.INVOICE_PDF)

        assert result.error == "Document contains no extractable text"

    def test_unavailable_without_extractors(self) -> None:
        assert InvoiceTextProvider({}).is_available() is False


class TestLlmOcrProvider:
    def _make_provider(
        self, configured: bool = True
    ) -> tuple[LlmOcrProvider, MagicMock, MagicMock, MagicMock]:
        structurer = MagicMock(spec=BaseReceiptStructurer)
        structurer.structure.return_value = ReceiptData(
            merchant_name="CARREFOUR MARKET",
            total_amount=2.79,
            confidence=0.8,
            raw_provider_payload={"model": "gpt-4o-mini"},
        )
        reader = MagicMock(spec=TesseractImageReader)
        reader.is_available.return_value = True
        reader.read.return_value = RECEIPT_TEXT
        extractor = MagicMock(spec=BaseTextExtractor)
        extractor.extract.return_value = INVOICE_TEXT
        provider = LlmOcrProvider(
            structurer=structurer,
            image_reader=reader,
            extractors={DocumentType.INVOICE_HTML: extractor},
            configured=configured,
        )
        return provider, structurer, reader, extractor

    def test_structures_image_text(self) -> None:
        provider, structurer, reader, _extractor = self._make_provider()

        result = provider.process_document(b"img", DocumentType.RECEIPT_IMAGE)

        reader.read.assert_called_once_with(b"img")
        structurer.structure.assert_called_once_with(RECEIPT_TEXT)
        assert result.data is not None
        assert result.data.raw_provider_payload == {
            "model": "gpt-4o-mini",
            "extracted_text": RECEIPT_TEXT,
        }

    def test_structures_invoice_text(self) -> None:
        provider, structurer, _reader, extractor = self._make_provider()

        provider.process_document(b"<html>", DocumentType.INVOICE_HTML)

        extractor.extract.assert_called_once_with(b"<html>")
        structurer.structure.assert_called_once_with(INVOICE_TEXT)

    def test_rejected_model_output_is_unsuccessful(self) -> None:
        provider, structurer, *_rest = self._make_provider()
        structurer.structure.side_effect = StructuringValidationError("line_items missing")

        result = provider.process_document(b"img", DocumentType.RECEIPT_IMAGE)

        assert result.success is False
        assert result.error == "Model output rejected: line_items missing"

    def test_network_error_propagates(self) -> None:
        provider, structurer, *_rest = self._make_provider()
        structurer.structure.side_effect = StructuringNetworkError("connection reset")

        with pytest.raises(OcrInfrastructureError, match="connection reset"):
            provider.process_document(b"img", DocumentType.RECEIPT_IMAGE)

    def test_availability_follows_configuration(self) -> None:
        provider, *_rest = self._make_provider(configured=False)

        assert provider.is_available() is False

    def test_unsupported_without_extractor(self) -> None:
        provider, *_rest = self._make_provider()

        assert not provider.supports_document_type(DocumentType.INVOICE_PDF)
