import io

import pdfplumber

from app.extraction.base import BaseTextExtractor
from app.extraction.exceptions import TextExtractionError


class PdfPlumberAdapter(BaseTextExtractor):
    """Extracts invoice text from PDF using pdfplumber, keeping table rows on one line."""

    def extract(self, document_bytes: bytes) -> str:
        try:
            with pdfplumber.open(io.BytesIO(document_bytes)) as pdf:
                pages = [page.extract_text(layout=False) or "" for page in pdf.pages]
        except Exception as exc:
            raise TextExtractionError(f"pdfplumber extraction failed: {exc}") from exc
        return "\n".join(pages).strip()
