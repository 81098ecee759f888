import io
import shutil

import pytesseract
from PIL import Image, ImageOps, UnidentifiedImageError

from app.ocr.exceptions import OcrDocumentError, OcrInfrastructureError


class TesseractImageReader:
    """Reads the text of a receipt photo with the local tesseract binary."""

    PADDING = 20

    def __init__(self, *, tesseract_cmd: str, lang: str, timeout_seconds: int) -> None:
        self._tesseract_cmd = tesseract_cmd
        self._lang = lang
        self._timeout_seconds = timeout_seconds

    def is_available(self) -> bool:
        return shutil.which(self._tesseract_cmd) is not None

    def read(self, image_bytes: bytes) -> str:
        """Return the raw text of the image.

        Raises:
            OcrDocumentError: the bytes are not a readable image.
            OcrInfrastructureError: tesseract is missing, failed or timed out.
        """
        image = self._prepare(image_bytes)
        pytesseract.pytesseract.tesseract_cmd = self._tesseract_cmd
        try:
            return pytesseract.image_to_string(
                image,
                lang=self._lang,
                config="--psm 4",
                timeout=self._timeout_seconds,
            )
        except pytesseract.TesseractNotFoundError as exc:
            raise OcrInfrastructureError(f"tesseract binary not found: {exc}") from exc
        except pytesseract.TesseractError as exc:
            raise OcrInfrastructureError(f"tesseract failed: {exc.message}") from exc
        except RuntimeError as exc:
            # pytesseract signals its own timeout with a bare RuntimeError
            raise OcrInfrastructureError(f"tesseract timed out: {exc}") from exc

    def _prepare(self, image_bytes: bytes) -> Image.Image:
        try:
            image = Image.open(io.BytesIO(image_bytes))
            image.load()
        except (UnidentifiedImageError, OSError) as exc:
            raise OcrDocumentError(f"Unreadable image: {exc}") from exc
        image = ImageOps.exif_transpose(image)
        image = ImageOps.grayscale(image)
        return ImageOps.expand(image, border=self.PADDING, fill="white")
