from app.structuring.base import BaseReceiptStructurer
from app.structuring.factory import StructurerFactory
from app.structuring.structurer import ReceiptStructurer

__all__ = ["BaseReceiptStructurer", "ReceiptStructurer", "StructurerFactory"]
