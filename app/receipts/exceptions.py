class ReceiptError(Exception):
    """Base exception for receipt operations."""


class InvalidDocumentError(ReceiptError):
    """Raised when an uploaded document is rejected before it is queued."""


class ReceiptNotFoundError(ReceiptError):
    """Raised when a receipt does not exist or belongs to another user."""


class ReceiptNotReadyError(ReceiptError):
    """Raised when results are requested before processing has completed."""


class InvalidStatusTransitionError(ReceiptError):
    """Raised when a receipt cannot move from its current status to the requested one."""


class ItemNotFoundError(ReceiptError):
    """Raised when a receipt item does not exist on the given receipt."""
