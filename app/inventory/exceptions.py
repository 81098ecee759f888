class InventoryError(Exception):
    """Base exception for committing receipt items to the inventory."""


class ProductNotFoundError(InventoryError):
    """Raised when an item references a product id that does not exist."""


class CategoryNotFoundError(InventoryError):
    """Raised when new product data names an unknown category slug."""


class MissingProductDataError(InventoryError):
    """Raised when an item has neither a product id nor data to create one."""


class ProductCreationDisabledError(InventoryError):
    """Raised when a new product is needed but automatic creation is off."""
