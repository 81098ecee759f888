from abc import ABC, abstractmethod

from app.matching.models import CatalogProduct


class BaseProductCatalog(ABC):
    """Read-only catalog lookups needed by the product matcher.

    Text lookups are case- and accent-insensitive: keywords arrive accent-folded
    (see ``normalize``) and must match accented catalog names.
    """

    @abstractmethod
    def find_by_barcode(self, barcode: str) -> list[CatalogProduct]:
        """Products whose barcode equals ``barcode``."""

    @abstractmethod
    def find_by_name_exact(self, names: list[str]) -> list[CatalogProduct]:
        """Products whose name equals any of ``names``."""

    @abstractmethod
    def find_by_name_containing_any(self, keywords: list[str]) -> list[CatalogProduct]:
        """Products whose name contains at least one keyword."""

    @abstractmethod
    def find_by_name_or_brand_containing_any(self, keywords: list[str]) -> list[CatalogProduct]:
        """Products whose name or brand contains at least one keyword."""

    @abstractmethod
    def find_category_name(self, category_id: str) -> str | None:
        """Display name of a catalog category, None when unknown."""
