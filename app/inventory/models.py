from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Literal

UnitType = Literal["KG", "G", "L", "ML", "UNIT"]


@dataclass(frozen=True)
class ProductData:
    """Catalog values for a product created from a receipt line."""

    name: str
    category_slug: str
    unit_type: UnitType = "UNIT"
    brand: str | None = None
    barcode: str | None = None
    image_url: str | None = None


@dataclass(frozen=True)
class ValidatedReceiptItem:
    """A user-validated line ready to become an inventory record."""

    quantity: float
    product_id: str | None = None
    product_data: ProductData | None = None
    unit_price: float | None = None
    total_price: float | None = None
    expiry_date: date | None = None
    storage_location: str | None = None
    notes: str | None = None

    @property
    def label(self) -> str:
        if self.product_data is not None:
            return self.product_data.name
        return self.product_id or "Unknown product"

    @property
    def amount(self) -> float:
        """Total price, else unit price times quantity, else 0."""
        if self.total_price:
            return self.total_price
        if self.unit_price:
            return self.unit_price * self.quantity
        return 0.0


@dataclass(frozen=True)
class CommitOptions:
    purchase_date: datetime | None = None
    auto_create_products: bool = True
    receipt_id: str | None = None


@dataclass(frozen=True)
class AddedItem:
    id: str
    product_name: str
    quantity: float
    total_price: float


@dataclass(frozen=True)
class FailedItem:
    product_name: str
    error: str


@dataclass
class BudgetImpact:
    total_amount: float = 0.0
    expense_created: bool = False
    budget_id: str | None = None
    remaining_budget: float | None = None
    warning_message: str | None = None


@dataclass(frozen=True)
class CommitSummary:
    total_items_processed: int
    successful_items: int
    failed_items: int
    total_amount_spent: float


@dataclass
class ReceiptToInventoryResult:
    added_items: list[AddedItem] = field(default_factory=list)
    failed_items: list[FailedItem] = field(default_factory=list)
    budget_impact: BudgetImpact = field(default_factory=BudgetImpact)

    @property
    def summary(self) -> CommitSummary:
        return CommitSummary(
            total_items_processed=len(self.added_items) + len(self.failed_items),
            successful_items=len(self.added_items),
            failed_items=len(self.failed_items),
            total_amount_spent=self.budget_impact.total_amount,
        )


@dataclass(frozen=True)
class ItemsValidation:
    valid: bool
    errors: list[str] = field(default_factory=list)
