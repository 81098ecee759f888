from datetime import UTC, date, datetime
from typing import Any

import psycopg

from app.database.connection import transaction
from app.database.repositories.budget_repository import BudgetRepository
from app.database.repositories.catalog_repository import CatalogRepository
from app.database.repositories.inventory_repository import InventoryRepository
from app.inventory.exceptions import (
    CategoryNotFoundError,
    MissingProductDataError,
    ProductCreationDisabledError,
    ProductNotFoundError,
)
from app.inventory.models import (
    AddedItem,
    BudgetImpact,
    CommitOptions,
    FailedItem,
    ItemsValidation,
    ReceiptToInventoryResult,
    ValidatedReceiptItem,
)
from app.logging.logger import Log
from app.matching.models import CatalogProduct

EXPENSE_SOURCE = "Receipt"
EXPENSE_CATEGORY = "FOOD"
NO_BUDGET_WARNING = "No active budget for this period"
LOW_BUDGET_RATIO = 0.1


class ReceiptToInventoryService:
    """Turns validated receipt items into inventory rows and one budget expense.

    Everything runs in one database transaction. Each item gets its own savepoint,
    so a failing item is rolled back and reported while the others are kept. The
    budget step has its own savepoint too; when it fails the commit reports no
    budget impact instead of failing.
    """

    def __init__(
        self,
        catalog_repo: CatalogRepository,
        inventory_repo: InventoryRepository,
        budget_repo: BudgetRepository,
    ) -> None:
        self._catalog_repo = catalog_repo
        self._inventory_repo = inventory_repo
        self._budget_repo = budget_repo

    def commit(
        self,
        user_id: str,
        items: list[ValidatedReceiptItem],
        options: CommitOptions | None = None,
    ) -> ReceiptToInventoryResult:
        options = options or CommitOptions()
        purchase_date = options.purchase_date or datetime.now(UTC)
        result = ReceiptToInventoryResult()
        Log.info(
            f"Committing {len(items)} items to inventory",
            user_id=user_id,
            receipt_id=options.receipt_id,
        )

        with transaction() as conn:
            total = 0.0
            for item in items:
                try:
                    with conn.transaction():
                        added = self._commit_item(conn, user_id, item, purchase_date, options)
                except Exception as exc:
                    Log.error(f"Item not added: {exc}", user_id=user_id, item=item.label)
                    result.failed_items.append(FailedItem(product_name=item.label, error=str(exc)))
                    continue
                result.added_items.append(added)
                total += added.total_price

            total = round(total, 2)
            result.budget_impact = BudgetImpact(total_amount=total)
            if total > 0:
                try:
                    with conn.transaction():
                        result.budget_impact = self._apply_budget(
                            conn, user_id, total, purchase_date, options.receipt_id
                        )
                except Exception as exc:
                    Log.warning(f"Budget update failed: {exc}", user_id=user_id)

        summary = result.summary
        Log.info(
            f"Inventory commit done: {summary.successful_items}/{summary.total_items_processed} items added",
            user_id=user_id,
            total=summary.total_amount_spent,
            expense_created=result.budget_impact.expense_created,
        )
        return result

    def validate_items(
        self, items: list[ValidatedReceiptItem], today: date | None = None
    ) -> ItemsValidation:
        """Check items before a commit; returns every problem found."""
        today = today or date.today()
        errors: list[str] = []
        for index, item in enumerate(items, start=1):
            label = f"Item {index}"
            if not item.quantity or item.quantity <= 0:
                errors.append(f"{label}: quantity must be greater than 0")
            if not item.product_id and item.product_data is None:
                errors.append(f"{label}: a product id or product data is required")
            if item.product_data is not None:
                if not item.product_data.name.strip():
                    errors.append(f"{label}: product name is required")
                if not item.product_data.category_slug.strip():
                    errors.append(f"{label}: category is required")
            if item.expiry_date is not None and item.expiry_date < today:
                errors.append(f"{label}: expiry date cannot be in the past")
        return ItemsValidation(valid=not errors, errors=errors)

    def _commit_item(
        self,
        conn: psycopg.Connection[Any],
        user_id: str,
        item: ValidatedReceiptItem,
        purchase_date: datetime,
        options: CommitOptions,
    ) -> AddedItem:
        product = self._resolve_product(conn, item, options.auto_create_products)
        inventory_id = self._inventory_repo.create_item(
            conn,
            user_id=user_id,
            product_id=product.id,
            quantity=item.quantity,
            purchase_date=purchase_date,
            purchase_price=item.unit_price,
            expiry_date=item.expiry_date,
            storage_location=item.storage_location,
            notes=item.notes,
        )
        Log.debug(f"Inventory item added: {product.name} x{item.quantity:g}", user_id=user_id)
        return AddedItem(
            id=inventory_id,
            product_name=product.name,
            quantity=item.quantity,
            total_price=item.amount,
        )

    def _resolve_product(
        self,
        conn: psycopg.Connection[Any],
        item: ValidatedReceiptItem,
        auto_create: bool,
    ) -> CatalogProduct:
        if item.product_id:
            product = self._catalog_repo.find_by_id(conn, item.product_id)
            if product is None:
                raise ProductNotFoundError(f"Product {item.product_id} not found")
            return product

        data = item.product_data
        if data is None:
            raise MissingProductDataError("Product data is required to create a new product")
        if not auto_create:
            raise ProductCreationDisabledError("Automatic product creation is disabled")

        category_id = self._catalog_repo.find_category_id_by_slug(conn, data.category_slug)
        if category_id is None:
            raise CategoryNotFoundError(f"Category {data.category_slug} not found")
        product = self._catalog_repo.create_product(
            conn,
            name=data.name,
            category_id=category_id,
            unit_type=data.unit_type,
            brand=data.brand,
            barcode=data.barcode,
            image_url=data.image_url,
        )
        Log.debug(f"Product created from receipt: {product.name}", product_id=product.id)
        return product

    def _apply_budget(
        self,
        conn: psycopg.Connection[Any],
        user_id: str,
        total: float,
        purchase_date: datetime,
        receipt_id: str | None,
    ) -> BudgetImpact:
        budget = self._budget_repo.find_active_budget(conn, user_id, purchase_date)
        if budget is None:
            Log.debug("No active budget found", user_id=user_id)
            return BudgetImpact(total_amount=total, warning_message=NO_BUDGET_WARNING)

        self._budget_repo.record_expense(
            conn,
            user_id=user_id,
            budget_id=budget.id,
            amount=total,
            spent_on=purchase_date,
            source=EXPENSE_SOURCE,
            category=EXPENSE_CATEGORY,
            receipt_id=receipt_id,
        )
        remaining = round(float(budget.amount) - self._budget_repo.sum_expenses(conn, budget.id), 2)
        return BudgetImpact(
            total_amount=total,
            expense_created=True,
            budget_id=budget.id,
            remaining_budget=remaining,
            warning_message=_budget_warning(remaining, float(budget.amount)),
        )


def _budget_warning(remaining: float, budget_amount: float) -> str | None:
    if remaining < 0:
        return f"Budget exceeded by {abs(remaining):.2f}"
    if remaining < budget_amount * LOW_BUDGET_RATIO:
        return f"Only {remaining:.2f} left in this budget"
    return None
