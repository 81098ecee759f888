from collections.abc import Collection
from dataclasses import asdict
from typing import Any

from psycopg import sql
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from app.database.connection import get_connection, transaction
from app.database.models import (
    NewReceiptItem,
    ReceiptExtraction,
    ReceiptItemRecord,
    ReceiptRecord,
)

_RECEIPT_COLUMNS = """
    id, user_id, document_type, status, storage_key, image_url, pdf_url,
    merchant_name, merchant_address, total_amount, tax_amount, currency, purchase_date,
    invoice_number, order_number, ocr_provider, ocr_confidence, processing_time_ms,
    analysis_metadata, error_message, created_at, updated_at
"""

_ITEM_INSERT_COLUMNS = (
    "position",
    "detected_name",
    "quantity",
    "confidence",
    "unit_price",
    "total_price",
    "product_code",
    "category",
    "discount",
    "product_id",
    "validated",
    "suspicious",
    "match_status",
    "match_score",
    "match_type",
)

UPDATABLE_ITEM_COLUMNS = frozenset(
    {"detected_name", "quantity", "unit_price", "total_price", "product_id", "category", "validated"}
)


class ReceiptRepository:
    """Database operations for the receipts and receipt_items tables."""

    def create(
        self,
        *,
        user_id: str,
        document_type: str,
        storage_key: str,
        image_url: str | None,
        pdf_url: str | None,
    ) -> ReceiptRecord:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    INSERT INTO receipts (user_id, document_type, status, storage_key, image_url, pdf_url)
                    VALUES (%s, %s, 'PROCESSING', %s, %s, %s)
                    RETURNING {_RECEIPT_COLUMNS}
                    """,
                    (user_id, document_type, storage_key, image_url, pdf_url),
                )
                row = cur.fetchone()
            conn.commit()

        if row is None:
            raise RuntimeError("Receipt insert returned no row")
        return ReceiptRecord(**row)

    def find_by_id(self, receipt_id: str) -> ReceiptRecord | None:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"SELECT {_RECEIPT_COLUMNS} FROM receipts WHERE id = %s",
                    (receipt_id,),
                )
                row = cur.fetchone()

        if row is None:
            return None
        return ReceiptRecord(**row)

    def list_for_user(
        self,
        user_id: str,
        *,
        status: str | None = None,
        document_type: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[ReceiptRecord]:
        conditions = [sql.SQL("user_id = %s")]
        params: list[Any] = [user_id]
        if status is not None:
            conditions.append(sql.SQL("status = %s"))
            params.append(status)
        if document_type is not None:
            conditions.append(sql.SQL("document_type = %s"))
            params.append(document_type)
        query = sql.SQL(
            "SELECT {columns} FROM receipts WHERE {where} "
            "ORDER BY created_at DESC LIMIT %s OFFSET %s"
        ).format(
            columns=sql.SQL(_RECEIPT_COLUMNS),
            where=sql.SQL(" AND ").join(conditions),
        )
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(query, (*params, limit, offset))
                rows = cur.fetchall()
        return [ReceiptRecord(**row) for row in rows]

    def count_by_status(self, user_id: str) -> dict[str, int]:
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "SELECT status, COUNT(*) FROM receipts WHERE user_id = %s GROUP BY status",
                    (user_id,),
                )
                rows = cur.fetchall()
        return {status: int(count) for status, count in rows}

    def update_status(
        self,
        receipt_id: str,
        status: str,
        *,
        allowed_from: Collection[str],
        error_message: str | None = None,
    ) -> bool:
        """Move a receipt to ``status`` if it is currently in one of ``allowed_from``."""
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE receipts
                    SET status = %s, error_message = %s, updated_at = NOW()
                    WHERE id = %s AND status = ANY(%s)
                    """,
                    (status, error_message, receipt_id, list(allowed_from)),
                )
                updated = cur.rowcount > 0
            conn.commit()
        return updated

    def record_error(self, receipt_id: str, error_message: str) -> None:
        """Store the latest processing error without changing the status."""
        with get_connection() as conn:
            conn.execute(
                "UPDATE receipts SET error_message = %s, updated_at = NOW() WHERE id = %s",
                (error_message, receipt_id),
            )
            conn.commit()

    def save_results(
        self,
        receipt_id: str,
        extraction: ReceiptExtraction,
        items: list[NewReceiptItem],
    ) -> None:
        """Write receipt fields and replace its items in one transaction."""
        with transaction() as conn:
            conn.execute(
                """
                UPDATE receipts
                SET merchant_name = %s, merchant_address = %s, total_amount = %s,
                    tax_amount = %s, currency = %s, purchase_date = %s,
                    invoice_number = %s, order_number = %s, ocr_provider = %s,
                    ocr_confidence = %s, processing_time_ms = %s, raw_ocr_data = %s,
                    analysis_metadata = %s, error_message = NULL, updated_at = NOW()
                WHERE id = %s
                """,
                (
                    extraction.merchant_name,
                    extraction.merchant_address,
                    extraction.total_amount,
                    extraction.tax_amount,
                    extraction.currency,
                    extraction.purchase_date,
                    extraction.invoice_number,
                    extraction.order_number,
                    extraction.ocr_provider,
                    extraction.ocr_confidence,
                    extraction.processing_time_ms,
                    _jsonb_or_none(extraction.raw_ocr_data),
                    _jsonb_or_none(extraction.analysis_metadata),
                    receipt_id,
                ),
            )
            conn.execute("DELETE FROM receipt_items WHERE receipt_id = %s", (receipt_id,))
            if items:
                insert = sql.SQL("INSERT INTO receipt_items (receipt_id, {columns}) VALUES (%s, {values})").format(
                    columns=sql.SQL(", ").join(map(sql.Identifier, _ITEM_INSERT_COLUMNS)),
                    values=sql.SQL(", ").join(sql.Placeholder() * len(_ITEM_INSERT_COLUMNS)),
                )
                with conn.cursor() as cur:
                    cur.executemany(
                        insert,
                        [
                            (receipt_id, *(asdict(item)[c] for c in _ITEM_INSERT_COLUMNS))
                            for item in items
                        ],
                    )

    def find_items(self, receipt_id: str) -> list[ReceiptItemRecord]:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    SELECT i.id, i.receipt_id, i.position, i.detected_name, i.quantity,
                           i.confidence, i.validated, i.suspicious, i.product_id,
                           i.unit_price, i.total_price, i.product_code, i.category,
                           i.discount, i.match_status, i.match_score, i.match_type,
                           p.name AS product_name, p.brand AS product_brand,
                           p.image_url AS product_image_url
                    FROM receipt_items i
                    LEFT JOIN products p ON p.id = i.product_id
                    WHERE i.receipt_id = %s
                    ORDER BY i.position
                    """,
                    (receipt_id,),
                )
                rows = cur.fetchall()
        return [ReceiptItemRecord(**row) for row in rows]

    def update_item(
        self, receipt_id: str, item_id: str, changes: dict[str, Any]
    ) -> bool:
        """Apply column changes to one item of a receipt. Returns False if the item is not there."""
        unknown = set(changes) - UPDATABLE_ITEM_COLUMNS
        if unknown:
            raise ValueError(f"Columns not updatable: {sorted(unknown)}")
        if not changes:
            return True
        assignments = sql.SQL(", ").join(
            sql.SQL("{} = %s").format(sql.Identifier(column)) for column in changes
        )
        query = sql.SQL(
            "UPDATE receipt_items SET {assignments}, updated_at = NOW() "
            "WHERE id = %s AND receipt_id = %s"
        ).format(assignments=assignments)
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(query, (*changes.values(), item_id, receipt_id))
                updated = cur.rowcount > 0
            conn.commit()
        return updated

    def delete(self, receipt_id: str) -> bool:
        """Delete a receipt; its items and job go with it."""
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute("DELETE FROM receipts WHERE id = %s", (receipt_id,))
                deleted = cur.rowcount > 0
            conn.commit()
        return deleted


def _jsonb_or_none(value: dict[str, Any] | None) -> Jsonb | None:
    return Jsonb(value) if value is not None else None
