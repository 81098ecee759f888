from datetime import date, datetime
from typing import Any

import psycopg


class InventoryRepository:
    """Writes inventory rows. Runs on the caller's connection so commits stay atomic."""

    def create_item(
        self,
        conn: psycopg.Connection[Any],
        *,
        user_id: str,
        product_id: str,
        quantity: float,
        purchase_date: datetime,
        purchase_price: float | None,
        expiry_date: date | None = None,
        storage_location: str | None = None,
        notes: str | None = None,
    ) -> str:
        with conn.cursor() as cur:
            cur.execute(
                """
                INSERT INTO inventory_items
                    (user_id, product_id, quantity, purchase_date, purchase_price,
                     expiry_date, storage_location, notes)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                RETURNING id
                """,
                (
                    user_id,
                    product_id,
                    quantity,
                    purchase_date,
                    purchase_price,
                    expiry_date,
                    storage_location,
                    notes,
                ),
            )
            row = cur.fetchone()
        if row is None:
            raise RuntimeError("Inventory insert returned no row")
        return str(row[0])
