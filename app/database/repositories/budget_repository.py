from datetime import datetime
from typing import Any

import psycopg
from psycopg.rows import dict_row

from app.database.models import BudgetRecord


class BudgetRepository:
    """Budget ledger operations. Every method runs on the caller's connection."""

    def find_active_budget(
        self, conn: psycopg.Connection[Any], user_id: str, on: datetime
    ) -> BudgetRecord | None:
        """The active budget whose period contains ``on``."""
        with conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                """
                SELECT id, user_id, amount, period_start, period_end, is_active
                FROM budgets
                WHERE user_id = %s
                  AND is_active
                  AND period_start <= %s
                  AND period_end >= %s
                ORDER BY period_start DESC
                LIMIT 1
                """,
                (user_id, on, on),
            )
            row = cur.fetchone()
        return BudgetRecord(**row) if row else None

    def record_expense(
        self,
        conn: psycopg.Connection[Any],
        *,
        user_id: str,
        budget_id: str,
        amount: float,
        spent_on: datetime,
        source: str,
        category: str,
        receipt_id: str | None = None,
        notes: str | None = None,
    ) -> str:
        with conn.cursor() as cur:
            cur.execute(
                """
                INSERT INTO expenses (user_id, budget_id, amount, date, source, category, receipt_id, notes)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                RETURNING id
                """,
                (user_id, budget_id, amount, spent_on, source, category, receipt_id, notes),
            )
            row = cur.fetchone()
        if row is None:
            raise RuntimeError("Expense insert returned no row")
        return str(row[0])

    def sum_expenses(self, conn: psycopg.Connection[Any], budget_id: str) -> float:
        with conn.cursor() as cur:
            cur.execute(
                "SELECT COALESCE(SUM(amount), 0) FROM expenses WHERE budget_id = %s",
                (budget_id,),
            )
            row = cur.fetchone()
        return float(row[0]) if row else 0.0
