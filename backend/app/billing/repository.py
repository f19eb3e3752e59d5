"""Persistence layer for accounts and the payment transaction ledger."""
from __future__ import annotations

from contextlib import contextmanager
from decimal import Decimal
from typing import Iterator, List, Optional

import psycopg2.extras
from psycopg2.extensions import connection as PgConnection
from psycopg2.extensions import cursor as PgCursor

from ..entitlements.models import Account, Currency, PlanKey
from ...app_context import get_conn
from .models import PaymentTransaction, TransactionStatus


@contextmanager
def managed_connection(conn: Optional[PgConnection] = None):
    """Context manager that manages transaction boundaries for optional connections."""

    if conn is not None:
        yield conn, False
        return

    connection = get_conn()
    try:
        yield connection, True
        connection.commit()
    except Exception:
        connection.rollback()
        raise
    finally:
        connection.close()


def _row_to_account(row: dict) -> Account:
    return Account(
        user_id=str(row["id"]),
        credits=int(row.get("credits") or 0),
        subscription_expiry=row.get("subscription_expiry"),
        is_subscribed=bool(row.get("is_subscribed")),
    )


def _row_to_transaction(row: dict) -> PaymentTransaction:
    return PaymentTransaction(
        user_id=str(row["user_id"]),
        payment_id=row["payment_id"],
        order_id=row["order_id"],
        plan_id=PlanKey(row["plan_id"]),
        amount=Decimal(str(row["amount"])),
        currency=Currency(row["currency"]),
        status=TransactionStatus(row["status"]),
        created_at=row["created_at"],
    )


class PostgresLedgerRepository:
    """Accounts live in ``profiles``; settled payments in ``payment_transactions``."""

    def __init__(self, *, conn: Optional[PgConnection] = None) -> None:
        self._conn = conn

    @contextmanager
    def _cursor(self) -> Iterator[PgCursor]:
        with managed_connection(self._conn) as (connection, managed):
            cursor = connection.cursor(cursor_factory=psycopg2.extras.RealDictCursor)
            try:
                yield cursor
                if managed:
                    connection.commit()
            except Exception:
                if managed:
                    connection.rollback()
                raise
            finally:
                cursor.close()

    @contextmanager
    def atomic(self) -> Iterator["PostgresLedgerRepository"]:
        """Yield a repository whose statements share one database transaction."""

        if self._conn is not None:
            # The caller owns the transaction; scope this unit of work to a savepoint.
            self._execute("SAVEPOINT ledger_atomic")
            try:
                yield self
            except Exception:
                self._execute("ROLLBACK TO SAVEPOINT ledger_atomic")
                raise
            self._execute("RELEASE SAVEPOINT ledger_atomic")
            return
        with managed_connection() as (connection, _):
            yield PostgresLedgerRepository(conn=connection)

    def _execute(self, statement: str) -> None:
        with self._cursor() as cursor:
            cursor.execute(statement)

    def get_account(self, user_id: str) -> Optional[Account]:
        with self._cursor() as cursor:
            cursor.execute(
                """
                SELECT id, credits, subscription_expiry, is_subscribed
                FROM profiles
                WHERE id = %s
                LIMIT 1
                """,
                (user_id,),
            )
            row = cursor.fetchone()
            return _row_to_account(row) if row else None

    def update_account(self, *, expected: Account, updated: Account) -> bool:
        """Write ``updated`` only if the row still matches ``expected``."""

        with self._cursor() as cursor:
            cursor.execute(
                """
                UPDATE profiles
                SET credits = %(credits)s,
                    subscription_expiry = %(subscription_expiry)s,
                    is_subscribed = %(is_subscribed)s
                WHERE id = %(user_id)s
                  AND COALESCE(credits, 0) = %(expected_credits)s
                  AND subscription_expiry IS NOT DISTINCT FROM %(expected_expiry)s
                """,
                {
                    "user_id": expected.user_id,
                    "credits": updated.credits,
                    "subscription_expiry": updated.subscription_expiry,
                    "is_subscribed": updated.is_subscribed,
                    "expected_credits": expected.credits,
                    "expected_expiry": expected.subscription_expiry,
                },
            )
            return cursor.rowcount == 1

    def get_transaction(self, payment_id: str) -> Optional[PaymentTransaction]:
        with self._cursor() as cursor:
            cursor.execute(
                """
                SELECT *
                FROM payment_transactions
                WHERE payment_id = %s
                LIMIT 1
                """,
                (payment_id,),
            )
            row = cursor.fetchone()
            return _row_to_transaction(row) if row else None

    def insert_transaction_if_absent(self, transaction: PaymentTransaction) -> bool:
        with self._cursor() as cursor:
            cursor.execute(
                """
                INSERT INTO payment_transactions (
                    user_id,
                    payment_id,
                    order_id,
                    plan_id,
                    amount,
                    currency,
                    status,
                    created_at
                )
                VALUES (%(user_id)s, %(payment_id)s, %(order_id)s, %(plan_id)s,
                        %(amount)s, %(currency)s, %(status)s, %(created_at)s)
                ON CONFLICT (payment_id) DO NOTHING
                """,
                {
                    "user_id": transaction.user_id,
                    "payment_id": transaction.payment_id,
                    "order_id": transaction.order_id,
                    "plan_id": transaction.plan_id.value,
                    "amount": transaction.amount,
                    "currency": transaction.currency.value,
                    "status": transaction.status.value,
                    "created_at": transaction.created_at,
                },
            )
            return cursor.rowcount > 0

    def list_transactions(self, user_id: str, *, limit: int = 20) -> List[PaymentTransaction]:
        with self._cursor() as cursor:
            cursor.execute(
                """
                SELECT *
                FROM payment_transactions
                WHERE user_id = %s
                ORDER BY created_at DESC
                LIMIT %s
                """,
                (user_id, limit),
            )
            rows = cursor.fetchall() or []
            return [_row_to_transaction(row) for row in rows]


__all__ = ["PostgresLedgerRepository", "managed_connection"]
