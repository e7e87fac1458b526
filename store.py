"""Persistence ports used by the engine and their SQLAlchemy adapters.

The engine only talks to the two ``Protocol`` classes below. Each SQL call
commits on its own; a failure rolls the session back and surfaces as
``StoreError`` without undoing earlier, already committed writes.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Iterable, Optional, Protocol

from sqlalchemy import delete, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from errors import StoreError
from models import Budget, Transaction
from periods import month_anchor


logger = logging.getLogger(__name__)


class TransactionStore(Protocol):
    def insert(self, txn: Transaction) -> int: ...

    def update_parent_link(self, transaction_id: int, parent_id: int) -> None: ...

    def get(self, transaction_id: int) -> Optional[Transaction]: ...

    def fetch_all(self) -> list[Transaction]: ...

    def fetch_visible(self) -> list[Transaction]: ...

    def fetch_by_parent(self, parent_id: int) -> list[Transaction]: ...

    def fetch_recurring_templates(self) -> list[Transaction]: ...

    def delete(self, transaction_id: int) -> None: ...

    def delete_many(self, transaction_ids: Iterable[int]) -> None: ...


class BudgetStore(Protocol):
    def fetch_all(self) -> list[tuple[date, int]]: ...

    def upsert(self, anchor: date, limit_cents: int) -> None: ...

    def delete(self, anchor: date) -> None: ...


class SqlTransactionStore:
    def __init__(self, session: Session) -> None:
        self.session = session

    def _fail(self, action: str, exc: SQLAlchemyError) -> StoreError:
        self.session.rollback()
        logger.error(f"store_error: action={action} error={exc}")
        return StoreError(f"Transaction store failed to {action}")

    def insert(self, txn: Transaction) -> int:
        try:
            self.session.add(txn)
            self.session.commit()
        except SQLAlchemyError as exc:
            raise self._fail("insert", exc) from exc
        return txn.id

    def update_parent_link(self, transaction_id: int, parent_id: int) -> None:
        try:
            result = self.session.execute(
                update(Transaction)
                .where(Transaction.id == transaction_id)
                .values(parent_transaction_id=parent_id)
                .execution_options(synchronize_session="fetch")
            )
            self.session.commit()
        except SQLAlchemyError as exc:
            raise self._fail("update parent link", exc) from exc
        if result.rowcount == 0:
            raise StoreError(f"Transaction {transaction_id} vanished before linking")

    def get(self, transaction_id: int) -> Optional[Transaction]:
        try:
            return self.session.get(Transaction, transaction_id)
        except SQLAlchemyError as exc:
            raise self._fail("get", exc) from exc

    def _scalars(self, stmt, action: str) -> list[Transaction]:
        try:
            return list(self.session.scalars(stmt).all())
        except SQLAlchemyError as exc:
            raise self._fail(action, exc) from exc

    def _ordered(self, stmt):
        return stmt.order_by(Transaction.occurrence_date, Transaction.id)

    def fetch_all(self) -> list[Transaction]:
        return self._scalars(self._ordered(select(Transaction)), "fetch all")

    def fetch_visible(self) -> list[Transaction]:
        stmt = select(Transaction).where(
            or_(
                Transaction.has_installments.is_(False),
                Transaction.amount_cents != 0,
            )
        )
        return self._scalars(self._ordered(stmt), "fetch visible")

    def fetch_by_parent(self, parent_id: int) -> list[Transaction]:
        stmt = select(Transaction).where(
            Transaction.parent_transaction_id == parent_id
        )
        return self._scalars(self._ordered(stmt), "fetch by parent")

    def fetch_recurring_templates(self) -> list[Transaction]:
        stmt = select(Transaction).where(Transaction.is_recurring_template.is_(True))
        return self._scalars(self._ordered(stmt), "fetch recurring templates")

    def delete(self, transaction_id: int) -> None:
        self.delete_many([transaction_id])

    def delete_many(self, transaction_ids: Iterable[int]) -> None:
        ids = list(transaction_ids)
        if not ids:
            return
        try:
            self.session.execute(
                delete(Transaction)
                .where(Transaction.id.in_(ids))
                .execution_options(synchronize_session="fetch")
            )
            self.session.commit()
        except SQLAlchemyError as exc:
            raise self._fail("delete", exc) from exc


class SqlBudgetStore:
    def __init__(self, session: Session) -> None:
        self.session = session

    def _fail(self, action: str, exc: SQLAlchemyError) -> StoreError:
        self.session.rollback()
        logger.error(f"store_error: action=budget_{action} error={exc}")
        return StoreError(f"Budget store failed to {action}")

    def fetch_all(self) -> list[tuple[date, int]]:
        try:
            rows = self.session.execute(
                select(Budget.month_anchor, Budget.limit_cents).order_by(
                    Budget.month_anchor
                )
            ).all()
        except SQLAlchemyError as exc:
            raise self._fail("fetch all", exc) from exc
        return [(row.month_anchor, int(row.limit_cents)) for row in rows]

    def upsert(self, anchor: date, limit_cents: int) -> None:
        anchor = month_anchor(anchor)
        try:
            existing = self.session.scalar(
                select(Budget).where(Budget.month_anchor == anchor)
            )
            if existing:
                existing.limit_cents = limit_cents
            else:
                self.session.add(Budget(month_anchor=anchor, limit_cents=limit_cents))
            self.session.commit()
        except SQLAlchemyError as exc:
            raise self._fail("upsert", exc) from exc

    def delete(self, anchor: date) -> None:
        anchor = month_anchor(anchor)
        try:
            self.session.execute(delete(Budget).where(Budget.month_anchor == anchor))
            self.session.commit()
        except SQLAlchemyError as exc:
            raise self._fail("delete", exc) from exc
