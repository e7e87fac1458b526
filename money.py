from typing import Iterable

from models import Transaction, TransactionType


def split_installments(total_cents: int, count: int) -> list[int]:
    """Split ``total_cents`` into ``count`` integer installments.

    Every installment gets ``total // count``; the whole remainder goes on the
    first one, so the parts always add back up to the total.
    """
    if count < 1:
        raise ValueError("Installment count must be positive")
    base, remainder = divmod(total_cents, count)
    return [base + remainder] + [base] * (count - 1)


def signed_cents(txn_type: TransactionType, amount_cents: int) -> int:
    if txn_type == TransactionType.income:
        return amount_cents
    return -amount_cents


def net_cents(transactions: Iterable[Transaction]) -> int:
    return sum(signed_cents(t.type, t.amount_cents) for t in transactions)


def totals(transactions: Iterable[Transaction]) -> tuple[int, int]:
    """Return ``(income_cents, expense_cents)``."""
    income = 0
    expenses = 0
    for txn in transactions:
        if txn.type == TransactionType.income:
            income += txn.amount_cents
        else:
            expenses += txn.amount_cents
    return income, expenses
