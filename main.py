import logging
from datetime import date
from typing import List, NoReturn, Optional

from fastapi import Depends, FastAPI, HTTPException, Query
from sqlalchemy.orm import Session

from database import SessionLocal
from errors import (
    LedgerError,
    NotARecurringTransaction,
    StoreError,
    TransactionNotFound,
)
from notifier import BestEffortNotifier, LoggingNotifier
from periods import parse_month
from scheduler import SchedulerManager
from schemas import (
    BudgetIn,
    BudgetOut,
    DailyProjectionOut,
    DeletedOut,
    DeleteSeriesIn,
    InstallmentTransactionIn,
    MonthProjectionOut,
    TransactionIn,
    TransactionOut,
)
from services import BudgetService, LedgerService
from store import SqlBudgetStore


logger = logging.getLogger(__name__)

app = FastAPI(title="Series Ledger")

notifier = BestEffortNotifier(LoggingNotifier())


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_ledger(db: Session = Depends(get_db)) -> LedgerService:
    return LedgerService.for_session(db, notifier=notifier)


def get_budgets(db: Session = Depends(get_db)) -> BudgetService:
    return BudgetService(SqlBudgetStore(db))


scheduler_manager = SchedulerManager(notifier=notifier)


@app.on_event("startup")
def startup_event():
    scheduler_manager.start()


@app.on_event("shutdown")
def shutdown_event():
    scheduler_manager.stop()


def raise_http(exc: Exception) -> NoReturn:
    if isinstance(exc, TransactionNotFound):
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    if isinstance(exc, NotARecurringTransaction):
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    if isinstance(exc, StoreError):
        logger.error(f"api_store_error: error={exc}")
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    raise HTTPException(status_code=400, detail=str(exc)) from exc


def month_from_path(value: str) -> date:
    try:
        return parse_month(value)
    except ValueError as exc:
        raise HTTPException(
            status_code=400, detail="Month must look like YYYY-MM"
        ) from exc


@app.post("/api/transactions", status_code=201, response_model=TransactionOut)
def create_transaction(data: TransactionIn, ledger: LedgerService = Depends(get_ledger)):
    try:
        return ledger.create_simple_transaction(data)
    except (LedgerError, StoreError) as exc:
        raise_http(exc)


@app.post(
    "/api/transactions/recurring", status_code=201, response_model=TransactionOut
)
def create_recurring_transaction(
    data: TransactionIn,
    today: Optional[date] = None,
    ledger: LedgerService = Depends(get_ledger),
):
    try:
        return ledger.create_recurring_transaction(data, today=today)
    except (LedgerError, StoreError) as exc:
        raise_http(exc)


@app.post(
    "/api/transactions/installments", status_code=201, response_model=TransactionOut
)
def create_installment_transaction(
    data: InstallmentTransactionIn, ledger: LedgerService = Depends(get_ledger)
):
    try:
        return ledger.create_installment_transaction(data)
    except (LedgerError, StoreError) as exc:
        raise_http(exc)


@app.get("/api/transactions", response_model=List[TransactionOut])
def list_transactions(
    month: Optional[str] = None, ledger: LedgerService = Depends(get_ledger)
):
    anchor = month_from_path(month) if month else None
    try:
        return ledger.list_transactions(anchor)
    except StoreError as exc:
        raise_http(exc)


@app.get("/api/transactions/{transaction_id}/role")
def transaction_role(transaction_id: int, ledger: LedgerService = Depends(get_ledger)):
    try:
        role = ledger.classify(transaction_id)
    except (LedgerError, StoreError) as exc:
        raise_http(exc)
    return {"kind": role.kind.value, "series_id": role.series_id}


@app.delete("/api/transactions/{transaction_id}", response_model=DeletedOut)
def delete_transaction(
    transaction_id: int, ledger: LedgerService = Depends(get_ledger)
):
    try:
        deleted = ledger.delete_simple(transaction_id)
    except (LedgerError, StoreError) as exc:
        raise_http(exc)
    return DeletedOut(deleted_ids=deleted)


@app.post(
    "/api/transactions/{transaction_id}/delete-series", response_model=DeletedOut
)
def delete_series(
    transaction_id: int,
    data: DeleteSeriesIn,
    ledger: LedgerService = Depends(get_ledger),
):
    try:
        deleted = ledger.delete_series(
            transaction_id, data.cleanup_option, data.selected_date
        )
    except (LedgerError, StoreError) as exc:
        raise_http(exc)
    return DeletedOut(deleted_ids=deleted)


@app.get("/api/projection/months", response_model=List[MonthProjectionOut])
def projection_months(
    months: Optional[List[str]] = Query(default=None),
    today: Optional[date] = None,
    ledger: LedgerService = Depends(get_ledger),
):
    anchors = [month_from_path(m) for m in months] if months else None
    try:
        if anchors:
            projections = ledger.project_months(anchors, today)
        else:
            projections = ledger.month_list(today)
    except StoreError as exc:
        raise_http(exc)
    return [MonthProjectionOut.model_validate(p) for p in projections]


@app.get("/api/projection/daily", response_model=DailyProjectionOut)
def projection_daily(
    month: str,
    today: Optional[date] = None,
    ledger: LedgerService = Depends(get_ledger),
):
    anchor = month_from_path(month)
    try:
        return ledger.project_daily_balance(anchor, today)
    except StoreError as exc:
        raise_http(exc)


@app.get("/api/budgets", response_model=List[BudgetOut])
def list_budgets(budgets: BudgetService = Depends(get_budgets)):
    return [
        BudgetOut(month=anchor.strftime("%Y-%m"), limit_cents=limit)
        for anchor, limit in budgets.list()
    ]


@app.put("/api/budgets/{month}", response_model=BudgetOut)
def upsert_budget(
    month: str, data: BudgetIn, budgets: BudgetService = Depends(get_budgets)
):
    anchor = month_from_path(month)
    try:
        budgets.upsert(anchor, data.limit_cents)
    except (ValueError, StoreError) as exc:
        raise_http(exc)
    return BudgetOut(month=anchor.strftime("%Y-%m"), limit_cents=data.limit_cents)


@app.delete("/api/budgets/{month}", status_code=204)
def delete_budget(month: str, budgets: BudgetService = Depends(get_budgets)):
    anchor = month_from_path(month)
    try:
        budgets.delete(anchor)
    except StoreError as exc:
        raise_http(exc)


def main():
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=False)


if __name__ == "__main__":
    main()
