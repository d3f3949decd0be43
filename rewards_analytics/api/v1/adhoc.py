"""CRUD and impact endpoints for planned (ad-hoc) expenses"""

from dataclasses import asdict
from datetime import date
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from rewards_analytics.api.v1.schemas import (
    AdhocExpenseCreate,
    AdhocExpenseListResponse,
    AdhocExpenseSchema,
    AdhocExpenseUpdate,
    AdhocImpactResponse,
    SuccessResponse,
)
from rewards_analytics.domain.adhoc import expense_impact, total_planned, upcoming
from rewards_analytics.infrastructure.database.session import get_db
from rewards_analytics.infrastructure.database.repositories import AdhocExpenseRepository

router = APIRouter()


def _not_found(expense_id: str) -> HTTPException:
    return HTTPException(status_code=404, detail=f"Ad-hoc expense {expense_id} not found")


@router.get("/adhoc-expenses", response_model=AdhocExpenseListResponse)
def list_adhoc_expenses(
    user_id: str = Query(..., description="User identifier"),
    db: Session = Depends(get_db),
):
    """
    List planned expenses.

    Returns:
        All expenses, their annualized total and the next five upcoming
    """
    expenses = AdhocExpenseRepository(db).list_for_user(user_id)
    return AdhocExpenseListResponse(
        expenses=[asdict(e) for e in expenses],
        total_planned=total_planned(expenses),
        upcoming=[asdict(e) for e in upcoming(expenses, date.today())],
    )


@router.post("/adhoc-expenses", response_model=AdhocExpenseSchema, status_code=201)
def create_adhoc_expense(request_body: AdhocExpenseCreate, db: Session = Depends(get_db)):
    expense = AdhocExpenseRepository(db).create(
        request_body.user_id, request_body.model_dump(exclude={"user_id"})
    )
    db.commit()
    return AdhocExpenseSchema(**asdict(expense))


@router.put("/adhoc-expenses/{expense_id}", response_model=AdhocExpenseSchema)
def update_adhoc_expense(expense_id: str, request_body: AdhocExpenseUpdate, db: Session = Depends(get_db)):
    """Partial update; fields left out of the body keep their stored values"""
    patch = request_body.model_dump(exclude_unset=True, exclude={"user_id"})
    expense = AdhocExpenseRepository(db).update(request_body.user_id, expense_id, patch)
    if expense is None:
        raise _not_found(expense_id)
    db.commit()
    return AdhocExpenseSchema(**asdict(expense))


@router.delete("/adhoc-expenses/{expense_id}", response_model=SuccessResponse)
def delete_adhoc_expense(
    expense_id: str,
    user_id: str = Query(..., description="User identifier"),
    db: Session = Depends(get_db),
):
    if not AdhocExpenseRepository(db).delete(user_id, expense_id):
        raise _not_found(expense_id)
    db.commit()
    return SuccessResponse()


@router.get("/adhoc-expenses/{expense_id}/impact", response_model=AdhocImpactResponse)
def get_adhoc_impact(
    expense_id: str,
    user_id: str = Query(..., description="User identifier"),
    months: int = Query(12, ge=1, le=24, description="Horizon length in months"),
    db: Session = Depends(get_db),
):
    """Per-month cost of one expense over a horizon starting this month"""
    expense = AdhocExpenseRepository(db).get(user_id, expense_id)
    if expense is None:
        raise _not_found(expense_id)
    return AdhocImpactResponse(**expense_impact(expense, months, date.today()))
