from fastapi import APIRouter, Depends, Query, status
from typing import List, Optional
from datetime import datetime
from beanie import PydanticObjectId

from app.dependencies.auth import get_current_active_user
from app.dependencies.business import get_business
from app.models.business import Business
from app.models.expense import ExpenseCategory, ExpenseStatus
from app.models.user import User
from app.schemas.expense import ExpenseCreate, ExpenseFilters, ExpenseResponse, ExpenseUpdate
from app.services import expense_service

router = APIRouter()


@router.post("", response_model=ExpenseResponse, status_code=status.HTTP_201_CREATED)
async def create_expense(
    expense_data: ExpenseCreate,
    business: Business = Depends(get_business),
    current_user: User = Depends(get_current_active_user)
):
    return await expense_service.create_expense(business.id, current_user.id, expense_data)


@router.get("", response_model=List[ExpenseResponse])
async def list_expenses(
    category: Optional[ExpenseCategory] = None,
    expense_status: Optional[ExpenseStatus] = Query(default=None, alias="status"),
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    business: Business = Depends(get_business)
):
    filters = ExpenseFilters(
        category=category,
        status=expense_status,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
        offset=offset,
    )
    return await expense_service.list_expenses(business.id, filters)


@router.get("/categories", response_model=List[ExpenseCategory])
async def list_expense_categories(business: Business = Depends(get_business)):
    return expense_service.expense_categories()


@router.get("/{expense_id}", response_model=ExpenseResponse)
async def get_expense(expense_id: PydanticObjectId, business: Business = Depends(get_business)):
    return await expense_service.get_expense(expense_id, business.id)


@router.patch("/{expense_id}", response_model=ExpenseResponse)
async def update_expense(
    expense_id: PydanticObjectId,
    update_data: ExpenseUpdate,
    business: Business = Depends(get_business)
):
    expense = await expense_service.get_expense(expense_id, business.id)
    return await expense_service.update_expense(expense, update_data)


@router.delete("/{expense_id}", response_model=ExpenseResponse)
async def void_expense(
    expense_id: PydanticObjectId,
    business: Business = Depends(get_business),
    current_user: User = Depends(get_current_active_user)
):
    """Void an expense. Voiding twice returns 409."""
    expense = await expense_service.get_expense(expense_id, business.id)
    return await expense_service.void_expense(expense, current_user.id)
