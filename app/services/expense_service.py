import logging
from datetime import datetime
from typing import List

from beanie import PydanticObjectId, UpdateResponse

from app.core.errors import AccessDenied, ExpenseNotActive, ExpenseNotFound
from app.models.expense import Expense, ExpenseCategory, ExpenseStatus
from app.schemas.expense import ExpenseCreate, ExpenseFilters, ExpenseUpdate

logger = logging.getLogger(__name__)


def expense_categories() -> List[ExpenseCategory]:
    return list(ExpenseCategory)


async def create_expense(
    business_id: PydanticObjectId,
    actor_id: PydanticObjectId,
    data: ExpenseCreate,
) -> Expense:
    expense = Expense(
        business_id=business_id,
        category=data.category,
        amount=data.amount,
        description=data.description,
        date=data.date or datetime.utcnow(),
        created_by=actor_id,
    )
    await expense.insert()
    return expense


async def get_expense(expense_id: PydanticObjectId, business_id: PydanticObjectId) -> Expense:
    expense = await Expense.get(expense_id)
    if expense is None:
        raise ExpenseNotFound(expense_id)
    if expense.business_id != business_id:
        raise AccessDenied("Access denied: expense does not belong to this business")
    return expense


async def list_expenses(business_id: PydanticObjectId, filters: ExpenseFilters) -> List[Expense]:
    query = {"business_id": business_id}

    if filters.category:
        query["category"] = filters.category.value
    if filters.status:
        query["status"] = filters.status.value
    if filters.start_date:
        query["date"] = {"$gte": filters.start_date}
    if filters.end_date:
        query.setdefault("date", {})["$lte"] = filters.end_date

    return await Expense.find(query).sort(-Expense.date, -Expense.id).skip(
        filters.offset
    ).limit(filters.limit).to_list()


async def update_expense(expense: Expense, data: ExpenseUpdate) -> Expense:
    if expense.status != ExpenseStatus.ACTIVE:
        raise ExpenseNotActive(expense.status.value)

    changes = data.model_dump(exclude_unset=True, exclude_none=True)
    if not changes:
        return expense

    changes["updated_at"] = datetime.utcnow()
    updated = await Expense.find_one(
        Expense.id == expense.id,
        Expense.status == ExpenseStatus.ACTIVE,
    ).update({"$set": changes}, response_type=UpdateResponse.NEW_DOCUMENT)
    if updated is None:
        raise ExpenseNotActive(ExpenseStatus.VOIDED.value)
    return updated


async def void_expense(expense: Expense, actor_id: PydanticObjectId) -> Expense:
    """Same policy as sales: voiding an already-voided expense is an error."""
    if expense.status != ExpenseStatus.ACTIVE:
        raise ExpenseNotActive(expense.status.value)

    now = datetime.utcnow()
    voided = await Expense.find_one(
        Expense.id == expense.id,
        Expense.status == ExpenseStatus.ACTIVE,
    ).update(
        {"$set": {
            "status": ExpenseStatus.VOIDED.value,
            "voided_by": actor_id,
            "voided_at": now,
            "updated_at": now,
        }},
        response_type=UpdateResponse.NEW_DOCUMENT,
    )
    if voided is None:
        raise ExpenseNotActive(ExpenseStatus.VOIDED.value)

    logger.info("Expense %s voided by %s", voided.id, actor_id)
    return voided
