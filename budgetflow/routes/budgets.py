from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from budgetflow.core.exceptions import BudgetFlowError, to_http_exception
from budgetflow.core.security import get_current_user
from budgetflow.database import get_db
from budgetflow.schemas.budget import BudgetCreate, BudgetUpdate, BudgetItemCreate
from budgetflow.services.audit_service import AuditService
from budgetflow.services.budget_service import BudgetService
from budgetflow.utils.logger import app_logger

router = APIRouter()


@router.get("")
async def list_budgets(page: int = Query(1, ge=1), page_size: int = Query(10, ge=1, le=100),
                       db: AsyncSession = Depends(get_db),
                       current_user: dict = Depends(get_current_user)):
    try:
        user_id = current_user['user_id']
        data = await BudgetService.list_budgets(db, user_id, page, page_size)
        total = await BudgetService.count_budgets(db, user_id)
        return {"code": 200, "data": data, "page": page, "page_size": page_size, "total": total}
    except BudgetFlowError as e:
        raise to_http_exception(e)


@router.get("/{budget_id}")
async def get_budget(budget_id: int, db: AsyncSession = Depends(get_db),
                     current_user: dict = Depends(get_current_user)):
    try:
        data = await BudgetService.get_budget(db, budget_id)
        return {"code": 200, "data": data}
    except BudgetFlowError as e:
        raise to_http_exception(e)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_budget(budget: BudgetCreate, db: AsyncSession = Depends(get_db),
                        current_user: dict = Depends(get_current_user)):
    try:
        data = await BudgetService.create_budget(db, budget, current_user['user_id'])
        return {"code": 201, "data": data, "msg": "Success"}
    except BudgetFlowError as e:
        app_logger.error(f"create_budget {e.message}")
        raise to_http_exception(e)


@router.put("/{budget_id}", status_code=status.HTTP_204_NO_CONTENT)
async def update_budget(budget_id: int, budget: BudgetUpdate, db: AsyncSession = Depends(get_db),
                        current_user: dict = Depends(get_current_user)):
    try:
        await BudgetService.update_budget(db, budget_id, budget, current_user)
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except BudgetFlowError as e:
        app_logger.error(f"update_budget {budget_id} {e.message}")
        raise to_http_exception(e)


@router.delete("/{budget_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_budget(budget_id: int, db: AsyncSession = Depends(get_db),
                        current_user: dict = Depends(get_current_user)):
    try:
        await BudgetService.delete_budget(db, budget_id, current_user)
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except BudgetFlowError as e:
        app_logger.error(f"delete_budget {budget_id} {e.message}")
        raise to_http_exception(e)


@router.post("/{budget_id}/submit")
async def submit_budget(budget_id: int, db: AsyncSession = Depends(get_db),
                        current_user: dict = Depends(get_current_user)):
    try:
        data = await BudgetService.submit_budget(db, budget_id, current_user)
        return {"code": 200, "data": data, "msg": "Budget submitted for approval"}
    except BudgetFlowError as e:
        app_logger.error(f"submit_budget {budget_id} {e.message}")
        raise to_http_exception(e)


@router.post("/{budget_id}/items", status_code=status.HTTP_201_CREATED)
async def add_budget_item(budget_id: int, item: BudgetItemCreate, db: AsyncSession = Depends(get_db),
                          current_user: dict = Depends(get_current_user)):
    try:
        data = await BudgetService.add_item(db, budget_id, item, current_user)
        return {"code": 201, "data": data, "msg": "Success"}
    except BudgetFlowError as e:
        raise to_http_exception(e)


@router.delete("/{budget_id}/items/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_budget_item(budget_id: int, item_id: int, db: AsyncSession = Depends(get_db),
                             current_user: dict = Depends(get_current_user)):
    try:
        await BudgetService.remove_item(db, budget_id, item_id, current_user)
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except BudgetFlowError as e:
        raise to_http_exception(e)


@router.get("/{budget_id}/history")
async def get_budget_history(budget_id: int, db: AsyncSession = Depends(get_db),
                             current_user: dict = Depends(get_current_user)):
    try:
        await BudgetService.get_budget_model(db, budget_id)
        data = await AuditService.list_for_entity(db, "Budget", budget_id)
        return {"code": 200, "data": data}
    except BudgetFlowError as e:
        raise to_http_exception(e)
