from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from budgetflow.core.exceptions import BudgetFlowError, to_http_exception
from budgetflow.core.security import get_current_user
from budgetflow.database import get_db
from budgetflow.services.dashboard_service import DashboardService

router = APIRouter()


@router.get("/stats")
async def get_dashboard_stats(db: AsyncSession = Depends(get_db),
                              current_user: dict = Depends(get_current_user)):
    try:
        data = await DashboardService.get_stats(db, current_user['user_id'])
        return {"code": 200, "data": data}
    except BudgetFlowError as e:
        raise to_http_exception(e)


@router.get("/department_spending")
async def get_department_spending(db: AsyncSession = Depends(get_db),
                                  current_user: dict = Depends(get_current_user)):
    try:
        data = await DashboardService.department_spending(db, current_user['user_id'])
        return {"code": 200, "data": data}
    except BudgetFlowError as e:
        raise to_http_exception(e)
