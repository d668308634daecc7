from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from budgetflow.core.exceptions import BudgetFlowError, to_http_exception
from budgetflow.core.security import get_current_user
from budgetflow.database import get_db
from budgetflow.models.user import UserRole
from budgetflow.schemas.timesheet import TimesheetCreate, TimesheetUpdate, TimesheetReview
from budgetflow.services.timesheet_service import TimesheetService
from budgetflow.utils.logger import app_logger
from budgetflow.utils.permissions import require_roles

router = APIRouter()


@router.get("")
async def list_timesheets(db: AsyncSession = Depends(get_db),
                          current_user: dict = Depends(get_current_user)):
    try:
        data = await TimesheetService.list_entries(db, current_user['user_id'])
        return {"code": 200, "data": data}
    except BudgetFlowError as e:
        raise to_http_exception(e)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_timesheet(entry: TimesheetCreate, db: AsyncSession = Depends(get_db),
                           current_user: dict = Depends(get_current_user)):
    try:
        data = await TimesheetService.create_entry(db, entry, current_user['user_id'])
        return {"code": 201, "data": data, "msg": "Success"}
    except BudgetFlowError as e:
        app_logger.error(f"create_timesheet {e.message}")
        raise to_http_exception(e)


@router.put("/{entry_id}")
async def update_timesheet(entry_id: int, entry: TimesheetUpdate, db: AsyncSession = Depends(get_db),
                           current_user: dict = Depends(get_current_user)):
    try:
        data = await TimesheetService.update_entry(db, entry_id, entry, current_user)
        return {"code": 200, "data": data, "msg": "Success"}
    except BudgetFlowError as e:
        raise to_http_exception(e)


@router.delete("/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_timesheet(entry_id: int, db: AsyncSession = Depends(get_db),
                           current_user: dict = Depends(get_current_user)):
    try:
        await TimesheetService.delete_entry(db, entry_id, current_user)
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except BudgetFlowError as e:
        raise to_http_exception(e)


@router.post("/{entry_id}/submit")
async def submit_timesheet(entry_id: int, db: AsyncSession = Depends(get_db),
                           current_user: dict = Depends(get_current_user)):
    try:
        data = await TimesheetService.submit_entry(db, entry_id, current_user)
        return {"code": 200, "data": data, "msg": "Timesheet submitted"}
    except BudgetFlowError as e:
        raise to_http_exception(e)


@router.post("/{entry_id}/review")
async def review_timesheet(entry_id: int, request: TimesheetReview, db: AsyncSession = Depends(get_db),
                           current_user: dict = Depends(require_roles(UserRole.MANAGER, UserRole.ADMIN))):
    try:
        data = await TimesheetService.review_entry(db, entry_id, request.decision, current_user)
        return {"code": 200, "data": data, "msg": f"Timesheet {data['status']}"}
    except BudgetFlowError as e:
        raise to_http_exception(e)
