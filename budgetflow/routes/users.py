from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from budgetflow.core.exceptions import BudgetFlowError, to_http_exception
from budgetflow.core.security import get_current_user
from budgetflow.database import get_db
from budgetflow.models.user import UserRole
from budgetflow.services.user_service import UserService
from budgetflow.utils.logger import app_logger
from budgetflow.utils.permissions import require_roles

router = APIRouter()


@router.get("/me")
async def get_me(db: AsyncSession = Depends(get_db), current_user: dict = Depends(get_current_user)):
    try:
        user = await UserService.get_user(db, current_user['user_id'])
        return {"code": 200, "data": UserService.to_dict(user)}
    except BudgetFlowError as e:
        raise to_http_exception(e)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(user_id: str, db: AsyncSession = Depends(get_db),
                      current_user: dict = Depends(require_roles(UserRole.ADMIN))):
    try:
        await UserService.delete_user(db, user_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except BudgetFlowError as e:
        app_logger.error(f"delete_user {user_id} {e.message}")
        raise to_http_exception(e)
