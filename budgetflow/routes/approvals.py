from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from budgetflow.core.exceptions import BudgetFlowError, to_http_exception
from budgetflow.core.security import get_current_user
from budgetflow.database import get_db
from budgetflow.schemas.approval import ApprovalReview
from budgetflow.services.approval_service import ApprovalService
from budgetflow.utils.logger import app_logger

router = APIRouter()


@router.get("/pending")
async def get_pending_approvals(db: AsyncSession = Depends(get_db),
                                current_user: dict = Depends(get_current_user)):
    try:
        data = await ApprovalService.list_pending(db)
        return {"code": 200, "data": data}
    except BudgetFlowError as e:
        raise to_http_exception(e)


@router.get("/budget/{budget_id}")
async def get_budget_approvals(budget_id: int, db: AsyncSession = Depends(get_db),
                               current_user: dict = Depends(get_current_user)):
    try:
        data = await ApprovalService.list_for_budget(db, budget_id)
        return {"code": 200, "data": data}
    except BudgetFlowError as e:
        raise to_http_exception(e)


@router.post("/{approval_id}/review")
async def review_approval(approval_id: int, request: ApprovalReview, db: AsyncSession = Depends(get_db),
                          current_user: dict = Depends(get_current_user)):
    try:
        app_logger.info(f"review_approval {approval_id} {request}")
        data = await ApprovalService.review(db, approval_id, current_user, request.decision, request.comments)
        return {"code": 200, "data": data, "msg": f"Approval {data['status']}"}
    except BudgetFlowError as e:
        app_logger.error(f"review_approval {approval_id} {e.message}")
        raise to_http_exception(e)
