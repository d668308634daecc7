from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from budgetflow.core.lifecycle import to_decimal
from budgetflow.models.approval import Approval, ApprovalStatus
from budgetflow.models.budget import Budget, BudgetStatus
from budgetflow.models.timesheet import TimesheetEntry
from budgetflow.utils.logger import app_logger


class DashboardService:
    """
    Read-only summary figures; recomputed on every call, nothing cached
    """

    @staticmethod
    async def total_budget(db: AsyncSession, user_id: str) -> Decimal:
        value = await db.scalar(
            select(func.coalesce(func.sum(Budget.total_amount), 0))
                .where(Budget.created_by_id == user_id, Budget.status == BudgetStatus.ACTIVE)
        )
        return to_decimal(value)

    @staticmethod
    async def spent_this_month(db: AsyncSession, user_id: str) -> Decimal:
        # sums spent_amount over the same Active budgets, no calendar filter
        value = await db.scalar(
            select(func.coalesce(func.sum(Budget.spent_amount), 0))
                .where(Budget.created_by_id == user_id, Budget.status == BudgetStatus.ACTIVE)
        )
        return to_decimal(value)

    @staticmethod
    async def pending_approvals(db: AsyncSession) -> int:
        return await db.scalar(
            select(func.count()).select_from(Approval).where(Approval.status == ApprovalStatus.PENDING)
        )

    @staticmethod
    async def active_projects(db: AsyncSession, user_id: str) -> int:
        return await db.scalar(
            select(func.count(func.distinct(TimesheetEntry.project_name)))
                .where(TimesheetEntry.employee_id == user_id)
        )

    @staticmethod
    async def get_stats(db: AsyncSession, user_id: str) -> dict:
        app_logger.info(f"Computing dashboard stats for {user_id}")
        return {
            "total_budget": await DashboardService.total_budget(db, user_id),
            "spent_this_month": await DashboardService.spent_this_month(db, user_id),
            "pending_approvals": await DashboardService.pending_approvals(db),
            "active_projects": await DashboardService.active_projects(db, user_id),
        }

    @staticmethod
    async def department_spending(db: AsyncSession, user_id: str) -> list:
        """Total of the user's Active budgets per department, largest first"""
        result = await db.execute(
            select(Budget.department,
                   func.sum(Budget.total_amount).label('total_amount'),
                   func.sum(Budget.spent_amount).label('spent_amount'))
                .where(Budget.created_by_id == user_id, Budget.status == BudgetStatus.ACTIVE)
                .group_by(Budget.department)
                .order_by(func.sum(Budget.total_amount).desc())
        )
        return [
            {
                "department": row.department,
                "total_amount": to_decimal(row.total_amount),
                "spent_amount": to_decimal(row.spent_amount),
            }
            for row in result.all()
        ]
