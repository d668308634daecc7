from datetime import datetime

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from budgetflow.core.exceptions import NotFoundError, InvalidStateError, ValidationError
from budgetflow.core.lifecycle import remaining_amount
from budgetflow.models.approval import Approval, ApprovalStatus
from budgetflow.models.budget import Budget
from budgetflow.services.audit_service import AuditService
from budgetflow.services.transaction import unit_of_work
from budgetflow.utils.logger import app_logger
from budgetflow.utils.permissions import ensure_can_review

DECISIONS = (ApprovalStatus.APPROVED, ApprovalStatus.REJECTED, ApprovalStatus.REQUEST_MORE_INFO)


class ApprovalService:
    @staticmethod
    def to_dict(approval: Approval) -> dict:
        budget = approval.budget
        data = {
            "id": approval.id,
            "budget_id": approval.budget_id,
            "status": ApprovalStatus(approval.status).value,
            "level": approval.level.value,
            "comments": approval.comments,
            "created_at": approval.created_at,
            "reviewed_at": approval.reviewed_at,
            "reviewer_id": approval.reviewer_id,
            "reviewer": approval.reviewer.full_name if approval.reviewer is not None else None,
        }
        if budget is not None:
            data["budget"] = {
                "title": budget.title,
                "department": budget.department,
                "total_amount": budget.total_amount,
                "remaining_amount": remaining_amount(budget.total_amount, budget.spent_amount),
                "status": budget.status.value,
                "submitted_by": budget.created_by.full_name if budget.created_by is not None else None,
            }
        return data

    @staticmethod
    async def get_approval_model(db: AsyncSession, approval_id: int) -> Approval:
        approval = await db.get(Approval, approval_id, populate_existing=True)
        if approval is None:
            raise NotFoundError("Approval", approval_id)
        return approval

    @staticmethod
    async def list_pending(db: AsyncSession) -> list:
        result = await db.execute(
            select(Approval)
                .where(Approval.status == ApprovalStatus.PENDING)
                .order_by(Approval.created_at.desc(), Approval.id.desc())
                .execution_options(populate_existing=True)
        )
        approvals = result.unique().scalars().all()
        app_logger.info(f"Fetched {len(approvals)} pending approvals")
        return [ApprovalService.to_dict(a) for a in approvals]

    @staticmethod
    async def list_for_budget(db: AsyncSession, budget_id: int) -> list:
        if await db.get(Budget, budget_id) is None:
            raise NotFoundError("Budget", budget_id)
        result = await db.execute(
            select(Approval)
                .where(Approval.budget_id == budget_id)
                .order_by(Approval.created_at, Approval.id)
                .execution_options(populate_existing=True)
        )
        return [ApprovalService.to_dict(a) for a in result.unique().scalars().all()]

    @staticmethod
    async def latest_pending(db: AsyncSession, budget_id: int):
        """The only actionable approval of a budget: its most recent Pending one"""
        result = await db.execute(
            select(Approval)
                .where(Approval.budget_id == budget_id, Approval.status == ApprovalStatus.PENDING)
                .order_by(Approval.created_at.desc(), Approval.id.desc())
                .limit(1)
        )
        return result.unique().scalar_one_or_none()

    @staticmethod
    async def review(db: AsyncSession, approval_id: int, current_user: dict,
                     decision: ApprovalStatus, comments: str = None) -> dict:
        """
        Record a reviewer decision on a Pending approval

        The budget's own status is left as it is; decisions are tracked on
        the approval record only.

        Raises:
            ValidationError: decision is not Approved, Rejected or RequestMoreInfo
            NotFoundError: approval does not exist
            PermissionDeniedError: reviewer lacks the role for the approval level
            InvalidStateError: approval already decided or superseded by a newer one
        """
        app_logger.info(f"Reviewing approval {approval_id}: {decision} by {current_user['user_id']}")
        async with unit_of_work(db, "review approval"):
            try:
                decision = ApprovalStatus(decision)
            except ValueError:
                raise ValidationError(f"Unknown decision '{decision}'", decision=str(decision))
            if decision not in DECISIONS:
                raise ValidationError("Decision must be Approved, Rejected or RequestMoreInfo",
                                      decision=decision.value)

            approval = await ApprovalService.get_approval_model(db, approval_id)
            ensure_can_review(approval.level, current_user['roles'])

            if approval.status != ApprovalStatus.PENDING:
                raise InvalidStateError(f"Approval {approval_id} is already {approval.status.value}",
                                        current=approval.status.value)

            latest = await ApprovalService.latest_pending(db, approval.budget_id)
            if latest is None or latest.id != approval.id:
                raise InvalidStateError(f"Approval {approval_id} has been superseded by a newer request",
                                        latest_id=latest.id if latest is not None else None)

            reviewed_at = datetime.utcnow()
            result = await db.execute(
                update(Approval)
                    .where(Approval.id == approval_id, Approval.status == ApprovalStatus.PENDING)
                    .values(status=decision,
                            reviewer_id=current_user['user_id'],
                            comments=comments or "",
                            reviewed_at=reviewed_at)
                    .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise InvalidStateError(f"Approval {approval_id} was reviewed by another request")

            AuditService.record(db, current_user['user_id'], "Review", "Approval", approval_id,
                                {"status": ApprovalStatus.PENDING.value},
                                {"status": decision.value, "comments": comments or ""})

        approval = await ApprovalService.get_approval_model(db, approval_id)
        app_logger.info(f"Approval {approval_id} marked {decision.value}")
        return ApprovalService.to_dict(approval)
