from datetime import datetime

from sqlalchemy import update, delete, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from budgetflow.core.exceptions import NotFoundError, InvalidStateError
from budgetflow.core.lifecycle import (
    remaining_amount, validate_budget_fields, validate_amount, validate_item_amount,
    ensure_editable, ensure_transition,
)
from budgetflow.models.approval import Approval, ApprovalLevel, ApprovalStatus
from budgetflow.models.budget import Budget, BudgetItem, BudgetStatus
from budgetflow.schemas.budget import BudgetCreate, BudgetUpdate, BudgetItemCreate
from budgetflow.services.audit_service import AuditService
from budgetflow.services.transaction import unit_of_work
from budgetflow.utils.logger import app_logger
from budgetflow.utils.permissions import ensure_owner_or_admin


def _item_to_dict(item: BudgetItem) -> dict:
    return {
        "id": item.id,
        "category": item.category,
        "description": item.description,
        "amount": item.amount,
        "spent_amount": item.spent_amount,
        "cost_center": item.cost_center,
    }


def _audit_fields(budget: Budget) -> dict:
    return {
        "title": budget.title,
        "description": budget.description,
        "department": budget.department,
        "total_amount": budget.total_amount,
        "status": BudgetStatus(budget.status).value,
    }


class BudgetService:
    @staticmethod
    def to_dict(budget: Budget, include_items: bool = True) -> dict:
        """
        Response shape for a budget; remaining_amount is computed here and never read from the store
        """
        data = {
            "id": budget.id,
            "title": budget.title,
            "description": budget.description,
            "department": budget.department,
            "total_amount": budget.total_amount,
            "spent_amount": budget.spent_amount,
            "remaining_amount": remaining_amount(budget.total_amount, budget.spent_amount),
            "status": BudgetStatus(budget.status).value,
            "period": budget.period.value if budget.period is not None else None,
            "start_date": budget.start_date,
            "end_date": budget.end_date,
            "created_at": budget.created_at,
            "updated_at": budget.updated_at,
            "created_by_id": budget.created_by_id,
            "created_by": budget.created_by.full_name if budget.created_by is not None else None,
            "item_count": len(budget.items),
        }
        if include_items:
            data["items"] = [_item_to_dict(item) for item in budget.items]
        return data

    @staticmethod
    async def get_budget_model(db: AsyncSession, budget_id: int) -> Budget:
        # always re-read: bulk UPDATE statements do not refresh loaded instances
        budget = await db.get(Budget, budget_id, populate_existing=True)
        if budget is None:
            raise NotFoundError("Budget", budget_id)
        return budget

    @staticmethod
    async def get_budget(db: AsyncSession, budget_id: int) -> dict:
        budget = await BudgetService.get_budget_model(db, budget_id)
        return BudgetService.to_dict(budget)

    @staticmethod
    async def list_budgets(db: AsyncSession, owner_id: str, page: int = 1, page_size: int = 10) -> list:
        app_logger.info(f"Listing budgets for {owner_id}, page {page}, page_size {page_size}")
        page = max(page, 1)
        result = await db.execute(
            select(Budget)
                .where(Budget.created_by_id == owner_id)
                .order_by(Budget.created_at.desc(), Budget.id.desc())
                .offset((page - 1) * page_size)
                .limit(page_size)
                .execution_options(populate_existing=True)
        )
        budgets = result.unique().scalars().all()
        return [BudgetService.to_dict(b, include_items=False) for b in budgets]

    @staticmethod
    async def count_budgets(db: AsyncSession, owner_id: str) -> int:
        return await db.scalar(
            select(func.count()).select_from(Budget).where(Budget.created_by_id == owner_id)
        )

    @staticmethod
    async def create_budget(db: AsyncSession, data: BudgetCreate, owner_id: str) -> dict:
        """
        Create a Draft budget owned by owner_id, with its optional items

        Raises:
            ValidationError: total <= 0, end_date <= start_date or unknown period
        """
        app_logger.info(f"Creating budget '{data.title}' for {owner_id}")
        async with unit_of_work(db, "create budget"):
            amount, period = validate_budget_fields(data.total_amount, data.start_date, data.end_date,
                                                    data.period)
            items = [
                BudgetItem(
                    category=item.category,
                    description=item.description,
                    amount=validate_item_amount(item.amount),
                    cost_center=item.cost_center,
                )
                for item in data.items
            ]

            budget = Budget(
                title=data.title,
                description=data.description,
                department=data.department,
                total_amount=amount,
                spent_amount=0,
                status=BudgetStatus.DRAFT,
                period=period,
                start_date=data.start_date,
                end_date=data.end_date,
                created_by_id=owner_id,
                items=items,
            )
            db.add(budget)
            await db.flush()
            AuditService.record(db, owner_id, "Create", "Budget", budget.id, None, _audit_fields(budget))

        app_logger.info(f"Budget {budget.id} created with {len(items)} item(s)")
        return await BudgetService.get_budget(db, budget.id)

    @staticmethod
    async def update_budget(db: AsyncSession, budget_id: int, data: BudgetUpdate, current_user: dict):
        """
        Overwrite the editable fields of a Draft budget

        Raises:
            NotFoundError, PermissionDeniedError, ValidationError,
            InvalidStateError: the budget has left Draft
        """
        app_logger.info(f"Updating budget {budget_id}")
        async with unit_of_work(db, "update budget"):
            budget = await BudgetService.get_budget_model(db, budget_id)
            ensure_owner_or_admin(budget.created_by_id, current_user['user_id'], current_user['roles'])
            ensure_editable(budget.status)
            amount = validate_amount(data.total_amount)
            before = _audit_fields(budget)

            # status is re-checked inside the statement in case another request moved it
            result = await db.execute(
                update(Budget)
                    .where(Budget.id == budget_id, Budget.status == BudgetStatus.DRAFT)
                    .values(title=data.title,
                            description=data.description,
                            department=data.department,
                            total_amount=amount,
                            updated_at=datetime.utcnow())
                    .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise InvalidStateError("Budget is no longer in Draft", budget_id=budget_id)

            AuditService.record(db, current_user['user_id'], "Update", "Budget", budget_id,
                                before, {**before, "title": data.title, "description": data.description,
                                         "department": data.department, "total_amount": amount})

    @staticmethod
    async def delete_budget(db: AsyncSession, budget_id: int, current_user: dict):
        """
        Delete a Draft budget; its items and approvals go with it, timesheet entries keep their rows with budget_id cleared
        """
        app_logger.info(f"Deleting budget {budget_id}")
        async with unit_of_work(db, "delete budget"):
            budget = await BudgetService.get_budget_model(db, budget_id)
            ensure_owner_or_admin(budget.created_by_id, current_user['user_id'], current_user['roles'])
            ensure_editable(budget.status)
            before = _audit_fields(budget)

            result = await db.execute(
                delete(Budget)
                    .where(Budget.id == budget_id, Budget.status == BudgetStatus.DRAFT)
                    .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise InvalidStateError("Budget is no longer in Draft", budget_id=budget_id)

            AuditService.record(db, current_user['user_id'], "Delete", "Budget", budget_id, before, None)

        db.expunge_all()

    @staticmethod
    async def submit_budget(db: AsyncSession, budget_id: int, current_user: dict) -> dict:
        """
        Draft -> Submitted, opening exactly one Manager-level Pending approval

        The status change and the approval row commit together. The
        conditional UPDATE only matches a Draft row, so of two concurrent
        submits exactly one succeeds.
        """
        app_logger.info(f"Submitting budget {budget_id}")
        async with unit_of_work(db, "submit budget"):
            budget = await BudgetService.get_budget_model(db, budget_id)
            ensure_owner_or_admin(budget.created_by_id, current_user['user_id'], current_user['roles'],
                                  action="submit")
            ensure_transition(budget.status, BudgetStatus.SUBMITTED)

            result = await db.execute(
                update(Budget)
                    .where(Budget.id == budget_id, Budget.status == BudgetStatus.DRAFT)
                    .values(status=BudgetStatus.SUBMITTED, updated_at=datetime.utcnow())
                    .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise InvalidStateError("Budget was submitted by another request", budget_id=budget_id)

            approval = Approval(
                budget_id=budget_id,
                level=ApprovalLevel.MANAGER,
                status=ApprovalStatus.PENDING,
            )
            db.add(approval)
            await db.flush()

            AuditService.record(db, current_user['user_id'], "Submit", "Budget", budget_id,
                                {"status": BudgetStatus.DRAFT.value},
                                {"status": BudgetStatus.SUBMITTED.value, "approval_id": approval.id})

        app_logger.info(f"Budget {budget_id} submitted, approval {approval.id} opened")
        return {
            "budget_id": budget_id,
            "status": BudgetStatus.SUBMITTED.value,
            "approval_id": approval.id,
            "approval_level": ApprovalLevel.MANAGER.value,
        }

    @staticmethod
    async def add_item(db: AsyncSession, budget_id: int, data: BudgetItemCreate, current_user: dict) -> dict:
        app_logger.info(f"Adding item '{data.category}' to budget {budget_id}")
        async with unit_of_work(db, "add budget item"):
            budget = await BudgetService.get_budget_model(db, budget_id)
            ensure_owner_or_admin(budget.created_by_id, current_user['user_id'], current_user['roles'])
            ensure_editable(budget.status)

            item = BudgetItem(
                budget_id=budget_id,
                category=data.category,
                description=data.description,
                amount=validate_item_amount(data.amount),
                cost_center=data.cost_center,
            )
            db.add(item)
            await db.flush()
            AuditService.record(db, current_user['user_id'], "AddItem", "Budget", budget_id,
                                None, _item_to_dict(item))

        return _item_to_dict(item)

    @staticmethod
    async def remove_item(db: AsyncSession, budget_id: int, item_id: int, current_user: dict):
        app_logger.info(f"Removing item {item_id} from budget {budget_id}")
        async with unit_of_work(db, "remove budget item"):
            budget = await BudgetService.get_budget_model(db, budget_id)
            ensure_owner_or_admin(budget.created_by_id, current_user['user_id'], current_user['roles'])
            ensure_editable(budget.status)

            item = await db.get(BudgetItem, item_id)
            if item is None or item.budget_id != budget_id:
                raise NotFoundError("BudgetItem", item_id)

            before = _item_to_dict(item)
            await db.delete(item)
            AuditService.record(db, current_user['user_id'], "RemoveItem", "Budget", budget_id, before, None)
