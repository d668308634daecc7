from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from budgetflow.core.exceptions import NotFoundError, InvalidStateError, ValidationError
from budgetflow.core.lifecycle import total_cost, validate_hours, ensure_timesheet_transition
from budgetflow.models.budget import Budget
from budgetflow.models.timesheet import TimesheetEntry, TimesheetStatus
from budgetflow.models.user import User
from budgetflow.schemas.timesheet import TimesheetCreate, TimesheetUpdate
from budgetflow.services.audit_service import AuditService
from budgetflow.services.transaction import unit_of_work
from budgetflow.utils.logger import app_logger
from budgetflow.utils.permissions import ensure_owner_or_admin


class TimesheetService:
    @staticmethod
    def to_dict(entry: TimesheetEntry) -> dict:
        return {
            "id": entry.id,
            "date": entry.date,
            "hours": entry.hours,
            "project_name": entry.project_name,
            "task_description": entry.task_description,
            "hourly_rate": entry.hourly_rate,
            "total_cost": total_cost(entry.hours, entry.hourly_rate),
            "status": TimesheetStatus(entry.status).value,
            "budget_id": entry.budget_id,
            "employee_id": entry.employee_id,
            "employee": entry.employee.full_name if entry.employee is not None else None,
            "created_at": entry.created_at,
        }

    @staticmethod
    async def get_entry_model(db: AsyncSession, entry_id: int) -> TimesheetEntry:
        entry = await db.get(TimesheetEntry, entry_id, populate_existing=True)
        if entry is None:
            raise NotFoundError("TimesheetEntry", entry_id)
        return entry

    @staticmethod
    async def _check_budget(db: AsyncSession, budget_id):
        if budget_id is not None and await db.get(Budget, budget_id) is None:
            raise ValidationError(f"Budget {budget_id} does not exist", budget_id=budget_id)

    @staticmethod
    async def list_entries(db: AsyncSession, employee_id: str) -> list:
        result = await db.execute(
            select(TimesheetEntry)
                .where(TimesheetEntry.employee_id == employee_id)
                .order_by(TimesheetEntry.date.desc(), TimesheetEntry.id.desc())
                .execution_options(populate_existing=True)
        )
        entries = result.unique().scalars().all()
        app_logger.info(f"Fetched {len(entries)} timesheet entries for {employee_id}")
        return [TimesheetService.to_dict(e) for e in entries]

    @staticmethod
    async def create_entry(db: AsyncSession, data: TimesheetCreate, employee_id: str) -> dict:
        """
        New Draft entry; without an explicit rate the employee's profile rate applies
        """
        app_logger.info(f"Creating timesheet entry for {employee_id} on {data.date}")
        async with unit_of_work(db, "create timesheet entry"):
            employee = await db.get(User, employee_id)
            if employee is None:
                raise NotFoundError("User", employee_id)

            hourly_rate = data.hourly_rate if data.hourly_rate is not None else employee.hourly_rate
            hours = validate_hours(data.hours, hourly_rate)
            await TimesheetService._check_budget(db, data.budget_id)

            entry = TimesheetEntry(
                date=data.date,
                hours=hours,
                project_name=data.project_name,
                task_description=data.task_description,
                hourly_rate=hourly_rate,
                status=TimesheetStatus.DRAFT,
                employee_id=employee_id,
                budget_id=data.budget_id,
            )
            db.add(entry)
            await db.flush()
            AuditService.record(db, employee_id, "Create", "TimesheetEntry", entry.id, None,
                                {"date": data.date, "hours": hours, "project_name": data.project_name})

        entry = await TimesheetService.get_entry_model(db, entry.id)
        return TimesheetService.to_dict(entry)

    @staticmethod
    async def update_entry(db: AsyncSession, entry_id: int, data: TimesheetUpdate, current_user: dict) -> dict:
        app_logger.info(f"Updating timesheet entry {entry_id}")
        async with unit_of_work(db, "update timesheet entry"):
            entry = await TimesheetService.get_entry_model(db, entry_id)
            ensure_owner_or_admin(entry.employee_id, current_user['user_id'], current_user['roles'])
            if entry.status != TimesheetStatus.DRAFT:
                raise InvalidStateError(f"Timesheet entry is {entry.status.value}; only Draft entries can be edited",
                                        current=entry.status.value)

            hourly_rate = data.hourly_rate if data.hourly_rate is not None else entry.hourly_rate
            hours = validate_hours(data.hours, hourly_rate)
            await TimesheetService._check_budget(db, data.budget_id)
            before = TimesheetService.to_dict(entry)

            entry.date = data.date
            entry.hours = hours
            entry.project_name = data.project_name
            entry.task_description = data.task_description
            entry.hourly_rate = hourly_rate
            entry.budget_id = data.budget_id
            AuditService.record(db, current_user['user_id'], "Update", "TimesheetEntry", entry_id, before,
                                {"date": data.date, "hours": hours, "project_name": data.project_name})

        entry = await TimesheetService.get_entry_model(db, entry_id)
        return TimesheetService.to_dict(entry)

    @staticmethod
    async def delete_entry(db: AsyncSession, entry_id: int, current_user: dict):
        app_logger.info(f"Deleting timesheet entry {entry_id}")
        async with unit_of_work(db, "delete timesheet entry"):
            entry = await TimesheetService.get_entry_model(db, entry_id)
            ensure_owner_or_admin(entry.employee_id, current_user['user_id'], current_user['roles'])
            if entry.status != TimesheetStatus.DRAFT:
                raise InvalidStateError(f"Timesheet entry is {entry.status.value}; only Draft entries can be deleted",
                                        current=entry.status.value)
            before = TimesheetService.to_dict(entry)
            await db.delete(entry)
            AuditService.record(db, current_user['user_id'], "Delete", "TimesheetEntry", entry_id, before, None)

    @staticmethod
    async def _transition(db: AsyncSession, entry: TimesheetEntry, target: TimesheetStatus, user_id: str):
        ensure_timesheet_transition(entry.status, target)
        current = TimesheetStatus(entry.status)
        result = await db.execute(
            update(TimesheetEntry)
                .where(TimesheetEntry.id == entry.id, TimesheetEntry.status == current)
                .values(status=target)
                .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise InvalidStateError(f"Timesheet entry {entry.id} was changed by another request")
        AuditService.record(db, user_id, target.value, "TimesheetEntry", entry.id,
                            {"status": current.value}, {"status": target.value})

    @staticmethod
    async def submit_entry(db: AsyncSession, entry_id: int, current_user: dict) -> dict:
        app_logger.info(f"Submitting timesheet entry {entry_id}")
        async with unit_of_work(db, "submit timesheet entry"):
            entry = await TimesheetService.get_entry_model(db, entry_id)
            ensure_owner_or_admin(entry.employee_id, current_user['user_id'], current_user['roles'],
                                  action="submit")
            await TimesheetService._transition(db, entry, TimesheetStatus.SUBMITTED, current_user['user_id'])

        entry = await TimesheetService.get_entry_model(db, entry_id)
        return TimesheetService.to_dict(entry)

    @staticmethod
    async def review_entry(db: AsyncSession, entry_id: int, decision: TimesheetStatus, current_user: dict) -> dict:
        """Submitted -> Approved | Rejected; route restricts callers to Manager/Admin"""
        app_logger.info(f"Reviewing timesheet entry {entry_id}: {decision}")
        async with unit_of_work(db, "review timesheet entry"):
            decision = TimesheetStatus(decision)
            if decision not in (TimesheetStatus.APPROVED, TimesheetStatus.REJECTED):
                raise ValidationError("Decision must be Approved or Rejected", decision=decision.value)
            entry = await TimesheetService.get_entry_model(db, entry_id)
            await TimesheetService._transition(db, entry, decision, current_user['user_id'])

        entry = await TimesheetService.get_entry_model(db, entry_id)
        return TimesheetService.to_dict(entry)
