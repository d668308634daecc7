from decimal import Decimal

import pytest
from sqlalchemy import func, select

from budgetflow.core.exceptions import AuthError, InvalidStateError, NotFoundError, ValidationError
from budgetflow.models.approval import Approval, ApprovalStatus
from budgetflow.models.audit_log import AuditLog
from budgetflow.models.timesheet import TimesheetEntry
from budgetflow.models.user import User, UserRole
from budgetflow.schemas.timesheet import TimesheetCreate
from budgetflow.schemas.user import RegisterRequest
from budgetflow.services.approval_service import ApprovalService
from budgetflow.services.budget_service import BudgetService
from budgetflow.services.timesheet_service import TimesheetService
from budgetflow.services.user_service import UserService

from conftest import budget_payload, current_user_of, make_user


async def count(db, model, *criteria):
    return await db.scalar(select(func.count()).select_from(model).where(*criteria))


async def test_register_normalises_email_and_hashes_password(db):
    user = await make_user(db, "  Dana@Example.COM ")

    assert user.email == "dana@example.com"
    assert user.password_hash.startswith("{SHA512}")
    assert "secret123" not in user.password_hash
    assert user.role_list == ["Employee"]


async def test_register_duplicate_email(db, employee):
    with pytest.raises(ValidationError):
        await make_user(db, "ALICE@example.com")
    assert await count(db, User) == 1


async def test_register_requires_valid_email(db):
    with pytest.raises(ValidationError):
        await UserService.register(db, RegisterRequest(email="not-an-email", password="secret123"))


@pytest.mark.parametrize("rate", [Decimal("-1"), Decimal("12.345"), Decimal("1000000")])
async def test_register_rejects_rate_outside_column(db, rate):
    with pytest.raises(ValidationError):
        await make_user(db, "eve@example.com", hourly_rate=rate)
    assert await count(db, User) == 0


async def test_verify_credentials(db, employee):
    user = await UserService.verify_credentials(db, "alice@example.com", "secret123")
    assert user.id == employee.id

    with pytest.raises(AuthError):
        await UserService.verify_credentials(db, "alice@example.com", "wrong-password")
    with pytest.raises(AuthError):
        await UserService.verify_credentials(db, "nobody@example.com", "secret123")


async def test_inactive_user_cannot_sign_in(db, employee):
    employee.is_active = False
    await db.commit()

    with pytest.raises(AuthError):
        await UserService.verify_credentials(db, "alice@example.com", "secret123")


async def test_delete_user_cascades_and_nulls_reviewer(db, employee, manager):
    created = await BudgetService.create_budget(db, budget_payload(), employee.id)
    submitted = await BudgetService.submit_budget(db, created["id"], current_user_of(employee))
    await ApprovalService.review(db, submitted["approval_id"], current_user_of(manager), ApprovalStatus.APPROVED)
    await TimesheetService.create_entry(
        db, TimesheetCreate(date="2026-02-02", hours=Decimal("6"), project_name="Audit"), manager.id)
    assert await count(db, AuditLog, AuditLog.user_id == manager.id) == 2

    await UserService.delete_user(db, manager.id)

    assert await count(db, User, User.id == manager.id) == 0
    assert await count(db, TimesheetEntry, TimesheetEntry.employee_id == manager.id) == 0
    assert await count(db, AuditLog, AuditLog.user_id == manager.id) == 0
    approval = await db.get(Approval, submitted["approval_id"])
    assert approval is not None
    assert approval.reviewer_id is None
    assert approval.status == ApprovalStatus.APPROVED


async def test_delete_user_who_owns_budgets_is_blocked(db, employee):
    employee_id = employee.id
    await BudgetService.create_budget(db, budget_payload(), employee_id)

    with pytest.raises(InvalidStateError):
        await UserService.delete_user(db, employee_id)

    assert await count(db, User, User.id == employee_id) == 1


async def test_delete_unknown_user(db):
    with pytest.raises(NotFoundError):
        await UserService.delete_user(db, "missing")


async def test_ensure_admin_is_idempotent(db):
    first = await UserService.ensure_admin(db, "admin@example.com", "Admin123")
    second = await UserService.ensure_admin(db, "admin@example.com", "Admin123")

    assert first is not None
    assert second is None
    assert UserRole.ADMIN.value in first.role_list
    assert await count(db, User) == 1
