from datetime import date
from decimal import Decimal

import pytest

from budgetflow.core.exceptions import InvalidStateError, NotFoundError, PermissionDeniedError, ValidationError
from budgetflow.models.timesheet import TimesheetStatus
from budgetflow.schemas.timesheet import TimesheetCreate, TimesheetUpdate
from budgetflow.services.budget_service import BudgetService
from budgetflow.services.timesheet_service import TimesheetService

from conftest import budget_payload, current_user_of


def entry(**overrides):
    data = {"date": date(2026, 3, 2), "hours": Decimal("8"), "project_name": "Apollo",
            "task_description": "Sprint planning"}
    data.update(overrides)
    return TimesheetCreate(**data)


async def test_rate_defaults_to_profile(db, employee):
    data = await TimesheetService.create_entry(db, entry(), employee.id)

    assert data["status"] == "Draft"
    assert data["hourly_rate"] == Decimal("50")
    assert data["total_cost"] == Decimal("400")
    assert data["employee"] == "Alice Tester"


async def test_explicit_rate_wins(db, employee):
    data = await TimesheetService.create_entry(db, entry(hours=Decimal("2.5"), hourly_rate=Decimal("80")),
                                               employee.id)
    assert data["total_cost"] == Decimal("200")


@pytest.mark.parametrize("hours", [Decimal("0"), Decimal("24.5"), Decimal("0.001"), Decimal("7.255")])
async def test_hours_out_of_range(db, employee, hours):
    employee_id = employee.id
    with pytest.raises(ValidationError):
        await TimesheetService.create_entry(db, entry(hours=hours), employee_id)
    assert await TimesheetService.list_entries(db, employee_id) == []


async def test_rate_must_fit_two_decimals(db, employee):
    employee_id = employee.id
    with pytest.raises(ValidationError):
        await TimesheetService.create_entry(db, entry(hourly_rate=Decimal("80.125")), employee_id)
    assert await TimesheetService.list_entries(db, employee_id) == []


async def test_unknown_budget_reference(db, employee):
    with pytest.raises(ValidationError):
        await TimesheetService.create_entry(db, entry(budget_id=77), employee.id)


async def test_entry_can_reference_budget(db, employee):
    budget = await BudgetService.create_budget(db, budget_payload(), employee.id)
    data = await TimesheetService.create_entry(db, entry(budget_id=budget["id"]), employee.id)
    assert data["budget_id"] == budget["id"]


async def test_deleting_budget_keeps_entry_and_clears_reference(db, employee):
    owner = current_user_of(employee)
    budget = await BudgetService.create_budget(db, budget_payload(), owner["user_id"])
    created = await TimesheetService.create_entry(db, entry(budget_id=budget["id"]), owner["user_id"])

    await BudgetService.delete_budget(db, budget["id"], owner)

    kept = await TimesheetService.get_entry_model(db, created["id"])
    assert kept.budget_id is None
    assert kept.hours == Decimal("8")
    assert [e["id"] for e in await TimesheetService.list_entries(db, owner["user_id"])] == [created["id"]]


async def test_list_is_newest_first(db, employee, manager):
    await TimesheetService.create_entry(db, entry(date=date(2026, 3, 1)), employee.id)
    await TimesheetService.create_entry(db, entry(date=date(2026, 3, 3)), employee.id)
    await TimesheetService.create_entry(db, entry(), manager.id)

    data = await TimesheetService.list_entries(db, employee.id)
    assert [e["date"] for e in data] == [date(2026, 3, 3), date(2026, 3, 1)]


async def test_update_and_delete_draft(db, employee):
    created = await TimesheetService.create_entry(db, entry(), employee.id)
    user = current_user_of(employee)

    updated = await TimesheetService.update_entry(
        db, created["id"], TimesheetUpdate(date=date(2026, 3, 4), hours=Decimal("6"), project_name="Gemini"), user)
    assert updated["project_name"] == "Gemini"
    assert updated["total_cost"] == Decimal("300")

    await TimesheetService.delete_entry(db, created["id"], user)
    with pytest.raises(NotFoundError):
        await TimesheetService.get_entry_model(db, created["id"])


async def test_other_employee_cannot_edit(db, employee, manager):
    created = await TimesheetService.create_entry(db, entry(), employee.id)
    with pytest.raises(PermissionDeniedError):
        await TimesheetService.delete_entry(db, created["id"], current_user_of(manager))


async def test_submit_then_review(db, employee, manager):
    created = await TimesheetService.create_entry(db, entry(), employee.id)
    owner, reviewer = current_user_of(employee), current_user_of(manager)

    submitted = await TimesheetService.submit_entry(db, created["id"], owner)
    assert submitted["status"] == "Submitted"

    with pytest.raises(InvalidStateError):
        await TimesheetService.update_entry(db, created["id"], entry(hours=Decimal("1")), owner)
    with pytest.raises(InvalidStateError):
        await TimesheetService.submit_entry(db, created["id"], owner)

    reviewed = await TimesheetService.review_entry(db, created["id"], TimesheetStatus.APPROVED, reviewer)
    assert reviewed["status"] == "Approved"

    with pytest.raises(InvalidStateError):
        await TimesheetService.review_entry(db, created["id"], TimesheetStatus.REJECTED, reviewer)


async def test_review_requires_submitted_entry(db, employee, manager):
    created = await TimesheetService.create_entry(db, entry(), employee.id)
    with pytest.raises(InvalidStateError):
        await TimesheetService.review_entry(db, created["id"], TimesheetStatus.APPROVED, current_user_of(manager))


async def test_review_decision_must_be_final(db, employee, manager):
    created = await TimesheetService.create_entry(db, entry(), employee.id)
    await TimesheetService.submit_entry(db, created["id"], current_user_of(employee))
    with pytest.raises(ValidationError):
        await TimesheetService.review_entry(db, created["id"], TimesheetStatus.DRAFT, current_user_of(manager))
