from fastapi import APIRouter, HTTPException, Query, status

from budgetflow.config import SUPPORTED_LANGUAGES, DEFAULT_LANGUAGE
from budgetflow.i18n import i18n
from budgetflow.models.approval import ApprovalStatus, ApprovalLevel
from budgetflow.models.budget import BudgetStatus, BudgetPeriod
from budgetflow.models.timesheet import TimesheetStatus

router = APIRouter()

LOOKUPS = {
    "budget_status": BudgetStatus,
    "budget_period": BudgetPeriod,
    "approval_status": ApprovalStatus,
    "approval_level": ApprovalLevel,
    "timesheet_status": TimesheetStatus,
}


@router.get("/{lookup_name}")
async def get_lookup(lookup_name: str, language: str = Query(DEFAULT_LANGUAGE)):
    """
    Values of one enumeration with display labels

    Args:
        lookup_name: one of budget_status, budget_period, approval_status, approval_level, timesheet_status
        language: en-US or zh-CN
    """
    enum_type = LOOKUPS.get(lookup_name)
    if enum_type is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND,
                            detail=f"Unknown lookup. Must be one of: {', '.join(LOOKUPS)}")
    if language not in SUPPORTED_LANGUAGES:
        language = DEFAULT_LANGUAGE

    data = [{"value": member.value, "label": i18n.translate(member.value, language)} for member in enum_type]
    return {"code": 200, "data": data}
