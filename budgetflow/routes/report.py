from datetime import date
from io import BytesIO

import pandas as pd
from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from budgetflow.core.lifecycle import remaining_amount
from budgetflow.core.security import get_current_user
from budgetflow.database import get_db
from budgetflow.models.budget import Budget, BudgetStatus
from budgetflow.utils.logger import app_logger
from budgetflow.utils.permissions import build_budget_scope_query

router = APIRouter()

# column name -> header used in the exported workbook
FIELD_TRANSLATIONS = {
    "id": "Budget ID",
    "title": "Title",
    "department": "Department",
    "status": "Status",
    "period": "Period",
    "start_date": "Start Date",
    "end_date": "End Date",
    "total_amount": "Total Amount",
    "spent_amount": "Spent Amount",
    "remaining_amount": "Remaining Amount",
    "created_by": "Created By",
}


async def get_budget_report_rows(db: AsyncSession, user_id: str, roles, budget_status: str = None) -> list:
    query = build_budget_scope_query(user_id, roles)
    if budget_status:
        query = query.where(Budget.status == BudgetStatus(budget_status))
    query = query.order_by(Budget.department, Budget.id)

    result = await db.execute(query)
    budgets = result.unique().scalars().all()
    app_logger.info(f"Budget report fetched {len(budgets)} rows for {user_id}")

    return [
        {
            "id": b.id,
            "title": b.title,
            "department": b.department,
            "status": b.status.value,
            "period": b.period.value,
            "start_date": b.start_date,
            "end_date": b.end_date,
            "total_amount": b.total_amount,
            "spent_amount": b.spent_amount,
            "remaining_amount": remaining_amount(b.total_amount, b.spent_amount),
            "created_by": b.created_by.full_name if b.created_by is not None else None,
        }
        for b in budgets
    ]


@router.get("/budgets")
async def get_budget_report(
        budget_status: str = Query(None, alias="status", description="Budget status filter, e.g. Active"),
        format: str = Query("json", description="json or excel"),
        session: AsyncSession = Depends(get_db),
        current_user: dict = Depends(get_current_user)
):
    """
    Budget report; reviewers see every budget, other users their own
    """
    if budget_status and budget_status not in {s.value for s in BudgetStatus}:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST,
                            detail=f"Invalid status. Must be one of: {', '.join(s.value for s in BudgetStatus)}")

    try:
        rows = await get_budget_report_rows(session, current_user['user_id'], current_user['roles'],
                                            budget_status)
    except SQLAlchemyError as e:
        app_logger.error(f"Error generating budget report: {e}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                            detail="Database error occurred while generating the report")

    if format.lower() == 'excel':
        return _export_to_excel(rows, budget_status)
    return {"code": 200, "data": rows, "field_translations": FIELD_TRANSLATIONS}


def _export_to_excel(rows: list, budget_status: str = None) -> Response:
    """
    Write the report rows to an xlsx workbook, headers taken from FIELD_TRANSLATIONS
    """
    output = BytesIO()

    df = pd.DataFrame(rows, columns=list(FIELD_TRANSLATIONS.keys()))
    for column in ("total_amount", "spent_amount", "remaining_amount"):
        df[column] = df[column].astype(float)
    df.rename(columns=FIELD_TRANSLATIONS, inplace=True)

    with pd.ExcelWriter(output, engine='openpyxl') as writer:
        df.to_excel(writer, sheet_name="Budgets", index=False)

    output.seek(0)

    filename_status = f"_{budget_status}" if budget_status else ""
    headers = {
        'Content-Disposition': f'attachment; filename="budget_report_{date.today().isoformat()}{filename_status}.xlsx"',
    }
    return Response(content=output.getvalue(), headers=headers,
                    media_type='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet')
