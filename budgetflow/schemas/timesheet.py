from datetime import date as date_type
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from budgetflow.models.timesheet import TimesheetStatus


class TimesheetCreate(BaseModel):
    date: date_type
    hours: Decimal
    project_name: str = Field(..., min_length=1, max_length=200)
    task_description: str = ""
    hourly_rate: Optional[Decimal] = None
    budget_id: Optional[int] = None


class TimesheetUpdate(TimesheetCreate):
    pass


class TimesheetReview(BaseModel):
    decision: TimesheetStatus
