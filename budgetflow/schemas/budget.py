from datetime import date
from decimal import Decimal
from typing import List

from pydantic import BaseModel, Field

from budgetflow.models.budget import BudgetPeriod


class BudgetItemCreate(BaseModel):
    category: str = Field(..., min_length=1, max_length=100)
    description: str = ""
    amount: Decimal
    cost_center: str = ""


class BudgetCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = ""
    department: str = ""
    total_amount: Decimal
    period: BudgetPeriod
    start_date: date
    end_date: date
    items: List[BudgetItemCreate] = []


class BudgetUpdate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = ""
    department: str = ""
    total_amount: Decimal


