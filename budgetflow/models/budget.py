# budgetflow/models/budget.py
import enum
from datetime import datetime

from sqlalchemy import Column, Integer, String, DateTime, Date, Text, Numeric, ForeignKey, Enum
from sqlalchemy.orm import relationship

from budgetflow.database import Base


class BudgetStatus(str, enum.Enum):
    DRAFT = "Draft"
    SUBMITTED = "Submitted"
    UNDER_REVIEW = "UnderReview"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    ACTIVE = "Active"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class BudgetPeriod(str, enum.Enum):
    MONTHLY = "Monthly"
    QUARTERLY = "Quarterly"
    ANNUAL = "Annual"


class Budget(Base):
    """
    Budget header
    Remaining amount is derived (total - spent) and never stored
    """
    __tablename__ = "budgets"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False, default="")
    department = Column(String(100), nullable=False, default="")
    total_amount = Column(Numeric(18, 2), nullable=False)
    spent_amount = Column(Numeric(18, 2), nullable=False, default=0)
    status = Column(Enum(BudgetStatus), nullable=False, default=BudgetStatus.DRAFT, index=True)
    period = Column(Enum(BudgetPeriod), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=True)

    created_by_id = Column(String(36), ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True)

    created_by = relationship("User", back_populates="budgets", lazy="joined")
    items = relationship("BudgetItem", back_populates="budget", lazy="selectin",
                         cascade="all, delete-orphan", passive_deletes=True,
                         order_by="BudgetItem.id")


class BudgetItem(Base):
    __tablename__ = "budget_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    category = Column(String(100), nullable=False)
    description = Column(Text, nullable=False, default="")
    amount = Column(Numeric(18, 2), nullable=False)
    spent_amount = Column(Numeric(18, 2), nullable=False, default=0)
    cost_center = Column(String(50), nullable=False, default="")
    created_at = Column(DateTime, default=datetime.utcnow)

    budget_id = Column(Integer, ForeignKey("budgets.id", ondelete="CASCADE"), nullable=False, index=True)

    budget = relationship("Budget", back_populates="items")
