import enum
from datetime import datetime

from sqlalchemy import Column, Integer, String, DateTime, Date, Text, Numeric, ForeignKey, Enum
from sqlalchemy.orm import relationship

from budgetflow.database import Base


class TimesheetStatus(str, enum.Enum):
    DRAFT = "Draft"
    SUBMITTED = "Submitted"
    APPROVED = "Approved"
    REJECTED = "Rejected"


class TimesheetEntry(Base):
    __tablename__ = "timesheet_entries"

    id = Column(Integer, primary_key=True, autoincrement=True)
    date = Column(Date, nullable=False)
    hours = Column(Numeric(4, 2), nullable=False)
    project_name = Column(String(200), nullable=False)
    task_description = Column(Text, nullable=False, default="")
    hourly_rate = Column(Numeric(8, 2), nullable=False)
    status = Column(Enum(TimesheetStatus), nullable=False, default=TimesheetStatus.DRAFT)
    created_at = Column(DateTime, default=datetime.utcnow)

    employee_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    budget_id = Column(Integer, ForeignKey("budgets.id", ondelete="SET NULL"), nullable=True)

    employee = relationship("User", lazy="joined")
