import enum
from datetime import datetime

from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey, Enum
from sqlalchemy.orm import relationship

from budgetflow.database import Base


class ApprovalStatus(str, enum.Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    REQUEST_MORE_INFO = "RequestMoreInfo"


class ApprovalLevel(str, enum.Enum):
    MANAGER = "Manager"
    FINANCE = "Finance"
    EXECUTIVE = "Executive"


class Approval(Base):
    """
    One reviewer decision against a budget
    Deleting the reviewer keeps the row and nulls reviewer_id
    """
    __tablename__ = "approvals"

    id = Column(Integer, primary_key=True, autoincrement=True)
    status = Column(Enum(ApprovalStatus), nullable=False, default=ApprovalStatus.PENDING, index=True)
    level = Column(Enum(ApprovalLevel), nullable=False)
    comments = Column(Text, nullable=False, default="")
    created_at = Column(DateTime, default=datetime.utcnow)
    reviewed_at = Column(DateTime, nullable=True)

    budget_id = Column(Integer, ForeignKey("budgets.id", ondelete="CASCADE"), nullable=False, index=True)
    reviewer_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    budget = relationship("Budget", lazy="joined")
    reviewer = relationship("User", lazy="joined")
