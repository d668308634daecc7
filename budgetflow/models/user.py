import enum
import uuid
from datetime import datetime

from sqlalchemy import Column, String, DateTime, Boolean, Numeric
from sqlalchemy.orm import relationship

from budgetflow.database import Base


class UserRole(str, enum.Enum):
    EMPLOYEE = "Employee"
    MANAGER = "Manager"
    FINANCE = "Finance"
    EXECUTIVE = "Executive"
    ADMIN = "Admin"


class User(Base):
    """
    Application user
    Owns budgets, timesheet entries and audit log rows; may review approvals
    """
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(256), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    first_name = Column(String(80), nullable=False, default="")
    last_name = Column(String(80), nullable=False, default="")
    department = Column(String(100), nullable=False, default="")
    position = Column(String(100), nullable=False, default="")
    hourly_rate = Column(Numeric(8, 2), nullable=False, default=0)
    roles = Column(String(255), nullable=False, default=UserRole.EMPLOYEE.value)  # comma separated
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    budgets = relationship("Budget", back_populates="created_by", passive_deletes=True)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def role_list(self) -> list:
        return [r for r in (self.roles or "").split(",") if r]
