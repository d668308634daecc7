from datetime import datetime

from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey

from budgetflow.database import Base


class AuditLog(Base):
    """
    Append-only record of an action taken by a user against an entity
    old_values / new_values hold JSON snapshots
    """
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    action = Column(String(50), nullable=False)
    entity_type = Column(String(50), nullable=False)
    entity_id = Column(Integer, nullable=False)
    old_values = Column(Text, nullable=False, default="")
    new_values = Column(Text, nullable=False, default="")
    timestamp = Column(DateTime, default=datetime.utcnow)

    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
