import json

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from budgetflow.models.audit_log import AuditLog


def _snapshot(values) -> str:
    if values is None:
        return ""
    return json.dumps(values, default=str, sort_keys=True)


class AuditService:
    @staticmethod
    def record(db: AsyncSession, user_id: str, action: str, entity_type: str, entity_id: int,
               old_values: dict = None, new_values: dict = None) -> AuditLog:
        """
        Append an audit row to the caller's transaction; the caller commits
        """
        entry = AuditLog(
            user_id=user_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            old_values=_snapshot(old_values),
            new_values=_snapshot(new_values),
        )
        db.add(entry)
        return entry

    @staticmethod
    async def list_for_entity(db: AsyncSession, entity_type: str, entity_id: int) -> list:
        result = await db.execute(
            select(AuditLog)
                .where(AuditLog.entity_type == entity_type, AuditLog.entity_id == entity_id)
                .order_by(AuditLog.timestamp, AuditLog.id)
        )
        return [
            {
                "id": log.id,
                "action": log.action,
                "entity_type": log.entity_type,
                "entity_id": log.entity_id,
                "old_values": json.loads(log.old_values) if log.old_values else None,
                "new_values": json.loads(log.new_values) if log.new_values else None,
                "timestamp": log.timestamp,
                "user_id": log.user_id,
            }
            for log in result.scalars().all()
        ]
