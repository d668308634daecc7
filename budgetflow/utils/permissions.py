from fastapi import Depends, HTTPException, status
from sqlalchemy import select

from budgetflow.core.exceptions import PermissionDeniedError
from budgetflow.core.security import get_current_user
from budgetflow.models.approval import ApprovalLevel
from budgetflow.models.budget import Budget
from budgetflow.models.user import UserRole

REVIEWER_ROLES = {UserRole.MANAGER.value, UserRole.FINANCE.value, UserRole.EXECUTIVE.value, UserRole.ADMIN.value}

# reviewer role required for each approval level
LEVEL_ROLES = {
    ApprovalLevel.MANAGER: UserRole.MANAGER.value,
    ApprovalLevel.FINANCE: UserRole.FINANCE.value,
    ApprovalLevel.EXECUTIVE: UserRole.EXECUTIVE.value,
}


def is_admin(roles) -> bool:
    return UserRole.ADMIN.value in (roles or [])


def is_reviewer(roles) -> bool:
    return bool(REVIEWER_ROLES.intersection(roles or []))


def build_budget_scope_query(user_id: str, roles):
    """
    Budget query restricted to what the user may see

    Args:
        user_id: id of the caller
        roles: role names from the token

    Returns:
        select(Budget); reviewers see every budget, everyone else only their own
    """
    query = select(Budget)
    if not is_reviewer(roles):
        query = query.where(Budget.created_by_id == user_id)
    return query


def ensure_owner_or_admin(owner_id: str, user_id: str, roles, action: str = "modify"):
    if owner_id != user_id and not is_admin(roles):
        raise PermissionDeniedError(f"Only the creator or an administrator may {action} this record",
                                    owner_id=owner_id)


def ensure_can_review(level: ApprovalLevel, roles):
    required = LEVEL_ROLES[ApprovalLevel(level)]
    if required not in (roles or []) and not is_admin(roles):
        raise PermissionDeniedError(f"{ApprovalLevel(level).value} approvals require the {required} role",
                                    required_role=required)


def require_roles(*allowed: UserRole):
    """Route dependency: the caller must hold at least one of the roles"""
    allowed_values = {r.value for r in allowed}

    async def _checker(current_user: dict = Depends(get_current_user)) -> dict:
        if not allowed_values.intersection(current_user['roles']):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Requires one of the roles: {', '.join(sorted(allowed_values))}",
            )
        return current_user

    return _checker
