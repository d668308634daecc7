"""
Typed errors raised by the service layer.

Every error carries a machine readable ``code``; the routes translate each
kind into one HTTP status (see ``HTTP_STATUS``) and never inspect messages.

    BudgetFlowError
    +-- ValidationError        400  malformed or out-of-range input
    +-- AuthError              401  bad credentials or token
    +-- PermissionDeniedError  403  authenticated but not allowed
    +-- NotFoundError          404  referenced entity absent
    +-- InvalidStateError      409  not permitted in the current lifecycle state
    +-- InfrastructureError    500  database / connectivity failure
"""

from fastapi import HTTPException


class BudgetFlowError(Exception):
    code = "budgetflow_error"

    def __init__(self, message: str, **details):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        data = {"code": self.code, "message": self.message}
        if self.details:
            data["details"] = self.details
        return data


class ValidationError(BudgetFlowError):
    code = "validation_error"


class AuthError(BudgetFlowError):
    code = "auth_error"


class PermissionDeniedError(BudgetFlowError):
    code = "permission_denied"


class NotFoundError(BudgetFlowError):
    code = "not_found"

    def __init__(self, entity_type: str, entity_id):
        super().__init__(f"{entity_type} {entity_id} not found",
                         entity_type=entity_type, entity_id=entity_id)
        self.entity_type = entity_type
        self.entity_id = entity_id


class InvalidStateError(BudgetFlowError):
    code = "invalid_state"


class InfrastructureError(BudgetFlowError):
    code = "infrastructure_error"


HTTP_STATUS = {
    ValidationError: 400,
    AuthError: 401,
    PermissionDeniedError: 403,
    NotFoundError: 404,
    InvalidStateError: 409,
    InfrastructureError: 500,
}


def http_status_for(error: BudgetFlowError) -> int:
    for error_type, status_code in HTTP_STATUS.items():
        if isinstance(error, error_type):
            return status_code
    return 500


def to_http_exception(error: BudgetFlowError) -> HTTPException:
    return HTTPException(status_code=http_status_for(error), detail=error.to_dict())
