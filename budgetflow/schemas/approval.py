from typing import Optional

from pydantic import BaseModel

from budgetflow.models.approval import ApprovalStatus


class ApprovalReview(BaseModel):
    decision: ApprovalStatus
    comments: Optional[str] = None
