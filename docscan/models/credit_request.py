from datetime import datetime

from beanie import Document, PydanticObjectId
from pydantic import Field

STATUS_PENDING = "pending"
STATUS_APPROVED = "approved"
STATUS_REJECTED = "rejected"


class CreditRequest(Document):
    user_id: PydanticObjectId
    amount: int
    status: str = STATUS_PENDING  # pending -> approved | rejected, terminal states are final
    decided_by: PydanticObjectId | None = None
    decided_at: datetime | None = None
    created_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "credit_requests"
        indexes = [[("user_id", 1)], [("status", 1), ("created_at", 1)]]
