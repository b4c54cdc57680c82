from datetime import datetime

from beanie import Document, PydanticObjectId
from pydantic import Field


class CreditLedgerEntry(Document):
    user_id: PydanticObjectId
    amount: int  # positive = credit, negative = debit
    balance_after: int
    reason: str  # scan, grant, refund
    reference_type: str | None = None  # scan_document, credit_request
    reference_id: str | None = None
    created_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "credit_ledger"
        indexes = [
            [("user_id", 1), ("created_at", -1)],
        ]
