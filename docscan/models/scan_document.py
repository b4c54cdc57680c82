from datetime import datetime

from beanie import Document, Indexed, PydanticObjectId
from pydantic import Field


class ScanDocument(Document):
    """Metadata for a submitted text; the body lives in blob storage under ``storage_key``."""

    owner_id: PydanticObjectId
    storage_key: Indexed(str, unique=True)
    file_name: str
    size_bytes: int = 0
    created_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "scan_documents"
        indexes = [[("owner_id", 1), ("created_at", -1)]]
