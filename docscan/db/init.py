import certifi
from beanie import init_beanie
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from docscan.core.config import get_settings
from docscan.models.audit_log import AuditLog
from docscan.models.credit_ledger import CreditLedgerEntry
from docscan.models.credit_request import CreditRequest
from docscan.models.failed_job import FailedJob
from docscan.models.scan_document import ScanDocument
from docscan.models.user import User

DOCUMENT_MODELS = [
    User,
    ScanDocument,
    CreditRequest,
    CreditLedgerEntry,
    AuditLog,
    FailedJob,
]


def _use_tls(uri: str) -> bool:
    """True if URI uses TLS (Atlas or explicit tls=true). Plain mongodb:// stays unencrypted."""
    return "mongodb+srv://" in uri or "tls=true" in uri.lower()


async def init_db(database: AsyncIOMotorDatabase | None = None) -> None:
    """Bind Beanie models to ``database``, or to the configured MongoDB when omitted."""
    if database is None:
        settings = get_settings()
        kwargs = {}
        if _use_tls(settings.mongodb_uri):
            kwargs["tlsCAFile"] = certifi.where()
        client = AsyncIOMotorClient(settings.mongodb_uri, **kwargs)
        database = client[settings.mongodb_db_name]
    await init_beanie(database=database, document_models=DOCUMENT_MODELS)
