from docscan.models.user import User
from docscan.models.scan_document import ScanDocument
from docscan.models.credit_request import CreditRequest
from docscan.models.credit_ledger import CreditLedgerEntry
from docscan.models.audit_log import AuditLog
from docscan.models.failed_job import FailedJob

__all__ = [
    "User",
    "ScanDocument",
    "CreditRequest",
    "CreditLedgerEntry",
    "AuditLog",
    "FailedJob",
]
