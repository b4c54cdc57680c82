"""
Scan orchestration: charge one credit, persist the submission, compare it against the rest
of the corpus and return the documents that score above the match threshold.

States: received -> credit_checked -> persisted -> compared -> completed, short-circuiting to
rejected (no credit) or failed (storage fault). A storage fault after the deduction leaves the
credit spent unless REFUND_ON_STORAGE_FAILURE is enabled.
"""

import asyncio
from enum import Enum
from typing import Any

from beanie import PydanticObjectId
from pydantic import BaseModel

from docscan.core.config import get_settings
from docscan.core.exceptions import AppError, BadRequestError, InsufficientCreditError, StorageError
from docscan.core.logging import get_logger
from docscan.models.scan_document import ScanDocument
from docscan.services import credits as credits_service
from docscan.services.corpus import CorpusStore, get_corpus_store, sanitize_file_name
from docscan.services.similarity import similarity, to_percent

log = get_logger(__name__)


class ScanState(str, Enum):
    RECEIVED = "received"
    CREDIT_CHECKED = "credit_checked"
    PERSISTED = "persisted"
    COMPARED = "compared"
    COMPLETED = "completed"
    REJECTED = "rejected"
    FAILED = "failed"


class Match(BaseModel):
    document_id: str
    file_name: str
    similarity_percent: float


class ScanResult(BaseModel):
    document_id: str
    file_name: str
    credits_left: int
    state: ScanState
    matches: list[Match]
    skipped: int = 0  # corpus documents that could not be read


class ScanOrchestrator:
    def __init__(
        self,
        corpus: CorpusStore | None = None,
        threshold: float | None = None,
        concurrency: int | None = None,
        refund_on_storage_failure: bool | None = None,
        ledger: Any = None,
    ) -> None:
        settings = get_settings()
        self.corpus = corpus or get_corpus_store()
        # anything exposing try_deduct/grant with the services.credits signatures
        self.ledger = ledger or credits_service
        self.threshold = settings.scan_match_threshold if threshold is None else threshold
        self.concurrency = max(1, concurrency or settings.scan_compare_concurrency)
        self.refund_on_storage_failure = (
            settings.refund_on_storage_failure if refund_on_storage_failure is None else refund_on_storage_failure
        )
        self.cost = settings.credits_per_scan

    async def submit(self, user_id: PydanticObjectId, text: str | None, file_name: str | None) -> ScanResult:
        scan_log = log.bind(user_id=str(user_id), file_name=file_name)
        scan_log.info("scan_state", state=ScanState.RECEIVED.value)
        if not text or not file_name or not file_name.strip():
            raise BadRequestError("Text content and file name are required")
        # rejects names like "..", "/" before any credit is taken
        sanitize_file_name(file_name)

        credits_left = await self.ledger.try_deduct(user_id, self.cost, reason="scan")
        if credits_left is None:
            scan_log.info("scan_state", state=ScanState.REJECTED.value)
            raise InsufficientCreditError("Insufficient credits. Please request more.")
        scan_log.info("scan_state", state=ScanState.CREDIT_CHECKED.value, credits_left=credits_left)

        try:
            doc = await self.corpus.save(user_id, file_name, text)
        except StorageError:
            scan_log.error("scan_state", state=ScanState.FAILED.value, refunded=self.refund_on_storage_failure)
            if self.refund_on_storage_failure:
                await self.ledger.grant(user_id, self.cost, reason="refund", reference_type="scan")
            raise
        scan_log = scan_log.bind(document_id=str(doc.id))
        scan_log.info("scan_state", state=ScanState.PERSISTED.value, storage_key=doc.storage_key)

        matches, skipped = await self._compare(text, doc)
        scan_log.info("scan_state", state=ScanState.COMPARED.value, matches=len(matches), skipped=skipped)

        result = ScanResult(
            document_id=str(doc.id),
            file_name=doc.file_name,
            credits_left=credits_left,
            state=ScanState.COMPLETED,
            matches=matches,
            skipped=skipped,
        )
        scan_log.info("scan_state", state=ScanState.COMPLETED.value)
        return result

    async def _compare(self, text: str, doc: ScanDocument) -> tuple[list[Match], int]:
        """Score ``text`` against every other stored document, at most ``concurrency`` at a time."""
        others = await self.corpus.list_except(doc.storage_key)
        semaphore = asyncio.Semaphore(self.concurrency)

        async def score(other: ScanDocument) -> float | None:
            async with semaphore:
                try:
                    existing = await self.corpus.read(other.storage_key)
                except AppError as e:
                    log.warning(
                        "scan_document_skipped",
                        document_id=str(other.id),
                        storage_key=other.storage_key,
                        reason=e.message,
                    )
                    return None
                return await asyncio.to_thread(similarity, text, existing)

        scores = await asyncio.gather(*(score(other) for other in others))

        matches = []
        skipped = 0
        for other, value in zip(others, scores):
            if value is None:
                skipped += 1
                continue
            log.debug("scan_compared", document_id=str(other.id), similarity=value)
            if value > self.threshold:
                matches.append(
                    Match(
                        document_id=str(other.id),
                        file_name=other.file_name,
                        similarity_percent=to_percent(value),
                    )
                )
        return matches, skipped


def get_scan_orchestrator() -> ScanOrchestrator:
    return ScanOrchestrator()
