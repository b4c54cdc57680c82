"""Corpus store: document bodies in blob storage, metadata in the scan_documents collection."""

import asyncio
import secrets
import time
from pathlib import PurePath

from beanie import PydanticObjectId

from docscan.core.config import get_settings
from docscan.core.exceptions import BadRequestError, NotFoundError, StorageError
from docscan.core.logging import get_logger
from docscan.models.scan_document import ScanDocument
from docscan.storage.base import StorageBackend, get_storage

log = get_logger(__name__)

KEY_PREFIX = "corpus/"
MAX_NAME_LENGTH = 120


def sanitize_file_name(file_name: str) -> str:
    """Reduce a client-supplied name to a bare file name usable inside a storage key."""
    name = PurePath(file_name.replace("\\", "/")).name.strip()
    if not name or name in (".", ".."):
        raise BadRequestError("Invalid file name")
    return name[:MAX_NAME_LENGTH]


def generate_storage_key(file_name: str) -> str:
    """``corpus/<epoch-millis>_<random hex>_<name>``; the random part keeps same-millisecond keys distinct."""
    millis = int(time.time() * 1000)
    return f"{KEY_PREFIX}{millis}_{secrets.token_hex(6)}_{sanitize_file_name(file_name)}"


class CorpusStore:
    def __init__(self, backend: StorageBackend | None = None, timeout: float | None = None) -> None:
        self.backend = backend or get_storage()
        self.timeout = timeout if timeout is not None else get_settings().storage_timeout_seconds

    async def put(self, storage_key: str, text: str, timeout: float | None = None) -> None:
        body = text.encode("utf-8")
        try:
            await asyncio.wait_for(
                self.backend.put(storage_key, body, content_type="text/plain; charset=utf-8"),
                timeout=timeout or self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise StorageError("Timed out writing document", details={"storage_key": storage_key}) from e
        except (OSError, ValueError) as e:
            raise StorageError(f"Could not write document: {e}", details={"storage_key": storage_key}) from e

    async def read(self, storage_key: str, timeout: float | None = None) -> str:
        try:
            body = await asyncio.wait_for(self.backend.get(storage_key), timeout=timeout or self.timeout)
        except FileNotFoundError as e:
            raise NotFoundError(f"Document body not found: {storage_key}") from e
        except asyncio.TimeoutError as e:
            raise StorageError("Timed out reading document", details={"storage_key": storage_key}) from e
        except (OSError, ValueError) as e:
            raise StorageError(f"Could not read document: {e}", details={"storage_key": storage_key}) from e
        return body.decode("utf-8", errors="replace")

    async def save(self, owner_id: PydanticObjectId, file_name: str, text: str) -> ScanDocument:
        """Write the body, then the metadata. A failed metadata insert removes the body and raises StorageError."""
        storage_key = generate_storage_key(file_name)
        await self.put(storage_key, text)
        doc = ScanDocument(
            owner_id=owner_id,
            storage_key=storage_key,
            file_name=file_name,
            size_bytes=len(text.encode("utf-8")),
        )
        try:
            await doc.insert()
        except Exception as e:
            log.exception("corpus_metadata_insert_failed", storage_key=storage_key)
            try:
                await self.backend.delete(storage_key)
            except OSError:
                log.warning("corpus_orphan_blob", storage_key=storage_key)
            raise StorageError("Could not record document", details={"storage_key": storage_key}) from e
        log.info("corpus_document_saved", document_id=str(doc.id), storage_key=storage_key, size_bytes=doc.size_bytes)
        return doc

    async def list_except(self, storage_key: str) -> list[ScanDocument]:
        """Every stored document except ``storage_key``, in insertion order."""
        return (
            await ScanDocument.find(ScanDocument.storage_key != storage_key)
            .sort(+ScanDocument.id)
            .to_list()
        )

    async def list_for_owner(self, owner_id: PydanticObjectId) -> list[ScanDocument]:
        return (
            await ScanDocument.find(ScanDocument.owner_id == owner_id)
            .sort(-ScanDocument.created_at)
            .to_list()
        )

    async def list_all(self, limit: int, offset: int) -> tuple[list[ScanDocument], int]:
        total = await ScanDocument.find_all().count()
        items = await ScanDocument.find_all().sort(-ScanDocument.created_at).skip(offset).limit(limit).to_list()
        return items, total


def get_corpus_store() -> CorpusStore:
    return CorpusStore()
