from fastapi import APIRouter, Depends
from pydantic import BaseModel

from docscan.deps import corpus_store, get_current_user, scan_orchestrator
from docscan.models.user import User
from docscan.services.corpus import CorpusStore
from docscan.services.scans import ScanOrchestrator

router = APIRouter()


class ScanRequest(BaseModel):
    text: str = ""
    file_name: str = ""


@router.post("")
async def submit_scan(
    body: ScanRequest,
    user: User = Depends(get_current_user),
    orchestrator: ScanOrchestrator = Depends(scan_orchestrator),
):
    """Store the text (costs one credit) and return documents more than 60% similar."""
    result = await orchestrator.submit(user.id, body.text, body.file_name)
    return result.model_dump(mode="json", exclude={"skipped"})


@router.get("/documents")
async def my_documents(
    user: User = Depends(get_current_user),
    corpus: CorpusStore = Depends(corpus_store),
):
    docs = await corpus.list_for_owner(user.id)
    return {
        "documents": [
            {
                "id": str(d.id),
                "file_name": d.file_name,
                "storage_key": d.storage_key,
                "size_bytes": d.size_bytes,
                "created_at": d.created_at.isoformat(),
            }
            for d in docs
        ]
    }
