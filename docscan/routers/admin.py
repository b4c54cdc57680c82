from beanie import PydanticObjectId
from fastapi import APIRouter, Depends, Query

from docscan.core.audit import log_event
from docscan.core.config import get_settings
from docscan.core.pagination import Page, clamp_page
from docscan.deps import corpus_store, require_admin
from docscan.models.user import ROLE_USER, User
from docscan.services import analytics as analytics_service
from docscan.services import credit_requests as credit_request_service
from docscan.services import credits as credits_service
from docscan.services.corpus import CorpusStore

router = APIRouter()


@router.get("/credit-requests")
async def admin_pending_credit_requests(user: User = Depends(require_admin)):
    """Admin: pending credit requests, oldest first."""
    return {"requests": await credit_request_service.list_pending()}


@router.post("/credit-requests/{request_id}/approve")
async def admin_approve_credit_request(request_id: PydanticObjectId, user: User = Depends(require_admin)):
    req = await credit_request_service.approve(request_id, user)
    return {"id": str(req.id), "status": req.status, "user_id": str(req.user_id), "amount": req.amount}


@router.post("/credit-requests/{request_id}/reject")
async def admin_reject_credit_request(request_id: PydanticObjectId, user: User = Depends(require_admin)):
    req = await credit_request_service.reject(request_id, user)
    return {"id": str(req.id), "status": req.status}


@router.post("/credits/reset")
async def admin_reset_credits(user: User = Depends(require_admin)):
    """Admin: run the daily credit reset now."""
    value = get_settings().daily_credit_reset_value
    count = await credits_service.reset_all(value, role=ROLE_USER)
    await log_event(str(user.id), "credits_reset", "user", None, {"value": value, "users": count, "trigger": "manual"})
    return {"users_reset": count, "value": value}


@router.get("/documents")
async def admin_documents(
    user: User = Depends(require_admin),
    corpus: CorpusStore = Depends(corpus_store),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
):
    limit, offset = clamp_page(limit, offset)
    docs, total = await corpus.list_all(limit, offset)
    page = Page[dict](
        items=[
            {
                "id": str(d.id),
                "owner_id": str(d.owner_id),
                "file_name": d.file_name,
                "storage_key": d.storage_key,
                "created_at": d.created_at.isoformat(),
            }
            for d in docs
        ],
        limit=limit,
        offset=offset,
        total=total,
    )
    return {**page.model_dump(), "has_more": page.has_more}


@router.get("/analytics")
async def admin_analytics(user: User = Depends(require_admin), corpus: CorpusStore = Depends(corpus_store)):
    return await analytics_service.dashboard(corpus)
