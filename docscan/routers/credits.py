from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from docscan.core.pagination import clamp_page
from docscan.models.credit_ledger import CreditLedgerEntry
from docscan.models.user import User
from docscan.deps import get_current_user
from docscan.services import credit_requests as credit_request_service
from docscan.services import credits as credits_service

router = APIRouter()


class CreditRequestBody(BaseModel):
    amount: int | None = None


@router.get("/balance")
async def credits_balance(user: User = Depends(get_current_user)):
    """Return current credit balance."""
    balance = await credits_service.get_balance(user.id)
    return {"balance": balance}


@router.get("/ledger")
async def credits_ledger(
    user: User = Depends(get_current_user),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
):
    """Return ledger entries for current user (newest first)."""
    limit, offset = clamp_page(limit, offset)
    entries = (
        await CreditLedgerEntry.find(CreditLedgerEntry.user_id == user.id)
        .sort(-CreditLedgerEntry.created_at)
        .skip(offset)
        .limit(limit)
        .to_list()
    )
    out = [
        {
            "id": str(e.id),
            "amount": e.amount,
            "balance_after": e.balance_after,
            "reason": e.reason,
            "reference_type": e.reference_type,
            "reference_id": e.reference_id,
            "created_at": e.created_at.isoformat(),
        }
        for e in entries
    ]
    return {"entries": out, "limit": limit, "offset": offset}


@router.post("/requests")
async def request_credits(body: CreditRequestBody, user: User = Depends(get_current_user)):
    """Ask an admin for more credits."""
    req = await credit_request_service.submit(user.id, body.amount)
    return {"request_id": str(req.id), "status": req.status}


@router.get("/requests")
async def my_credit_requests(user: User = Depends(get_current_user)):
    reqs = await credit_request_service.list_for_user(user.id)
    return {
        "requests": [
            {
                "id": str(r.id),
                "amount": r.amount,
                "status": r.status,
                "created_at": r.created_at.isoformat(),
                "decided_at": r.decided_at.isoformat() if r.decided_at else None,
            }
            for r in reqs
        ]
    }
