"""Credit requests: users ask for credits, admins approve (grant) or reject exactly once."""

from datetime import datetime

from beanie import PydanticObjectId, UpdateResponse
from beanie.operators import In, Set

from docscan.core.audit import log_event
from docscan.core.exceptions import BadRequestError, InvalidStateError, NotFoundError
from docscan.core.logging import get_logger
from docscan.models.credit_request import (
    STATUS_APPROVED,
    STATUS_PENDING,
    STATUS_REJECTED,
    CreditRequest,
)
from docscan.models.user import User
from docscan.services import credits as credits_service

log = get_logger(__name__)


async def submit(user_id: PydanticObjectId, amount: int | None) -> CreditRequest:
    if amount is None or amount < 1:
        raise BadRequestError("Invalid credit request amount")
    req = CreditRequest(user_id=user_id, amount=amount)
    await req.insert()
    log.info("credit_request_submitted", request_id=str(req.id), user_id=str(user_id), amount=amount)
    return req


async def _claim(request_id: PydanticObjectId, status: str, admin_id: PydanticObjectId) -> CreditRequest:
    """Move a pending request to ``status`` with one conditional update; only one caller can win."""
    claimed = await CreditRequest.find_one(
        CreditRequest.id == request_id,
        CreditRequest.status == STATUS_PENDING,
    ).update(
        Set({
            CreditRequest.status: status,
            CreditRequest.decided_by: admin_id,
            CreditRequest.decided_at: datetime.utcnow(),
        }),
        response_type=UpdateResponse.NEW_DOCUMENT,
    )
    if claimed is not None:
        return claimed
    existing = await CreditRequest.get(request_id)
    if existing is None:
        raise NotFoundError("Credit request not found")
    raise InvalidStateError(
        f"Credit request already {existing.status}",
        details={"request_id": str(request_id), "status": existing.status},
    )


async def approve(request_id: PydanticObjectId, admin: User) -> CreditRequest:
    """
    Claim the request first, then grant. A request can therefore never be granted twice;
    if the grant fails the claim is released so the request can be approved again.
    """
    req = await _claim(request_id, STATUS_APPROVED, admin.id)
    try:
        await credits_service.grant(
            req.user_id,
            req.amount,
            reason="grant",
            reference_type="credit_request",
            reference_id=str(req.id),
        )
    except Exception:
        log.exception("credit_request_grant_failed", request_id=str(req.id))
        await CreditRequest.find_one(
            CreditRequest.id == req.id,
            CreditRequest.status == STATUS_APPROVED,
        ).update(Set({CreditRequest.status: STATUS_PENDING, CreditRequest.decided_by: None, CreditRequest.decided_at: None}))
        raise
    log.info("credit_request_approved", request_id=str(req.id), user_id=str(req.user_id), amount=req.amount)
    await log_event(
        str(admin.id),
        "credit_request_approved",
        "credit_request",
        str(req.id),
        {"user_id": str(req.user_id), "amount": req.amount},
    )
    return req


async def reject(request_id: PydanticObjectId, admin: User) -> CreditRequest:
    req = await _claim(request_id, STATUS_REJECTED, admin.id)
    log.info("credit_request_rejected", request_id=str(req.id), user_id=str(req.user_id))
    await log_event(str(admin.id), "credit_request_rejected", "credit_request", str(req.id), {"user_id": str(req.user_id)})
    return req


async def list_pending() -> list[dict]:
    """Pending requests, oldest first, with the requesting user's name."""
    pending = await CreditRequest.find(CreditRequest.status == STATUS_PENDING).sort(+CreditRequest.created_at).to_list()
    user_ids = list({r.user_id for r in pending})
    users = await User.find(In(User.id, user_ids)).to_list() if user_ids else []
    names = {u.id: u.username for u in users}
    return [
        {
            "id": str(r.id),
            "user_id": str(r.user_id),
            "username": names.get(r.user_id),
            "amount": r.amount,
            "created_at": r.created_at.isoformat(),
        }
        for r in pending
    ]


async def list_for_user(user_id: PydanticObjectId) -> list[CreditRequest]:
    return await CreditRequest.find(CreditRequest.user_id == user_id).sort(-CreditRequest.created_at).to_list()
