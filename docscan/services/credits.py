"""Credit ledger: atomic conditional deduct, grant and bulk reset on User.credits."""

from beanie import PydanticObjectId, UpdateResponse
from beanie.operators import Inc, Set

from docscan.core.exceptions import BadRequestError, NotFoundError
from docscan.core.logging import get_logger
from docscan.models.credit_ledger import CreditLedgerEntry
from docscan.models.user import ROLE_USER, User

log = get_logger(__name__)

REASONS = ("scan", "grant", "refund")


async def get_balance(user_id: PydanticObjectId) -> int:
    """Return current balance for user; NotFoundError if the user does not exist."""
    user = await User.get(user_id)
    if not user:
        raise NotFoundError("User not found")
    return user.credits


async def _record(
    user_id: PydanticObjectId,
    amount: int,
    balance_after: int,
    reason: str,
    reference_type: str | None,
    reference_id: str | None,
) -> CreditLedgerEntry:
    if reason not in REASONS:
        raise BadRequestError(f"Invalid reason: {reason}")
    entry = CreditLedgerEntry(
        user_id=user_id,
        amount=amount,
        balance_after=balance_after,
        reason=reason,
        reference_type=reference_type,
        reference_id=reference_id,
    )
    await entry.insert()
    return entry


async def try_deduct(
    user_id: PydanticObjectId,
    amount: int = 1,
    reason: str = "scan",
    reference_type: str | None = None,
    reference_id: str | None = None,
) -> int | None:
    """
    Decrement the balance by ``amount`` only where ``credits >= amount``.
    Returns the balance after deduction, or None if the balance was insufficient.

    Check and decrement are one findOneAndUpdate, so two concurrent calls can never both
    take the last unit.
    """
    if amount < 1:
        raise BadRequestError("Deduction amount must be positive")
    updated = await User.find_one(
        User.id == user_id,
        User.credits >= amount,
    ).update(
        Inc({User.credits: -amount}),
        response_type=UpdateResponse.NEW_DOCUMENT,
    )
    if updated is None:
        log.info("credit_deduct_rejected", user_id=str(user_id), amount=amount)
        return None
    await _record(user_id, -amount, updated.credits, reason, reference_type, reference_id)
    log.info("credit_deducted", user_id=str(user_id), amount=amount, balance_after=updated.credits)
    return updated.credits


async def grant(
    user_id: PydanticObjectId,
    amount: int,
    reason: str = "grant",
    reference_type: str | None = None,
    reference_id: str | None = None,
) -> int:
    """Unconditionally add ``amount`` credits. Returns the balance after the grant."""
    if amount < 1:
        raise BadRequestError("Grant amount must be positive")
    updated = await User.find_one(User.id == user_id).update(
        Inc({User.credits: amount}),
        response_type=UpdateResponse.NEW_DOCUMENT,
    )
    if updated is None:
        raise NotFoundError("User not found")
    await _record(user_id, amount, updated.credits, reason, reference_type, reference_id)
    log.info("credit_granted", user_id=str(user_id), amount=amount, reason=reason, balance_after=updated.credits)
    return updated.credits


async def reset_all(value: int, role: str = ROLE_USER) -> int:
    """
    Set every ``role`` user's balance to ``value``; returns the number of users touched.
    Races with in-flight deductions are last-writer-wins, which is fine for an absolute value.
    """
    if value < 0:
        raise BadRequestError("Reset value must not be negative")
    result = await User.find(User.role == role).update_many(Set({User.credits: value}))
    log.info("credits_reset", role=role, value=value, matched=result.matched_count)
    return result.matched_count
